"""
Fit day-of-year binned linear bias-correction coefficients from paired
daily forecast and observation history.

For each bin, forecast member and variable an ordinary least squares fit
``observed = intercept + slope * forecast`` is stored together with the
standard deviation of its residuals, which later drives the noise injection.
"""

import logging
from typing import Iterable, Optional

import numpy as np
import xarray as xr
from scipy import stats

from metdownscale.core.constants import (
    DAYS_IN_LEAP_YEAR,
    DEBIASED_VARIABLES,
    DEFAULT_BIN_WIDTH,
    DEFAULT_MIN_PAIRED_DAYS,
    MEMBER_DIM,
    TIME_DIM,
)
from metdownscale.core.exceptions import InsufficientCalibrationDataError
from metdownscale.processors.aggregate_daily import aggregate_to_daily
from metdownscale.util.utils import check_unique_index

# Module logger
logger = logging.getLogger(__name__)

BIN_DIM = "doy_bin"
VARIABLE_DIM = "variable"


def bin_for_dayofyear(doy, bin_width: int = DEFAULT_BIN_WIDTH) -> np.ndarray:
    """Zero based day-of-year bin of each day of year (1..366)."""
    return (np.asarray(doy) - 1) // bin_width


def n_bins(bin_width: int = DEFAULT_BIN_WIDTH) -> int:
    """Number of bins needed to cover a leap year."""
    return int(np.ceil(DAYS_IN_LEAP_YEAR / bin_width))


def aggregate_observations_daily(observations: xr.Dataset) -> xr.Dataset:
    """Daily means of site observations, incomplete days left missing."""
    return aggregate_to_daily(observations)


def _fit_one(x: np.ndarray, y: np.ndarray, min_paired_days: int, where: str):
    """Least squares fit of ``y`` on ``x`` over finite pairs.

    Returns
    -------
    tuple of float
        intercept, slope, residual scale and number of paired days.

    """
    ok = np.isfinite(x) & np.isfinite(y)
    n = int(ok.sum())
    if n < min_paired_days:
        raise InsufficientCalibrationDataError(
            f"{where} has {n} paired days, at least {min_paired_days} are required"
        )
    x, y = x[ok], y[ok]
    if np.ptp(x) == 0:
        raise InsufficientCalibrationDataError(
            f"{where} has a constant forecast, slope cannot be fitted"
        )
    fit = stats.linregress(x, y)
    residuals = y - (fit.intercept + fit.slope * x)
    residual_scale = np.sqrt(np.sum(residuals**2) / (n - 2))
    return fit.intercept, fit.slope, residual_scale, n


def fit_bias_coefficients(
    forecast_daily: xr.Dataset,
    observed_daily: xr.Dataset,
    bin_width: int = DEFAULT_BIN_WIDTH,
    min_paired_days: int = DEFAULT_MIN_PAIRED_DAYS,
    variables: Optional[Iterable[str]] = None,
    use_ensemble_mean: bool = False,
) -> xr.Dataset:
    """Fit bias coefficients per day-of-year bin, member and variable.

    Parameters
    ----------
    forecast_daily : xr.Dataset
        Historical daily forecast means, dims ``(member, time)``.
    observed_daily : xr.Dataset
        Daily observation means, dim ``time``.
    bin_width : int, optional
        Width of the day-of-year bins in days. The default gives one bin
        spanning the whole year.
    min_paired_days : int, optional
        Minimum number of paired (non-missing) days for every bin.
    variables : iterable of str, optional
        Variables to fit, default every debiased variable.
    use_ensemble_mean : bool, optional
        Fit once against the ensemble mean and share the coefficients
        between members.

    Returns
    -------
    xr.Dataset
        Dims ``(doy_bin, member, variable)`` with ``intercept``, ``slope``,
        ``residual_scale`` and ``n_days``; ``attrs["bin_width"]``.

    Raises
    ------
    InsufficientCalibrationDataError
        If any bin has fewer than ``min_paired_days`` pairs for any member
        and variable, or a constant forecast.

    """
    variables = list(variables) if variables is not None else list(DEBIASED_VARIABLES)
    absent = [v for v in variables if v not in observed_daily or v not in forecast_daily]
    if absent:
        raise ValueError(f"Variables missing from the calibration history: {absent}")

    check_unique_index(forecast_daily, "coefficient fitting (forecast)")
    check_unique_index(observed_daily, "coefficient fitting (observations)")

    forecast, observed = xr.align(
        forecast_daily[variables], observed_daily[variables], join="inner"
    )
    if forecast.sizes[TIME_DIM] == 0:
        raise InsufficientCalibrationDataError(
            "Forecast and observation history share no days"
        )

    members = forecast[MEMBER_DIM].values
    if use_ensemble_mean:
        forecast = forecast.mean(MEMBER_DIM).expand_dims({MEMBER_DIM: [0]})
    fit_members = forecast[MEMBER_DIM].values

    bins = bin_for_dayofyear(forecast[TIME_DIM].dt.dayofyear.values, bin_width)
    shape = (n_bins(bin_width), len(fit_members), len(variables))
    intercept = np.full(shape, np.nan)
    slope = np.full(shape, np.nan)
    residual_scale = np.full(shape, np.nan)
    n_days = np.zeros(shape, dtype=int)

    for b in range(shape[0]):
        in_bin = bins == b
        first_day = b * bin_width + 1
        last_day = min((b + 1) * bin_width, DAYS_IN_LEAP_YEAR)
        for vi, var in enumerate(variables):
            y = observed[var].values[in_bin]
            for mi, member in enumerate(fit_members):
                x = forecast[var].sel({MEMBER_DIM: member}).values[in_bin]
                where = (
                    f"Day-of-year bin {b} (days {first_day}-{last_day}), "
                    f"{var}, member {'mean' if use_ensemble_mean else member}"
                )
                (
                    intercept[b, mi, vi],
                    slope[b, mi, vi],
                    residual_scale[b, mi, vi],
                    n_days[b, mi, vi],
                ) = _fit_one(x, y, min_paired_days, where)

    dims = (BIN_DIM, MEMBER_DIM, VARIABLE_DIM)
    coefficients = xr.Dataset(
        {
            "intercept": (dims, intercept),
            "slope": (dims, slope),
            "residual_scale": (dims, residual_scale),
            "n_days": (dims, n_days),
        },
        coords={
            BIN_DIM: np.arange(shape[0]),
            MEMBER_DIM: fit_members,
            VARIABLE_DIM: variables,
        },
        attrs={"bin_width": int(bin_width)},
    )
    if use_ensemble_mean:
        coefficients = coefficients.isel({MEMBER_DIM: 0}, drop=True).expand_dims(
            {MEMBER_DIM: members}
        )
        coefficients = coefficients.transpose(*dims)

    logger.info(
        "Fitted bias coefficients for %d bin(s), %d member(s), variables %s",
        shape[0],
        coefficients.sizes[MEMBER_DIM],
        variables,
    )
    return coefficients
