"""
Apply fitted bias coefficients to the daily forecast and, optionally, fan
each forecast member out into stochastic noise members.
"""

import logging
from typing import Any, Dict, Iterable, Optional

import numpy as np
import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import (
    DAILY_FORECAST,
    DEBIASED,
    DEBIASED_VARIABLES,
    MEMBER_DIM,
    NO_NOISE_MEMBER,
    NOISE_DIM,
    RELHUM_BOUNDS,
    TIME_DIM,
)
from metdownscale.core.exceptions import (
    InsufficientCalibrationDataError,
    JoinIntegrityError,
)
from metdownscale.processors.abc_data_processor import (
    DataProcessor,
    Tables,
    register_processor,
)
from metdownscale.tools.bias_coefficients import (
    BIN_DIM,
    VARIABLE_DIM,
    bin_for_dayofyear,
)
from metdownscale.util.utils import check_unique_index

# Module logger
logger = logging.getLogger(__name__)


def clamp_physical(ds: xr.Dataset) -> xr.Dataset:
    """Clamp shortwave to >= 0 and relative humidity to [0, 100]. Missing stays missing."""
    clamped = ds.copy()
    if "ShortWave" in clamped:
        clamped["ShortWave"] = clamped["ShortWave"].clip(min=0.0)
    if "RelHum" in clamped:
        clamped["RelHum"] = clamped["RelHum"].clip(*RELHUM_BOUNDS)
    return clamped


def apply_bias_coefficients(
    daily: xr.Dataset,
    coefficients: xr.Dataset,
    variables: Optional[Iterable[str]] = None,
    noise_members: Iterable[int] = (NO_NOISE_MEMBER,),
    rng: Optional[np.random.Generator] = None,
) -> xr.Dataset:
    """Correct daily forecast values and add residual noise.

    Parameters
    ----------
    daily : xr.Dataset
        Daily forecast means, dims ``(member, time)``.
    coefficients : xr.Dataset
        Output of :func:`~metdownscale.tools.bias_coefficients.fit_bias_coefficients`.
    variables : iterable of str, optional
        Variables to correct, default every debiased variable.
    noise_members : iterable of int, optional
        Noise-member ids to produce. ``(0,)`` gives the noise free series.
    rng : np.random.Generator, optional
        Source of the residual draws. Required unless ``noise_members`` is ``(0,)``.

    Returns
    -------
    xr.Dataset
        Dims ``(member, noise_member, time)``, clamped to physical bounds.

    Raises
    ------
    InsufficientCalibrationDataError
        If a day falls in a bin without coefficients.
    JoinIntegrityError
        If a forecast member has no coefficients.

    """
    variables = list(variables) if variables is not None else list(DEBIASED_VARIABLES)
    noise_members = list(noise_members)
    add_noise = noise_members != [NO_NOISE_MEMBER]
    if add_noise and rng is None:
        raise ValueError("A random generator is required to add noise.")

    check_unique_index(daily, "bias correction")
    bins = bin_for_dayofyear(
        daily[TIME_DIM].dt.dayofyear.values, coefficients.attrs["bin_width"]
    )
    unfitted = sorted(set(bins.tolist()) - set(coefficients[BIN_DIM].values.tolist()))
    if unfitted:
        raise InsufficientCalibrationDataError(
            f"No bias coefficients for day-of-year bin(s) {unfitted}"
        )
    members = daily[MEMBER_DIM].values
    uncovered = sorted(set(members.tolist()) - set(coefficients[MEMBER_DIM].values.tolist()))
    if uncovered:
        raise JoinIntegrityError(f"No bias coefficients for member(s) {uncovered}")

    bin_index = xr.DataArray(bins, dims=TIME_DIM, coords={TIME_DIM: daily[TIME_DIM]})
    per_day = coefficients.sel({BIN_DIM: bin_index, MEMBER_DIM: members})

    debiased = xr.Dataset(attrs=dict(daily.attrs))
    for var in variables:
        c = per_day.sel({VARIABLE_DIM: var}).drop_vars([BIN_DIM, VARIABLE_DIM])
        corrected = c["intercept"] + c["slope"] * daily[var]
        corrected = corrected.expand_dims({NOISE_DIM: noise_members})
        if add_noise:
            draws = xr.DataArray(
                rng.standard_normal(
                    (len(noise_members), len(members), daily.sizes[TIME_DIM])
                ),
                dims=(NOISE_DIM, MEMBER_DIM, TIME_DIM),
                coords={
                    NOISE_DIM: noise_members,
                    MEMBER_DIM: members,
                    TIME_DIM: daily[TIME_DIM],
                },
            )
            corrected = corrected + draws * c["residual_scale"]
        corrected = corrected.transpose(MEMBER_DIM, NOISE_DIM, TIME_DIM)
        corrected.attrs = dict(daily[var].attrs)
        debiased[var] = corrected

    return clamp_physical(debiased)


@register_processor("debias", priority=30)
class Debias(DataProcessor):
    """
    Bias-correct the daily forecast, with optional noise fan-out.

    Parameters
    ----------
    config : RunConfig
        ``add_noise``, ``ensemble_size`` and ``seed`` control the noise.
    coefficients : xr.Dataset
        Fitted bias coefficients.

    Methods
    -------
    execute(result, context)
        Add the debiased daily table to the pipeline state.

    """

    requires = ("coefficients",)

    def __init__(self, config: RunConfig, coefficients: xr.Dataset = None):
        super().__init__(config)
        if coefficients is None:
            raise ValueError("Debias processor needs fitted bias coefficients.")
        self.coefficients = coefficients
        self.name = "debias"
        logger.debug(
            "Debias initialized with noise=%s, noise members=%s",
            config.noise_enabled,
            config.noise_members,
        )

    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        daily = self._require(result, DAILY_FORECAST, self.name)
        rng = (
            np.random.default_rng(self.config.seed)
            if self.config.noise_enabled
            else None
        )
        debiased = apply_bias_coefficients(
            daily,
            self.coefficients,
            noise_members=self.config.noise_members,
            rng=rng,
        )
        logger.info(
            "Debiased %d member(s) into %d noise member(s) each",
            debiased.sizes[MEMBER_DIM],
            debiased.sizes[NOISE_DIM],
        )
        self.update_context(context)
        return {**result, DEBIASED: debiased}
