"""
Interpolate redistributed sub-daily series to hourly resolution with a
natural cubic spline, one curve per (member, noise member, variable).
"""

import logging
from typing import Any, Dict

import numpy as np
import pandas as pd
import xarray as xr
from scipy.interpolate import CubicSpline

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import (
    INTERPOLATED,
    MEMBER_DIM,
    NOISE_DIM,
    REDISTRIBUTED,
    TIME_DIM,
)
from metdownscale.core.exceptions import InterpolationRangeError, report_gap
from metdownscale.processors.abc_data_processor import (
    DataProcessor,
    Tables,
    register_processor,
)
from metdownscale.util.utils import (
    ONE_HOUR,
    check_ensemble_keys,
    days_since,
    get_cadence,
    hourly_horizon,
)

# Module logger
logger = logging.getLogger(__name__)


def _bracketing_points(native_hours: np.ndarray, query_hours: np.ndarray):
    """Indices of the native points on either side of each query hour.

    A query hour that falls on a native point is bracketed by that point
    alone. Indices outside ``[0, len(native_hours))`` mark hours beyond the
    series.
    """
    left = np.searchsorted(native_hours, query_hours, side="right") - 1
    on_point = (left >= 0) & (
        native_hours[np.clip(left, 0, None)] == query_hours
    )
    right = np.where(on_point, left, left + 1)
    return left, right


def spline_series(
    x_native: np.ndarray,
    y_native: np.ndarray,
    x_query: np.ndarray,
    left: np.ndarray,
    right: np.ndarray,
) -> np.ndarray:
    """Evaluate a natural cubic spline through the finite native points.

    Query points outside the valid native range, or bracketed by a missing
    native point, are missing. Never extrapolates or bridges gaps.

    Raises
    ------
    InterpolationRangeError
        If fewer than two native points are finite.

    """
    ok = np.isfinite(y_native)
    if ok.sum() < 2:
        raise InterpolationRangeError(
            f"{int(ok.sum())} valid point(s), at least 2 are needed"
        )
    spline = CubicSpline(x_native[ok], y_native[ok], bc_type="natural")
    n = len(y_native)
    inside = (left >= 0) & (right < n)
    valid = np.zeros(len(x_query), dtype=bool)
    valid[inside] = ok[left[inside]] & ok[right[inside]]
    return np.where(valid, spline(x_query), np.nan)


def interpolate_to_hourly(
    redistributed: xr.Dataset, context: Dict[str, Any] = None
) -> xr.Dataset:
    """Spline every series of ``redistributed`` onto the hourly horizon.

    Parameters
    ----------
    redistributed : xr.Dataset
        Dims ``(member, noise_member, time)`` at the native cadence.
    context : dict, optional
        Run context, series with too few points are reported in it.

    Returns
    -------
    xr.Dataset
        Same dims with an hourly ``time`` axis.

    """
    cadence = get_cadence(redistributed)
    native = pd.DatetimeIndex(redistributed[TIME_DIM].values)
    hourly = hourly_horizon(native, cadence)
    t0 = native[0]

    x_native = days_since(native, t0)
    x_hourly = days_since(hourly, t0)
    # integer hour offsets keep the bracketing exact
    left, right = _bracketing_points(
        np.asarray((native - t0) // ONE_HOUR),
        np.asarray((hourly - t0) // ONE_HOUR),
    )

    members = redistributed[MEMBER_DIM].values
    noise_members = redistributed[NOISE_DIM].values
    interpolated = xr.Dataset(attrs=dict(redistributed.attrs))
    interpolated.attrs["cadence"] = "1h"

    for var in redistributed.data_vars:
        values = redistributed[var].transpose(MEMBER_DIM, NOISE_DIM, TIME_DIM).values
        out = np.full((len(members), len(noise_members), len(hourly)), np.nan)
        for mi, member in enumerate(members):
            for ni, noise_member in enumerate(noise_members):
                try:
                    out[mi, ni] = spline_series(
                        x_native, values[mi, ni], x_hourly, left, right
                    )
                except InterpolationRangeError as e:
                    if context is not None:
                        report_gap(
                            context,
                            InterpolationRangeError,
                            f"{var} member {member} noise member {noise_member}: {e}; "
                            "hourly series left missing",
                            len(hourly),
                        )
        interpolated[var] = xr.DataArray(
            out,
            dims=(MEMBER_DIM, NOISE_DIM, TIME_DIM),
            coords={MEMBER_DIM: members, NOISE_DIM: noise_members, TIME_DIM: hourly},
            attrs=dict(redistributed[var].attrs),
        )

    beyond = int(((left < 0) | (right >= len(native))).sum())
    if beyond and context is not None:
        report_gap(
            context,
            InterpolationRangeError,
            f"{beyond} hour(s) outside the native time range left missing "
            f"for {list(redistributed.data_vars)}",
            beyond * len(members) * len(noise_members) * len(redistributed.data_vars),
        )
    return interpolated


@register_processor("spline_interpolate", priority=50)
class SplineInterpolate(DataProcessor):
    """
    Interpolate redistributed temperature, humidity and wind to hourly steps.

    Methods
    -------
    execute(result, context)
        Add the interpolated hourly table to the pipeline state.

    """

    def __init__(self, config: RunConfig):
        super().__init__(config)
        self.name = "spline_interpolate"

    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        redistributed = self._require(result, REDISTRIBUTED, self.name)
        interpolated = interpolate_to_hourly(redistributed, context)
        check_ensemble_keys(
            interpolated,
            redistributed[MEMBER_DIM].values,
            self.config.noise_members,
            self.name,
        )
        logger.debug("Interpolated to %d hourly steps", interpolated.sizes[TIME_DIM])
        self.update_context(context)
        return {**result, INTERPOLATED: interpolated}
