"""
Anchor interpolated hourly series to the most recent site observations.

Within each (member, noise member, calendar day) group the anchor is the
first hour where both an interpolated and an observed value exist. Hours
before the anchor take the observed value where one exists and keep the
interpolated value otherwise. Hours after the anchor are shifted by an offset
chosen by the policy:

``group_max``
    the largest anchor-hour ``interpolated - observed`` difference of the
    group. Each series has a single anchor per day, so this is its own
    anchor-hour offset.
``anchor``
    the difference at the anchor hour, read directly.

Under both policies the anchor hour equals the observation exactly. Groups
without an anchor are left unchanged. Wind speed is never shifted.
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import (
    HOURLY_STATES,
    INTERPOLATED,
    MEMBER_DIM,
    NOISE_DIM,
    OFFSET_POLICIES,
    OFFSET_POLICY_GROUP_MAX,
    OFFSET_VARIABLES,
    TIME_DIM,
)
from metdownscale.processors.abc_data_processor import (
    DataProcessor,
    Tables,
    register_processor,
)
from metdownscale.util.utils import check_unique_index, day_start

# Module logger
logger = logging.getLogger(__name__)


def _correct_group(
    values: np.ndarray, observed: np.ndarray, policy: str
) -> np.ndarray:
    """Offset-correct one day group.

    Parameters
    ----------
    values : np.ndarray
        Interpolated values, shape ``(member, noise_member, hour)``.
    observed : np.ndarray
        Observations for the same hours, shape ``(hour,)``.
    policy : str
        ``"group_max"`` or ``"anchor"``.

    Returns
    -------
    np.ndarray
        Corrected values, same shape as ``values``.

    """
    observed = np.broadcast_to(observed, values.shape)
    both = np.isfinite(values) & np.isfinite(observed)
    has_anchor = both.any(axis=-1)
    anchor = np.argmax(both, axis=-1)

    hours = np.arange(values.shape[-1])
    is_anchor = (hours == anchor[..., None]) & has_anchor[..., None]
    if policy == OFFSET_POLICY_GROUP_MAX:
        # offsets only exist at the anchor hour
        offsets = np.where(is_anchor, values - observed, -np.inf)
        offset = offsets.max(axis=-1)
    else:
        offset = np.take_along_axis(values - observed, anchor[..., None], axis=-1)[..., 0]
    offset = np.where(has_anchor, offset, 0.0)

    before = hours < anchor[..., None]
    corrected = values - offset[..., None]
    corrected = np.where(before & np.isfinite(observed), observed, corrected)
    corrected = np.where(before & ~np.isfinite(observed), values, corrected)
    corrected = np.where(is_anchor, observed, corrected)
    return np.where(has_anchor[..., None], corrected, values)


def offset_correct(
    interpolated: xr.Dataset,
    observations: xr.Dataset,
    policy: str = OFFSET_POLICY_GROUP_MAX,
    variables=OFFSET_VARIABLES,
) -> xr.Dataset:
    """Anchor every series of ``interpolated`` to ``observations``.

    Parameters
    ----------
    interpolated : xr.Dataset
        Hourly table, dims ``(member, noise_member, time)``.
    observations : xr.Dataset
        Site observations, dim ``time``. Only timestamps equal to hourly
        steps of ``interpolated`` are used.
    policy : str, optional
        ``"group_max"`` (default) or ``"anchor"``.
    variables : list of str, optional
        Variables to correct. Variables absent from ``observations`` are
        left unchanged.

    Returns
    -------
    xr.Dataset
        A new table; ``interpolated`` is not modified.

    """
    if policy not in OFFSET_POLICIES:
        raise ValueError(f"Unknown offset policy {policy!r}, use one of {OFFSET_POLICIES}")
    check_unique_index(observations, "offset correction (observations)")

    corrected = interpolated.copy(deep=True)
    observed = observations.reindex({TIME_DIM: interpolated[TIME_DIM]})
    days = day_start(interpolated[TIME_DIM].values)

    for var in variables:
        if var not in observed or var not in interpolated:
            logger.debug("No observations of %s, offset skipped", var)
            continue
        da = interpolated[var].transpose(MEMBER_DIM, NOISE_DIM, TIME_DIM)
        values = da.values.copy()
        obs = observed[var].values
        for day in np.unique(days):
            cols = np.flatnonzero(days == day)
            values[..., cols] = _correct_group(values[..., cols], obs[cols], policy)
        corrected[var] = da.copy(data=values)
    return corrected


@register_processor("offset_correct", priority=60)
class OffsetCorrect(DataProcessor):
    """
    Remove interpolation drift by anchoring to the latest observations.

    Parameters
    ----------
    config : RunConfig
        ``offset_policy`` selects the offset rule.
    observations : xr.Dataset, optional
        Site observations. Without them the stage passes data through.

    """

    requires = ("observations",)

    def __init__(self, config: RunConfig, observations: Optional[xr.Dataset] = None):
        super().__init__(config)
        self.observations = observations
        self.name = "offset_correct"

    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        interpolated = self._require(result, INTERPOLATED, self.name)
        if self.observations is None:
            logger.info("No site observations supplied, offset correction skipped")
            return {**result, HOURLY_STATES: interpolated}

        corrected = offset_correct(
            interpolated, self.observations, policy=self.config.offset_policy
        )
        self.update_context(context)
        return {**result, HOURLY_STATES: corrected}
