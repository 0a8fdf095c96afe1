"""
Fill fluxes missing at the first forecast timestamp.

Accumulated and averaged fluxes have no value at the forecast start. The
missing cell is carried backward from the same member one look-ahead later,
a full day for shortwave so the time of day matches, one native step for
longwave and precipitation.
"""

import logging
from typing import Any, Dict, Optional

import pandas as pd
import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import (
    BOUNDARY_FILL_LOOKAHEAD,
    MEMBER_DIM,
    RAW_FORECAST,
    TIME_DIM,
)
from metdownscale.processors.abc_data_processor import (
    DataProcessor,
    Tables,
    register_processor,
)

# Module logger
logger = logging.getLogger(__name__)


def fill_first_timestep(
    forecast: xr.Dataset, lookahead: Optional[Dict[str, str]] = None
) -> tuple[xr.Dataset, Dict[str, list]]:
    """Fill missing first-timestep values from a later timestep.

    Parameters
    ----------
    forecast : xr.Dataset
        Raw forecast, dims ``(member, time)``.
    lookahead : dict of str to str, optional
        Variable name to look-ahead offset, default
        ``BOUNDARY_FILL_LOOKAHEAD``.

    Returns
    -------
    tuple of (xr.Dataset, dict)
        The filled forecast and, per variable, the members that were filled.

    """
    lookahead = BOUNDARY_FILL_LOOKAHEAD if lookahead is None else lookahead
    times = pd.DatetimeIndex(forecast[TIME_DIM].values)
    first = times[0]

    filled = forecast.copy(deep=True)
    fills = {}
    for var, offset in lookahead.items():
        if var not in forecast:
            continue
        source_time = first + pd.Timedelta(offset)
        if source_time not in times:
            logger.debug("No %s reading at %s to fill from", var, source_time)
            continue
        head = forecast[var].sel({TIME_DIM: first})
        source = forecast[var].sel({TIME_DIM: source_time})
        to_fill = head.isnull() & source.notnull()
        if not bool(to_fill.any()):
            continue
        filled[var].loc[{TIME_DIM: first}] = head.where(~to_fill, source).values
        fills[var] = forecast[MEMBER_DIM].values[to_fill.values].tolist()
        logger.info(
            "Filled %s at %s from %s for %d member(s)",
            var,
            first,
            source_time,
            len(fills[var]),
        )
    return filled, fills


@register_processor("boundary_fill", priority=10)
class BoundaryFill(DataProcessor):
    """
    Carry flux values backward onto the first forecast timestamp.

    Only cells that are missing at the first timestamp are touched. The fills
    are recorded in the context under ``boundary_fill``.

    """

    def __init__(self, config: RunConfig):
        super().__init__(config)
        self.name = "boundary_fill"

    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        forecast = self._require(result, RAW_FORECAST, self.name)
        filled, fills = fill_first_timestep(forecast)
        context[self.name] = fills
        self.update_context(context)
        return {**result, RAW_FORECAST: filled}
