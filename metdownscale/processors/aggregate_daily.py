"""
Aggregate sub-daily series to daily means, nulling incomplete days.
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import DAILY_FORECAST, RAW_FORECAST, TIME_DIM
from metdownscale.core.exceptions import IncompleteDayError, report_gap
from metdownscale.processors.abc_data_processor import (
    DataProcessor,
    Tables,
    register_processor,
)
from metdownscale.util.utils import get_cadence, readings_per_day

# Module logger
logger = logging.getLogger(__name__)


def aggregate_to_daily(
    ds: xr.Dataset, context: Optional[Dict[str, Any]] = None
) -> xr.Dataset:
    """Daily mean of every variable, missing where a day is incomplete.

    A (member, day, variable) cell needs ``24h / cadence`` non-missing
    readings; otherwise the daily value is missing. Incomplete days are never
    imputed.

    Parameters
    ----------
    ds : xr.Dataset
        Sub-daily table with a ``time`` dimension.
    context : dict, optional
        Run context. When given, incomplete cells are reported in it.

    Returns
    -------
    xr.Dataset
        Same variables with ``time`` labels at day starts.

    """
    cadence = get_cadence(ds)
    expected = readings_per_day(cadence)

    resampled = ds.resample({TIME_DIM: "1D"})
    counts = resampled.count()
    daily = resampled.mean().where(counts >= expected)

    for name in daily.data_vars:
        daily[name].attrs = dict(ds[name].attrs)
    daily.attrs = dict(ds.attrs)
    daily.attrs["cadence"] = "1D"

    if context is not None:
        for name in daily.data_vars:
            short = counts[name] < expected
            n_short = int(short.sum())
            if n_short:
                other = [d for d in short.dims if d != TIME_DIM]
                per_day = short.any(dim=other) if other else short
                days = np.unique(per_day[TIME_DIM].values[per_day.values])
                report_gap(
                    context,
                    IncompleteDayError,
                    f"{name} daily mean left missing for days "
                    f"{[str(d)[:10] for d in days]} (fewer than {expected} readings)",
                    n_short,
                )
    return daily


@register_processor("aggregate_daily", priority=20)
class AggregateDaily(DataProcessor):
    """
    Aggregate the raw forecast to daily means per member.

    Methods
    -------
    execute(result, context)
        Add the daily forecast table to the pipeline state.
    update_context(context)
        Record the aggregation in the context.

    """

    def __init__(self, config: RunConfig):
        super().__init__(config)
        self.name = "aggregate_daily"
        logger.debug("AggregateDaily initialized")

    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        forecast = self._require(result, RAW_FORECAST, self.name)
        daily = aggregate_to_daily(forecast, context)
        logger.debug("Aggregated forecast to %d days", daily.sizes[TIME_DIM])
        self.update_context(context)
        return {**result, DAILY_FORECAST: daily}
