"""
Hourly series that are held constant over a period rather than interpolated:
rain, snow and, in downscaled mode, longwave.
"""

import logging
from typing import Any, Dict

import numpy as np
import pandas as pd
import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import (
    DEBIASED,
    HOURLY_HOLDS,
    MEMBER_DIM,
    NOISE_DIM,
    RAW_FORECAST,
    TIME_DIM,
    VARIABLE_UNITS,
)
from metdownscale.processors.abc_data_processor import (
    DataProcessor,
    Tables,
    register_processor,
)
from metdownscale.util.utils import (
    check_ensemble_keys,
    expand_daily,
    get_cadence,
    hold_to_hourly,
    hourly_horizon,
)

# Module logger
logger = logging.getLogger(__name__)


@register_processor("hourly_holds", priority=80)
class HourlyHolds(DataProcessor):
    """
    Build the held hourly components of the driver files.

    ``Rain`` is the forecast precipitation rate held across each native
    period, never downscaled. ``Snow`` is always missing. In downscaled mode
    ``LongWave`` is the debiased daily value held across its day; otherwise
    the pass-through stage provides it.

    """

    def __init__(self, config: RunConfig):
        super().__init__(config)
        self.name = "hourly_holds"

    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        forecast = self._require(result, RAW_FORECAST, self.name)
        cadence = get_cadence(forecast)
        hourly = hourly_horizon(pd.DatetimeIndex(forecast[TIME_DIM].values), cadence)
        noise_members = self.config.noise_members

        rain = hold_to_hourly(forecast["PrecipRate"], hourly, cadence)
        rain = rain.expand_dims({NOISE_DIM: noise_members})
        rain.attrs = {"units": VARIABLE_UNITS["Rain"]}

        snow = xr.full_like(rain, np.nan)
        snow.attrs = {"units": VARIABLE_UNITS["Snow"]}

        holds = xr.Dataset({"Rain": rain, "Snow": snow}, attrs={"cadence": "1h"})
        if self.config.downscale:
            daily_lw = self._require(result, DEBIASED, self.name)["LongWave"]
            holds["LongWave"] = expand_daily(daily_lw, hourly)

        holds = holds.transpose(MEMBER_DIM, NOISE_DIM, TIME_DIM)
        check_ensemble_keys(
            holds, forecast[MEMBER_DIM].values, noise_members, self.name
        )
        logger.debug("Built held series %s", list(holds.data_vars))
        self.update_context(context)
        return {**result, HOURLY_HOLDS: holds}
