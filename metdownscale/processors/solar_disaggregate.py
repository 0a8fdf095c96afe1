"""
Disaggregate coarse shortwave values to hourly values shaped by the
clear-sky solar geometry curve.

Each coarse value is the mean over its period (a day in downscaled mode, the
native 6 hours otherwise). Hour ``h`` of a period receives
``value * rpot(h) / mean(rpot over the period)``, or 0 when the sun never
rises during the period. Period means are preserved and the output is never
negative.
"""

import logging
from typing import Any, Dict

import numpy as np
import pandas as pd
import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import (
    DEBIASED,
    HOURLY_SHORTWAVE,
    MEMBER_DIM,
    NO_NOISE_MEMBER,
    NOISE_DIM,
    RAW_FORECAST,
    TIME_DIM,
)
from metdownscale.processors.abc_data_processor import (
    DataProcessor,
    Tables,
    register_processor,
)
from metdownscale.util.solar_geometry import potential_radiation
from metdownscale.util.utils import (
    check_ensemble_keys,
    get_cadence,
    hourly_horizon,
)

# Module logger
logger = logging.getLogger(__name__)


def disaggregate_shortwave(
    shortwave: xr.DataArray,
    period: pd.Timedelta,
    latitude: float,
    longitude: float,
) -> xr.DataArray:
    """Spread period-mean shortwave over hourly steps with a solar kernel.

    Parameters
    ----------
    shortwave : xr.DataArray
        Period means with a ``time`` dimension labelled by period start.
    period : pd.Timedelta
        Length of the period each value covers.
    latitude, longitude : float
        Site location in degrees.

    Returns
    -------
    xr.DataArray
        Hourly values over every hour covered by the periods. Hours of a
        missing period value are missing.

    """
    starts = pd.DatetimeIndex(shortwave[TIME_DIM].values)
    hourly = hourly_horizon(starts, period)
    t0 = starts[0]
    period_start = t0 + ((hourly - t0) // period) * period

    rpot = potential_radiation(hourly, latitude, longitude)
    avg_rpot = pd.Series(rpot).groupby(np.asarray(period_start)).transform("mean").values
    kernel = np.divide(rpot, avg_rpot, out=np.zeros_like(rpot), where=avg_rpot > 0)

    values = shortwave.reindex({TIME_DIM: np.unique(period_start)})
    values = values.sel({TIME_DIM: period_start.values}).assign_coords(
        {TIME_DIM: hourly.values}
    )
    hourly_sw = values * xr.DataArray(kernel, dims=TIME_DIM, coords={TIME_DIM: hourly})
    hourly_sw.attrs = dict(shortwave.attrs)
    return hourly_sw


@register_processor("solar_disaggregate", priority=70)
class SolarDisaggregate(DataProcessor):
    """
    Build hourly shortwave from debiased daily means or raw 6-hourly means.

    In downscaled mode the daily debiased shortwave is spread over 24 hours;
    in out-of-box mode each raw 6-hourly value is spread over its 6 hours.

    Methods
    -------
    execute(result, context)
        Add the hourly shortwave table to the pipeline state.

    """

    def __init__(self, config: RunConfig):
        super().__init__(config)
        self.name = "solar_disaggregate"

    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        forecast = self._require(result, RAW_FORECAST, self.name)
        if self.config.downscale:
            shortwave = self._require(result, DEBIASED, self.name)["ShortWave"]
            period = pd.Timedelta("1D")
        else:
            shortwave = forecast["ShortWave"].expand_dims({NOISE_DIM: [NO_NOISE_MEMBER]})
            period = get_cadence(forecast)

        hourly = disaggregate_shortwave(
            shortwave, period, self.config.latitude, self.config.longitude
        )
        hourly = hourly.transpose(MEMBER_DIM, NOISE_DIM, TIME_DIM).to_dataset(
            name="ShortWave"
        )
        check_ensemble_keys(
            hourly, forecast[MEMBER_DIM].values, self.config.noise_members, self.name
        )
        logger.debug("Disaggregated shortwave over %s periods", period)
        self.update_context(context)
        return {**result, HOURLY_SHORTWAVE: hourly}
