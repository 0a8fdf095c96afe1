"""
Out-of-box rendition of the forecast: each native reading is held across its
period on the hourly grid, with no correction applied.
"""

import logging
from typing import Any, Dict

import pandas as pd

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import (
    HOURLY_STATES,
    MEMBER_DIM,
    NO_NOISE_MEMBER,
    NOISE_DIM,
    RAW_FORECAST,
    STATE_VARIABLES,
    TIME_DIM,
)
from metdownscale.processors.abc_data_processor import (
    DataProcessor,
    Tables,
    register_processor,
)
from metdownscale.util.utils import (
    check_ensemble_keys,
    get_cadence,
    hold_to_hourly,
    hourly_horizon,
)

# Module logger
logger = logging.getLogger(__name__)

PASS_THROUGH_VARIABLES = STATE_VARIABLES + ["LongWave"]


@register_processor("pass_through", priority=20)
class PassThrough(DataProcessor):
    """
    Hold raw temperature, humidity, wind and longwave on the hourly grid.

    Methods
    -------
    execute(result, context)
        Add the hourly state table to the pipeline state.

    """

    def __init__(self, config: RunConfig):
        super().__init__(config)
        self.name = "pass_through"

    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        forecast = self._require(result, RAW_FORECAST, self.name)
        cadence = get_cadence(forecast)
        hourly = hourly_horizon(pd.DatetimeIndex(forecast[TIME_DIM].values), cadence)

        held = hold_to_hourly(forecast[PASS_THROUGH_VARIABLES], hourly, cadence)
        held = held.expand_dims({NOISE_DIM: [NO_NOISE_MEMBER]}).transpose(
            MEMBER_DIM, NOISE_DIM, TIME_DIM
        )
        held.attrs = {**forecast.attrs, "cadence": "1h"}
        check_ensemble_keys(
            held, forecast[MEMBER_DIM].values, [NO_NOISE_MEMBER], self.name
        )
        logger.debug("Held %d native readings per member", forecast.sizes[TIME_DIM])
        self.update_context(context)
        return {**result, HOURLY_STATES: held}
