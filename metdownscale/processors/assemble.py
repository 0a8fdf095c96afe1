"""
Join the hourly components into the combined driver table.

The hourly states, shortwave and held series are outer joined on time for
every (member, noise member) pair. The join keys are checked on both sides so
a join can never silently drop or invent ensemble members.
"""

import logging
from typing import Any, Dict

import pandas as pd
import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import (
    ASSEMBLED,
    HOURLY_HOLDS,
    HOURLY_SHORTWAVE,
    HOURLY_STATES,
    MEMBER_DIM,
    NOISE_DIM,
    OUTPUT_COLUMNS,
    OUTPUT_TEMPERATURE_UNITS,
    RAW_FORECAST,
    RELHUM_BOUNDS,
    TIME_DIM,
    VARIABLE_UNITS,
)
from metdownscale.processors.abc_data_processor import (
    DataProcessor,
    Tables,
    register_processor,
)
from metdownscale.util.unit_conversions import convert_units
from metdownscale.util.utils import check_ensemble_keys

# Module logger
logger = logging.getLogger(__name__)


def assemble_hourly(*components: xr.Dataset) -> xr.Dataset:
    """Outer join hourly components and convert to driver-file conventions.

    Parameters
    ----------
    *components : xr.Dataset
        Hourly tables with dims ``(member, noise_member, time)`` and disjoint
        variables.

    Returns
    -------
    xr.Dataset
        Every output column except ``time``, with air temperature in degC,
        relative humidity clamped to [0, 100] and radiation clamped to >= 0.
        Hours missing from a component are missing in its columns.

    """
    assembled = xr.merge(components, join="outer", combine_attrs="drop_conflicts")
    assembled = assembled.transpose(MEMBER_DIM, NOISE_DIM, TIME_DIM)

    air_temp = assembled["AirTemp"].copy()
    air_temp.attrs.setdefault("units", VARIABLE_UNITS["AirTemp"])
    assembled["AirTemp"] = convert_units(air_temp, OUTPUT_TEMPERATURE_UNITS)
    assembled["RelHum"] = assembled["RelHum"].clip(*RELHUM_BOUNDS)
    for var in ("ShortWave", "LongWave"):
        assembled[var] = assembled[var].clip(min=0.0)

    assembled.attrs["cadence"] = "1h"
    return assembled[[c for c in OUTPUT_COLUMNS if c != TIME_DIM]]


def pair_table(assembled: xr.Dataset, member: int, noise_member: int) -> pd.DataFrame:
    """Driver-file rows of one (member, noise member) pair.

    Returns
    -------
    pd.DataFrame
        Columns ``time, Rain, Snow, AirTemp, WindSpeed, RelHum, ShortWave,
        LongWave`` in that order, one row per hour.

    """
    pair = assembled.sel({MEMBER_DIM: member, NOISE_DIM: noise_member})
    df = pair.drop_vars([MEMBER_DIM, NOISE_DIM]).to_dataframe().reset_index()
    return df[OUTPUT_COLUMNS]


@register_processor("assemble", priority=90)
class Assemble(DataProcessor):
    """
    Build the combined hourly driver table.

    Raises
    ------
    JoinIntegrityError
        If a component or the joined table has duplicated timestamps, or a
        member or noise member is dropped or invented.

    """

    def __init__(self, config: RunConfig):
        super().__init__(config)
        self.name = "assemble"

    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        members = self._require(result, RAW_FORECAST, self.name)[MEMBER_DIM].values
        noise_members = self.config.noise_members
        components = [
            self._require(result, key, self.name)
            for key in (HOURLY_STATES, HOURLY_SHORTWAVE, HOURLY_HOLDS)
        ]
        for key, component in zip(
            (HOURLY_STATES, HOURLY_SHORTWAVE, HOURLY_HOLDS), components
        ):
            check_ensemble_keys(
                component, members, noise_members, f"{self.name} ({key})"
            )

        assembled = assemble_hourly(*components)
        check_ensemble_keys(assembled, members, noise_members, self.name)
        logger.info(
            "Assembled %d pair(s) over %d hours",
            assembled.sizes[MEMBER_DIM] * assembled.sizes[NOISE_DIM],
            assembled.sizes[TIME_DIM],
        )
        self.update_context(context)
        return {**result, ASSEMBLED: assembled}
