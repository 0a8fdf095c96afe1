"""
Redistribute corrected daily values over the native sub-daily time steps
using the raw forecast's within-day shape.
"""

import logging
from typing import Any, Dict

import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import (
    DEBIASED,
    MEMBER_DIM,
    NOISE_DIM,
    RAW_FORECAST,
    REDISTRIBUTED,
    STATE_VARIABLES,
    TIME_DIM,
)
from metdownscale.core.exceptions import DivisionByZeroGuard, report_gap
from metdownscale.processors.abc_data_processor import (
    DataProcessor,
    Tables,
    register_processor,
)
from metdownscale.processors.aggregate_daily import aggregate_to_daily
from metdownscale.util.utils import check_ensemble_keys, expand_daily

# Module logger
logger = logging.getLogger(__name__)


def redistribute_daily(
    forecast: xr.Dataset,
    debiased: xr.Dataset,
    variables=STATE_VARIABLES,
    context: Dict[str, Any] = None,
) -> xr.Dataset:
    """Spread corrected daily values over the sub-daily steps of each day.

    ``value = corrected_daily * raw / raw_daily_mean`` so the mean of each
    complete day equals the corrected daily value.

    Parameters
    ----------
    forecast : xr.Dataset
        Raw sub-daily forecast, dims ``(member, time)``.
    debiased : xr.Dataset
        Corrected daily values, dims ``(member, noise_member, time)``.
    variables : list of str, optional
        Variables to redistribute, default temperature, humidity and wind.
    context : dict, optional
        Run context, zero daily means are reported in it.

    Returns
    -------
    xr.Dataset
        Dims ``(member, noise_member, time)`` at the forecast's cadence.
        Cells whose raw daily mean is zero or missing are missing.

    """
    raw = forecast[variables]
    raw_daily_mean = expand_daily(aggregate_to_daily(raw), raw[TIME_DIM].values)

    redistributed = xr.Dataset(attrs=dict(forecast.attrs))
    for var in variables:
        mean = raw_daily_mean[var]
        zero_mean = mean == 0
        n_zero = int(zero_mean.sum())
        if n_zero and context is not None:
            report_gap(
                context,
                DivisionByZeroGuard,
                f"{var} raw daily mean is zero, proportion undefined",
                n_zero,
            )
        proportion = raw[var] / mean.where(~zero_mean)
        corrected = expand_daily(debiased[var], raw[TIME_DIM].values)
        value = (corrected * proportion).transpose(MEMBER_DIM, NOISE_DIM, TIME_DIM)
        value.attrs = dict(debiased[var].attrs)
        redistributed[var] = value
    return redistributed


@register_processor("redistribute", priority=40)
class Redistribute(DataProcessor):
    """
    Redistribute debiased daily temperature, humidity and wind to 6-hourly steps.

    Methods
    -------
    execute(result, context)
        Add the redistributed table to the pipeline state.

    """

    def __init__(self, config: RunConfig):
        super().__init__(config)
        self.name = "redistribute"

    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        forecast = self._require(result, RAW_FORECAST, self.name)
        debiased = self._require(result, DEBIASED, self.name)

        redistributed = redistribute_daily(forecast, debiased, context=context)
        check_ensemble_keys(
            redistributed,
            forecast[MEMBER_DIM].values,
            self.config.noise_members,
            self.name,
        )
        self.update_context(context)
        return {**result, REDISTRIBUTED: redistributed}
