"""Shared data and paths between multiple unit tests."""

import logging
import warnings

import numpy as np
import pandas as pd
import pytest
import xarray as xr

from metdownscale.core.constants import DEBIASED_VARIABLES
from metdownscale.data_access.forecast_loader import (
    forecast_from_dataframe,
    observations_from_dataframe,
)

ISSUE_DATE = "2021-06-01"
LATITUDE = 37.3
LONGITUDE = -79.8

# 6-hourly shortwave means for periods starting at 00, 06, 12 and 18 UTC
SHORTWAVE_BY_HOUR = {0: 0.0, 6: 0.0, 12: 310.0, 18: 720.0}
PRECIP_BY_HOUR = {0: 0.0, 6: 0.002, 12: 0.004, 18: 0.0}


@pytest.fixture(autouse=True)
def _bridge_logging_warning_to_warnings(monkeypatch):
    """Bridge logging.warning -> warnings.warn(UserWarning).

    The package reports problems through the logging module. Tests that
    assert on those reports with ``pytest.warns`` rely on this autouse
    fixture, which monkeypatches ``logging.Logger.warning`` and
    ``logging.Logger.error`` to also call ``warnings.warn``.
    """
    # Keep track of messages emitted during a single test
    seen_messages: set[str] = set()

    def _make_handler(original_method):
        """Create a logging method wrapper that also emits a UserWarning.

        The wrapper includes a reentrancy guard so that if the warnings
        machinery forwards a warning back into logging, we don't re-emit a
        warning and cause infinite recursion.
        """

        reentrant = {"active": False}

        def _handler(self, msg, *args, **kwargs):
            if reentrant["active"]:
                original_method(self, msg, *args, **kwargs)
                return

            reentrant["active"] = True
            try:
                # Preserve normal logging behavior first
                original_method(self, msg, *args, **kwargs)

                # Format message (support %-formatting used by logging)
                text = msg % args if args else str(msg)

                # Deduplicate identical messages within a single test
                if text in seen_messages:
                    return
                seen_messages.add(text)
                warnings.warn(text, UserWarning)
            finally:
                reentrant["active"] = False

        return _handler

    monkeypatch.setattr(
        logging.Logger, "warning", _make_handler(logging.Logger.warning)
    )
    monkeypatch.setattr(logging.Logger, "error", _make_handler(logging.Logger.error))
    yield


def make_forecast_frame(
    issue_date: str = ISSUE_DATE,
    n_days: int = 2,
    n_members: int = 21,
) -> pd.DataFrame:
    """Long, normalized 6-hourly forecast table with a smooth diurnal cycle."""
    times = pd.date_range(issue_date, periods=n_days * 4, freq="6h")
    rows = []
    for member in range(1, n_members + 1):
        for t in times:
            diurnal = np.sin(2 * np.pi * (t.hour - 9) / 24)
            rows.append(
                {
                    "timestamp": t,
                    "member": member,
                    "ShortWave": SHORTWAVE_BY_HOUR[t.hour] * (1 + 0.01 * member),
                    "LongWave": 330.0 + 10.0 * diurnal,
                    "AirTemp": 290.0 + 5.0 * diurnal + 0.1 * member,
                    "RelHum": 60.0 - 10.0 * diurnal + 0.2 * member,
                    "WindSpeed": 3.0 + np.cos(2 * np.pi * t.hour / 24) + 0.05 * member,
                    "PrecipRate": PRECIP_BY_HOUR[t.hour],
                }
            )
    return pd.DataFrame(rows)


def make_coefficients(
    members=range(1, 22),
    variables=DEBIASED_VARIABLES,
    intercept: float = 0.0,
    slope: float = 1.0,
    residual_scale: float = 0.5,
    bin_width: int = 366,
) -> xr.Dataset:
    """Bias coefficients with the same values in every bin, member and variable."""
    members = list(members)
    variables = list(variables)
    n_bins = int(np.ceil(366 / bin_width))
    shape = (n_bins, len(members), len(variables))
    dims = ("doy_bin", "member", "variable")
    return xr.Dataset(
        {
            "intercept": (dims, np.full(shape, intercept)),
            "slope": (dims, np.full(shape, slope)),
            "residual_scale": (dims, np.full(shape, residual_scale)),
            "n_days": (dims, np.full(shape, 30)),
        },
        coords={
            "doy_bin": np.arange(n_bins),
            "member": members,
            "variable": variables,
        },
        attrs={"bin_width": bin_width},
    )


@pytest.fixture
def forecast_frame() -> pd.DataFrame:
    """21-member, 2-day forecast as a long table."""
    return make_forecast_frame()


@pytest.fixture
def forecast(forecast_frame) -> xr.Dataset:
    """21-member, 2-day 6-hourly ForecastSeries without missing values."""
    return forecast_from_dataframe(forecast_frame, expected_members=21)


@pytest.fixture
def small_forecast() -> xr.Dataset:
    """3-member, 2-day 6-hourly ForecastSeries for the faster unit tests."""
    return forecast_from_dataframe(make_forecast_frame(n_members=3))


@pytest.fixture
def observations() -> xr.Dataset:
    """Hourly site observations covering the first six hours of the forecast."""
    times = pd.date_range(ISSUE_DATE, periods=6, freq="h")
    return observations_from_dataframe(
        pd.DataFrame(
            {
                "timestamp": times,
                "AirTemp": 288.0 + 0.2 * np.arange(6),
                "RelHum": 70.0 - np.arange(6),
            }
        )
    )


@pytest.fixture
def coefficients() -> xr.Dataset:
    """Identity bias coefficients for members 1..21 with a small residual scale."""
    return make_coefficients()


@pytest.fixture
def small_coefficients() -> xr.Dataset:
    """Identity bias coefficients for members 1..3."""
    return make_coefficients(members=range(1, 4))


@pytest.fixture
def forecast_frame_factory():
    """Factory building forecast tables, see ``make_forecast_frame``."""
    return make_forecast_frame


@pytest.fixture
def coefficients_factory():
    """Factory building bias coefficients, see ``make_coefficients``."""
    return make_coefficients


@pytest.fixture
def site():
    """Latitude and longitude of the synthetic site."""
    return LATITUDE, LONGITUDE
