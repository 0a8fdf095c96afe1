"""Miscellaneous utility functions shared by the pipeline stages."""

import logging
from typing import Iterable, Union

import numpy as np
import pandas as pd
import xarray as xr

from metdownscale.core.constants import (
    FORECAST_CADENCE,
    MEMBER_DIM,
    NOISE_DIM,
    TIME_DIM,
)
from metdownscale.core.exceptions import JoinIntegrityError

# Module logger
logger = logging.getLogger(__name__)

ONE_HOUR = pd.Timedelta("1h")
ONE_DAY = pd.Timedelta("1D")


def get_cadence(ds: Union[xr.Dataset, xr.DataArray]) -> pd.Timedelta:
    """Native time step of a table.

    Uses the ``cadence`` attribute when present, otherwise the smallest
    difference between consecutive timestamps.

    Parameters
    ----------
    ds : xr.Dataset or xr.DataArray

    Returns
    -------
    pd.Timedelta

    """
    if "cadence" in ds.attrs:
        return pd.Timedelta(ds.attrs["cadence"])
    times = pd.DatetimeIndex(ds[TIME_DIM].values)
    if len(times) < 2:
        return pd.Timedelta(FORECAST_CADENCE)
    return pd.Series(times).diff().dropna().min()


def readings_per_day(cadence: pd.Timedelta) -> int:
    """Number of readings a complete day holds at ``cadence``."""
    if ONE_DAY % cadence != pd.Timedelta(0):
        raise ValueError(f"Cadence {cadence} does not divide a day evenly.")
    return int(ONE_DAY / cadence)


def hourly_horizon(times: Iterable, cadence: pd.Timedelta) -> pd.DatetimeIndex:
    """Hourly timestamps covered by a native series.

    The last native reading covers ``[t, t + cadence)``, so the horizon ends
    one hour before ``last + cadence``.

    Parameters
    ----------
    times : array-like of datetime
        Native timestamps, sorted.
    cadence : pd.Timedelta
        Native time step.

    Returns
    -------
    pd.DatetimeIndex

    """
    times = pd.DatetimeIndex(times)
    return pd.date_range(
        times[0], times[-1] + cadence - ONE_HOUR, freq="h", name=TIME_DIM
    )


def days_since(times: Iterable, t0: pd.Timestamp) -> np.ndarray:
    """Fractional days elapsed since ``t0``."""
    return np.asarray((pd.DatetimeIndex(times) - t0) / ONE_DAY, dtype=float)


def day_start(times: Iterable) -> np.ndarray:
    """Midnight of the calendar day of each timestamp."""
    return pd.DatetimeIndex(times).floor("D").values


def check_unique_index(ds: Union[xr.Dataset, xr.DataArray], where: str) -> None:
    """Raise if any dimension coordinate holds duplicated labels.

    Parameters
    ----------
    ds : xr.Dataset or xr.DataArray
        Table to check.
    where : str
        Name of the stage boundary, used in the error message.

    Raises
    ------
    JoinIntegrityError

    """
    for dim in ds.dims:
        if dim not in ds.indexes:
            continue
        index = ds.indexes[dim]
        if not index.is_unique:
            dupes = index[index.duplicated()].unique().tolist()
            raise JoinIntegrityError(
                f"Duplicated '{dim}' labels at {where}: {dupes[:5]}"
            )


def check_ensemble_keys(
    ds: Union[xr.Dataset, xr.DataArray],
    members: Iterable[int],
    noise_members: Iterable[int],
    where: str,
) -> None:
    """Raise unless ``ds`` carries exactly the expected ensemble identities.

    Parameters
    ----------
    ds : xr.Dataset or xr.DataArray
        Table with ``member`` and ``noise_member`` dimensions.
    members, noise_members : iterable of int
        Expected forecast-member and noise-member ids.
    where : str
        Name of the stage boundary, used in the error message.

    Raises
    ------
    JoinIntegrityError

    """
    check_unique_index(ds, where)
    for dim, expected in ((MEMBER_DIM, members), (NOISE_DIM, noise_members)):
        if dim not in ds.dims:
            raise JoinIntegrityError(f"Missing '{dim}' dimension at {where}")
        found = {int(v) for v in ds[dim].values.tolist()}
        expected = {int(v) for v in expected}
        if found != expected:
            raise JoinIntegrityError(
                f"'{dim}' mismatch at {where}: "
                f"dropped {sorted(expected - found)}, unexpected {sorted(found - expected)}"
            )


def hold_to_hourly(
    obj: Union[xr.Dataset, xr.DataArray],
    hourly: pd.DatetimeIndex,
    cadence: pd.Timedelta,
) -> Union[xr.Dataset, xr.DataArray]:
    """Hold each reading across its period ``[t, t + cadence)`` on an hourly grid.

    Hours not covered by any reading are missing.
    """
    return obj.reindex(
        {TIME_DIM: hourly}, method="ffill", tolerance=cadence - ONE_HOUR
    )


def expand_daily(
    daily: Union[xr.Dataset, xr.DataArray], times: Iterable
) -> Union[xr.Dataset, xr.DataArray]:
    """Repeat daily values onto finer timestamps of the same days.

    Parameters
    ----------
    daily : xr.Dataset or xr.DataArray
        Table whose ``time`` labels are day starts.
    times : array-like of datetime
        Sub-daily timestamps to expand onto.

    Returns
    -------
    xr.Dataset or xr.DataArray
        Table with ``time`` equal to ``times``. Days absent from ``daily``
        give missing values.

    """
    times = pd.DatetimeIndex(times)
    expanded = daily.reindex({TIME_DIM: np.unique(day_start(times))})
    expanded = expanded.sel({TIME_DIM: day_start(times)})
    return expanded.assign_coords({TIME_DIM: times.values})
