"""
Read normalized forecasts, site observations and stored bias coefficients
into the tables used by the pipeline.

The forecast CSV is expected to be normalized already (units matched and
columns renamed upstream): one row per (member, timestamp) with columns
``timestamp, member, ShortWave, LongWave, AirTemp, RelHum, WindSpeed,
PrecipRate``.
"""

import datetime
import logging
import os
from typing import Optional, Union

import pandas as pd
import xarray as xr

from metdownscale.core.constants import (
    FORECAST_CADENCE,
    FORECAST_VARIABLES,
    MEMBER_DIM,
    TIME_DIM,
    VARIABLE_UNITS,
)
from metdownscale.core.exceptions import (
    JoinIntegrityError,
    MalformedInputError,
    MissingInputError,
)
from metdownscale.core.paths import FORECAST_FILE_SUFFIX, FORECAST_FILE_TEMPLATE

# Module logger
logger = logging.getLogger(__name__)

_TIMESTAMP_COLUMN = "timestamp"


def forecast_file_name(issue_date: Union[str, datetime.date]) -> str:
    """Base name (no suffix) of the forecast issued on ``issue_date``.

    >>> forecast_file_name("2018-07-05")
    '20180705gep_all_00z'
    """
    return FORECAST_FILE_TEMPLATE.format(issue=pd.Timestamp(issue_date))


def forecast_path(in_directory: str, issue_date: Union[str, datetime.date]) -> str:
    """Full path of the forecast CSV issued on ``issue_date``."""
    return os.path.join(
        in_directory, forecast_file_name(issue_date) + FORECAST_FILE_SUFFIX
    )


def _read_csv(path: str, what: str) -> pd.DataFrame:
    if not os.path.exists(path):
        logger.error("Missing %s: %s", what, path)
        raise MissingInputError(path, what)
    logger.info("Reading %s %s", what, path)
    try:
        return pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        logger.error("Cannot parse %s %s: %s", what, path, e)
        raise MalformedInputError(f"Cannot parse {what} {path}: {e}") from e


def _parse_timestamps(df: pd.DataFrame, what: str) -> pd.Series:
    try:
        return pd.to_datetime(df[_TIMESTAMP_COLUMN])
    except (ValueError, TypeError) as e:
        raise MalformedInputError(f"Unparseable timestamps in {what}: {e}") from e


def _attach_units(ds: xr.Dataset) -> xr.Dataset:
    for name in ds.data_vars:
        if name in VARIABLE_UNITS:
            ds[name].attrs["units"] = VARIABLE_UNITS[name]
    return ds


def forecast_from_dataframe(
    df: pd.DataFrame,
    cadence: str = FORECAST_CADENCE,
    expected_members: Optional[int] = None,
) -> xr.Dataset:
    """Convert a long forecast table to a ForecastSeries.

    Parameters
    ----------
    df : pd.DataFrame
        One row per (member, timestamp) with the normalized variable columns.
    cadence : str, optional
        Native forecast time step, default ``"6h"``.
    expected_members : int, optional
        When given, members ``1..expected_members`` must all be present.

    Returns
    -------
    xr.Dataset
        Dimensions ``(member, time)`` on a contiguous grid at ``cadence``.
        Grid cells without a row are missing.

    Raises
    ------
    MalformedInputError
        If required columns are absent, or timestamps or member ids cannot
        be parsed.
    JoinIntegrityError
        If a (member, timestamp) pair repeats, a timestamp is off the cadence
        grid, or members are missing.

    """
    required = [_TIMESTAMP_COLUMN, MEMBER_DIM] + FORECAST_VARIABLES
    absent = [c for c in required if c not in df.columns]
    if absent:
        raise MalformedInputError(f"Forecast table is missing columns: {absent}")

    df = df[required].copy()
    df[_TIMESTAMP_COLUMN] = _parse_timestamps(df, "forecast table")
    try:
        df[MEMBER_DIM] = df[MEMBER_DIM].astype(int)
    except (ValueError, TypeError) as e:
        raise MalformedInputError(f"Forecast member ids are not integers: {e}") from e

    dupes = df.duplicated([MEMBER_DIM, _TIMESTAMP_COLUMN])
    if dupes.any():
        raise JoinIntegrityError(
            f"Forecast has {int(dupes.sum())} duplicated (member, timestamp) rows"
        )

    step = pd.Timedelta(cadence)
    t0 = df[_TIMESTAMP_COLUMN].min()
    off_grid = (df[_TIMESTAMP_COLUMN] - t0) % step != pd.Timedelta(0)
    if off_grid.any():
        raise JoinIntegrityError(
            f"Forecast has {int(off_grid.sum())} timestamps off the {cadence} grid"
        )

    members = sorted(df[MEMBER_DIM].unique())
    if expected_members is not None:
        expected = list(range(1, expected_members + 1))
        if members != expected:
            raise JoinIntegrityError(
                f"Forecast members {members} do not match expected 1..{expected_members}"
            )

    ds = (
        df.rename(columns={_TIMESTAMP_COLUMN: TIME_DIM})
        .set_index([MEMBER_DIM, TIME_DIM])
        .to_xarray()
    )
    grid = pd.date_range(t0, df[_TIMESTAMP_COLUMN].max(), freq=step, name=TIME_DIM)
    ds = ds.reindex({TIME_DIM: grid, MEMBER_DIM: members})

    absent_rows = len(members) * len(grid) - len(df)
    if absent_rows:
        logger.warning(
            "Forecast grid has %d (member, timestamp) cells without a row, left missing",
            absent_rows,
        )

    ds.attrs["cadence"] = cadence
    return _attach_units(ds)


def load_forecast(
    path: str,
    cadence: str = FORECAST_CADENCE,
    expected_members: Optional[int] = None,
) -> xr.Dataset:
    """Read a normalized forecast CSV, see :func:`forecast_from_dataframe`.

    Raises
    ------
    MissingInputError
        If the file does not exist.

    """
    ds = forecast_from_dataframe(
        _read_csv(path, "forecast file"), cadence, expected_members
    )
    ds.attrs["source"] = path
    return ds


def observations_from_dataframe(df: pd.DataFrame) -> xr.Dataset:
    """Convert a site observation table to an ObservationSeries.

    Parameters
    ----------
    df : pd.DataFrame
        Column ``timestamp`` plus any of the forecast variable columns, already
        cleaned of sentinels and in forecast units.

    Returns
    -------
    xr.Dataset
        Dimension ``time``.

    Raises
    ------
    MalformedInputError
        If the timestamp column is absent or cannot be parsed.
    JoinIntegrityError
        If a timestamp repeats.

    """
    if _TIMESTAMP_COLUMN not in df.columns:
        raise MalformedInputError("Observation table needs a 'timestamp' column")
    variables = [c for c in df.columns if c in FORECAST_VARIABLES]
    df = df[[_TIMESTAMP_COLUMN] + variables].copy()
    df[_TIMESTAMP_COLUMN] = _parse_timestamps(df, "observation table")
    if df[_TIMESTAMP_COLUMN].duplicated().any():
        raise JoinIntegrityError("Observations have duplicated timestamps")

    ds = (
        df.rename(columns={_TIMESTAMP_COLUMN: TIME_DIM})
        .set_index(TIME_DIM)
        .sort_index()
        .to_xarray()
    )
    return _attach_units(ds)


def load_observations(path: str) -> xr.Dataset:
    """Read a site observation CSV, see :func:`observations_from_dataframe`."""
    ds = observations_from_dataframe(_read_csv(path, "observation file"))
    ds.attrs["source"] = path
    return ds


def save_coefficients(coefficients: xr.Dataset, path: str) -> str:
    """Write bias coefficients to a flat CSV and return the path."""
    df = coefficients.to_dataframe().reset_index()
    df["bin_width"] = coefficients.attrs["bin_width"]
    df.to_csv(path, index=False)
    logger.info("Saved bias coefficients to %s", path)
    return path


def load_coefficients(path: str) -> xr.Dataset:
    """Read bias coefficients written by :func:`save_coefficients`.

    Raises
    ------
    MissingInputError
        If the file does not exist.

    """
    df = _read_csv(path, "coefficient file")
    bin_width = int(df.pop("bin_width").iloc[0])
    ds = df.set_index(["doy_bin", MEMBER_DIM, "variable"]).to_xarray()
    # keep the variable order of the file, to_xarray sorts it
    ds = ds.reindex(variable=pd.unique(df["variable"]))
    ds.attrs["bin_width"] = bin_width
    return ds
