"""
Unit tests for metdownscale/data_access/forecast_loader.py

Covers forecast and observation reading, the integrity checks on the
forecast grid, and flat-file persistence of bias coefficients.
"""

import os

import numpy as np
import pandas as pd
import pytest
import xarray as xr

from metdownscale.core.exceptions import (
    JoinIntegrityError,
    MalformedInputError,
    MissingInputError,
)
from metdownscale.data_access.forecast_loader import (
    forecast_file_name,
    forecast_from_dataframe,
    forecast_path,
    load_coefficients,
    load_forecast,
    load_observations,
    save_coefficients,
)


class TestFileNames:
    """Tests for the forecast file naming."""

    def test_forecast_file_name(self):
        assert forecast_file_name("2018-07-05") == "20180705gep_all_00z"

    def test_forecast_file_name_from_timestamp(self):
        assert forecast_file_name(pd.Timestamp("2021-06-01")) == "20210601gep_all_00z"

    def test_forecast_path(self, tmp_path):
        assert forecast_path(str(tmp_path), "2021-06-01") == os.path.join(
            str(tmp_path), "20210601gep_all_00z.csv"
        )


class TestLoadForecast:
    """Tests for reading forecast CSVs."""

    def test_load_forecast(self, tmp_path, forecast_frame):
        """Test that a normalized CSV becomes a (member, time) table."""
        path = tmp_path / "20210601gep_all_00z.csv"
        forecast_frame.to_csv(path, index=False)

        ds = load_forecast(str(path), expected_members=21)
        assert dict(ds.sizes) == {"member": 21, "time": 8}
        assert ds.attrs["cadence"] == "6h"
        assert ds.attrs["source"] == str(path)
        assert ds["AirTemp"].attrs["units"] == "K"
        assert list(ds.member.values) == list(range(1, 22))
        assert not ds.to_array().isnull().any()

    def test_missing_file(self, tmp_path):
        """Test that a missing forecast names the path."""
        path = str(tmp_path / "20210601gep_all_00z.csv")
        with pytest.warns(UserWarning, match="Missing forecast file"):
            with pytest.raises(MissingInputError) as excinfo:
                load_forecast(path)
        assert excinfo.value.path == path

    def test_missing_columns(self, forecast_frame):
        with pytest.raises(MalformedInputError, match="PrecipRate"):
            forecast_from_dataframe(forecast_frame.drop(columns="PrecipRate"))

    def test_unparseable_timestamps(self, forecast_frame):
        broken = forecast_frame.astype({"timestamp": object})
        broken.loc[4, "timestamp"] = "not a date"
        with pytest.raises(MalformedInputError, match="timestamps"):
            forecast_from_dataframe(broken)

    def test_non_integer_members(self, forecast_frame):
        broken = forecast_frame.astype({"member": object})
        broken.loc[0, "member"] = "first"
        with pytest.raises(MalformedInputError, match="member"):
            forecast_from_dataframe(broken)

    def test_empty_file(self, tmp_path):
        """Test that an empty forecast file is reported as malformed."""
        path = tmp_path / "20210601gep_all_00z.csv"
        path.write_text("")
        with pytest.warns(UserWarning, match="Cannot parse"):
            with pytest.raises(MalformedInputError):
                load_forecast(str(path))

    def test_duplicated_rows(self, forecast_frame):
        doubled = pd.concat([forecast_frame, forecast_frame.iloc[[3]]])
        with pytest.raises(JoinIntegrityError, match="duplicated"):
            forecast_from_dataframe(doubled)

    def test_off_grid_timestamp(self, forecast_frame):
        shifted = forecast_frame.copy()
        shifted.loc[5, "timestamp"] = shifted.loc[5, "timestamp"] + pd.Timedelta("1h")
        with pytest.raises(JoinIntegrityError, match="off the 6h grid"):
            forecast_from_dataframe(shifted)

    def test_member_mismatch(self, forecast_frame):
        fewer = forecast_frame[forecast_frame.member != 7]
        with pytest.raises(JoinIntegrityError, match="do not match"):
            forecast_from_dataframe(fewer, expected_members=21)

    def test_absent_rows_are_missing_not_filled(self, forecast_frame):
        """Test that an absent grid cell is reindexed as missing and reported."""
        t = pd.Timestamp("2021-06-01 12:00")
        gappy = forecast_frame[
            ~((forecast_frame.member == 2) & (forecast_frame.timestamp == t))
        ]
        with pytest.warns(UserWarning, match="1 .member, timestamp. cells"):
            ds = forecast_from_dataframe(gappy, expected_members=21)
        assert ds.sizes["time"] == 8
        assert ds["AirTemp"].sel(member=2, time=t).isnull()
        assert ds["AirTemp"].sel(member=3, time=t).notnull()


class TestLoadObservations:
    """Tests for reading site observations."""

    def test_load_observations(self, tmp_path):
        path = tmp_path / "observations.csv"
        pd.DataFrame(
            {
                "timestamp": pd.date_range("2021-06-01", periods=4, freq="h"),
                "AirTemp": [288.0, 288.5, 289.0, 289.5],
                "Comment": ["a", "b", "c", "d"],
            }
        ).to_csv(path, index=False)

        ds = load_observations(str(path))
        assert list(ds.data_vars) == ["AirTemp"]
        assert ds.sizes["time"] == 4

    def test_missing_observations(self, tmp_path):
        with pytest.warns(UserWarning):
            with pytest.raises(MissingInputError):
                load_observations(str(tmp_path / "none.csv"))

    def test_duplicated_timestamps(self, tmp_path):
        path = tmp_path / "observations.csv"
        pd.DataFrame(
            {"timestamp": ["2021-06-01 00:00"] * 2, "AirTemp": [288.0, 289.0]}
        ).to_csv(path, index=False)
        with pytest.raises(JoinIntegrityError):
            load_observations(str(path))

    def test_missing_timestamp_column(self, tmp_path):
        path = tmp_path / "observations.csv"
        pd.DataFrame({"time": ["2021-06-01 00:00"], "AirTemp": [288.0]}).to_csv(
            path, index=False
        )
        with pytest.raises(MalformedInputError, match="timestamp"):
            load_observations(str(path))


class TestCoefficientPersistence:
    """Tests for save_coefficients and load_coefficients."""

    def test_round_trip(self, tmp_path, coefficients_factory):
        """Test that stored coefficients reload identically."""
        coefficients = coefficients_factory(
            members=[1, 2], intercept=1.5, slope=0.9, bin_width=183
        )
        path = save_coefficients(coefficients, str(tmp_path / "coefficients.csv"))
        loaded = load_coefficients(path)

        assert loaded.attrs["bin_width"] == 183
        xr.testing.assert_allclose(
            loaded[["intercept", "slope", "residual_scale"]],
            coefficients[["intercept", "slope", "residual_scale"]],
        )
        np.testing.assert_array_equal(
            loaded["n_days"].values, coefficients["n_days"].values
        )

    def test_missing_coefficients(self, tmp_path):
        with pytest.warns(UserWarning):
            with pytest.raises(MissingInputError, match="coefficient file"):
                load_coefficients(str(tmp_path / "none.csv"))
