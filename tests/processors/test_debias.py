"""
Units tests for the Debias processor and apply_bias_coefficients.
"""

import numpy as np
import pytest
import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.exceptions import (
    InsufficientCalibrationDataError,
    JoinIntegrityError,
)
from metdownscale.processors.aggregate_daily import aggregate_to_daily
from metdownscale.processors.debias import (
    Debias,
    apply_bias_coefficients,
    clamp_physical,
)


@pytest.fixture
def daily(small_forecast):
    """Daily means of the 3-member forecast."""
    return aggregate_to_daily(small_forecast)


class TestApplyBiasCoefficients:
    """Tests for apply_bias_coefficients."""

    def test_linear_correction(self, daily, coefficients_factory):
        """Test corrected = intercept + slope * raw without noise."""
        coefficients = coefficients_factory(
            members=[1, 2, 3], intercept=2.0, slope=0.5
        )
        debiased = apply_bias_coefficients(daily, coefficients)
        assert debiased["AirTemp"].dims == ("member", "noise_member", "time")
        assert list(debiased.noise_member.values) == [0]
        xr.testing.assert_allclose(
            debiased["AirTemp"].sel(noise_member=0, drop=True),
            (2.0 + 0.5 * daily["AirTemp"]).transpose("member", "time"),
        )

    def test_identity_keeps_values(self, daily, small_coefficients):
        debiased = apply_bias_coefficients(daily, small_coefficients)
        xr.testing.assert_allclose(
            debiased["WindSpeed"].sel(noise_member=0, drop=True),
            daily["WindSpeed"].transpose("member", "time"),
        )

    def test_noise_members(self, daily, small_coefficients):
        """Test that noise fans out into independent, reproducible members."""
        first = apply_bias_coefficients(
            daily, small_coefficients, noise_members=[1, 2, 3, 4],
            rng=np.random.default_rng(42),
        )
        second = apply_bias_coefficients(
            daily, small_coefficients, noise_members=[1, 2, 3, 4],
            rng=np.random.default_rng(42),
        )
        assert list(first.noise_member.values) == [1, 2, 3, 4]
        xr.testing.assert_identical(first, second)

        air = first["AirTemp"].sel(member=1, time=first.time[0])
        assert len(np.unique(air.values)) == 4
        offsets = air.values - daily["AirTemp"].sel(member=1).values[0]
        assert np.abs(offsets).max() < 0.5 * 6

    def test_noise_needs_generator(self, daily, small_coefficients):
        with pytest.raises(ValueError, match="random generator"):
            apply_bias_coefficients(daily, small_coefficients, noise_members=[1, 2])

    def test_missing_days_stay_missing(self, daily, small_coefficients):
        gappy = daily.copy(deep=True)
        gappy["AirTemp"].loc[{"member": 3}] = np.nan
        debiased = apply_bias_coefficients(
            gappy, small_coefficients, noise_members=[1, 2],
            rng=np.random.default_rng(0),
        )
        assert debiased["AirTemp"].sel(member=3).isnull().all()
        assert debiased["AirTemp"].sel(member=2).notnull().all()

    def test_unfitted_bin_raises(self, daily, coefficients_factory):
        """Test that a day in a bin without coefficients is fatal."""
        coefficients = coefficients_factory(members=[1, 2, 3], bin_width=30)
        coefficients = coefficients.drop_sel(doy_bin=5)  # days 151-180
        with pytest.raises(InsufficientCalibrationDataError, match=r"\[5\]"):
            apply_bias_coefficients(daily, coefficients)

    def test_uncovered_member_raises(self, daily, coefficients_factory):
        coefficients = coefficients_factory(members=[1, 2])
        with pytest.raises(JoinIntegrityError, match=r"member\(s\) \[3\]"):
            apply_bias_coefficients(daily, coefficients)


class TestClampPhysical:
    def test_clamps(self):
        ds = xr.Dataset(
            {
                "ShortWave": ("time", [-5.0, 10.0, np.nan]),
                "RelHum": ("time", [-1.0, 104.0, 50.0]),
                "AirTemp": ("time", [-300.0, 0.0, 1.0]),
            }
        )
        clamped = clamp_physical(ds)
        np.testing.assert_array_equal(clamped["ShortWave"].values, [0.0, 10.0, np.nan])
        np.testing.assert_array_equal(clamped["RelHum"].values, [0.0, 100.0, 50.0])
        np.testing.assert_array_equal(clamped["AirTemp"].values, ds["AirTemp"].values)


class TestDebiasExecute:
    """Tests for the execute method of Debias."""

    def test_requires_coefficients(self):
        with pytest.raises(ValueError, match="coefficients"):
            Debias(RunConfig(downscale=True))

    def test_seeded_noise_is_reproducible(self, daily, small_coefficients):
        config = RunConfig(downscale=True, add_noise=True, ensemble_size=3, seed=7)
        runs = [
            Debias(config, coefficients=small_coefficients).execute(
                {"daily_forecast": daily}, {}
            )["debiased"]
            for _ in range(2)
        ]
        xr.testing.assert_identical(runs[0], runs[1])
        assert list(runs[0].noise_member.values) == [1, 2, 3]

    def test_without_noise(self, daily, small_coefficients):
        config = RunConfig(downscale=True, add_noise=False, seed=7)
        debiased = Debias(config, coefficients=small_coefficients).execute(
            {"daily_forecast": daily}, {}
        )["debiased"]
        assert list(debiased.noise_member.values) == [0]
