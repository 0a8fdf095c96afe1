"""
Units tests for the HourlyHolds processor.
"""

import numpy as np
import pytest

from metdownscale.core.config import RunConfig
from metdownscale.processors.aggregate_daily import aggregate_to_daily
from metdownscale.processors.debias import apply_bias_coefficients
from metdownscale.processors.hourly_holds import HourlyHolds


class TestHourlyHoldsExecute:
    """Tests for the execute method of HourlyHolds."""

    def test_out_of_box(self, small_forecast):
        result = HourlyHolds(RunConfig()).execute({"forecast": small_forecast}, {})
        holds = result["hourly_holds"]

        assert set(holds.data_vars) == {"Rain", "Snow"}
        assert dict(holds.sizes) == {"member": 3, "noise_member": 1, "time": 48}
        np.testing.assert_array_equal(
            holds["Rain"].sel(member=1, noise_member=0).values,
            np.repeat(small_forecast["PrecipRate"].sel(member=1).values, 6),
        )
        assert holds["Snow"].isnull().all()

    def test_downscaled_longwave_held_per_day(self, small_forecast, small_coefficients):
        daily = aggregate_to_daily(small_forecast)
        debiased = apply_bias_coefficients(
            daily,
            small_coefficients,
            noise_members=[1, 2],
            rng=np.random.default_rng(3),
        )
        config = RunConfig(downscale=True, add_noise=True, ensemble_size=2)
        holds = HourlyHolds(config).execute(
            {"forecast": small_forecast, "debiased": debiased}, {}
        )["hourly_holds"]

        assert list(holds.noise_member.values) == [1, 2]
        longwave = holds["LongWave"].sel(member=2, noise_member=2).values
        expected = debiased["LongWave"].sel(member=2, noise_member=2).values
        np.testing.assert_array_equal(longwave, np.repeat(expected, 24))
        # rain is not downscaled, every noise member carries the raw rate
        np.testing.assert_array_equal(
            holds["Rain"].sel(member=2, noise_member=1).values,
            holds["Rain"].sel(member=2, noise_member=2).values,
        )

    def test_downscaled_needs_debiased(self, small_forecast):
        with pytest.raises(KeyError, match="debiased"):
            HourlyHolds(RunConfig(downscale=True)).execute(
                {"forecast": small_forecast}, {}
            )
