"""
Unit tests for metdownscale/param_validation/run_config_validator.py

Each validator returns True for usable values and False, with a logged
warning, otherwise.
"""

import warnings

import pytest

from metdownscale.param_validation import _CONFIG_VALIDATOR_REGISTRY, validate_config
from metdownscale.param_validation.param_validation_tools import (
    closest_offset_policy,
    offset_policy_hint,
)
from metdownscale.param_validation.run_config_validator import (
    validate_bin_width,
    validate_downscale,
    validate_ensemble_size,
    validate_latitude,
    validate_longitude,
    validate_min_paired_days,
    validate_offset_policy,
    validate_seed,
    validate_write_files,
)


class TestRegistry:
    """Tests for the validator registry."""

    def test_every_option_has_a_validator(self):
        """Test that each run option is registered."""
        expected = {
            "downscale",
            "add_noise",
            "write_files",
            "fit_parameters",
            "ensemble_size",
            "n_forecast_members",
            "bin_width",
            "min_paired_days",
            "latitude",
            "longitude",
            "seed",
            "offset_policy",
        }
        assert expected <= set(_CONFIG_VALIDATOR_REGISTRY)

    def test_validate_config_lists_invalid_names(self):
        """Test that validate_config returns the failing option names."""
        with warnings.catch_warnings(record=True):
            warnings.simplefilter("always")
            invalid = validate_config({"downscale": "yes", "ensemble_size": 3})
        assert invalid == ["downscale"]

    def test_validate_config_skips_absent_options(self):
        """Test that options missing from the mapping are not checked."""
        assert validate_config({}) == []


class TestSwitchValidators:
    """Tests for the boolean switches."""

    @pytest.mark.parametrize("value", [True, False])
    def test_booleans_are_valid(self, value):
        """Test that real booleans are accepted."""
        assert validate_downscale(value) is True

    @pytest.mark.parametrize("value", ["TRUE", 1, None], ids=["string", "int", "none"])
    def test_non_booleans_are_invalid(self, value):
        """Test that truthy look-alikes are rejected."""
        with pytest.warns(UserWarning, match="boolean"):
            assert validate_downscale(value) is False

    def test_write_files_with_directory(self, tmp_path):
        """Test that write_files is valid with an output directory."""
        assert validate_write_files(True, out_directory=str(tmp_path)) is True
        assert validate_write_files(False) is True

    def test_write_files_without_directory(self):
        """Test that write_files needs an output directory."""
        with pytest.warns(UserWarning, match="out_directory"):
            assert validate_write_files(True, out_directory=None) is False


class TestCountValidators:
    """Tests for the integer options."""

    @pytest.mark.parametrize(
        "value,expected",
        [(1, True), (10, True), (0, False), (-2, False), (2.5, False), (True, False)],
        ids=["one", "ten", "zero", "negative", "float", "bool"],
    )
    def test_ensemble_size(self, value, expected):
        """Test the noise ensemble size."""
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            assert validate_ensemble_size(value) is expected
        assert (len(w) == 0) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [(1, True), (30, True), (366, True), (367, False), (0, False)],
    )
    def test_bin_width(self, value, expected):
        """Test the day-of-year bin width bounds."""
        with warnings.catch_warnings(record=True):
            warnings.simplefilter("always")
            assert validate_bin_width(value) is expected

    def test_min_paired_days_needs_three(self):
        """Test that fewer than three paired days cannot fit a residual scale."""
        assert validate_min_paired_days(3) is True
        with pytest.warns(UserWarning, match="at least 3"):
            assert validate_min_paired_days(2) is False

    @pytest.mark.parametrize("value,expected", [(None, True), (0, True), (-1, False)])
    def test_seed(self, value, expected):
        """Test that the seed may be None or a non-negative integer."""
        with warnings.catch_warnings(record=True):
            warnings.simplefilter("always")
            assert validate_seed(value) is expected


class TestLocationValidators:
    """Tests for latitude and longitude."""

    @pytest.mark.parametrize(
        "value,expected", [(37.3, True), (-90, True), (91.0, False), ("37N", False)]
    )
    def test_latitude(self, value, expected):
        """Test the latitude range and type."""
        with warnings.catch_warnings(record=True):
            warnings.simplefilter("always")
            assert validate_latitude(value) is expected

    @pytest.mark.parametrize(
        "value,expected", [(-79.8, True), (280.2, True), (-181.0, False)]
    )
    def test_longitude(self, value, expected):
        """Test the longitude range."""
        with warnings.catch_warnings(record=True):
            warnings.simplefilter("always")
            assert validate_longitude(value) is expected


class TestOffsetPolicyValidator:
    """Tests for the offset policy name."""

    @pytest.mark.parametrize("value", ["group_max", "anchor"])
    def test_known_policies(self, value):
        """Test that the named policies are accepted."""
        assert validate_offset_policy(value) is True

    def test_suggests_closest_policy(self):
        """Test that a near miss suggests the intended policy."""
        with pytest.warns(UserWarning, match="Did you mean 'group_max'"):
            assert validate_offset_policy("Group_Max") is False

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("anch", "anchor"),
            ("GROUP-MAX", "group_max"),
            ("group max", "group_max"),
            ("grup_max", "group_max"),
            ("nearest", None),
            ("", None),
        ],
    )
    def test_closest_offset_policy(self, value, expected):
        """Test the policy lookup on prefixes, separators and typos."""
        assert closest_offset_policy(value) == expected

    def test_hint_for_non_string(self):
        assert offset_policy_hint(3) == ""

    def test_no_hint_when_nothing_is_close(self):
        """Test that an unrelated name warns without a suggestion."""
        with pytest.warns(UserWarning) as record:
            assert validate_offset_policy("nearest") is False
        assert "Did you mean" not in str(record[0].message)
