"""
Validators for the options of a downscaling run.
"""

from __future__ import annotations

import logging
from typing import Any

from metdownscale.core.constants import DAYS_IN_LEAP_YEAR, OFFSET_POLICIES
from metdownscale.param_validation.abc_param_validation import (
    register_config_validator,
)
from metdownscale.param_validation.param_validation_tools import offset_policy_hint

# Module logger
logger = logging.getLogger(__name__)


def _check_bool(name: str, value: Any) -> bool:
    """Check that a switch option is a real boolean."""
    if isinstance(value, bool):
        return True
    logger.warning(
        "Option '%s' expects a boolean value (True or False), got %r.", name, value
    )
    return False


def _check_positive_int(name: str, value: Any, minimum: int = 1) -> bool:
    """Check that a count option is an integer no smaller than ``minimum``."""
    if isinstance(value, bool) or not isinstance(value, int):
        logger.warning("Option '%s' expects an integer, got %r.", name, value)
        return False
    if value < minimum:
        logger.warning(
            "Option '%s' must be at least %d, got %d.", name, minimum, value
        )
        return False
    return True


@register_config_validator("downscale")
def validate_downscale(value: Any, **kwargs) -> bool:
    """Validate the switch between bias correction and pass-through."""
    return _check_bool("downscale", value)


@register_config_validator("add_noise")
def validate_add_noise(value: Any, **kwargs) -> bool:
    """Validate the noise fan-out switch."""
    return _check_bool("add_noise", value)


@register_config_validator("write_files")
def validate_write_files(value: Any, **kwargs) -> bool:
    """Validate the file emission switch.

    Writing files requires an output directory.
    """
    if not _check_bool("write_files", value):
        return False
    if value and not kwargs.get("out_directory"):
        logger.warning("Option 'write_files' is set but no 'out_directory' was given.")
        return False
    return True


@register_config_validator("fit_parameters")
def validate_fit_parameters(value: Any, **kwargs) -> bool:
    """Validate the coefficient fitting switch."""
    return _check_bool("fit_parameters", value)


@register_config_validator("ensemble_size")
def validate_ensemble_size(value: Any, **kwargs) -> bool:
    """Validate the number of noise members per forecast member."""
    return _check_positive_int("ensemble_size", value)


@register_config_validator("n_forecast_members")
def validate_n_forecast_members(value: Any, **kwargs) -> bool:
    """Validate the number of raw forecast members."""
    return _check_positive_int("n_forecast_members", value)


@register_config_validator("bin_width")
def validate_bin_width(value: Any, **kwargs) -> bool:
    """Validate the day-of-year bin width, in days."""
    if not _check_positive_int("bin_width", value):
        return False
    if value > DAYS_IN_LEAP_YEAR:
        logger.warning(
            "Option 'bin_width' cannot exceed %d days, got %d.",
            DAYS_IN_LEAP_YEAR,
            value,
        )
        return False
    return True


@register_config_validator("min_paired_days")
def validate_min_paired_days(value: Any, **kwargs) -> bool:
    """Validate the minimum number of paired days accepted for a bin.

    A regression with a residual scale needs at least three points.
    """
    return _check_positive_int("min_paired_days", value, minimum=3)


@register_config_validator("latitude")
def validate_latitude(value: Any, **kwargs) -> bool:
    """Validate the site latitude in degrees north."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.warning("Option 'latitude' expects a number, got %r.", value)
        return False
    if not -90.0 <= value <= 90.0:
        logger.warning("Option 'latitude' must be within [-90, 90], got %s.", value)
        return False
    return True


@register_config_validator("longitude")
def validate_longitude(value: Any, **kwargs) -> bool:
    """Validate the site longitude in degrees east."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.warning("Option 'longitude' expects a number, got %r.", value)
        return False
    if not -180.0 <= value <= 360.0:
        logger.warning(
            "Option 'longitude' must be within [-180, 360], got %s.", value
        )
        return False
    return True


@register_config_validator("seed")
def validate_seed(value: Any, **kwargs) -> bool:
    """Validate the noise seed. ``None`` draws fresh entropy."""
    if value is None:
        return True
    return _check_positive_int("seed", value, minimum=0)


@register_config_validator("offset_policy")
def validate_offset_policy(value: Any, **kwargs) -> bool:
    """Validate the offset correction policy name."""
    if value in OFFSET_POLICIES:
        return True
    logger.warning(
        "Option 'offset_policy' must be one of %s, got %r.%s",
        OFFSET_POLICIES,
        value,
        offset_policy_hint(value),
    )
    return False
