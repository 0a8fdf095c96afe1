"""Initialize the config validators, ensuring they get registered."""

from . import run_config_validator
from .abc_param_validation import _CONFIG_VALIDATOR_REGISTRY, validate_config

__all__ = ["run_config_validator", "validate_config", "_CONFIG_VALIDATOR_REGISTRY"]
