"""Parameter validation registry for metdownscale.

Each run option has one validator function registered under the option name.
Validators return ``True`` when the value is usable and ``False`` otherwise,
logging a warning that explains the problem.

Functions
---------
register_config_validator
    Decorator for registering option validator functions.
validate_config
    Run every registered validator against a mapping of option values.

Module Variables
----------------
_CONFIG_VALIDATOR_REGISTRY : dict
    Registry mapping option names to validator functions.

"""

import logging
from typing import Any, Callable, Dict, List

# Module logger
logger = logging.getLogger(__name__)

_CONFIG_VALIDATOR_REGISTRY: Dict[str, Callable[..., bool]] = {}


def register_config_validator(name: str) -> Callable:
    """Decorator to register an option validator function in the global registry.

    Parameters
    ----------
    name : str
        Name of the run option the validator handles.

    Returns
    -------
    function
        Decorator function that registers the validator and returns it unchanged.

    Examples
    --------
    >>> @register_config_validator("ensemble_size")
    ... def validate_ensemble_size(value, **kwargs):
    ...     return isinstance(value, int) and value > 0

    """

    def decorator(func):
        _CONFIG_VALIDATOR_REGISTRY[name] = func
        return func

    return decorator


def validate_config(options: Dict[str, Any]) -> List[str]:
    """Validate every option that has a registered validator.

    Parameters
    ----------
    options : dict
        Option name to value mapping. The whole mapping is passed to each
        validator as keyword arguments so cross-option checks are possible.

    Returns
    -------
    list of str
        Names of the options that failed validation. Empty when all are valid.

    """
    invalid = []
    for name, validator in _CONFIG_VALIDATOR_REGISTRY.items():
        if name not in options:
            continue
        if not validator(options[name], **options):
            invalid.append(name)
    logger.debug("validate_config finished, invalid options: %s", invalid)
    return invalid
