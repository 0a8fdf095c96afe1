"""Error taxonomy for the downscaling pipeline.

Fatal conditions are raised and abort the run for one forecast-issue date.
Recoverable conditions (``IncompleteDayError``, ``DivisionByZeroGuard`` and
``InterpolationRangeError``) are never raised by the pipeline stages; the
affected cells are left missing and the condition is recorded by name in the
run context, see :func:`report_gap`.
"""

import logging
from typing import Any, Dict

from metdownscale.core.constants import REPORTED_GAPS_KEY

# Module logger
logger = logging.getLogger(__name__)


class DownscalingError(Exception):
    """Base class for every error raised by metdownscale."""


class MissingInputError(DownscalingError):
    """A required input file is absent."""

    def __init__(self, path: str, what: str = "input file"):
        self.path = path
        super().__init__(f"Missing {what}: {path}")


class MalformedInputError(DownscalingError, ValueError):
    """An input file or table cannot be parsed into the expected layout."""


class InsufficientCalibrationDataError(DownscalingError):
    """A day-of-year bin lacks enough paired history to fit coefficients."""


# short name used by the coefficient fitter
InsufficientDataError = InsufficientCalibrationDataError


class IncompleteDayError(DownscalingError):
    """A calendar day lacks the expected count of sub-daily readings."""


class DivisionByZeroGuard(DownscalingError):
    """A zero or missing daily mean prevented redistribution."""


class InterpolationRangeError(DownscalingError):
    """Too few points to interpolate, or a query outside the input range."""


class JoinIntegrityError(DownscalingError):
    """A join or reshape dropped or duplicated keyed rows."""


def report_gap(
    context: Dict[str, Any], condition: type, detail: str, count: int = 1
) -> None:
    """Record a recoverable condition in the run context and log it.

    Parameters
    ----------
    context : dict
        Run context shared by the pipeline stages. Updated in place.
    condition : type
        One of the recoverable exception classes.
    detail : str
        Human readable description of what was left missing.
    count : int, optional
        Number of affected cells, default 1.

    Returns
    -------
    None

    """
    if count <= 0:
        return
    context.setdefault(REPORTED_GAPS_KEY, []).append(
        {"condition": condition.__name__, "detail": detail, "count": int(count)}
    )
    logger.warning("%s: %s (%d cells)", condition.__name__, detail, count)
