"""
Switches the package log output to stdout on and off.

Module loggers are named after their module, so every record propagates to
the ``metdownscale`` logger configured here. Nothing is printed until
:func:`enable_app_logging` is called.
"""

import logging
import sys

PACKAGE_LOGGER = "metdownscale"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(PACKAGE_LOGGER)
logger.setLevel(logging.DEBUG)

handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(logging.Formatter(LOG_FORMAT))


def current_logging_status() -> bool:
    """Whether package records are currently printed to stdout."""
    return handler in logger.handlers


def enable_app_logging(level: int = logging.DEBUG):
    """
    Print package records at ``level`` and above to stdout.

    Calling it again only changes the level; the handler is attached once.
    """
    handler.setLevel(level)
    if not current_logging_status():
        logger.addHandler(handler)


def disable_app_logging():
    """Stop printing package records."""
    if current_logging_status():
        logger.removeHandler(handler)
