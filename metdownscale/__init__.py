import warnings

from metdownscale._version import __version__
from metdownscale.core.config import RunConfig
from metdownscale.process_forecast import process_forecast, process_forecast_batch

# By default, ignore warnings coming from modules outside this package so that
# noisy third-party warnings (for example xarray resample deprecations) don't
# appear for users who set logging to WARNING. Warnings raised inside the
# `metdownscale` package stay visible.
warnings.filterwarnings("ignore", module=r"^(?!metdownscale).*")

__all__ = (
    # Methods
    "process_forecast",
    "process_forecast_batch",
    # Classes
    "RunConfig",
    # Constants
    "__version__",
)
