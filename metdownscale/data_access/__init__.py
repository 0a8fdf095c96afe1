"""Data access for metdownscale.

Readers for normalized forecast CSVs and site observations, and flat-file
persistence of fitted bias coefficients.
"""

from .forecast_loader import (
    forecast_file_name,
    load_coefficients,
    load_forecast,
    load_observations,
    save_coefficients,
)

__all__ = [
    "forecast_file_name",
    "load_coefficients",
    "load_forecast",
    "load_observations",
    "save_coefficients",
]
