"""
Entry points that turn forecast-issue dates into hourly driver files.

``process_forecast`` runs one issue date end to end: load the forecast,
obtain bias coefficients (fitted or stored), build the pipeline for the run
mode, execute it and return the written files with the combined table.
``process_forecast_batch`` runs several dates independently.
"""

import datetime
import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import ASSEMBLED, EMITTED_FILES, REPORTED_GAPS_KEY
from metdownscale.core.exceptions import DownscalingError, MissingInputError
from metdownscale.core.paths import COEFFICIENTS_FILE
from metdownscale.data_access.forecast_loader import (
    forecast_file_name,
    forecast_path,
    load_coefficients,
    load_forecast,
    save_coefficients,
)
from metdownscale.pipeline_factory import create_pipeline
from metdownscale.tools.bias_coefficients import fit_bias_coefficients

# Module logger
logger = logging.getLogger(__name__)

IssueDate = Union[str, datetime.date]


def _resolve_coefficients(
    config: RunConfig,
    coefficients: Optional[xr.Dataset],
    history: Optional[Tuple[xr.Dataset, xr.Dataset]],
) -> Optional[xr.Dataset]:
    """Coefficients for a downscaled run: fitted, given, or read from disk."""
    if not config.downscale:
        return None

    if config.fit_parameters:
        if history is None:
            raise ValueError(
                "fit_parameters is set but no (forecast_daily, observed_daily) "
                "history was given."
            )
        forecast_daily, observed_daily = history
        coefficients = fit_bias_coefficients(
            forecast_daily,
            observed_daily,
            bin_width=config.bin_width,
            min_paired_days=config.min_paired_days,
        )
        if config.in_directory:
            save_coefficients(
                coefficients, os.path.join(config.in_directory, COEFFICIENTS_FILE)
            )
        return coefficients

    if coefficients is not None:
        return coefficients
    if not config.in_directory:
        raise MissingInputError(COEFFICIENTS_FILE, "bias coefficients")
    return load_coefficients(os.path.join(config.in_directory, COEFFICIENTS_FILE))


def process_forecast(
    issue_date: IssueDate,
    config: RunConfig,
    coefficients: Optional[xr.Dataset] = None,
    observations: Optional[xr.Dataset] = None,
    history: Optional[Tuple[xr.Dataset, xr.Dataset]] = None,
    forecast: Optional[xr.Dataset] = None,
    context: Optional[Dict[str, Any]] = None,
) -> Tuple[List[str], xr.Dataset]:
    """Downscale the forecast issued on one date.

    Parameters
    ----------
    issue_date : str or datetime.date
        Forecast-issue date, e.g. ``"2018-07-05"``.
    config : RunConfig
        Validated run options.
    coefficients : xr.Dataset, optional
        Fitted bias coefficients. When omitted in downscaled mode they are
        fitted from ``history`` (``config.fit_parameters``) or read from
        ``config.in_directory``.
    observations : xr.Dataset, optional
        Recent site observations used for offset correction.
    history : tuple of xr.Dataset, optional
        ``(forecast_daily, observed_daily)`` calibration history.
    forecast : xr.Dataset, optional
        Already loaded forecast. When omitted it is read from
        ``config.in_directory``.
    context : dict, optional
        Run context, filled in place with provenance and reported gaps.

    Returns
    -------
    tuple of (list of str, xr.Dataset)
        Written file paths (empty unless ``config.write_files``) and the
        combined hourly table.

    Raises
    ------
    DownscalingError
        On any fatal condition.

    """
    file_name = forecast_file_name(issue_date)
    context = {} if context is None else context
    context.update({"issue_date": str(issue_date), "file_name": file_name})
    logger.info("Processing %s in %s mode", file_name, config.mode)

    if forecast is None:
        if not config.in_directory:
            raise ValueError("No forecast given and no input directory configured.")
        forecast = load_forecast(
            forecast_path(config.in_directory, issue_date),
            expected_members=config.n_forecast_members,
        )

    coefficients = _resolve_coefficients(config, coefficients, history)
    pipeline = create_pipeline(config, coefficients, observations)
    state = pipeline.execute(forecast, context)

    files = state.get(EMITTED_FILES, [])
    logger.info(
        "Finished %s: %d file(s), %d reported gap(s)",
        file_name,
        len(files),
        len(context[REPORTED_GAPS_KEY]),
    )
    return files, state[ASSEMBLED]


def process_forecast_batch(
    issue_dates: Iterable[IssueDate],
    config: RunConfig,
    coefficients: Optional[xr.Dataset] = None,
    observations: Optional[xr.Dataset] = None,
    history: Optional[Tuple[xr.Dataset, xr.Dataset]] = None,
) -> Tuple[Dict[str, Tuple[List[str], xr.Dataset]], Dict[str, str]]:
    """Downscale several issue dates independently.

    A date that fails is logged and recorded; the remaining dates still run.
    Coefficients are fitted at most once for the whole batch.

    Returns
    -------
    tuple of (dict, dict)
        Results keyed by issue date, and error messages keyed by the dates
        that failed.

    """
    if config.downscale and config.fit_parameters:
        coefficients = _resolve_coefficients(config, coefficients, history)
        config = config.with_options(fit_parameters=False)

    results = {}
    failures = {}
    for issue_date in issue_dates:
        key = str(issue_date)
        try:
            results[key] = process_forecast(
                issue_date, config, coefficients=coefficients, observations=observations
            )
        except (DownscalingError, RuntimeError) as e:
            logger.error("Forecast issued %s failed: %s", key, e)
            failures[key] = f"{type(e).__name__}: {e}"

    logger.info(
        "Batch finished: %d succeeded, %d failed", len(results), len(failures)
    )
    return results, failures
