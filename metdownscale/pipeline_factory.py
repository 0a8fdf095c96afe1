"""
Pipeline factory.

Selects the registered processors a run needs from its mode, orders them by
priority and hands each one the fixed inputs it declares in ``requires``.

Processing step priority determines execution order:

- 10: input repair (boundary fill)
- 20-60: state variables (daily aggregation through offset correction, or
  pass-through in out-of-box mode)
- 70-90: shortwave, held series and assembly
- 9999: export
"""

import logging
from typing import Any, Dict, List, Optional

import xarray as xr

import metdownscale.processors  # noqa: F401  registers every processor
from metdownscale.core.config import RunConfig
from metdownscale.pipeline import Pipeline
from metdownscale.processors.abc_data_processor import _PROCESSOR_REGISTRY

# Module logger
logger = logging.getLogger(__name__)

_OUT_OF_BOX_STEPS = [
    "boundary_fill",
    "pass_through",
    "solar_disaggregate",
    "hourly_holds",
    "assemble",
]

_DOWNSCALED_STEPS = [
    "boundary_fill",
    "aggregate_daily",
    "debias",
    "redistribute",
    "spline_interpolate",
    "offset_correct",
    "solar_disaggregate",
    "hourly_holds",
    "assemble",
]


def get_processing_steps(config: RunConfig) -> List[str]:
    """Registry keys of the stages a run needs, ordered by priority.

    Parameters
    ----------
    config : RunConfig

    Returns
    -------
    list of str

    Raises
    ------
    KeyError
        If a needed stage is not registered.

    """
    keys = list(_DOWNSCALED_STEPS if config.downscale else _OUT_OF_BOX_STEPS)
    if config.write_files:
        keys.append("export")

    missing = [k for k in keys if k not in _PROCESSOR_REGISTRY]
    if missing:
        raise KeyError(f"Processing step(s) {missing} not found in registry.")
    # sort is stable, so equal priorities keep their listed order
    return sorted(keys, key=lambda k: _PROCESSOR_REGISTRY[k][1])


def create_pipeline(
    config: RunConfig,
    coefficients: Optional[xr.Dataset] = None,
    observations: Optional[xr.Dataset] = None,
) -> Pipeline:
    """Build the pipeline of a run.

    Parameters
    ----------
    config : RunConfig
        Validated run options.
    coefficients : xr.Dataset, optional
        Fitted bias coefficients. Required in downscaled mode.
    observations : xr.Dataset, optional
        Site observations for offset correction.

    Returns
    -------
    Pipeline

    """
    resources: Dict[str, Any] = {
        "coefficients": coefficients,
        "observations": observations,
    }
    pipeline = Pipeline(config)
    for key in get_processing_steps(config):
        processor_class = _PROCESSOR_REGISTRY[key][0]
        kwargs = {name: resources[name] for name in processor_class.requires}
        pipeline.with_processing_step(processor_class(config, **kwargs))

    logger.info(
        "Created %s pipeline: %s", config.mode, " -> ".join(pipeline.step_names)
    )
    return pipeline
