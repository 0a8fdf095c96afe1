"""Downscaling Pipeline Module

This module provides the Pipeline class that runs an ordered series of
processing stages over one forecast. Stages share a pipeline state, a dict of
named tables, and a run context that collects provenance and reported gaps.

Classes
-------
Pipeline
    An ordered list of processing stages supporting method chaining.

Usage Example
-------------
```python
from metdownscale.core.config import RunConfig
from metdownscale.pipeline import Pipeline
from metdownscale.processors import AggregateDaily, Debias

config = RunConfig(downscale=True)
pipeline = (
    Pipeline(config)
    .with_processing_step(AggregateDaily(config))
    .with_processing_step(Debias(config, coefficients=coefficients))
)
state = pipeline.execute(forecast, {"file_name": "20180705gep_all_00z"})
```

Error Handling
--------------
- TypeError: Raised for processing steps that lack the stage interface
- ValueError: Raised when executing an empty pipeline
- DownscalingError: Propagated unchanged from the stages
- RuntimeError: Wraps any other failure inside a stage

"""

import logging
from typing import Any, Dict, List, Optional

import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import RAW_FORECAST, REPORTED_GAPS_KEY
from metdownscale.core.exceptions import DownscalingError
from metdownscale.processors.abc_data_processor import DataProcessor, Tables

# Module logger
logger = logging.getLogger(__name__)


class Pipeline:
    """A sequence of processing stages applied to one forecast.

    Parameters
    ----------
    config : RunConfig
        Options of the run, shared with every stage.

    Attributes
    ----------
    config : RunConfig
    processing_pipeline : list of DataProcessor
        Stages executed in the order they were added.

    Methods
    -------
    execute(forecast, context=None)
        Run every stage and return the final pipeline state.
    with_processing_step(step)
        Append a stage (method chaining).

    """

    def __init__(self, config: RunConfig):
        self.config = config
        self.processing_pipeline: List[DataProcessor] = []

    @property
    def step_names(self) -> List[str]:
        """Names of the stages, in execution order."""
        return [step.name for step in self.processing_pipeline]

    def execute(
        self, forecast: xr.Dataset, context: Optional[Dict[str, Any]] = None
    ) -> Tables:
        """Execute the pipeline on a raw forecast.

        Parameters
        ----------
        forecast : xr.Dataset
            Raw forecast, dims ``(member, time)``.
        context : dict, optional
            Run context. Stages add provenance and reported gaps to it in
            place.

        Returns
        -------
        dict of str to table
            Every table produced by the stages, keyed by name.

        Raises
        ------
        ValueError
            If no stage was added.
        DownscalingError
            If a stage hits a fatal condition.
        RuntimeError
            If a stage fails for any other reason.

        """
        if not self.processing_pipeline:
            raise ValueError("Processing pipeline has no steps.")

        context = {} if context is None else context
        context.setdefault(REPORTED_GAPS_KEY, [])
        current_result: Tables = {RAW_FORECAST: forecast}

        for step in self.processing_pipeline:
            logger.debug("Executing step '%s'", step.name)
            try:
                current_result = step.execute(current_result, context)
            except DownscalingError:
                logger.error("Step '%s' failed", step.name)
                raise
            except Exception as e:
                logger.exception("Unexpected error in step '%s'", step.name)
                raise RuntimeError(f"Error in processing pipeline: {str(e)}") from e
            if current_result is None:
                raise RuntimeError(
                    f"Processing step {step.name} returned None. "
                    "Ensure that the step is implemented correctly."
                )

        n_gaps = len(context[REPORTED_GAPS_KEY])
        if n_gaps:
            logger.info("Pipeline finished with %d reported gap(s)", n_gaps)
        return current_result

    def with_processing_step(self, step: DataProcessor) -> "Pipeline":
        """Add a new processing step to the pipeline.

        Parameters
        ----------
        step : DataProcessor
            Stage to append. Must have 'execute' and 'update_context' methods.

        Returns
        -------
        Pipeline
            The current instance allowing method chaining.

        Raises
        ------
        TypeError
            If the step lacks the stage interface.

        """
        if not hasattr(step, "execute") or not callable(getattr(step, "execute")):
            raise TypeError("Processing step must have an 'execute' method.")

        if not hasattr(step, "update_context") or not callable(
            getattr(step, "update_context")
        ):
            raise TypeError("Processing step must have an 'update_context' method.")

        self.processing_pipeline.append(step)
        return self
