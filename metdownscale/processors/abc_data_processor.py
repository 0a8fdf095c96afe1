"""Data processing module for metdownscale.

This module defines the abstract base class for the pipeline stages and a
registry system for processor classes. Each stage reads the tables it needs
from the pipeline state, builds a new table, and returns a new state with the
table added under its own key. Tables received by a stage are never modified.

Classes
-------
DataProcessor : Abstract base class for all pipeline stages.

Functions
---------
register_processor : Decorator for registering processor classes.

"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Tuple

import xarray as xr

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import _NEW_ATTRS_KEY, UNSET

# Registry to hold all registered processors
_PROCESSOR_REGISTRY = {}

# Pipeline state: table name to table
Tables = Dict[str, Any]


def register_processor(
    key: str | object = UNSET, priority: int | object = UNSET
) -> Callable:
    """Decorator to register a processor class.

    Parameters
    ----------
    key : str, optional
        The key to register the processor under. If not provided, a key
        will be generated from the class name.
    priority : int, optional
        Optional priority for the processor. Lower values run earlier.

    Returns
    -------
    callable
        The decorator function that registers the processor class.

    Examples
    --------
    @register_processor("my_processor", priority=10)
    class MyProcessor(DataProcessor):
        ...

    """

    def decorator(cls):
        # If no key is provided, generate one from the class name
        processor_key = (
            key
            if key is not UNSET
            else "".join(
                ["_" + c.lower() if c.isupper() else c for c in cls.__name__]
            ).lstrip("_")
        )
        _PROCESSOR_REGISTRY[processor_key] = (cls, priority)
        return cls

    return decorator


class DataProcessor(ABC):
    """Abstract base class for pipeline stages.

    All stages should inherit from this class and implement the required methods.

    Notes
    -----
    - Processors store the run config and the fixed inputs they need
      (``requires`` names them), never the tables flowing through the pipeline.
    - Fatal conditions raise a ``DownscalingError``; recoverable ones leave
      cells missing and are reported in the context.
    - All processors should update the context with information about how
      they modified the data.

    Attributes
    ----------
    requires : tuple of str
        Names of the fixed inputs the pipeline factory must hand to
        ``__init__`` as keyword arguments.

    Methods
    -------
    execute(result, context)
        Process the tables and return the new pipeline state.
    update_context(context)
        Update the context with additional parameters.

    """

    requires: Tuple[str, ...] = ()

    def __init__(self, config: RunConfig):
        self.config = config
        self.name = "data_processor"

    @abstractmethod
    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        """Process the pipeline tables.

        Parameters
        ----------
        result : dict of str to table
            Tables produced by the previous stages.
        context : dict
            Run provenance shared by every stage.

        Returns
        -------
        dict of str to table
            A new state holding every input table plus this stage's output.

        Raises
        ------
        DownscalingError
            If the stage cannot proceed.

        """

    def update_context(self, context: Dict[str, Any]):
        """Update the context with information about the transformation.

        Parameters
        ----------
        context : dict[str, Any]
            Parameters for processing the data. The context is updated in place.

        Returns
        -------
        None

        """
        if _NEW_ATTRS_KEY not in context:
            context[_NEW_ATTRS_KEY] = {}

        context[_NEW_ATTRS_KEY][
            self.name
        ] = f"Process '{self.name}' applied to the data in {self.config.mode} mode."

    @staticmethod
    def _require(result: Tables, key: str, stage: str) -> xr.Dataset:
        """Fetch a table produced by an earlier stage."""
        if key not in result:
            raise KeyError(f"Stage '{stage}' needs table '{key}' which was not produced.")
        return result[key]
