"""Run configuration for a downscaling run.

A ``RunConfig`` is built once per run, validated, and handed to every stage.
It is frozen so no stage can change the options another stage relies on.
"""

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional

from metdownscale.core.constants import (
    DEFAULT_BIN_WIDTH,
    DEFAULT_MIN_PAIRED_DAYS,
    N_FORECAST_MEMBERS,
    NO_NOISE_MEMBER,
    OFFSET_POLICY_GROUP_MAX,
)
from metdownscale.param_validation import validate_config

# Module logger
logger = logging.getLogger(__name__)

# option names used by the original driver scripts
_LEGACY_OPTION_NAMES = {
    "DOWNSCALE": "downscale",
    "DOWNSCALE_MET": "downscale",
    "ADD_NOISE": "add_noise",
    "WRITE_FILES": "write_files",
    "FIT_PARAMETERS": "fit_parameters",
    "nmembers": "ensemble_size",
    "lat": "latitude",
    "lon": "longitude",
}


@dataclass(frozen=True)
class RunConfig:
    """Options of one downscaling run.

    Attributes
    ----------
    downscale : bool
        Apply bias correction (True) or pass the forecast through (False).
    add_noise : bool
        Fan each forecast member out into ``ensemble_size`` noise members.
        Ignored when ``downscale`` is False.
    write_files : bool
        Emit one CSV per (forecast member, noise member) pair.
    fit_parameters : bool
        Fit the bias coefficients from history before applying them.
    ensemble_size : int
        Number of noise members per forecast member.
    bin_width : int
        Width, in days, of the day-of-year coefficient bins.
    min_paired_days : int
        Minimum number of paired days needed to fit a bin.
    latitude, longitude : float
        Site location in degrees, used by the solar geometry.
    seed : int or None
        Seed of the noise generator. ``None`` gives non reproducible noise.
    offset_policy : str
        ``"group_max"`` or ``"anchor"``, see the offset correction processor.
    in_directory, out_directory : str or None
        Folder holding forecast CSVs and folder receiving driver files.
    n_forecast_members : int
        Number of raw forecast members expected in each input.

    """

    downscale: bool = False
    add_noise: bool = False
    write_files: bool = False
    fit_parameters: bool = False
    ensemble_size: int = 1
    bin_width: int = DEFAULT_BIN_WIDTH
    min_paired_days: int = DEFAULT_MIN_PAIRED_DAYS
    latitude: float = 0.0
    longitude: float = 0.0
    seed: Optional[int] = None
    offset_policy: str = OFFSET_POLICY_GROUP_MAX
    in_directory: Optional[str] = None
    out_directory: Optional[str] = None
    n_forecast_members: int = N_FORECAST_MEMBERS

    @classmethod
    def from_dict(cls, options: Dict[str, Any]) -> "RunConfig":
        """Build a validated config, accepting the legacy upper case option names.

        Parameters
        ----------
        options : dict
            Option values keyed by field name or legacy name.

        Returns
        -------
        RunConfig

        Raises
        ------
        ValueError
            If an option name is unknown or a value is invalid.

        """
        normalized = {}
        for key, value in options.items():
            normalized[_LEGACY_OPTION_NAMES.get(key, key)] = value

        unknown = set(normalized) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown run options: {sorted(unknown)}")

        config = cls(**normalized)
        config.validate()
        return config

    def validate(self) -> "RunConfig":
        """Run the registered option validators.

        Returns
        -------
        RunConfig
            The same instance, allowing chaining.

        Raises
        ------
        ValueError
            Naming every invalid option.

        """
        invalid = validate_config(asdict(self))
        if invalid:
            raise ValueError(f"Invalid run options: {', '.join(invalid)}")
        logger.debug("RunConfig validated: %s", self)
        return self

    def with_options(self, **changes) -> "RunConfig":
        """Return a validated copy with some options changed."""
        return replace(self, **changes).validate()

    @property
    def noise_enabled(self) -> bool:
        """True when the run fans members out with stochastic noise."""
        return self.downscale and self.add_noise

    @property
    def noise_members(self) -> list:
        """Noise-member ids produced by this run."""
        if self.noise_enabled:
            return list(range(1, self.ensemble_size + 1))
        return [NO_NOISE_MEMBER]

    @property
    def mode(self) -> str:
        """Human readable name of the processing mode."""
        if not self.downscale:
            return "out of box"
        return "downscaled with noise" if self.add_noise else "downscaled"
