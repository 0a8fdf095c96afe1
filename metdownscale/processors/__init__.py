"""Initialize the processors, ensuring they get registered."""

from .aggregate_daily import AggregateDaily
from .assemble import Assemble
from .boundary_fill import BoundaryFill
from .debias import Debias
from .export import Export
from .hourly_holds import HourlyHolds
from .offset_correct import OffsetCorrect
from .pass_through import PassThrough
from .redistribute import Redistribute
from .solar_disaggregate import SolarDisaggregate
from .spline_interpolate import SplineInterpolate

__all__ = [
    "AggregateDaily",
    "Assemble",
    "BoundaryFill",
    "Debias",
    "Export",
    "HourlyHolds",
    "OffsetCorrect",
    "PassThrough",
    "Redistribute",
    "SolarDisaggregate",
    "SplineInterpolate",
]
