from ._version import __version__
from .config import PlusConfig
from .exceptions import (
    MalformedNetworkError,
    MissingColumnError,
    UndefinedPathLengthWarning,
    WorkerFailureError,
)
from .network.attributes import add_plus_network_attributes, derive_network_attributes, prepare_network
from .network.combine import combine_networks
from .network.graph import split_network
from .network.levelpaths import LevelpathFunction, get_levelpaths
from .network.schedule import run_levelpaths
from .pipeline.build_subnetworks import build_subnetworks
from .pipeline.network_attributes import derive_attributes
from .pipeline.processing import map_levelpaths, reduce_combine_levelpaths
from .pipeline.read import read_network
from .pipeline.write import write_network
from .task_instance import TaskInstance

__all__ = [
    "__version__",
    "PlusConfig",
    "MalformedNetworkError",
    "MissingColumnError",
    "UndefinedPathLengthWarning",
    "WorkerFailureError",
    "add_plus_network_attributes",
    "derive_network_attributes",
    "prepare_network",
    "combine_networks",
    "split_network",
    "LevelpathFunction",
    "get_levelpaths",
    "run_levelpaths",
    "build_subnetworks",
    "derive_attributes",
    "map_levelpaths",
    "reduce_combine_levelpaths",
    "read_network",
    "write_network",
    "TaskInstance",
]
