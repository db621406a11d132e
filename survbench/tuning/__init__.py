"""
Hyper-parameter search spaces and tuners
"""

from .search_space import (
    ParamSpec,
    SearchSpace,
    default_neural_search_space,
    nodes_to_num_nodes,
    specs_from_dict
)
from .tuner import (
    TuningResult,
    Tuner,
    RandomSearchTuner,
    GridSearchTuner,
    AutoTuner
)

__all__ = [
    "ParamSpec",
    "SearchSpace",
    "default_neural_search_space",
    "nodes_to_num_nodes",
    "specs_from_dict",
    "TuningResult",
    "Tuner",
    "RandomSearchTuner",
    "GridSearchTuner",
    "AutoTuner"
]
