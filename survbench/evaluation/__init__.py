"""
Evaluation utilities for survival learners
"""

from .measures import (
    Measure,
    HarrellC,
    UnoC,
    GrafScore,
    BrierScore,
    get_measure,
    get_measures,
    list_measures
)
from .resampling import (
    Resampling,
    Holdout,
    CrossValidation,
    RepeatedCrossValidation,
    ResampleResult,
    resample
)

__all__ = [
    "Measure",
    "HarrellC",
    "UnoC",
    "GrafScore",
    "BrierScore",
    "get_measure",
    "get_measures",
    "list_measures",
    "Resampling",
    "Holdout",
    "CrossValidation",
    "RepeatedCrossValidation",
    "ResampleResult",
    "resample"
]
