"""
Utility functions
"""

from .hazard_estimation import HazardEstimator
from .discretization import DurationDiscretizer, validate_times

__all__ = [
    "HazardEstimator",
    "DurationDiscretizer",
    "validate_times"
]
