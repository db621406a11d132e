"""
Data structures and datasets for survival benchmarks
"""

from .data import Survival, SurvivalTask
from .data_validator import DataValidator
from .datasets import load_task, list_tasks, make_synthetic_task

__all__ = [
    "Survival",
    "SurvivalTask",
    "DataValidator",
    "load_task",
    "list_tasks",
    "make_synthetic_task"
]
