"""
survbench: Benchmarking Neural Networks for Survival Analysis
"""

import logging

__version__ = "0.1.0"

from .data import Survival, SurvivalTask, load_task, list_tasks, make_synthetic_task
from .learners import (
    KaplanMeierLearner,
    CoxPHLearner,
    DeepSurvLearner,
    CoxTimeLearner,
    DeepHitLearner,
    LogisticHazardLearner,
    PCHazardLearner,
    make_learner,
    list_learners
)
from .evaluation import Holdout, CrossValidation, RepeatedCrossValidation, get_measure, resample
from .tuning import ParamSpec, SearchSpace, default_neural_search_space, AutoTuner, RandomSearchTuner
from .pipeline import PipelineLearner, make_pipeline
from .benchmark import benchmark_grid, benchmark, BenchmarkResult, BenchmarkAggr

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Survival",
    "SurvivalTask",
    "load_task",
    "list_tasks",
    "make_synthetic_task",
    "KaplanMeierLearner",
    "CoxPHLearner",
    "DeepSurvLearner",
    "CoxTimeLearner",
    "DeepHitLearner",
    "LogisticHazardLearner",
    "PCHazardLearner",
    "make_learner",
    "list_learners",
    "Holdout",
    "CrossValidation",
    "RepeatedCrossValidation",
    "get_measure",
    "resample",
    "ParamSpec",
    "SearchSpace",
    "default_neural_search_space",
    "AutoTuner",
    "RandomSearchTuner",
    "PipelineLearner",
    "make_pipeline",
    "benchmark_grid",
    "benchmark",
    "BenchmarkResult",
    "BenchmarkAggr"
]
