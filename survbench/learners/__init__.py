"""
Survival learners
"""

from .base import BaseSurvivalLearner
from .baselines import KaplanMeierLearner, CoxPHLearner
from .neural import (
    BaseNeuralLearner,
    DeepSurvLearner,
    CoxTimeLearner,
    DeepHitLearner,
    LogisticHazardLearner,
    PCHazardLearner
)
from .registry import make_learner, list_learners

__all__ = [
    'BaseSurvivalLearner',
    'KaplanMeierLearner',
    'CoxPHLearner',
    'BaseNeuralLearner',
    'DeepSurvLearner',
    'CoxTimeLearner',
    'DeepHitLearner',
    'LogisticHazardLearner',
    'PCHazardLearner',
    'make_learner',
    'list_learners'
]
