"""
Lookup of learners by key
"""
from typing import Dict, List, Type

from .base import BaseSurvivalLearner
from .baselines import KaplanMeierLearner, CoxPHLearner
from .neural import (
    DeepSurvLearner,
    CoxTimeLearner,
    DeepHitLearner,
    LogisticHazardLearner,
    PCHazardLearner
)

_LEARNERS: Dict[str, Type[BaseSurvivalLearner]] = {
    cls.key: cls for cls in (
        KaplanMeierLearner,
        CoxPHLearner,
        DeepSurvLearner,
        CoxTimeLearner,
        DeepHitLearner,
        LogisticHazardLearner,
        PCHazardLearner,
    )
}


def list_learners() -> List[str]:
    """Keys accepted by :func:`make_learner`"""
    return sorted(_LEARNERS)


def make_learner(key: str, **params) -> BaseSurvivalLearner:
    """
    Construct a learner from its key

    Parameters
    ----------
    key : str
        Learner key such as ``"surv.deepsurv"``
    **params
        Hyper-parameters passed to the constructor

    Returns
    -------
    BaseSurvivalLearner
    """
    if key not in _LEARNERS:
        raise KeyError(f"Unknown learner '{key}'. Available learners: {list_learners()}")
    return _LEARNERS[key](**params)
