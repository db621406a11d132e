"""
Classical reference learners backed by lifelines
"""
import logging
import numpy as np
import pandas as pd
from typing import Union
from lifelines import KaplanMeierFitter, CoxPHFitter

from .base import BaseSurvivalLearner
from ..data import Survival

logger = logging.getLogger(__name__)


class KaplanMeierLearner(BaseSurvivalLearner):
    """
    Kaplan-Meier estimator, ignoring all covariates.

    Every sample gets the same survival curve, so it ranks all pairs as ties
    and serves as the floor every other learner should beat.
    """

    key = "surv.kaplan"

    def __init__(self):
        pass

    def fit(self, X: Union[np.ndarray, pd.DataFrame], y: Survival) -> 'KaplanMeierLearner':
        X, y = self._validate_data(X, y)
        self.n_features_in_ = X.shape[1]
        self.kmf_ = KaplanMeierFitter().fit(y.time, event_observed=y.event)
        self.event_times_ = y.event_times
        self.is_fitted_ = True
        return self

    def predict_survival(self, X: Union[np.ndarray, pd.DataFrame],
                         times: np.ndarray) -> np.ndarray:
        X = self._check_features(X)
        times = self._validate_times(times)
        surv = self.kmf_.survival_function_at_times(times).to_numpy()
        return np.tile(surv, (X.shape[0], 1))

    def predict_risk(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        X = self._check_features(X)
        return np.zeros(X.shape[0])


class CoxPHLearner(BaseSurvivalLearner):
    """
    Cox proportional hazards model.

    Parameters
    ----------
    penalizer : float, default=0.0
        Strength of the coefficient penalty
    l1_ratio : float, default=0.0
        Share of the L1 term in the elastic-net penalty
    baseline_estimation_method : str, default='breslow'
        Passed to :class:`lifelines.CoxPHFitter`
    """

    key = "surv.coxph"

    def __init__(self, penalizer: float = 0.0,
                 l1_ratio: float = 0.0,
                 baseline_estimation_method: str = "breslow"):
        self.penalizer = penalizer
        self.l1_ratio = l1_ratio
        self.baseline_estimation_method = baseline_estimation_method

    def _frame(self, X: np.ndarray) -> pd.DataFrame:
        return pd.DataFrame(X, columns=[f"x{i}" for i in range(X.shape[1])])

    def fit(self, X: Union[np.ndarray, pd.DataFrame], y: Survival) -> 'CoxPHLearner':
        X, y = self._validate_data(X, y)
        self.n_features_in_ = X.shape[1]

        df = self._frame(X)
        df["_time"] = y.time
        df["_event"] = y.event

        self.cph_ = CoxPHFitter(
            penalizer=self.penalizer,
            l1_ratio=self.l1_ratio,
            baseline_estimation_method=self.baseline_estimation_method
        )
        self.cph_.fit(df, duration_col="_time", event_col="_event")
        logger.debug("Fitted CoxPH with log-likelihood %.3f", self.cph_.log_likelihood_)

        self.event_times_ = y.event_times
        self.is_fitted_ = True
        return self

    @property
    def coef_(self) -> np.ndarray:
        return self.cph_.params_.to_numpy()

    def predict_survival(self, X: Union[np.ndarray, pd.DataFrame],
                         times: np.ndarray) -> np.ndarray:
        X = self._check_features(X)
        times = self._validate_times(times)
        if len(times) == 0:
            return np.zeros((X.shape[0], 0))
        surv = self.cph_.predict_survival_function(self._frame(X), times=times)
        return surv.to_numpy().T

    def predict_risk(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        X = self._check_features(X)
        return self.cph_.predict_log_partial_hazard(self._frame(X)).to_numpy()
