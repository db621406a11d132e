"""
Base class for survival learners
"""

from abc import ABC, abstractmethod
import numpy as np
import pandas as pd
from typing import Union, Tuple
from sklearn.base import BaseEstimator
from sklearn.utils.validation import check_is_fitted

from ..data import Survival, DataValidator
from ..utils import validate_times


class BaseSurvivalLearner(BaseEstimator, ABC):
    """Abstract base class for all survival learners

    Learners follow the scikit-learn estimator conventions: hyper-parameters
    are constructor arguments, fitted state lives in attributes ending with an
    underscore, and ``clone``/``set_params`` work out of the box.
    """

    key = "surv.base"

    @property
    def id(self) -> str:
        """Identifier used in benchmark tables"""
        return self.key

    @abstractmethod
    def fit(self, X: Union[np.ndarray, pd.DataFrame],
            y: Survival) -> 'BaseSurvivalLearner':
        """
        Fit the learner

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training data
        y : Survival
            Target values

        Returns
        -------
        self : BaseSurvivalLearner
            Fitted learner
        """

    @abstractmethod
    def predict_survival(self, X: Union[np.ndarray, pd.DataFrame],
                         times: np.ndarray) -> np.ndarray:
        """
        Predict survival probabilities

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Data to predict for
        times : array-like
            Times at which to predict survival

        Returns
        -------
        survival : array-like of shape (n_samples, n_times)
            Predicted survival probabilities, non-increasing along axis 1
        """

    def predict_risk(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        """
        Predict risk scores (higher means earlier expected event)

        The default ranks by expected mortality: the cumulative hazard
        implied by the predicted survival curve, summed over the training
        event times.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Data to predict for

        Returns
        -------
        risk : array-like of shape (n_samples,)
            Predicted risk scores
        """
        check_is_fitted(self, "is_fitted_")
        surv = self.predict_survival(X, self.event_times_)
        return -np.log(np.clip(surv, 1e-12, 1.0)).sum(axis=1)

    def _validate_data(self, X: Union[np.ndarray, pd.DataFrame],
                       y: Survival) -> Tuple[np.ndarray, Survival]:
        """
        Validate training data and convert features to a float matrix

        Raises
        ------
        ValueError
            If data is invalid
        """
        if not isinstance(y, Survival):
            raise ValueError("y must be a Survival object")
        DataValidator().validate_features(X, len(y))
        X = self._as_matrix(X)
        if not np.all(np.isfinite(X)):
            raise ValueError("X contains missing or infinite values; impute them first")
        return X, y

    @staticmethod
    def _as_matrix(X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        try:
            X = np.asarray(X, dtype=float)
        except (TypeError, ValueError):
            raise ValueError("X must be numeric; encode categorical features first")
        if X.ndim != 2:
            raise ValueError("X must be 2-dimensional")
        return X

    def _check_features(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        """Check a prediction matrix against the fitted number of features"""
        check_is_fitted(self, "is_fitted_")
        X = self._as_matrix(X)
        if X.shape[1] != self.n_features_in_:
            raise ValueError(f"X has {X.shape[1]} features, but the learner was "
                             f"fitted with {self.n_features_in_} features")
        return X

    def _validate_times(self, times: np.ndarray) -> np.ndarray:
        return validate_times(times)
