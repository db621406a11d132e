"""
Feature preprocessing in front of survival learners
"""

import numpy as np
import pandas as pd
from typing import Optional, Union
from sklearn.base import clone
from sklearn.compose import ColumnTransformer, make_column_selector
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler
from sklearn.utils.validation import check_is_fitted

from ..data import Survival
from ..evaluation.resampling import learner_id
from ..learners.base import BaseSurvivalLearner


def build_preprocessor(encode: bool = True,
                       scale: bool = True,
                       impute: bool = True) -> ColumnTransformer:
    """
    Column-wise preprocessing for mixed feature tables

    Parameters
    ----------
    encode : bool, default=True
        One-hot encode non-numeric columns (unseen levels map to all zeros)
    scale : bool, default=True
        Standardize numeric columns
    impute : bool, default=True
        Fill missing values: median for numeric, most frequent level for
        categorical columns

    Returns
    -------
    ColumnTransformer
    """
    numeric_steps = []
    categorical_steps = []
    if impute:
        numeric_steps.append(('impute', SimpleImputer(strategy='median')))
        categorical_steps.append(('impute', SimpleImputer(strategy='most_frequent')))
    if scale:
        numeric_steps.append(('scale', StandardScaler()))
    if encode:
        categorical_steps.append(('encode', OneHotEncoder(handle_unknown='ignore',
                                                          sparse_output=False)))

    numeric = Pipeline(numeric_steps) if numeric_steps else 'passthrough'
    categorical = Pipeline(categorical_steps) if categorical_steps else 'passthrough'
    return ColumnTransformer(
        [
            ('numeric', numeric, make_column_selector(dtype_include=np.number)),
            ('categorical', categorical, make_column_selector(dtype_exclude=np.number)),
        ],
        sparse_threshold=0
    )


class PipelineLearner(BaseSurvivalLearner):
    """
    Preprocessor followed by a survival learner.

    The preprocessor is fitted on the training features only, so resampling a
    pipeline never leaks test-fold statistics. Nested parameters are
    addressed as ``preprocessor__...`` and ``learner__...``.

    Parameters
    ----------
    learner : BaseSurvivalLearner
        Learner fitted on the transformed features
    preprocessor : transformer, optional
        Any scikit-learn transformer (default :func:`build_preprocessor`)
    """

    def __init__(self, learner: BaseSurvivalLearner, preprocessor=None):
        self.learner = learner
        self.preprocessor = preprocessor

    @property
    def id(self) -> str:
        return learner_id(self.learner)

    @staticmethod
    def _frame(X: Union[np.ndarray, pd.DataFrame]) -> pd.DataFrame:
        if isinstance(X, pd.DataFrame):
            return X
        X = np.asarray(X)
        if X.ndim != 2:
            raise ValueError("X must be 2-dimensional")
        return pd.DataFrame(X, columns=[f"x{i}" for i in range(X.shape[1])])

    def fit(self, X: Union[np.ndarray, pd.DataFrame], y: Survival) -> 'PipelineLearner':
        if not isinstance(y, Survival):
            raise ValueError("y must be a Survival object")
        X = self._frame(X)
        if len(X) != len(y):
            raise ValueError("X and y must have the same number of samples")

        preprocessor = self.preprocessor if self.preprocessor is not None else build_preprocessor()
        self.preprocessor_ = clone(preprocessor)
        Xt = self.preprocessor_.fit_transform(X)
        self.learner_ = clone(self.learner).fit(Xt, y)

        self.feature_names_in_ = np.asarray(X.columns, dtype=object)
        self.n_features_in_ = X.shape[1]
        self.event_times_ = y.event_times
        self.is_fitted_ = True
        return self

    def transform(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        """Apply the fitted preprocessor"""
        check_is_fitted(self, "is_fitted_")
        return self.preprocessor_.transform(self._frame(X))

    def predict_survival(self, X, times):
        return self.learner_.predict_survival(self.transform(X), times)

    def predict_risk(self, X):
        return self.learner_.predict_risk(self.transform(X))


def make_pipeline(learner: BaseSurvivalLearner,
                  encode: bool = True,
                  scale: bool = True,
                  impute: bool = True,
                  preprocessor: Optional[object] = None) -> PipelineLearner:
    """Shortcut for ``PipelineLearner(learner, build_preprocessor(...))``"""
    if preprocessor is None:
        preprocessor = build_preprocessor(encode=encode, scale=scale, impute=impute)
    return PipelineLearner(learner, preprocessor)
