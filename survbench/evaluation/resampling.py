"""
Resampling strategies and the resample loop
"""

import logging
import time
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.model_selection import KFold, StratifiedKFold, train_test_split

from ..data import SurvivalTask
from .measures import Measure, get_measures

logger = logging.getLogger(__name__)


def learner_id(learner) -> str:
    """Identifier of a learner in result tables"""
    return getattr(learner, 'id', type(learner).__name__)


class Resampling:
    """Base class for resampling strategies

    A strategy is instantiated on a task, which fixes the train/test indices
    so that every learner evaluated with the same instance sees the same
    splits.
    """

    key = "resampling"

    def __init__(self, stratify: bool = True, random_state: Optional[int] = None):
        self.stratify = stratify
        self.random_state = random_state
        self.train_sets_: Optional[List[np.ndarray]] = None
        self.test_sets_: Optional[List[np.ndarray]] = None

    @property
    def id(self) -> str:
        return self.key

    @property
    def iters(self) -> int:
        raise NotImplementedError("This method must be implemented by subclasses")

    @property
    def is_instantiated(self) -> bool:
        return self.train_sets_ is not None

    def _params(self) -> Dict[str, Any]:
        return {'stratify': self.stratify, 'random_state': self.random_state}

    def clone(self) -> 'Resampling':
        """Un-instantiated copy with the same settings"""
        return type(self)(**self._params())

    def _splits(self, n: int, event: np.ndarray) -> List[Tuple[np.ndarray, np.ndarray]]:
        raise NotImplementedError("This method must be implemented by subclasses")

    def _strata(self, event: np.ndarray, n_splits: int) -> Optional[np.ndarray]:
        if not self.stratify:
            return None
        counts = np.bincount(event, minlength=2)
        if counts.min() < n_splits:
            warnings.warn("Too few events or censored samples to stratify; "
                          "falling back to unstratified splits")
            return None
        return event

    def instantiate(self, task: SurvivalTask) -> 'Resampling':
        """Fix the split indices for ``task``"""
        splits = self._splits(task.n_obs, task.y.event)
        self.train_sets_ = [np.sort(tr) for tr, _ in splits]
        self.test_sets_ = [np.sort(te) for _, te in splits]
        self.task_id_ = task.id
        return self

    def iterate(self) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        if not self.is_instantiated:
            raise ValueError("Resampling is not instantiated. Call 'instantiate' first.")
        return zip(self.train_sets_, self.test_sets_)

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self._params().items())
        return f"{type(self).__name__}({params})"


class Holdout(Resampling):
    """Single train/test split

    Parameters
    ----------
    ratio : float, default=2/3
        Share of observations used for training
    """

    key = "holdout"

    def __init__(self, ratio: float = 2 / 3, stratify: bool = True,
                 random_state: Optional[int] = None):
        if not 0.0 < ratio < 1.0:
            raise ValueError("ratio must be in (0, 1)")
        super().__init__(stratify=stratify, random_state=random_state)
        self.ratio = ratio

    @property
    def iters(self) -> int:
        return 1

    def _params(self):
        return dict(ratio=self.ratio, **super()._params())

    def _splits(self, n, event):
        idx = np.arange(n)
        train, test = train_test_split(idx, train_size=self.ratio,
                                       random_state=self.random_state,
                                       stratify=self._strata(event, 2))
        return [(train, test)]


class CrossValidation(Resampling):
    """K-fold cross-validation

    Parameters
    ----------
    folds : int, default=3
        Number of folds
    """

    key = "cv"

    def __init__(self, folds: int = 3, stratify: bool = True,
                 random_state: Optional[int] = None):
        if folds < 2:
            raise ValueError("folds must be at least 2")
        super().__init__(stratify=stratify, random_state=random_state)
        self.folds = folds

    @property
    def iters(self) -> int:
        return self.folds

    def _params(self):
        return dict(folds=self.folds, **super()._params())

    def _fold_splits(self, n, event, random_state):
        strata = self._strata(event, self.folds)
        if strata is None:
            splitter = KFold(n_splits=self.folds, shuffle=True, random_state=random_state)
        else:
            splitter = StratifiedKFold(n_splits=self.folds, shuffle=True,
                                       random_state=random_state)
        return list(splitter.split(np.zeros(n), strata))

    def _splits(self, n, event):
        return self._fold_splits(n, event, self.random_state)


class RepeatedCrossValidation(CrossValidation):
    """K-fold cross-validation repeated with different shuffles

    Parameters
    ----------
    folds : int, default=3
        Number of folds
    repeats : int, default=2
        Number of repetitions
    """

    key = "repeated_cv"

    def __init__(self, folds: int = 3, repeats: int = 2, stratify: bool = True,
                 random_state: Optional[int] = None):
        if repeats < 1:
            raise ValueError("repeats must be at least 1")
        super().__init__(folds=folds, stratify=stratify, random_state=random_state)
        self.repeats = repeats

    @property
    def iters(self) -> int:
        return self.folds * self.repeats

    def _params(self):
        return dict(repeats=self.repeats, **super()._params())

    def _splits(self, n, event):
        rng = np.random.RandomState(self.random_state)
        splits = []
        for _ in range(self.repeats):
            splits.extend(self._fold_splits(n, event, rng.randint(np.iinfo(np.int32).max)))
        return splits


@dataclass
class ResampleResult:
    """Per-iteration scores of one learner on one task"""
    task_id: str
    learner_id: str
    resampling_id: str
    scores: pd.DataFrame
    learners: List[Any] = field(default_factory=list)

    @property
    def errors(self) -> List[str]:
        return [e for e in self.scores['error'] if e]

    def aggregate(self, measures=None) -> pd.Series:
        """Mean score per measure over the iterations"""
        cols = [m.key for m in get_measures(measures)] if measures is not None \
            else [c for c in self.scores.columns if c.startswith('surv.')]
        return self.scores[cols].mean()


def resample(task: SurvivalTask,
             learner,
             resampling: Resampling,
             measures=None,
             store_models: bool = False,
             raise_errors: bool = False,
             learner_label: Optional[str] = None) -> ResampleResult:
    """
    Fit and score a learner on every split of a resampling

    The learner is cloned per iteration. If fitting or scoring raises, the
    error is logged and the iteration is recorded with NaN scores unless
    ``raise_errors`` is set.

    Parameters
    ----------
    task : SurvivalTask
        Task to evaluate on
    learner : BaseSurvivalLearner
        Unfitted learner
    resampling : Resampling
        Strategy; instantiated on ``task`` if it is not already
    measures : str, Measure or list, optional
        Measures to compute (default Harrell's C)
    store_models : bool, default=False
        Keep the fitted learner of each iteration
    raise_errors : bool, default=False
        Propagate errors instead of recording them
    learner_label : str, optional
        Name used in the result instead of the learner's id

    Returns
    -------
    ResampleResult
    """
    measures: List[Measure] = get_measures(measures)
    if not resampling.is_instantiated:
        resampling.instantiate(task)
    elif getattr(resampling, 'task_id_', task.id) != task.id:
        raise ValueError(f"Resampling was instantiated on task '{resampling.task_id_}', "
                         f"not '{task.id}'")

    label = learner_label or learner_id(learner)
    X, y = task.X, task.y
    rows, fitted = [], []
    for i, (train_idx, test_idx) in enumerate(resampling.iterate()):
        row = {'iteration': i, 'error': None}
        start = time.perf_counter()
        try:
            model = clone(learner)
            model.fit(X.iloc[train_idx], y[train_idx])
            for m in measures:
                row[m.key] = m.score(y[test_idx], model, X.iloc[test_idx], y_train=y[train_idx])
            if store_models:
                fitted.append(model)
        except Exception as exc:
            if raise_errors:
                raise
            logger.warning("%s failed on %s, iteration %d: %s", label, task.id, i + 1, exc,
                           exc_info=logger.isEnabledFor(logging.DEBUG))
            row['error'] = f"{type(exc).__name__}: {exc}"
            for m in measures:
                row[m.key] = np.nan
        row['runtime'] = time.perf_counter() - start
        logger.info("%s on %s, iteration %d/%d done in %.1fs", label, task.id, i + 1,
                    resampling.iters, row['runtime'])
        rows.append(row)

    scores = pd.DataFrame(rows, columns=['iteration'] + [m.key for m in measures]
                          + ['runtime', 'error'])
    return ResampleResult(task.id, label, resampling.id, scores, fitted)
