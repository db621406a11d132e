"""
Hyper-parameter tuning
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.utils.validation import check_is_fitted

from ..data import Survival, SurvivalTask
from ..evaluation.measures import Measure, get_measure
from ..evaluation.resampling import Holdout, Resampling, learner_id, resample
from ..learners.base import BaseSurvivalLearner
from .search_space import SearchSpace

logger = logging.getLogger(__name__)


@dataclass
class TuningResult:
    """Outcome of a tuning run"""
    best_point: Dict[str, Any]
    best_params: Dict[str, Any]
    best_score: float
    measure: str
    archive: pd.DataFrame


class Tuner:
    """Base class for tuners

    Subclasses only decide which raw points to evaluate; scoring, the archive
    and the choice of the best point are shared.
    """

    def __init__(self, random_state: Optional[int] = None):
        self.random_state = random_state

    def _points(self, search_space: SearchSpace,
                rng: np.random.RandomState) -> List[Dict[str, Any]]:
        raise NotImplementedError("This method must be implemented by subclasses")

    def optimize(self,
                 task: SurvivalTask,
                 learner,
                 search_space: SearchSpace,
                 resampling: Resampling,
                 measure: Union[str, Measure] = "surv.cindex") -> TuningResult:
        """
        Evaluate candidate points and keep the best one

        Parameters
        ----------
        task : SurvivalTask
            Data to tune on
        learner : BaseSurvivalLearner
            Learner whose parameters are tuned
        search_space : SearchSpace
            Space to search
        resampling : Resampling
            Inner resampling; instantiated once so all points share splits
        measure : str or Measure, default="surv.cindex"
            Measure to optimize

        Returns
        -------
        TuningResult
        """
        measure = get_measure(measure)
        rng = np.random.RandomState(self.random_state)
        points = self._points(search_space, rng)
        if not points:
            raise ValueError("Tuner produced no points to evaluate")
        if not resampling.is_instantiated:
            resampling.instantiate(task)

        rows = []
        for i, point in enumerate(points):
            params = search_space.transform(point)
            candidate = clone(learner).set_params(**params)
            rr = resample(task, candidate, resampling, [measure])
            score = float(rr.scores[measure.key].mean())
            error = "; ".join(rr.errors) or None
            if not np.isfinite(score):
                warnings.warn(f"Configuration {params} failed ({error}); "
                              f"scored as {measure.worst}")
                score = measure.worst
            logger.info("Tuning %s, point %d/%d: %s=%.4f", learner_id(learner), i + 1,
                        len(points), measure.key, score)
            rows.append(dict(point, **{measure.key: score, 'runtime': rr.scores['runtime'].sum(),
                                       'error': error}))

        archive = pd.DataFrame(rows)
        scores = archive[measure.key].to_numpy()
        best = int(np.argmin(scores) if measure.minimize else np.argmax(scores))
        best_point = {n: points[best][n] for n in search_space.names}
        return TuningResult(
            best_point=best_point,
            best_params=search_space.transform(best_point),
            best_score=float(scores[best]),
            measure=measure.key,
            archive=archive
        )


class RandomSearchTuner(Tuner):
    """Sample ``n_evals`` points uniformly within the bounds of the space"""

    def __init__(self, n_evals: int = 10, random_state: Optional[int] = None):
        if n_evals < 1:
            raise ValueError("n_evals must be at least 1")
        super().__init__(random_state=random_state)
        self.n_evals = n_evals

    def _points(self, search_space, rng):
        return [search_space.sample(rng) for _ in range(self.n_evals)]


class GridSearchTuner(Tuner):
    """
    Evaluate the full-factorial grid of the space

    Parameters
    ----------
    resolution : int, default=5
        Number of values per numeric parameter
    n_evals : int, optional
        Evaluate only a random subset of this many grid points
    """

    def __init__(self, resolution: int = 5, n_evals: Optional[int] = None,
                 random_state: Optional[int] = None):
        super().__init__(random_state=random_state)
        self.resolution = resolution
        self.n_evals = n_evals

    def _points(self, search_space, rng):
        points = search_space.grid(self.resolution)
        if self.n_evals is not None and self.n_evals < len(points):
            keep = np.sort(rng.choice(len(points), self.n_evals, replace=False))
            points = [points[i] for i in keep]
        return points


class AutoTuner(BaseSurvivalLearner):
    """
    Learner that tunes its own hyper-parameters when fitted.

    ``fit`` runs the tuner with the inner resampling on the training data
    only, then refits a copy of ``learner`` with the best parameters on all of
    it. Used inside an outer resampling this gives nested resampling.

    Parameters
    ----------
    learner : BaseSurvivalLearner
        Learner to tune
    search_space : SearchSpace
        Space to search
    resampling : Resampling, optional
        Inner resampling (default: stratified 2/3 holdout)
    measure : str or Measure, default="surv.cindex"
        Measure to optimize
    tuner : Tuner, optional
        Search strategy (default: random search with 10 evaluations)
    """

    def __init__(self,
                 learner: BaseSurvivalLearner,
                 search_space: SearchSpace,
                 resampling: Optional[Resampling] = None,
                 measure: Union[str, Measure] = "surv.cindex",
                 tuner: Optional[Tuner] = None):
        self.learner = learner
        self.search_space = search_space
        self.resampling = resampling
        self.measure = measure
        self.tuner = tuner

    @property
    def id(self) -> str:
        return f"{learner_id(self.learner)}.tuned"

    def fit(self, X, y: Survival) -> 'AutoTuner':
        if not isinstance(y, Survival):
            raise ValueError("y must be a Survival object")
        task = SurvivalTask.from_arrays(X, y, id="tuning")
        resampling = self.resampling.clone() if self.resampling is not None else Holdout()
        tuner = self.tuner if self.tuner is not None else RandomSearchTuner()

        result = tuner.optimize(task, self.learner, self.search_space, resampling, self.measure)
        logger.info("Best %s for %s: %.4f with %s", result.measure, self.id,
                    result.best_score, result.best_params)

        self.tuning_result_ = result
        self.archive_ = result.archive
        self.learner_ = clone(self.learner).set_params(**result.best_params).fit(X, y)
        self.n_features_in_ = task.n_features
        self.event_times_ = y.event_times
        self.is_fitted_ = True
        return self

    def predict_survival(self, X, times):
        check_is_fitted(self, "is_fitted_")
        return self.learner_.predict_survival(X, times)

    def predict_risk(self, X):
        check_is_fitted(self, "is_fitted_")
        return self.learner_.predict_risk(X)
