"""
Performance measures for survival learners
"""

import warnings
import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Tuple, Type, Union
from lifelines import KaplanMeierFitter
from lifelines.utils import concordance_index
from scipy.integrate import trapezoid

from ..data import Survival


def censoring_survival(y: Survival) -> KaplanMeierFitter:
    """Kaplan-Meier estimate of the censoring distribution G(t)"""
    return KaplanMeierFitter().fit(y.time, event_observed=1 - y.event)


def _g_at(kmf: KaplanMeierFitter, times: np.ndarray, left: bool = False,
          floor: float = 1e-8) -> np.ndarray:
    times = np.atleast_1d(np.asarray(times, dtype=float))
    if left:
        times = np.nextafter(times, -np.inf)
    # nothing is censored before time 0
    g = np.ones(len(times))
    observed = times >= 0
    if observed.any():
        g[observed] = kmf.survival_function_at_times(times[observed]).to_numpy()
    return np.clip(g, floor, 1.0)


class Measure:
    """Base class for performance measures

    Attributes
    ----------
    key : str
        Identifier used as column name in result tables
    minimize : bool
        Whether lower values are better
    range : tuple of float
        Attainable range of the measure
    """

    key = "surv.measure"
    minimize = False
    range: Tuple[float, float] = (0.0, 1.0)

    @property
    def id(self) -> str:
        return self.key

    @property
    def worst(self) -> float:
        return self.range[1] if self.minimize else self.range[0]

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def score(self, y_true: Survival, learner, X: Union[np.ndarray, pd.DataFrame],
              y_train: Optional[Survival] = None) -> float:
        """
        Score a fitted learner on held-out data

        Parameters
        ----------
        y_true : Survival
            Observed test outcomes
        learner : BaseSurvivalLearner
            Fitted learner
        X : array-like
            Test features
        y_train : Survival, optional
            Training outcomes, used by measures that estimate the censoring
            distribution. Falls back to ``y_true``.

        Returns
        -------
        float
        """
        raise NotImplementedError("This method must be implemented by subclasses")


class HarrellC(Measure):
    """Harrell's concordance index of the risk predictions"""

    key = "surv.cindex"

    def score(self, y_true, learner, X, y_train=None):
        risk = learner.predict_risk(X)
        return self.from_risk(y_true, risk)

    @staticmethod
    def from_risk(y_true: Survival, risk: np.ndarray) -> float:
        try:
            # Higher risk score = lower survival time
            return float(concordance_index(y_true.time, -np.asarray(risk), y_true.event))
        except ZeroDivisionError:
            warnings.warn("No comparable pairs in test data; C-index is undefined")
            return np.nan


class UnoC(Measure):
    """
    Uno's IPCW concordance index

    Comparable pairs are weighted by ``1 / G(t_i-)^2`` with ``G`` the
    Kaplan-Meier estimate of the censoring distribution on the training data.

    Parameters
    ----------
    cutoff : float, optional
        Only pairs whose earlier time is below the cutoff count. Defaults to
        the largest training time.
    """

    key = "surv.uno_c"

    def __init__(self, cutoff: Optional[float] = None):
        self.cutoff = cutoff

    def score(self, y_true, learner, X, y_train=None):
        risk = learner.predict_risk(X)
        return self.from_risk(y_true, risk, y_train)

    def from_risk(self, y_true: Survival, risk: np.ndarray,
                  y_train: Optional[Survival] = None) -> float:
        ref = y_train if y_train is not None else y_true
        tau = self.cutoff if self.cutoff is not None else ref.time.max()
        G = censoring_survival(ref)

        time, event = y_true.time, y_true.event
        risk = np.asarray(risk, dtype=float)
        weight = np.where((event == 1) & (time < tau), _g_at(G, time, left=True) ** -2, 0.0)

        # pairs (i, j) with t_i < t_j and i an uncensored event
        comparable = (time[:, None] < time[None, :]) * weight[:, None]
        concordant = (risk[:, None] > risk[None, :]) + 0.5 * (risk[:, None] == risk[None, :])
        denom = comparable.sum()
        if denom == 0:
            warnings.warn("No comparable pairs in test data; C-index is undefined")
            return np.nan
        return float((comparable * concordant).sum() / denom)


def brier_scores(y_true: Survival, surv: np.ndarray, times: np.ndarray,
                 G: KaplanMeierFitter) -> np.ndarray:
    """
    IPCW Brier score at each time

    Parameters
    ----------
    y_true : Survival
        Observed outcomes
    surv : np.ndarray of shape (n_samples, n_times)
        Predicted survival at ``times``
    times : np.ndarray
        Evaluation times
    G : KaplanMeierFitter
        Censoring distribution
    """
    time = y_true.time[:, None]
    event = y_true.event[:, None]
    t = np.asarray(times, dtype=float)[None, :]

    g_obs = _g_at(G, y_true.time, left=True)[:, None]
    g_t = _g_at(G, times)[None, :]

    died = (time <= t) & (event == 1)
    alive = time > t
    loss = np.where(died, surv ** 2 / g_obs, 0.0) + np.where(alive, (1 - surv) ** 2 / g_t, 0.0)
    return loss.mean(axis=0)


class GrafScore(Measure):
    """
    Integrated Brier (Graf) score with inverse probability of censoring weights

    Parameters
    ----------
    p_max : float, default=0.8
        Integrate over unique test times up to this quantile of the observed
        test times
    times : array-like, optional
        Explicit integration grid; overrides ``p_max``
    """

    key = "surv.graf"
    minimize = True

    def __init__(self, p_max: float = 0.8, times: Optional[np.ndarray] = None):
        self.p_max = p_max
        self.times = times

    def _grid(self, y_true: Survival) -> np.ndarray:
        if self.times is not None:
            return np.sort(np.asarray(self.times, dtype=float))
        t_max = np.quantile(y_true.time, self.p_max)
        grid = np.unique(y_true.time)
        return grid[(grid <= t_max) & (grid > 0)]

    def score(self, y_true, learner, X, y_train=None):
        times = self._grid(y_true)
        if len(times) == 0:
            warnings.warn("Empty integration grid; Graf score is undefined")
            return np.nan
        surv = learner.predict_survival(X, times)
        return self.from_survival(y_true, surv, times, y_train)

    def from_survival(self, y_true: Survival, surv: np.ndarray, times: np.ndarray,
                      y_train: Optional[Survival] = None) -> float:
        G = censoring_survival(y_train if y_train is not None else y_true)
        scores = brier_scores(y_true, surv, times, G)
        if len(times) == 1:
            return float(scores[0])
        return float(trapezoid(scores, times) / (times[-1] - times[0]))


class BrierScore(Measure):
    """
    IPCW Brier score at a single time

    Parameters
    ----------
    time : float, optional
        Evaluation time. Defaults to the median observed test time.
    """

    key = "surv.brier"
    minimize = True

    def __init__(self, time: Optional[float] = None):
        self.time = time

    def score(self, y_true, learner, X, y_train=None):
        t = self.time if self.time is not None else float(np.median(y_true.time))
        times = np.array([t])
        surv = learner.predict_survival(X, times)
        G = censoring_survival(y_train if y_train is not None else y_true)
        return float(brier_scores(y_true, surv, times, G)[0])


_MEASURES: Dict[str, Type[Measure]] = {
    m.key: m for m in (HarrellC, UnoC, GrafScore, BrierScore)
}


def list_measures() -> List[str]:
    """Keys accepted by :func:`get_measure`"""
    return sorted(_MEASURES)


def get_measure(key: Union[str, Measure], **params) -> Measure:
    """
    Construct a measure from its key

    Measure objects are passed through unchanged.
    """
    if isinstance(key, Measure):
        return key
    if key not in _MEASURES:
        raise KeyError(f"Unknown measure '{key}'. Available measures: {list_measures()}")
    return _MEASURES[key](**params)


def get_measures(measures) -> List[Measure]:
    """Normalise a key, a measure, or a list of either to a list of measures"""
    if measures is None:
        return [HarrellC()]
    if isinstance(measures, (str, Measure)):
        measures = [measures]
    return [get_measure(m) for m in measures]
