"""
Benchmark datasets as survival tasks
"""

import logging
import numpy as np
import pandas as pd
from typing import Callable, Dict, List, Optional

from lifelines import datasets as lifelines_datasets

from .data import SurvivalTask

logger = logging.getLogger(__name__)


def _rossi() -> SurvivalTask:
    df = lifelines_datasets.load_rossi()
    return SurvivalTask("rossi", df, time="week", event="arrest")


def _gbsg2() -> SurvivalTask:
    # mixed numeric and string-typed categorical features
    df = lifelines_datasets.load_gbsg2()
    return SurvivalTask("gbsg2", df, time="time", event="cens")


def _lung() -> SurvivalTask:
    # contains missing values; status is coded 1=censored, 2=dead
    df = lifelines_datasets.load_lung()
    df = df.drop(columns=[c for c in ("inst",) if c in df.columns])
    return SurvivalTask("lung", df, time="time", event="status")


def _kidney_transplant() -> SurvivalTask:
    df = lifelines_datasets.load_kidney_transplant()
    return SurvivalTask("kidney_transplant", df, time="time", event="death")


def _larynx() -> SurvivalTask:
    df = lifelines_datasets.load_larynx()
    return SurvivalTask("larynx", df, time="time", event="death")


_TASKS: Dict[str, Callable[[], SurvivalTask]] = {
    "rossi": _rossi,
    "gbsg2": _gbsg2,
    "lung": _lung,
    "kidney_transplant": _kidney_transplant,
    "larynx": _larynx,
}


def list_tasks() -> List[str]:
    """Names accepted by :func:`load_task`"""
    return sorted(_TASKS)


def load_task(name: str) -> SurvivalTask:
    """
    Load one of the bundled survival datasets as a task

    Parameters
    ----------
    name : str
        Dataset name, see :func:`list_tasks`

    Returns
    -------
    SurvivalTask
    """
    if name not in _TASKS:
        raise KeyError(f"Unknown task '{name}'. Available tasks: {list_tasks()}")
    task = _TASKS[name]()
    logger.debug("Loaded task %s with %d rows, %d features, %.1f%% censored",
                 name, task.n_obs, task.n_features, 100 * task.censoring_rate)
    return task


def make_synthetic_task(n_samples: int = 200,
                        n_features: int = 5,
                        n_informative: int = 2,
                        baseline_scale: float = 5.0,
                        censoring_scale: Optional[float] = 10.0,
                        n_categorical: int = 0,
                        random_state: Optional[int] = None,
                        id: str = "synthetic") -> SurvivalTask:
    """
    Simulate proportional hazards data

    Event times are exponential with scale ``baseline_scale / exp(X beta)``
    where only the first ``n_informative`` coefficients are non-zero.
    Censoring times are independent exponentials with scale
    ``censoring_scale`` (no censoring if None).

    Parameters
    ----------
    n_samples : int, default=200
        Number of observations
    n_features : int, default=5
        Number of numeric features
    n_informative : int, default=2
        Number of features with an effect on the hazard
    baseline_scale : float, default=5.0
        Scale of the baseline exponential distribution
    censoring_scale : float, optional
        Scale of the censoring distribution
    n_categorical : int, default=0
        Number of additional three-level string features
    random_state : int, optional
        Seed of the generator
    id : str, default="synthetic"
        Task identifier

    Returns
    -------
    SurvivalTask
    """
    if n_informative > n_features:
        raise ValueError("n_informative cannot exceed n_features")

    rng = np.random.RandomState(random_state)
    X = rng.normal(size=(n_samples, n_features))
    beta = np.zeros(n_features)
    beta[:n_informative] = np.linspace(1.0, 0.5, n_informative)

    event_time = rng.exponential(scale=baseline_scale / np.exp(X @ beta))
    if censoring_scale is None:
        time = event_time
        event = np.ones(n_samples, dtype=int)
    else:
        censor_time = rng.exponential(scale=censoring_scale, size=n_samples)
        time = np.minimum(event_time, censor_time)
        event = (event_time <= censor_time).astype(int)

    df = pd.DataFrame(X, columns=[f"x{i}" for i in range(n_features)])
    for j in range(n_categorical):
        df[f"cat{j}"] = rng.choice(["a", "b", "c"], size=n_samples)
    df["time"] = time
    df["event"] = event
    return SurvivalTask(id, df, time="time", event="event")
