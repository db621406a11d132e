"""
Data structures for survival benchmarks
"""

import numpy as np
import pandas as pd
from typing import Union, List, Optional

from .data_validator import DataValidator


class Survival:
    """Right-censored survival target"""

    def __init__(self, time: Union[np.ndarray, pd.Series],
                 event: Union[np.ndarray, pd.Series]):
        """
        Initialize survival data

        Parameters
        ----------
        time : array-like
            Time to event or censoring
        event : array-like
            Event indicator (1 for event, 0 for censored)
        """
        self.time = np.asarray(time, dtype=float)
        self.event = np.asarray(event)
        self._validate()
        self.event = self.event.astype(int)

    def _validate(self):
        """Validate the survival data"""
        DataValidator().validate_survival(self.time, self.event)

    def __len__(self) -> int:
        return len(self.time)

    def __getitem__(self, idx) -> 'Survival':
        return Survival(self.time[idx], self.event[idx])

    def __repr__(self) -> str:
        return f"Survival(n={len(self)}, events={int(self.event.sum())})"

    @property
    def event_times(self) -> np.ndarray:
        """Sorted unique times at which an event was observed"""
        return np.unique(self.time[self.event == 1])

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({'time': self.time, 'event': self.event})


class SurvivalTask:
    """A features table together with its event-time and event-indicator columns"""

    def __init__(self, id: str,
                 data: pd.DataFrame,
                 time: str = 'time',
                 event: str = 'event',
                 features: Optional[List[str]] = None):
        """
        Initialize a survival task

        Parameters
        ----------
        id : str
            Task identifier used in benchmark tables
        data : pd.DataFrame
            Table holding features, times and event indicators
        time : str, default='time'
            Name of the event-time column
        event : str, default='event'
            Name of the event-indicator column. Columns coded {1, 2}
            (1 censored, 2 event) are recoded to {0, 1}.
        features : list of str, optional
            Feature columns. Defaults to every other column.
        """
        if not isinstance(data, pd.DataFrame):
            raise ValueError("data must be a pandas DataFrame")
        for col in (time, event):
            if col not in data.columns:
                raise ValueError(f"Column '{col}' not found in data")

        if features is None:
            features = [c for c in data.columns if c not in (time, event)]
        missing = [c for c in features if c not in data.columns]
        if missing:
            raise ValueError(f"Feature columns not found in data: {missing}")
        if time in features or event in features:
            raise ValueError("Target columns cannot be used as features")

        self.id = id
        self.time_col = time
        self.event_col = event
        self.feature_names = list(features)

        data = data.reset_index(drop=True).copy()
        data[event] = self._recode_event(data[event])
        self.data = data
        # fail early on bad targets
        self._y = Survival(data[time].to_numpy(), data[event].to_numpy())

    @classmethod
    def from_arrays(cls, X: Union[np.ndarray, pd.DataFrame], y: Survival,
                    id: str = "task") -> 'SurvivalTask':
        """Build a task from a feature matrix and a Survival target"""
        if len(X) != len(y):
            raise ValueError("X and y must have the same number of samples")
        if isinstance(X, pd.DataFrame):
            df = X.reset_index(drop=True).copy()
        else:
            X = np.asarray(X)
            if X.ndim != 2:
                raise ValueError("X must be 2-dimensional")
            df = pd.DataFrame(X, columns=[f"x{i}" for i in range(X.shape[1])])
        features = list(df.columns)
        time_col, event_col = "__time__", "__event__"
        df[time_col] = y.time
        df[event_col] = y.event
        return cls(id, df, time=time_col, event=event_col, features=features)

    @staticmethod
    def _recode_event(event: pd.Series) -> pd.Series:
        values = set(pd.unique(event.dropna()))
        if values <= {0, 1}:
            return event.astype(int)
        if values <= {1, 2}:
            return (event == 2).astype(int)
        raise ValueError(f"Cannot interpret event indicator values {sorted(values)}")

    def __repr__(self) -> str:
        return (f"SurvivalTask(id={self.id!r}, n_obs={self.n_obs}, "
                f"n_features={self.n_features})")

    def __len__(self) -> int:
        return self.n_obs

    @property
    def X(self) -> pd.DataFrame:
        return self.data[self.feature_names]

    @property
    def y(self) -> Survival:
        return self._y

    @property
    def n_obs(self) -> int:
        return len(self.data)

    @property
    def n_features(self) -> int:
        return len(self.feature_names)

    @property
    def censoring_rate(self) -> float:
        return float(1.0 - self._y.event.mean())

    def filter(self, rows: Union[np.ndarray, List[int]]) -> 'SurvivalTask':
        """Return a new task holding only the given row positions"""
        rows = np.asarray(rows)
        return SurvivalTask(
            self.id,
            self.data.iloc[rows],
            time=self.time_col,
            event=self.event_col,
            features=self.feature_names
        )
