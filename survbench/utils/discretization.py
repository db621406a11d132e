import numpy as np
from typing import Tuple, Union, List


def validate_times(times: Union[np.ndarray, List[float]]) -> np.ndarray:
    """
    Validate time values

    Parameters
    ----------
    times : array-like
        Time values to validate

    Returns
    -------
    np.ndarray
        Validated time values

    Raises
    ------
    ValueError
        If times are negative or non-numeric
    """
    try:
        times = np.atleast_1d(np.asarray(times, dtype=float))
    except (TypeError, ValueError):
        raise ValueError("Times must be numeric")

    if times.ndim != 1:
        raise ValueError("Times must be one-dimensional")

    if np.any(~np.isfinite(times)) or np.any(times < 0):
        raise ValueError("Times must be finite and non-negative")

    return times


class DurationDiscretizer:
    """
    Map continuous durations onto a grid of cut points.

    The grid always starts at 0 and ends at the largest training time. Event
    times are mapped up to the first cut at or after them; censoring times are
    mapped down to the last cut at or before them, so a censored subject is
    only credited with survival it was actually observed for.

    Parameters
    ----------
    num_durations : int, default=20
        Number of cut points, including 0
    scheme : str, default='equidistant'
        'equidistant' spaces the cuts evenly, 'quantiles' places them at
        quantiles of the observed event times
    """

    def __init__(self, num_durations: int = 20, scheme: str = 'equidistant'):
        if num_durations < 2:
            raise ValueError("num_durations must be at least 2")
        if scheme not in ('equidistant', 'quantiles'):
            raise ValueError("scheme must be 'equidistant' or 'quantiles'")
        self.num_durations = num_durations
        self.scheme = scheme

    def fit(self, time: np.ndarray, event: np.ndarray) -> 'DurationDiscretizer':
        time = validate_times(time)
        event = np.asarray(event)
        max_time = time.max()
        if max_time <= 0:
            raise ValueError("At least one positive duration is required")

        if self.scheme == 'equidistant':
            cuts = np.linspace(0, max_time, self.num_durations)
        else:
            event_times = time[event == 1]
            if len(event_times) == 0:
                event_times = time
            qs = np.quantile(event_times, np.linspace(0, 1, self.num_durations - 1))
            cuts = np.unique(np.concatenate([[0.0], qs, [max_time]]))

        self.cuts_ = cuts
        return self

    @property
    def n_cuts(self) -> int:
        return len(self.cuts_)

    def transform(self, time: np.ndarray, event: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Index of the grid point assigned to each duration

        Returns
        -------
        idx : np.ndarray of int
        event : np.ndarray of int
        """
        time = validate_times(time)
        event = np.asarray(event).astype(int)
        last = self.n_cuts - 1
        idx_event = np.searchsorted(self.cuts_, time, side='left')
        idx_censored = np.searchsorted(self.cuts_, time, side='right') - 1
        idx = np.where(event == 1, idx_event, idx_censored)
        return np.clip(idx, 0, last).astype(int), event

    def interval_index(self, time: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Interval ``(cuts[k], cuts[k + 1]]`` holding each duration and the
        fraction of that interval elapsed.

        Returns
        -------
        idx : np.ndarray of int
            Interval index in ``[0, n_cuts - 2]``
        frac : np.ndarray of float
            Elapsed fraction in ``[0, 1]``
        """
        time = validate_times(time)
        idx = np.clip(np.searchsorted(self.cuts_, time, side='left') - 1, 0, self.n_cuts - 2)
        width = np.diff(self.cuts_)[idx]
        frac = np.clip((time - self.cuts_[idx]) / width, 0.0, 1.0)
        return idx.astype(int), frac
