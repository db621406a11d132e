"""
Baseline hazard estimation shared by the relative-risk learners and measures.
"""
from typing import Tuple, Optional
import numpy as np


class HazardEstimator:
    """Non-parametric hazard estimation."""

    @staticmethod
    def estimate_baseline_hazard(
        times: np.ndarray,
        events: np.ndarray,
        weights: Optional[np.ndarray] = None,
        method: str = "nelson-aalen"
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Estimate the hazard increments at the unique event times.

        Parameters
        ----------
        times : np.ndarray
            Event/censoring times
        events : np.ndarray
            Event indicators (1 if event, 0 if censored)
        weights : np.ndarray, optional
            Per-sample weights. For ``"nelson-aalen"`` these are case weights
            applied to both events and risk sets; for ``"breslow"`` they are the
            relative risks ``exp(lp)`` and only enter the risk-set sums.
        method : str
            Estimation method: "nelson-aalen" or "breslow"

        Returns
        -------
        unique_times : np.ndarray
            Unique event times
        baseline_hazard : np.ndarray
            Hazard increment at each unique time
        """
        if method not in ["nelson-aalen", "breslow"]:
            raise ValueError("Method must be 'nelson-aalen' or 'breslow'")

        times = np.asarray(times, dtype=float)
        events = np.asarray(events)
        if weights is None:
            weights = np.ones_like(times)
        else:
            weights = np.asarray(weights, dtype=float)

        order = np.argsort(times, kind="mergesort")
        times = times[order]
        events = events[order]
        weights = weights[order]

        unique_times = np.unique(times[events == 1])
        if len(unique_times) == 0:
            return unique_times, np.zeros(0)

        # risk set at t: every sample with time >= t
        tail_weights = np.concatenate([np.cumsum(weights[::-1])[::-1], [0.0]])
        at_risk = tail_weights[np.searchsorted(times, unique_times, side="left")]

        event_weights = weights if method == "nelson-aalen" else np.ones_like(weights)
        event_pos = np.searchsorted(unique_times, times[events == 1])
        events_at_time = np.bincount(event_pos, weights=event_weights[events == 1],
                                     minlength=len(unique_times))

        baseline_hazard = events_at_time / (at_risk + 1e-8)
        return unique_times, baseline_hazard

    @staticmethod
    def estimate_cumulative_hazard(
        times: np.ndarray, baseline_hazard: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Accumulate hazard increments.

        Returns
        -------
        Tuple[np.ndarray, np.ndarray]
            The input times and the cumulative hazard at those times
        """
        return np.asarray(times).copy(), np.cumsum(baseline_hazard)

    @staticmethod
    def step_function(grid: np.ndarray,
                      values: np.ndarray,
                      query: np.ndarray,
                      initial: float = 0.0) -> np.ndarray:
        """
        Evaluate a right-continuous step function.

        ``values[..., k]`` holds from ``grid[k]`` up to the next grid point;
        before ``grid[0]`` the function equals ``initial``. ``values`` may be
        2-dimensional with one row per sample.
        """
        grid = np.asarray(grid, dtype=float)
        values = np.asarray(values, dtype=float)
        pos = np.searchsorted(grid, np.asarray(query, dtype=float), side="right") - 1
        if values.ndim == 1:
            padded = np.concatenate([[initial], values])
        else:
            padded = np.hstack([np.full((values.shape[0], 1), initial), values])
        return padded[..., pos + 1]

    @staticmethod
    def transform_hazard(
        cumulative_hazard: np.ndarray,
        transform: str = "exp"
    ) -> np.ndarray:
        """
        Transform cumulative hazard to survival or distribution function.

        Parameters
        ----------
        cumulative_hazard : np.ndarray
            Cumulative hazard values
        transform : str
            "exp" for survival, "cdf" for the distribution function

        Returns
        -------
        np.ndarray
            Transformed values
        """
        if transform == "exp":
            return np.exp(-cumulative_hazard)
        elif transform == "cdf":
            return 1 - np.exp(-cumulative_hazard)
        else:
            raise ValueError("Transform must be 'exp' or 'cdf'")
