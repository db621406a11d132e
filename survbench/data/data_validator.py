"""
Data validation utilities for survival data
"""

import numpy as np
import pandas as pd
from typing import Union


class DataValidator:
    """Validator for survival targets and feature tables"""

    def validate_survival(self,
                          time: Union[np.ndarray, pd.Series],
                          event: Union[np.ndarray, pd.Series]) -> bool:
        """Validate survival data

        Args:
            time: Array of event/censoring times
            event: Array of event indicators (0=censored, 1=event)

        Returns:
            True if data is valid, raises ValueError otherwise
        """
        time = np.asarray(time, dtype=float)
        event = np.asarray(event)

        if time.ndim != 1 or event.ndim != 1:
            raise ValueError("Time and event must be one-dimensional")

        if len(time) != len(event):
            raise ValueError("Time and event arrays must have the same length")

        if not np.all(np.isfinite(time)):
            raise ValueError("Event times must be finite")

        if np.any(time < 0):
            raise ValueError("Event times cannot be negative")

        if not np.all(np.isin(event, [0, 1])):
            raise ValueError("Event indicators must be 0 or 1")

        return True

    def validate_features(self,
                          X: Union[np.ndarray, pd.DataFrame],
                          n_samples: int) -> bool:
        """Validate a feature matrix against the number of targets

        Args:
            X: Feature matrix
            n_samples: Expected number of rows

        Returns:
            True if data is valid, raises ValueError otherwise
        """
        if isinstance(X, np.ndarray) and X.ndim != 2:
            raise ValueError("X must be 2-dimensional")

        if len(X) != n_samples:
            raise ValueError("X and y must have the same number of samples")

        if len(X) == 0:
            raise ValueError("Cannot fit on an empty dataset")

        return True
