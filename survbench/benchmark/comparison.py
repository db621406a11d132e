"""
Statistical comparison of learners across tasks
"""

import warnings
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

import numpy as np
import pandas as pd
from scipy.stats import friedmanchisquare, rankdata, studentized_range

from ..evaluation.measures import Measure, get_measure, list_measures
from .benchmark import BenchmarkResult


@dataclass
class FriedmanResult:
    """Global Friedman rank-sum test"""
    statistic: float
    p_value: float
    df: int
    n_tasks: int
    n_learners: int


class BenchmarkAggr:
    """
    Aggregated benchmark table (one row per task and learner) with rank-based
    comparisons.

    Following Demsar (2006): learners are ranked within each task, the global
    Friedman test checks whether any mean ranks differ, and the Nemenyi
    post-hoc test compares all pairs.

    Parameters
    ----------
    table : pd.DataFrame
        Aggregated scores, e.g. ``BenchmarkResult.aggregate()``
    measures : list of str or Measure, optional
        Measure columns; defaults to every column named like a known measure
    task_col : str, default='task_id'
        Column identifying tasks
    learner_col : str, default='learner_id'
        Column identifying learners
    minimize : dict, optional
        Direction per measure column, for columns that are not known measures
    """

    def __init__(self,
                 table: pd.DataFrame,
                 measures: Optional[List[Union[str, Measure]]] = None,
                 task_col: str = 'task_id',
                 learner_col: str = 'learner_id',
                 minimize: Optional[Dict[str, bool]] = None):
        for col in (task_col, learner_col):
            if col not in table.columns:
                raise ValueError(f"Column '{col}' not found in table")

        if measures is None:
            keys = [c for c in table.columns if c in list_measures()]
        else:
            keys = [m.key if isinstance(m, Measure) else m for m in measures]
        if not keys:
            raise ValueError("No measure columns to compare")
        missing = [k for k in keys if k not in table.columns]
        if missing:
            raise ValueError(f"Measure columns not found in table: {missing}")

        self._minimize = {}
        for k in keys:
            if minimize is not None and k in minimize:
                self._minimize[k] = bool(minimize[k])
            elif k in list_measures():
                self._minimize[k] = get_measure(k).minimize
            else:
                self._minimize[k] = False

        if table.duplicated([task_col, learner_col]).any():
            raise ValueError("Table must hold one row per task and learner; "
                             "aggregate over resamplings first")

        self.table = table.reset_index(drop=True)
        self.measures = keys
        self.task_col = task_col
        self.learner_col = learner_col

        if self.n_tasks < 2 or self.n_learners < 2:
            raise ValueError("Comparisons need at least two tasks and two learners")

    @classmethod
    def from_result(cls, bmr: BenchmarkResult, measures=None) -> 'BenchmarkAggr':
        """Aggregate a benchmark result and wrap it"""
        table = bmr.aggregate(measures)
        keys = [m.key for m in (bmr.measures if measures is None else
                                [get_measure(m) for m in measures])]
        minimize = {m.key: m.minimize for m in bmr.measures}
        return cls(table, keys, minimize=minimize)

    @property
    def tasks(self) -> List[str]:
        return list(dict.fromkeys(self.table[self.task_col]))

    @property
    def learners(self) -> List[str]:
        return list(dict.fromkeys(self.table[self.learner_col]))

    @property
    def n_tasks(self) -> int:
        return len(self.tasks)

    @property
    def n_learners(self) -> int:
        return len(self.learners)

    def _measure(self, meas: Optional[str]) -> str:
        if meas is None:
            return self.measures[0]
        if isinstance(meas, Measure):
            meas = meas.key
        if meas not in self.measures:
            raise ValueError(f"Unknown measure '{meas}'. Available: {self.measures}")
        return meas

    def minimize(self, meas: Optional[str] = None) -> bool:
        return self._minimize[self._measure(meas)]

    def score_matrix(self, meas: Optional[str] = None) -> pd.DataFrame:
        """Tasks x learners matrix of a measure; tasks with missing scores are dropped"""
        meas = self._measure(meas)
        wide = self.table.pivot(index=self.task_col, columns=self.learner_col, values=meas)
        wide = wide.reindex(index=self.tasks, columns=self.learners)
        incomplete = wide.isna().any(axis=1)
        if incomplete.any():
            warnings.warn(f"Dropping tasks with missing {meas} scores: "
                          f"{list(wide.index[incomplete])}")
            wide = wide.loc[~incomplete]
        if len(wide) < 2:
            raise ValueError(f"Fewer than two tasks have complete {meas} scores")
        return wide

    def rank_data(self, meas: Optional[str] = None) -> pd.DataFrame:
        """Rank of each learner within each task; 1 is best, ties share the mean rank"""
        meas = self._measure(meas)
        wide = self.score_matrix(meas)
        values = wide.to_numpy()
        if not self._minimize[meas]:
            values = -values
        ranks = np.apply_along_axis(rankdata, 1, values)
        return pd.DataFrame(ranks, index=wide.index, columns=wide.columns)

    def mean_ranks(self, meas: Optional[str] = None) -> pd.Series:
        return self.rank_data(meas).mean(axis=0).sort_values()

    def friedman_test(self, meas: Optional[str] = None) -> FriedmanResult:
        """
        Global Friedman test of equal mean ranks

        Raises
        ------
        ValueError
            With fewer than three learners
        """
        wide = self.score_matrix(meas)
        if wide.shape[1] < 3:
            raise ValueError("The Friedman test needs at least three learners")
        stat, p = friedmanchisquare(*[wide[c].to_numpy() for c in wide.columns])
        return FriedmanResult(float(stat), float(p), wide.shape[1] - 1,
                              wide.shape[0], wide.shape[1])

    def friedman_posthoc(self, meas: Optional[str] = None,
                         alpha: float = 0.05) -> pd.DataFrame:
        """
        Pairwise Nemenyi test p-values

        A warning is issued when the global Friedman test is not significant
        at ``alpha``, as the pairwise results are then not interpretable.

        Returns
        -------
        pd.DataFrame
            Symmetric learners x learners matrix of p-values
        """
        global_test = self.friedman_test(meas)
        if global_test.p_value > alpha:
            warnings.warn(f"Global Friedman test is not significant "
                          f"(p={global_test.p_value:.3g}); post-hoc results are unreliable")
        ranks = self.mean_ranks(meas)
        k, n = global_test.n_learners, global_test.n_tasks
        se = np.sqrt(k * (k + 1) / (6.0 * n))
        diff = np.abs(ranks.to_numpy()[:, None] - ranks.to_numpy()[None, :]) / se
        p = studentized_range.sf(diff * np.sqrt(2), k, np.inf)
        p = np.clip(p, 0.0, 1.0)
        np.fill_diagonal(p, 1.0)
        return pd.DataFrame(p, index=ranks.index, columns=ranks.index)

    def critical_difference(self, meas: Optional[str] = None, alpha: float = 0.05) -> float:
        """Smallest mean-rank difference the Nemenyi test calls significant"""
        wide = self.score_matrix(meas)
        n, k = wide.shape
        q_alpha = studentized_range.ppf(1 - alpha, k, np.inf) / np.sqrt(2)
        return float(q_alpha * np.sqrt(k * (k + 1) / (6.0 * n)))
