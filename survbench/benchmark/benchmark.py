"""
Benchmark designs and results
"""

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Union

import pandas as pd

from ..data import SurvivalTask
from ..evaluation.measures import Measure, get_measures
from ..evaluation.resampling import Resampling, ResampleResult, learner_id, resample

logger = logging.getLogger(__name__)


@dataclass
class DesignRow:
    """One task x learner x resampling combination"""
    task: SurvivalTask
    learner: object
    resampling: Resampling
    learner_label: str


def _as_list(x) -> list:
    if isinstance(x, (list, tuple)):
        return list(x)
    return [x]


def benchmark_grid(tasks: Union[SurvivalTask, Sequence[SurvivalTask]],
                   learners: Union[object, Sequence[object], Mapping[str, object]],
                   resamplings: Union[Resampling, Sequence[Resampling]]) -> List[DesignRow]:
    """
    Full factorial benchmark design

    Each resampling is instantiated once per task, and that instance is
    shared by all learners, so every learner is scored on identical splits.

    Parameters
    ----------
    tasks : SurvivalTask or list
        Tasks to evaluate on
    learners : learner, list of learners, or dict of label -> learner
        Learners to compare; labels default to the learners' ids
    resamplings : Resampling or list
        Resampling strategies

    Returns
    -------
    list of DesignRow
    """
    tasks = _as_list(tasks)
    resamplings = _as_list(resamplings)
    if isinstance(learners, Mapping):
        labelled = list(learners.items())
    else:
        labelled = [(learner_id(lrn), lrn) for lrn in _as_list(learners)]

    if not tasks or not labelled or not resamplings:
        raise ValueError("A benchmark needs at least one task, learner and resampling")
    labels = [label for label, _ in labelled]
    if len(set(labels)) != len(labels):
        raise ValueError(f"Learner labels must be unique; got {labels}. "
                         "Pass a dict to name learners explicitly.")
    task_ids = [t.id for t in tasks]
    if len(set(task_ids)) != len(task_ids):
        raise ValueError(f"Task ids must be unique; got {task_ids}")

    design = []
    for task in tasks:
        for resampling in resamplings:
            instance = resampling.clone().instantiate(task)
            for label, learner in labelled:
                design.append(DesignRow(task, learner, instance, label))
    return design


class BenchmarkResult:
    """Collection of resample results with tabular views"""

    def __init__(self, results: List[ResampleResult], measures: Optional[List[Measure]] = None):
        self.results = list(results)
        self.measures = measures if measures is not None else get_measures(None)

    def __len__(self) -> int:
        return len(self.results)

    def __repr__(self) -> str:
        return (f"BenchmarkResult(tasks={self.task_ids}, learners={self.learner_ids}, "
                f"iterations={len(self.score())})")

    @property
    def task_ids(self) -> List[str]:
        return list(dict.fromkeys(r.task_id for r in self.results))

    @property
    def learner_ids(self) -> List[str]:
        return list(dict.fromkeys(r.learner_id for r in self.results))

    def _measure_keys(self, measures) -> List[str]:
        measures = self.measures if measures is None else get_measures(measures)
        keys = [m.key for m in measures]
        unknown = [k for k in keys if k not in {m.key for m in self.measures}]
        if unknown:
            raise ValueError(f"Measures {unknown} were not computed in this benchmark")
        return keys

    def score(self, measures=None) -> pd.DataFrame:
        """Scores of every resampling iteration"""
        keys = self._measure_keys(measures)
        frames = []
        for r in self.results:
            df = r.scores[['iteration'] + keys + ['runtime', 'error']].copy()
            df.insert(0, 'resampling_id', r.resampling_id)
            df.insert(0, 'learner_id', r.learner_id)
            df.insert(0, 'task_id', r.task_id)
            frames.append(df)
        if not frames:
            return pd.DataFrame(columns=['task_id', 'learner_id', 'resampling_id',
                                         'iteration'] + keys + ['runtime', 'error'])
        return pd.concat(frames, ignore_index=True)

    def aggregate(self, measures=None) -> pd.DataFrame:
        """Mean score per task, learner and resampling"""
        keys = self._measure_keys(measures)
        scores = self.score(measures)
        grouped = scores.groupby(['task_id', 'learner_id', 'resampling_id'], sort=False)
        table = grouped[keys].mean()
        table['iters'] = grouped.size()
        table['errors'] = grouped['error'].apply(lambda e: int(e.notna().sum()))
        return table.reset_index()

    def errors(self) -> pd.DataFrame:
        scores = self.score()
        return scores.loc[scores['error'].notna(),
                          ['task_id', 'learner_id', 'iteration', 'error']].reset_index(drop=True)

    def combine(self, other: 'BenchmarkResult') -> 'BenchmarkResult':
        keys = {m.key for m in self.measures}
        if keys != {m.key for m in other.measures}:
            raise ValueError("Cannot combine benchmark results with different measures")
        return BenchmarkResult(self.results + other.results, self.measures)


def benchmark(design: List[DesignRow],
              measures=None,
              store_models: bool = False,
              raise_errors: bool = False) -> BenchmarkResult:
    """
    Run every row of a benchmark design

    Parameters
    ----------
    design : list of DesignRow
        Output of :func:`benchmark_grid`
    measures : str, Measure or list, optional
        Measures to compute (default Harrell's C)
    store_models : bool, default=False
        Keep fitted learners in the resample results
    raise_errors : bool, default=False
        Propagate learner errors instead of recording them

    Returns
    -------
    BenchmarkResult
    """
    measures = get_measures(measures)
    results = []
    for i, row in enumerate(design):
        logger.info("Benchmark %d/%d: %s on %s (%s)", i + 1, len(design), row.learner_label,
                    row.task.id, row.resampling.id)
        results.append(resample(row.task, row.learner, row.resampling, measures,
                                store_models=store_models, raise_errors=raise_errors,
                                learner_label=row.learner_label))
    bmr = BenchmarkResult(results, measures)
    n_errors = len(bmr.errors())
    if n_errors:
        logger.warning("%d resampling iterations failed; see BenchmarkResult.errors()", n_errors)
    return bmr
