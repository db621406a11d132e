"""
Tests for benchmark designs, results and rank-based comparisons
"""

import itertools

import numpy as np
import pandas as pd
import pytest
from survbench import make_synthetic_task
from survbench.benchmark import benchmark_grid, benchmark, BenchmarkResult, BenchmarkAggr
from survbench.evaluation import CrossValidation, Holdout
from survbench.learners import KaplanMeierLearner, CoxPHLearner


@pytest.fixture(scope="module")
def tasks():
    return [make_synthetic_task(n_samples=90, random_state=seed, id=f"task{seed}")
            for seed in (1, 2)]


@pytest.fixture(scope="module")
def bmr(tasks):
    design = benchmark_grid(tasks, [KaplanMeierLearner(), CoxPHLearner()],
                            CrossValidation(folds=2, random_state=42))
    return benchmark(design, ["surv.cindex", "surv.graf"])


@pytest.fixture
def table():
    """Five tasks on which learner A always beats B, which beats C"""
    rows = []
    for i in range(5):
        for learner, cindex, graf in (("A", 0.80, 0.10), ("B", 0.70, 0.15), ("C", 0.60, 0.20)):
            rows.append({"task_id": f"t{i}", "learner_id": learner,
                         "surv.cindex": cindex + 0.01 * i, "surv.graf": graf + 0.01 * i})
    return pd.DataFrame(rows)


def test_benchmark_grid(tasks):
    """Every task x learner x resampling combination, with shared splits per task"""
    learners = [KaplanMeierLearner(), CoxPHLearner()]
    design = benchmark_grid(tasks, learners, [Holdout(random_state=0),
                                              CrossValidation(folds=2, random_state=0)])
    assert len(design) == 2 * 2 * 2
    assert [row.learner_label for row in design[:2]] == ["surv.kaplan", "surv.coxph"]
    assert design[0].resampling is design[1].resampling
    assert design[0].resampling.is_instantiated
    assert design[0].resampling.task_id_ == "task1"
    assert design[0].resampling is not design[4].resampling


def test_benchmark_grid_labels(tasks):
    """Duplicate learner labels need explicit names"""
    with pytest.raises(ValueError):
        benchmark_grid(tasks, [CoxPHLearner(), CoxPHLearner(penalizer=0.1)], Holdout())

    design = benchmark_grid(tasks[0], {"cox": CoxPHLearner(), "ridge": CoxPHLearner(penalizer=0.1)},
                            Holdout())
    assert [row.learner_label for row in design] == ["cox", "ridge"]

    with pytest.raises(ValueError):
        benchmark_grid([tasks[0], tasks[0]], CoxPHLearner(), Holdout())
    with pytest.raises(ValueError):
        benchmark_grid([], CoxPHLearner(), Holdout())


def test_benchmark_result(bmr):
    """Scores per iteration and aggregated per task and learner"""
    assert isinstance(bmr, BenchmarkResult)
    assert len(bmr) == 4
    assert bmr.task_ids == ["task1", "task2"]
    assert bmr.learner_ids == ["surv.kaplan", "surv.coxph"]

    scores = bmr.score()
    assert len(scores) == 2 * 2 * 2
    assert {"task_id", "learner_id", "resampling_id", "iteration",
            "surv.cindex", "surv.graf", "runtime", "error"} <= set(scores.columns)

    aggr = bmr.aggregate()
    assert len(aggr) == 4
    assert (aggr["iters"] == 2).all()
    assert (aggr["errors"] == 0).all()
    km = aggr[aggr["learner_id"] == "surv.kaplan"]
    assert np.allclose(km["surv.cindex"], 0.5)

    assert list(bmr.aggregate(["surv.graf"]).columns) == \
        ["task_id", "learner_id", "resampling_id", "surv.graf", "iters", "errors"]
    assert bmr.errors().empty

    with pytest.raises(ValueError):
        bmr.score(["surv.brier"])


def test_benchmark_combine(bmr, tasks):
    """Results of separate runs can be merged"""
    design = benchmark_grid(tasks, {"ridge": CoxPHLearner(penalizer=0.5)},
                            CrossValidation(folds=2, random_state=42))
    other = benchmark(design, ["surv.cindex", "surv.graf"])
    combined = bmr.combine(other)
    assert combined.learner_ids == ["surv.kaplan", "surv.coxph", "ridge"]
    assert len(combined.aggregate()) == 6

    with pytest.raises(ValueError):
        bmr.combine(benchmark(design))


def test_rank_data(table):
    """Rank 1 is the best learner on every task, whatever the direction"""
    aggr = BenchmarkAggr(table)
    assert aggr.measures == ["surv.cindex", "surv.graf"]
    assert aggr.tasks == [f"t{i}" for i in range(5)]
    assert aggr.learners == ["A", "B", "C"]
    assert not aggr.minimize("surv.cindex")
    assert aggr.minimize("surv.graf")

    for meas in aggr.measures:
        ranks = aggr.rank_data(meas)
        assert ranks.shape == (5, 3)
        assert (ranks["A"] == 1).all()
        assert (ranks["C"] == 3).all()
        assert list(aggr.mean_ranks(meas).index) == ["A", "B", "C"]


def test_friedman_and_posthoc(table):
    """Consistent orderings are significant"""
    aggr = BenchmarkAggr(table, ["surv.cindex"])
    result = aggr.friedman_test()
    assert result.statistic == pytest.approx(10.0)
    assert result.df == 2
    assert result.n_tasks == 5 and result.n_learners == 3
    assert result.p_value < 0.05

    pvalues = aggr.friedman_posthoc()
    assert pvalues.shape == (3, 3)
    np.testing.assert_allclose(pvalues.to_numpy(), pvalues.to_numpy().T)
    np.testing.assert_allclose(np.diag(pvalues), 1.0)
    assert pvalues.loc["A", "C"] < pvalues.loc["A", "B"]
    assert pvalues.loc["A", "C"] < 0.05

    cd = aggr.critical_difference()
    assert cd == pytest.approx(1.48, abs=0.01)


def test_posthoc_warns_without_global_effect():
    """Every permutation once gives equal mean ranks"""
    rows = []
    for t, order in enumerate(itertools.permutations([0.6, 0.7, 0.8])):
        for learner, score in zip("ABC", order):
            rows.append({"task_id": t, "learner_id": learner, "surv.cindex": score})
    aggr = BenchmarkAggr(pd.DataFrame(rows))
    assert aggr.friedman_test().p_value == pytest.approx(1.0)
    with pytest.warns(UserWarning):
        aggr.friedman_posthoc()


def test_benchmark_aggr_validation(table):
    """Test invalid tables"""
    with pytest.raises(ValueError):
        BenchmarkAggr(table[table["task_id"] == "t0"])
    with pytest.raises(ValueError):
        BenchmarkAggr(pd.concat([table, table]))
    with pytest.raises(ValueError):
        BenchmarkAggr(table, ["surv.brier"])
    with pytest.raises(ValueError):
        BenchmarkAggr(table.drop(columns=["learner_id"]))

    two = BenchmarkAggr(table[table["learner_id"] != "C"])
    assert list(two.mean_ranks().index) == ["A", "B"]
    with pytest.raises(ValueError):
        two.friedman_test()


def test_incomplete_tasks_are_dropped(table):
    """Tasks with a missing score are left out of the comparison"""
    table.loc[0, "surv.cindex"] = np.nan
    aggr = BenchmarkAggr(table)
    with pytest.warns(UserWarning):
        wide = aggr.score_matrix("surv.cindex")
    assert list(wide.index) == ["t1", "t2", "t3", "t4"]


def test_custom_measure_columns(table):
    """Unknown measure columns need their direction"""
    table["loss"] = table["surv.graf"]
    aggr = BenchmarkAggr(table, ["loss"], minimize={"loss": True})
    assert (aggr.rank_data("loss")["A"] == 1).all()


def test_from_result(bmr):
    """Comparisons straight from a benchmark result"""
    aggr = BenchmarkAggr.from_result(bmr)
    assert aggr.measures == ["surv.cindex", "surv.graf"]
    assert aggr.minimize("surv.graf")
    assert aggr.learners == ["surv.kaplan", "surv.coxph"]
    assert aggr.score_matrix().shape == (2, 2)
