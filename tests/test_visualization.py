"""Tests for visualization functions"""

import numpy as np
import pandas as pd
import pytest
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt
from survbench import make_synthetic_task
from survbench.benchmark import benchmark_grid, benchmark, BenchmarkAggr
from survbench.evaluation import Holdout
from survbench.learners import KaplanMeierLearner, CoxPHLearner
from survbench.visualization.visualization import (
    plot_benchmark_scores,
    plot_mean_scores,
    plot_critical_differences,
    plot_posthoc_heatmap,
    plot_survival_curves,
    plot_tuning_archive
)


@pytest.fixture
def aggr():
    """Aggregated scores of four learners on six tasks"""
    np.random.seed(42)
    rows = []
    for t in range(6):
        for k, learner in enumerate(["kaplan", "coxph", "deepsurv", "deephit"]):
            rows.append({"task_id": f"t{t}", "learner_id": learner,
                         "surv.cindex": 0.5 + 0.08 * k + np.random.uniform(0, 0.05)})
    return BenchmarkAggr(pd.DataFrame(rows))


@pytest.fixture
def fitted_learner():
    task = make_synthetic_task(n_samples=100, random_state=42)
    return CoxPHLearner().fit(task.X, task.y), task.X


def test_plot_benchmark_scores():
    """Test box plot of resampled scores"""
    tasks = [make_synthetic_task(n_samples=60, random_state=s, id=f"task{s}") for s in (1, 2)]
    design = benchmark_grid(tasks, [KaplanMeierLearner(), CoxPHLearner()], Holdout(random_state=0))
    bmr = benchmark(design, ["surv.cindex", "surv.graf"])

    fig = plot_benchmark_scores(bmr)
    assert isinstance(fig, plt.Figure)
    assert fig.axes[0].get_ylabel() == "surv.cindex"
    plt.close(fig)

    fig = plot_benchmark_scores(bmr, measure="surv.graf")
    assert fig.axes[0].get_ylabel() == "surv.graf"
    plt.close(fig)


def test_plot_mean_scores(aggr):
    """Test mean score plot"""
    fig = plot_mean_scores(aggr)
    assert isinstance(fig, plt.Figure)
    labels = [t.get_text() for t in fig.axes[0].get_xticklabels()]
    assert labels[0] == "deephit"
    plt.close(fig)


def test_plot_critical_differences(aggr):
    """Test critical difference diagram"""
    fig = plot_critical_differences(aggr, alpha=0.05)
    assert isinstance(fig, plt.Figure)
    texts = [t.get_text() for t in fig.axes[0].texts]
    assert any(t.startswith("CD = ") for t in texts)
    assert any(t.startswith("deephit") for t in texts)
    assert "surv.cindex" in fig.axes[0].get_title()
    plt.close(fig)


def test_plot_posthoc_heatmap(aggr):
    """Test heatmap of pairwise p-values"""
    fig = plot_posthoc_heatmap(aggr)
    assert isinstance(fig, plt.Figure)
    plt.close(fig)


def test_plot_survival_curves(fitted_learner):
    """Test predicted survival curves"""
    learner, X = fitted_learner
    fig = plot_survival_curves(learner, X[:3], labels=["a", "b", "c"])
    assert isinstance(fig, plt.Figure)
    assert len(fig.axes[0].get_lines()) == 3
    plt.close(fig)

    fig = plot_survival_curves(learner, X[:2], times=np.linspace(0, 5, 20))
    assert len(fig.axes[0].get_lines()) == 2
    plt.close(fig)

    with pytest.raises(ValueError):
        plot_survival_curves(learner, X[:3], labels=["a"])
    with pytest.raises(ValueError):
        plot_survival_curves(learner, X[:3], times=np.array([]))


def test_plot_tuning_archive():
    """Test tuning archive scatter plot"""
    archive = pd.DataFrame({"penalizer": [0.1, 0.5, 0.9], "surv.cindex": [0.6, 0.7, 0.65]})
    fig = plot_tuning_archive(archive, "penalizer")
    assert isinstance(fig, plt.Figure)
    plt.close(fig)

    with pytest.raises(ValueError):
        plot_tuning_archive(archive, "dropout")
