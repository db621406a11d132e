"""
Visualization functions
"""

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from typing import List, Optional, Union
import pandas as pd

from ..benchmark import BenchmarkResult, BenchmarkAggr
from ..evaluation.measures import get_measure


def plot_benchmark_scores(bmr: BenchmarkResult,
                          measure: Optional[str] = None,
                          figsize: tuple = (10, 6)):
    """
    Box plot of per-iteration scores for each learner, coloured by task

    Parameters
    ----------
    bmr : BenchmarkResult
        Benchmark to plot
    measure : str, optional
        Measure key (default: first measure of the benchmark)
    figsize : tuple, default=(10, 6)
        Figure size

    Returns
    -------
    matplotlib.figure.Figure
        The figure object
    """
    measure = measure or bmr.measures[0].key
    scores = bmr.score([measure])

    fig, ax = plt.subplots(figsize=figsize)
    sns.boxplot(data=scores, x='learner_id', y=measure, hue='task_id', ax=ax)
    ax.set_xlabel("Learner")
    ax.set_ylabel(measure)
    ax.set_title("Resampled Performance")
    ax.tick_params(axis='x', rotation=30)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_mean_scores(aggr: BenchmarkAggr,
                     measure: Optional[str] = None,
                     figsize: tuple = (8, 5)):
    """
    Mean score across tasks per learner with one standard error

    Parameters
    ----------
    aggr : BenchmarkAggr
        Aggregated benchmark
    measure : str, optional
        Measure key (default: first measure)
    figsize : tuple, default=(8, 5)
        Figure size

    Returns
    -------
    matplotlib.figure.Figure
        The figure object
    """
    measure = measure or aggr.measures[0]
    wide = aggr.score_matrix(measure)
    mean = wide.mean(axis=0)
    se = wide.std(axis=0, ddof=1) / np.sqrt(len(wide))
    order = mean.sort_values(ascending=aggr.minimize(measure)).index

    fig, ax = plt.subplots(figsize=figsize)
    ax.errorbar(range(len(order)), mean[order], yerr=se[order], fmt='o', capsize=4)
    ax.set_xticks(range(len(order)))
    ax.set_xticklabels(order, rotation=30, ha='right')
    ax.set_ylabel(measure)
    ax.set_title("Mean Performance Across Tasks")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_critical_differences(aggr: BenchmarkAggr,
                              measure: Optional[str] = None,
                              alpha: float = 0.05,
                              figsize: tuple = (10, 4)):
    """
    Critical difference diagram (Demsar, 2006)

    Learners are placed on an axis of mean ranks (best on the left). Learners
    whose mean ranks differ by less than the Nemenyi critical difference are
    joined by a thick bar; the critical difference itself is drawn above the
    axis.

    Parameters
    ----------
    aggr : BenchmarkAggr
        Aggregated benchmark with at least two tasks
    measure : str, optional
        Measure key (default: first measure)
    alpha : float, default=0.05
        Significance level
    figsize : tuple, default=(10, 4)
        Figure size

    Returns
    -------
    matplotlib.figure.Figure
        The figure object
    """
    measure = measure or aggr.measures[0]
    ranks = aggr.mean_ranks(measure)
    cd = aggr.critical_difference(measure, alpha=alpha)
    k = len(ranks)

    fig, ax = plt.subplots(figsize=figsize)
    ax.set_xlim(0.5, k + 0.5)
    ax.set_ylim(0, 1)
    ax.axis('off')

    axis_y = 0.75
    ax.hlines(axis_y, 1, k, color='black', linewidth=1)
    for r in range(1, k + 1):
        ax.vlines(r, axis_y, axis_y + 0.03, color='black', linewidth=1)
        ax.text(r, axis_y + 0.05, str(r), ha='center', va='bottom', fontsize=9)

    # critical difference bar
    ax.hlines(0.95, 1, 1 + cd, color='black', linewidth=2)
    ax.text(1 + cd / 2, 0.97, f"CD = {cd:.2f}", ha='center', va='bottom', fontsize=9)

    half = int(np.ceil(k / 2))
    for i, (name, rank) in enumerate(ranks.items()):
        if i < half:
            y, x_text, ha = axis_y - 0.1 * (i + 1), 0.6, 'left'
        else:
            y, x_text, ha = axis_y - 0.1 * (k - i), k + 0.4, 'right'
        ax.plot([rank, rank, x_text], [axis_y, y, y], color='black', linewidth=0.8)
        ax.text(x_text, y + 0.01, f"{name} ({rank:.2f})", ha=ha, va='bottom', fontsize=9)

    # cliques of learners that are not significantly different
    values = ranks.to_numpy()
    cliques = []
    for i in range(k):
        j = i
        while j + 1 < k and values[j + 1] - values[i] < cd:
            j += 1
        if j > i and not any(a <= i and j <= b for a, b in cliques):
            cliques.append((i, j))
    for n, (i, j) in enumerate(cliques):
        y = axis_y - 0.03 - 0.03 * n
        ax.hlines(y, values[i] - 0.03, values[j] + 0.03, color='tab:red', linewidth=3)

    ax.set_title(f"Critical Differences ({measure})")
    fig.tight_layout()
    return fig


def plot_posthoc_heatmap(aggr: BenchmarkAggr,
                         measure: Optional[str] = None,
                         figsize: tuple = (7, 6)):
    """
    Heatmap of pairwise Nemenyi p-values

    Returns
    -------
    matplotlib.figure.Figure
        The figure object
    """
    pvalues = aggr.friedman_posthoc(measure)
    fig, ax = plt.subplots(figsize=figsize)
    sns.heatmap(pvalues, annot=True, fmt=".2f", cmap="viridis_r", vmin=0, vmax=1,
                square=True, cbar_kws={'label': 'p-value'}, ax=ax)
    ax.set_xlabel("")
    ax.set_ylabel("")
    ax.set_title("Nemenyi Post-hoc p-values")
    fig.tight_layout()
    return fig


def plot_survival_curves(learner,
                         X: Union[np.ndarray, pd.DataFrame],
                         times: Optional[np.ndarray] = None,
                         labels: Optional[List[str]] = None,
                         figsize: tuple = (10, 6)):
    """
    Predicted survival curves of a fitted learner

    Parameters
    ----------
    learner : BaseSurvivalLearner
        Fitted learner
    X : array-like of shape (n_samples, n_features)
        Observations to plot, one curve each
    times : array-like, optional
        Evaluation grid (default: 100 points up to the last training event)
    labels : list of str, optional
        Legend entry per observation
    figsize : tuple, default=(10, 6)
        Figure size

    Returns
    -------
    matplotlib.figure.Figure
        The figure object
    """
    if times is None:
        t_max = learner.event_times_.max() if len(learner.event_times_) else 1.0
        times = np.linspace(0, t_max, 100)
    elif len(times) == 0:
        raise ValueError("Times array cannot be empty")

    surv = learner.predict_survival(X, times)
    if labels is not None and len(labels) != surv.shape[0]:
        raise ValueError("Need one label per observation")

    fig, ax = plt.subplots(figsize=figsize)
    for i in range(surv.shape[0]):
        ax.step(times, surv[i], where='post',
                label=labels[i] if labels is not None else f"Sample {i}")
    ax.set_xlabel("Time")
    ax.set_ylabel("Survival Probability")
    ax.set_ylim(-0.02, 1.02)
    ax.set_title(f"Predicted Survival ({getattr(learner, 'id', type(learner).__name__)})")
    ax.grid(True, alpha=0.3)
    if surv.shape[0] <= 10:
        ax.legend()
    fig.tight_layout()
    return fig


def plot_tuning_archive(archive: pd.DataFrame,
                        param: str,
                        measure: str = "surv.cindex",
                        figsize: tuple = (8, 5)):
    """
    Score of each evaluated configuration against one hyper-parameter

    Parameters
    ----------
    archive : pd.DataFrame
        Tuning archive, e.g. ``AutoTuner.archive_``
    param : str
        Hyper-parameter column
    measure : str, default="surv.cindex"
        Measure column

    Returns
    -------
    matplotlib.figure.Figure
        The figure object
    """
    for col in (param, measure):
        if col not in archive.columns:
            raise ValueError(f"Column '{col}' not found in archive")

    best = archive[measure].idxmin() if get_measure(measure).minimize \
        else archive[measure].idxmax()

    fig, ax = plt.subplots(figsize=figsize)
    ax.scatter(archive[param], archive[measure], alpha=0.7)
    ax.scatter([archive.loc[best, param]], [archive.loc[best, measure]],
               color='tab:red', label='best', zorder=3)
    ax.set_xlabel(param)
    ax.set_ylabel(measure)
    ax.set_title("Tuning Archive")
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()
    return fig
