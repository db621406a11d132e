"""
Benchmark of neural network survival models against Cox PH and Kaplan-Meier
"""

import logging
import os

import matplotlib.pyplot as plt

from survbench.data import load_task
from survbench.learners import make_learner
from survbench.tuning import AutoTuner, RandomSearchTuner, default_neural_search_space
from survbench.pipeline import make_pipeline
from survbench.evaluation import Holdout, CrossValidation
from survbench.benchmark import benchmark_grid, benchmark, BenchmarkAggr
from survbench.visualization import (
    plot_benchmark_scores,
    plot_mean_scores,
    plot_critical_differences
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

output_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "output")
os.makedirs(output_dir, exist_ok=True)

# Tasks
tasks = [load_task(name) for name in ("rossi", "gbsg2", "lung", "kidney_transplant", "larynx")]
for task in tasks:
    print(f"{task.id}: {task.n_obs} observations, {task.n_features} features, "
          f"{100 * task.censoring_rate:.1f}% censored")

# Neural learners: tuned with 10 random configurations on an inner holdout,
# trained with early stopping on 10% of the training data
search_space = default_neural_search_space()
neural_params = dict(epochs=100, early_stopping=True, frac=0.1, optimizer='adam',
                     patience=10, random_state=42)


def create_autotuner(key):
    learner = make_learner(key, **neural_params)
    return AutoTuner(
        learner,
        search_space,
        resampling=Holdout(random_state=42),
        measure="surv.cindex",
        tuner=RandomSearchTuner(n_evals=10, random_state=42)
    )


learners = {
    "kaplan": make_pipeline(make_learner("surv.kaplan")),
    "coxph": make_pipeline(make_learner("surv.coxph")),
}
for key in ("surv.coxtime", "surv.deephit", "surv.deepsurv", "surv.loghaz", "surv.pchazard"):
    learners[key.split(".")[1]] = make_pipeline(create_autotuner(key))

# Benchmark with three-fold outer cross-validation
design = benchmark_grid(tasks, learners, CrossValidation(folds=3, random_state=42))
print(f"\nRunning {len(design)} resampling experiments...")
bmr = benchmark(design, measures=["surv.cindex", "surv.graf"])

aggregated = bmr.aggregate()
print("\nMean scores:")
print(aggregated.to_string(index=False))

if not bmr.errors().empty:
    print("\nFailed iterations:")
    print(bmr.errors().to_string(index=False))

# Rank-based comparison across tasks
aggr = BenchmarkAggr.from_result(bmr)
for measure in aggr.measures:
    friedman = aggr.friedman_test(measure)
    print(f"\nFriedman test ({measure}): statistic={friedman.statistic:.3f}, "
          f"p-value={friedman.p_value:.4f}")
    print("Mean ranks:")
    print(aggr.mean_ranks(measure).round(2).to_string())
    if friedman.p_value < 0.05:
        print("Nemenyi post-hoc p-values:")
        print(aggr.friedman_posthoc(measure).round(3).to_string())

# Plots
fig = plot_benchmark_scores(bmr, "surv.cindex")
fig.savefig(os.path.join(output_dir, "scores_cindex.png"), dpi=150)
plt.close(fig)

fig = plot_mean_scores(aggr, "surv.cindex")
fig.savefig(os.path.join(output_dir, "mean_cindex.png"), dpi=150)
plt.close(fig)

for measure in aggr.measures:
    fig = plot_critical_differences(aggr, measure)
    fig.savefig(os.path.join(output_dir, f"cd_{measure.replace('.', '_')}.png"), dpi=150)
    plt.close(fig)

print(f"\nPlots saved to {output_dir}")
