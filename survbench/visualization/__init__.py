"""
Visualization module
"""

from .visualization import (
    plot_benchmark_scores,
    plot_mean_scores,
    plot_critical_differences,
    plot_posthoc_heatmap,
    plot_survival_curves,
    plot_tuning_archive
)

__all__ = [
    'plot_benchmark_scores',
    'plot_mean_scores',
    'plot_critical_differences',
    'plot_posthoc_heatmap',
    'plot_survival_curves',
    'plot_tuning_archive'
]
