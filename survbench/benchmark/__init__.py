"""
Benchmarking and comparison of survival learners
"""

from .benchmark import DesignRow, benchmark_grid, benchmark, BenchmarkResult
from .comparison import BenchmarkAggr, FriedmanResult

__all__ = [
    "DesignRow",
    "benchmark_grid",
    "benchmark",
    "BenchmarkResult",
    "BenchmarkAggr",
    "FriedmanResult"
]
