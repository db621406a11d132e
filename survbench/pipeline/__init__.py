"""
Preprocessing pipelines
"""

from .preprocessing import build_preprocessor, PipelineLearner, make_pipeline

__all__ = [
    "build_preprocessor",
    "PipelineLearner",
    "make_pipeline"
]
