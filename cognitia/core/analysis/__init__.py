"""Analysis pipeline: prompt construction, normalization, orchestration."""

from .engine import AnalysisEngine, AnalysisRequest
from .normalizer import normalize, RESULT_DEFAULTS

__all__ = [
    "AnalysisEngine",
    "AnalysisRequest",
    "normalize",
    "RESULT_DEFAULTS",
]
