"""
Type definitions for the CLMM batch tool
"""

from .request import PositionRequest
from .state import PoolSnapshot, ConfigSnapshot, PositionSnapshot
from .result import BuildResult, RunStage, SubmissionOutcome, RunReport

__all__ = [
    "PositionRequest",
    "PoolSnapshot",
    "ConfigSnapshot",
    "PositionSnapshot",
    "BuildResult",
    "RunStage",
    "SubmissionOutcome",
    "RunReport",
]
