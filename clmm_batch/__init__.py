"""
CLMM Batch - increase liquidity of concentrated-liquidity positions on Solana

Provides:
- Fail-fast batch runs, one signed transaction per position
- Pool / config / position account decoding
- Tick and sqrt-price math, slippage-bounded deposit limits
- Optional bounded concurrency with request-ordered logs and outcomes
"""

__version__ = "0.1.0"

from .context import ChainContext, create_context
from .orchestrator import Orchestrator, run
from .types import (
    PositionRequest,
    PoolSnapshot,
    ConfigSnapshot,
    PositionSnapshot,
    BuildResult,
    RunStage,
    SubmissionOutcome,
    RunReport,
)
from .errors import (
    ClmmBatchError,
    ErrorCode,
    RpcError,
    AccountNotFound,
    SlippageExceeded,
    InvalidRange,
    SubmissionError,
    SignerError,
    ConfigurationError,
    RunCancelled,
    UnexpectedError,
)

__all__ = [
    "__version__",
    # Entry points
    "ChainContext",
    "create_context",
    "Orchestrator",
    "run",
    # Types
    "PositionRequest",
    "PoolSnapshot",
    "ConfigSnapshot",
    "PositionSnapshot",
    "BuildResult",
    "RunStage",
    "SubmissionOutcome",
    "RunReport",
    # Errors
    "ClmmBatchError",
    "ErrorCode",
    "RpcError",
    "AccountNotFound",
    "SlippageExceeded",
    "InvalidRange",
    "SubmissionError",
    "SignerError",
    "ConfigurationError",
    "RunCancelled",
    "UnexpectedError",
]
