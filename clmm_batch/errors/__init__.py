"""
Error definitions for the CLMM batch tool
"""

from .exceptions import (
    ErrorCode,
    ClmmBatchError,
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
    "ErrorCode",
    "ClmmBatchError",
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
