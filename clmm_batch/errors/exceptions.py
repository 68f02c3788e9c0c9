"""
Exception definitions for the CLMM batch tool
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """
    Unified error codes

    1xxx - RPC errors
    2xxx - Transaction submission errors
    3xxx - Slippage/Range errors
    4xxx - Account errors
    6xxx - Signer errors
    7xxx - Run control
    9xxx - Configuration errors
    """
    # RPC errors (recoverable)
    RPC_CONNECTION_FAILED = "1001"
    RPC_TIMEOUT = "1002"
    RPC_RATE_LIMITED = "1003"
    RPC_INVALID_RESPONSE = "1004"

    # Transaction errors
    TX_SIMULATION_FAILED = "2001"
    TX_SEND_FAILED = "2002"
    TX_CONFIRMATION_FAILED = "2003"
    TX_CONFIRMATION_TIMEOUT = "2004"
    TX_INVALID_BLOCKHASH = "2005"

    # Slippage/Range errors
    SLIPPAGE_EXCEEDED = "3001"
    RANGE_INVERTED = "3101"
    RANGE_TICK_OUT_OF_BOUNDS = "3102"
    RANGE_NON_POSITIVE_LIQUIDITY = "3103"
    RANGE_AMOUNT_OVERFLOW = "3104"

    # Account errors
    ACCOUNT_NOT_FOUND = "4001"
    ACCOUNT_WRONG_OWNER = "4002"
    ACCOUNT_INVALID_DATA = "4003"

    # Signer errors
    SIGNER_NOT_CONFIGURED = "6001"
    SIGNER_FAILED = "6002"

    # Run control
    RUN_CANCELLED = "7001"
    RUN_UNEXPECTED_ERROR = "7002"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"


class ClmmBatchError(Exception):
    """
    Base exception for all CLMM batch errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether the error might succeed on a later run
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class RpcError(ClmmBatchError):
    """
    RPC-related errors - typically recoverable

    Raised when:
    - Connection to every RPC endpoint fails
    - Request times out
    - Rate limit is hit
    - The node answers with a JSON-RPC error object
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RPC_CONNECTION_FAILED,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=True,
            original_error=original_error,
            details={"endpoint": endpoint} if endpoint else None,
        )
        self.endpoint = endpoint

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "RpcError":
        return cls(
            f"Failed to connect to RPC endpoint: {endpoint}",
            ErrorCode.RPC_CONNECTION_FAILED,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float) -> "RpcError":
        return cls(
            f"RPC request timed out after {timeout_seconds}s",
            ErrorCode.RPC_TIMEOUT,
            endpoint=endpoint,
        )

    @classmethod
    def rate_limited(cls, endpoint: str) -> "RpcError":
        return cls(
            "RPC rate limit exceeded",
            ErrorCode.RPC_RATE_LIMITED,
            endpoint=endpoint,
        )


class AccountNotFound(ClmmBatchError):
    """
    A referenced on-chain account is missing or unusable - not recoverable

    Raised when:
    - The address holds no account
    - The account is not owned by the CLMM program
    - The account data does not decode as the expected kind
    """

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        kind: Optional[str] = None,
        code: ErrorCode = ErrorCode.ACCOUNT_NOT_FOUND,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            details={"address": address, "kind": kind},
        )
        self.address = address
        self.kind = kind

    @classmethod
    def not_found(cls, kind: str, address: str) -> "AccountNotFound":
        return cls(f"{kind} account not found: {address}", address=address, kind=kind)

    @classmethod
    def wrong_owner(cls, kind: str, address: str, owner: str, expected: str) -> "AccountNotFound":
        return cls(
            f"{kind} account {address} is owned by {owner}, expected {expected}",
            address=address,
            kind=kind,
            code=ErrorCode.ACCOUNT_WRONG_OWNER,
        )

    @classmethod
    def invalid_data(cls, kind: str, address: str, reason: str) -> "AccountNotFound":
        return cls(
            f"{kind} account {address} has invalid data: {reason}",
            address=address,
            kind=kind,
            code=ErrorCode.ACCOUNT_INVALID_DATA,
        )


class SlippageExceeded(ClmmBatchError):
    """
    Token amounts required for the liquidity delta exceed the tolerance

    Raised when:
    - The amount the program would pull for one side (rounded up) is above
      the maximum allowed by the slippage tolerance at the current price
    """

    def __init__(
        self,
        message: str,
        token: Optional[int] = None,
        required: Optional[int] = None,
        maximum: Optional[int] = None,
        slippage_bps: Optional[int] = None,
    ):
        super().__init__(
            message,
            ErrorCode.SLIPPAGE_EXCEEDED,
            recoverable=True,
            details={
                "token": token,
                "required": required,
                "maximum": maximum,
                "slippage_bps": slippage_bps,
            },
        )
        self.token = token
        self.required = required
        self.maximum = maximum
        self.slippage_bps = slippage_bps

    @classmethod
    def amount_exceeds(cls, token: int, required: int, maximum: int, slippage_bps: int) -> "SlippageExceeded":
        return cls(
            f"Token {token} requirement {required} exceeds maximum {maximum} "
            f"allowed by {slippage_bps} bps slippage",
            token=token,
            required=required,
            maximum=maximum,
            slippage_bps=slippage_bps,
        )


class InvalidRange(ClmmBatchError):
    """
    Tick bounds or liquidity amounts are inconsistent - not recoverable

    Raised before any submission attempt for the affected request.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RANGE_INVERTED,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, recoverable=False, details=details)

    @classmethod
    def inverted_ticks(cls, tick_lower: int, tick_upper: int) -> "InvalidRange":
        return cls(
            f"Lower tick {tick_lower} is above upper tick {tick_upper}",
            ErrorCode.RANGE_INVERTED,
            details={"tick_lower": tick_lower, "tick_upper": tick_upper},
        )

    @classmethod
    def tick_out_of_bounds(cls, tick: int, min_tick: int, max_tick: int) -> "InvalidRange":
        return cls(
            f"tick must be in [{min_tick}, {max_tick}], got {tick}",
            ErrorCode.RANGE_TICK_OUT_OF_BOUNDS,
            details={"tick": tick},
        )

    @classmethod
    def sqrt_price_out_of_bounds(cls, sqrt_price_x64: int) -> "InvalidRange":
        return cls(
            f"sqrt price {sqrt_price_x64} is outside the supported range",
            ErrorCode.RANGE_TICK_OUT_OF_BOUNDS,
            details={"sqrt_price_x64": sqrt_price_x64},
        )

    @classmethod
    def non_positive_liquidity(cls, liquidity: int) -> "InvalidRange":
        return cls(
            f"Liquidity delta must be positive, got {liquidity}",
            ErrorCode.RANGE_NON_POSITIVE_LIQUIDITY,
            details={"liquidity": liquidity},
        )

    @classmethod
    def amount_overflow(cls, token: int, amount: int) -> "InvalidRange":
        return cls(
            f"Token {token} maximum amount {amount} does not fit in u64",
            ErrorCode.RANGE_AMOUNT_OVERFLOW,
            details={"token": token, "amount": amount},
        )


class SubmissionError(ClmmBatchError):
    """
    Transaction submission errors - never retried automatically

    Raised when:
    - Transaction simulation fails
    - Transaction send fails
    - Confirmation fails or times out
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TX_SEND_FAILED,
        signature: Optional[str] = None,
        logs: Optional[list] = None,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=recoverable,
            original_error=original_error,
            details={"signature": signature, "logs": logs},
        )
        self.signature = signature
        self.logs = logs or []

    @classmethod
    def simulation_failed(cls, error: str, logs: list = None) -> "SubmissionError":
        return cls(
            f"Transaction simulation failed: {error}",
            ErrorCode.TX_SIMULATION_FAILED,
            logs=logs,
        )

    @classmethod
    def send_failed(cls, error: str, original_error: Exception = None) -> "SubmissionError":
        # Network failures may succeed on a later run
        recoverable = "timeout" in error.lower() or "connection" in error.lower()
        return cls(
            f"Failed to send transaction: {error}",
            ErrorCode.TX_SEND_FAILED,
            recoverable=recoverable,
            original_error=original_error,
        )

    @classmethod
    def confirmation_failed(cls, signature: str, error: str) -> "SubmissionError":
        return cls(
            f"Transaction {signature} failed on-chain: {error}",
            ErrorCode.TX_CONFIRMATION_FAILED,
            signature=signature,
        )

    @classmethod
    def confirmation_timeout(cls, signature: str, timeout_seconds: float) -> "SubmissionError":
        return cls(
            f"Transaction {signature} not confirmed within {timeout_seconds}s",
            ErrorCode.TX_CONFIRMATION_TIMEOUT,
            signature=signature,
            recoverable=True,
        )


class SignerError(ClmmBatchError):
    """
    Signing-related errors

    Raised when:
    - No signer configured
    - A required signer did not produce a signature
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SIGNER_FAILED,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def not_configured(cls) -> "SignerError":
        return cls(
            "No signer configured. Provide SOLANA_PRIVATE_KEY or a keypair file.",
            ErrorCode.SIGNER_NOT_CONFIGURED,
        )

    @classmethod
    def failed(cls, reason: str) -> "SignerError":
        return cls(f"Signing failed: {reason}", ErrorCode.SIGNER_FAILED)


class ConfigurationError(ClmmBatchError):
    """
    Configuration-related errors

    Raised when:
    - Required configuration is missing
    - Configuration values or request entries are invalid
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(f"Missing required configuration: {param}", ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)


class RunCancelled(ClmmBatchError):
    """
    The run was cancelled before the request at `index` started
    """

    def __init__(self, index: int):
        super().__init__(
            f"Run cancelled before request {index} started",
            ErrorCode.RUN_CANCELLED,
            recoverable=True,
            details={"index": index},
        )
        self.index = index


class UnexpectedError(ClmmBatchError):
    """
    An exception outside this hierarchy raised while processing a request

    The original exception is kept in `original_error`.
    """

    def __init__(self, index: int, stage: str, error: Exception):
        super().__init__(
            f"Unexpected {type(error).__name__} in request {index} at stage {stage}: {error}",
            ErrorCode.RUN_UNEXPECTED_ERROR,
            recoverable=False,
            original_error=error,
            details={"index": index, "stage": stage},
        )
        self.index = index
        self.stage = stage
