"""
Configuration management for the CLMM batch tool

Loads settings from environment variables and a .env file into one
explicit Config value that the entry point passes down.
Includes logging configuration with rotating file output and the
request-file loader.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import base58
from dotenv import load_dotenv

from .errors import ConfigurationError
from .types import PositionRequest

logger = logging.getLogger(__name__)

# Raydium CLMM program on mainnet
DEFAULT_CLMM_PROGRAM_ID = "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK"

MAX_SLIPPAGE_BPS = 10_000
MAX_LIQUIDITY = 2 ** 128 - 1


def _load_env_file(env_file: Optional[Union[str, Path]] = None) -> None:
    """Load .env from the given path, the working directory, or the project root"""
    if env_file is not None:
        load_dotenv(env_file)
        return

    for candidate in (Path.cwd() / ".env", Path(__file__).parent.parent / ".env"):
        if candidate.exists():
            load_dotenv(candidate)
            return


def _get_env(key: str, default: Optional[str] = "") -> Optional[str]:
    """Get environment variable with default"""
    value = os.getenv(key)
    if value is None:
        return default
    return value


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid float value for {key}='{value}', using default={default}")
        return default


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as int"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid int value for {key}='{value}', using default={default}")
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as bool"""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _get_env_list(key: str) -> List[str]:
    """Get comma-separated environment variable as list"""
    value = os.getenv(key, "")
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class RpcConfig:
    """RPC client configuration"""
    urls: List[str] = field(default_factory=lambda: _get_env_list("SOLANA_RPC_URL"))
    timeout_seconds: float = field(default_factory=lambda: _get_env_float("RPC_TIMEOUT_SECONDS", 30.0))
    commitment: str = field(default_factory=lambda: _get_env("RPC_COMMITMENT", "confirmed"))


@dataclass
class SignerConfig:
    """Signer configuration for local keypair signing"""
    keypair_path: str = field(default_factory=lambda: _get_env("SOLANA_KEYPAIR_PATH", ""))
    private_key: str = field(default_factory=lambda: _get_env("SOLANA_PRIVATE_KEY", ""))


@dataclass
class TxConfig:
    """Transaction submission configuration"""
    # Increase liquidity touches two tick arrays and may wrap SOL
    compute_units: int = field(default_factory=lambda: _get_env_int("TX_COMPUTE_UNITS", 400_000))
    # Priority fee in microlamports per CU
    compute_unit_price: int = field(default_factory=lambda: _get_env_int("TX_COMPUTE_UNIT_PRICE", 1_000))
    skip_preflight: bool = field(default_factory=lambda: _get_env_bool("TX_SKIP_PREFLIGHT", False))
    simulate_first: bool = field(default_factory=lambda: _get_env_bool("TX_SIMULATE_FIRST", False))
    preflight_commitment: str = field(default_factory=lambda: _get_env("TX_PREFLIGHT_COMMITMENT", "confirmed"))
    confirmation_timeout: float = field(default_factory=lambda: _get_env_float("TX_CONFIRMATION_TIMEOUT", 60.0))
    poll_interval: float = field(default_factory=lambda: _get_env_float("TX_POLL_INTERVAL", 1.0))


@dataclass
class ProgramConfig:
    """Deployed CLMM program"""
    program_id: str = field(default_factory=lambda: _get_env("CLMM_PROGRAM_ID", DEFAULT_CLMM_PROGRAM_ID))


@dataclass
class BatchConfig:
    """Batch run settings"""
    requests_file: str = field(default_factory=lambda: _get_env("BATCH_REQUESTS_FILE", ""))
    # 1 = strictly sequential
    max_workers: int = field(default_factory=lambda: _get_env_int("BATCH_MAX_WORKERS", 1))


def _get_default_log_path() -> str:
    """Get default log file path under ./log/ with UTC timestamp"""
    from datetime import datetime, timezone
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return str(Path("log") / f"clmm_batch_{timestamp}.log")


@dataclass
class LoggingConfig:
    """
    Logging configuration with rotating file output.

    Environment variables:
        LOG_FILE: Path to log file (empty string disables file output)
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
        LOG_FORMAT: Custom log format string
        LOG_CONSOLE: Enable console output (default: true)
        LOG_MAX_BYTES: Max log file size before rotation (default: 10MB)
        LOG_BACKUP_COUNT: Number of backup files to keep (default: 5)
    """
    log_file: str = field(default_factory=lambda: _get_env("LOG_FILE", _get_default_log_path()))
    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: _get_env(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    console_output: bool = field(default_factory=lambda: _get_env_bool("LOG_CONSOLE", True))
    max_bytes: int = field(default_factory=lambda: _get_env_int("LOG_MAX_BYTES", 10 * 1024 * 1024))
    backup_count: int = field(default_factory=lambda: _get_env_int("LOG_BACKUP_COUNT", 5))

    @property
    def level(self) -> int:
        """Get numeric log level"""
        return getattr(logging, self.log_level.upper(), logging.INFO)


@dataclass
class Config:
    """
    Main configuration container

    Usage:
        from clmm_batch.config import load_config

        config = load_config()
        print(config.rpc.urls)
    """
    rpc: RpcConfig = field(default_factory=RpcConfig)
    signer: SignerConfig = field(default_factory=SignerConfig)
    tx: TxConfig = field(default_factory=TxConfig)
    program: ProgramConfig = field(default_factory=ProgramConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(env_file: Optional[Union[str, Path]] = None) -> Config:
    """Load .env and build a Config from the environment"""
    _load_env_file(env_file)
    return Config()


def setup_logging(
    log_config: LoggingConfig,
    logger_name: str = "clmm_batch",
) -> logging.Logger:
    """
    Set up logging based on configuration.

    Creates handlers for file and/or console output with rotation.
    The log file directory is created automatically if it doesn't exist.

    Args:
        log_config: Logging configuration
        logger_name: Name of the logger to configure

    Returns:
        Configured logger instance
    """
    root = logging.getLogger(logger_name)
    root.setLevel(log_config.level)

    # Close before removing to flush buffers and release file handles
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)

    formatter = logging.Formatter(log_config.log_format)
    handlers: List[logging.Handler] = []

    if log_config.log_file:
        from logging.handlers import RotatingFileHandler

        log_path = Path(log_config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_config.log_file,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_config.level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if log_config.console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_config.level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    for handler in handlers:
        root.addHandler(handler)

    if log_config.log_file:
        root.info(f"Logging initialized: file={log_config.log_file}, level={log_config.log_level}")

    return root


# ========== Request file ==========

REQUESTS_KEY = "increase-liquidity"

_FIELD_ALIASES = {
    "pool_address": ("pool_id", "poolId", "pool_address"),
    "position_address": ("position_id", "positionId", "position_address"),
    "liquidity_delta": ("liquidity", "liquidity_delta"),
    "slippage_bps": ("slippage_bps", "slippageBps"),
}


def _pick(entry: Dict[str, Any], name: str, index: int) -> Any:
    for alias in _FIELD_ALIASES[name]:
        if alias in entry:
            return entry[alias]
    raise ConfigurationError.missing(f"{REQUESTS_KEY}[{index}].{_FIELD_ALIASES[name][0]}")


def _validate_address(value: Any, param: str) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigurationError.invalid(param, "expected a base58 address string")
    try:
        raw = base58.b58decode(value)
    except ValueError as e:
        raise ConfigurationError.invalid(param, f"not base58: {e}")
    if len(raw) != 32:
        raise ConfigurationError.invalid(param, f"decodes to {len(raw)} bytes, expected 32")
    return value


def _validate_int(value: Any, param: str, minimum: int, maximum: int) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ConfigurationError.invalid(param, f"expected an integer, got {value!r}")
    try:
        number = int(value)
    except ValueError:
        raise ConfigurationError.invalid(param, f"expected an integer, got {value!r}")
    if number < minimum or number > maximum:
        raise ConfigurationError.invalid(param, f"must be in [{minimum}, {maximum}], got {number}")
    return number


def parse_request(entry: Dict[str, Any], index: int = 0) -> PositionRequest:
    """
    Validate one request entry

    Raises:
        ConfigurationError: If a field is missing or invalid
    """
    if not isinstance(entry, dict):
        raise ConfigurationError.invalid(f"{REQUESTS_KEY}[{index}]", "expected an object")

    prefix = f"{REQUESTS_KEY}[{index}]"
    return PositionRequest(
        pool_address=_validate_address(_pick(entry, "pool_address", index), f"{prefix}.pool_id"),
        position_address=_validate_address(_pick(entry, "position_address", index), f"{prefix}.position_id"),
        liquidity_delta=_validate_int(_pick(entry, "liquidity_delta", index), f"{prefix}.liquidity", 1, MAX_LIQUIDITY),
        slippage_bps=_validate_int(_pick(entry, "slippage_bps", index), f"{prefix}.slippage_bps", 0, MAX_SLIPPAGE_BPS),
    )


def parse_requests(document: Any) -> List[PositionRequest]:
    """
    Validate a decoded request document

    Accepts either a list of entries or an object holding the list under
    the "increase-liquidity" key.
    """
    if isinstance(document, dict):
        if REQUESTS_KEY not in document:
            raise ConfigurationError.missing(REQUESTS_KEY)
        document = document[REQUESTS_KEY]

    if not isinstance(document, list):
        raise ConfigurationError.invalid(REQUESTS_KEY, "expected a list of requests")

    return [parse_request(entry, i) for i, entry in enumerate(document)]


def load_requests(path: Union[str, Path]) -> List[PositionRequest]:
    """
    Load and validate the request file

    Raises:
        ConfigurationError: If the file is missing, not JSON, or invalid
    """
    if not path:
        raise ConfigurationError.missing("requests file")

    file_path = Path(path)
    if not file_path.is_file():
        raise ConfigurationError.invalid("requests file", f"not found: {file_path}")

    try:
        document = json.loads(file_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError.invalid("requests file", f"cannot parse {file_path}: {e}")

    requests = parse_requests(document)
    logger.info(f"Loaded {len(requests)} request(s) from {file_path}")
    return requests
