"""
RPC Client for Solana

Provides the JSON-RPC connection shared by every request in a run:
- Multiple endpoint fallback (each endpoint tried once per call)
- Request timeout management
- JSON-RPC error mapping to RpcError
"""

from __future__ import annotations

import base64
import logging
import threading
import time
from typing import Any, Dict, List, Optional, Union

import httpx

from ..config import RpcConfig
from ..errors import ErrorCode, RpcError, ConfigurationError

logger = logging.getLogger(__name__)


class RpcClient:
    """
    Solana JSON-RPC client

    Supports:
    - Multiple RPC endpoints with fallback on transport failure
    - Configurable timeouts and commitment

    Usage:
        rpc = RpcClient("https://api.mainnet-beta.solana.com")

        # Multiple endpoints with fallback
        rpc = RpcClient([
            "https://primary-rpc.example.com",
            "https://backup-rpc.example.com",
        ])

        data = rpc.get_account_info("AccountAddress...")
    """

    def __init__(
        self,
        endpoint: Union[str, List[str]],
        config: Optional[RpcConfig] = None,
    ):
        """
        Initialize RPC client

        Args:
            endpoint: RPC endpoint URL or list of URLs (for fallback)
            config: RPC configuration options
        """
        self._endpoints = [endpoint] if isinstance(endpoint, str) else list(endpoint)
        if not self._endpoints:
            raise ConfigurationError.missing("RPC endpoint")

        self._config = config or RpcConfig(urls=list(self._endpoints))
        self._current_endpoint_idx = 0
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

    @property
    def endpoint(self) -> str:
        """Current active endpoint"""
        return self._endpoints[self._current_endpoint_idx]

    @property
    def commitment(self) -> str:
        """Default commitment level"""
        return self._config.commitment

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client (thread-safe)"""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self._config.timeout_seconds,
                        headers={"Content-Type": "application/json"},
                    )
        return self._client

    def _rotate_endpoint(self):
        """Rotate to next endpoint on failure"""
        if len(self._endpoints) > 1:
            self._current_endpoint_idx = (self._current_endpoint_idx + 1) % len(self._endpoints)
            logger.info(f"Rotating to RPC endpoint: {self.endpoint}")

    def call(
        self,
        method: str,
        params: List[Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Make JSON-RPC call

        Args:
            method: RPC method name
            params: RPC parameters
            timeout: Optional timeout override

        Returns:
            RPC result

        Raises:
            RpcError: On RPC failure
        """
        client = self._get_client()
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }
        timeout_val = timeout or self._config.timeout_seconds

        last_error: Optional[RpcError] = None

        for _ in range(len(self._endpoints)):
            endpoint = self.endpoint
            try:
                response = client.post(endpoint, json=body, timeout=timeout_val)

                if response.status_code == 429:
                    raise RpcError.rate_limited(endpoint)

                response.raise_for_status()
                result = response.json()

                if "error" in result:
                    error = result["error"]
                    rpc_error = RpcError(
                        f"RPC error: {error.get('message', str(error))}",
                        code=_rpc_error_code(error),
                        endpoint=endpoint,
                    )
                    rpc_error.details["rpc_error_code"] = error.get("code")
                    rpc_error.details["rpc_error_data"] = error.get("data")
                    # The node answered; another endpoint would answer the same
                    raise rpc_error

                return result.get("result")

            except httpx.TimeoutException:
                last_error = RpcError.timeout(endpoint, timeout_val)
                logger.warning(f"RPC timeout calling {method} on {endpoint}")

            except httpx.HTTPStatusError as e:
                last_error = RpcError(
                    f"HTTP error {e.response.status_code}",
                    endpoint=endpoint,
                    original_error=e,
                )
                logger.warning(f"RPC HTTP error calling {method} on {endpoint}: {e}")

            except httpx.RequestError as e:
                last_error = RpcError.connection_failed(endpoint, e)
                logger.warning(f"RPC connection error calling {method} on {endpoint}: {e}")

            except RpcError as e:
                if e.code != ErrorCode.RPC_RATE_LIMITED:
                    raise
                last_error = e
                logger.warning(f"Rate limited by {endpoint}")

            except Exception as e:
                # e.g. a non-JSON body from a gateway in front of the node
                last_error = RpcError(
                    f"Unexpected error: {e}",
                    code=ErrorCode.RPC_INVALID_RESPONSE,
                    original_error=e,
                    endpoint=endpoint,
                )
                logger.warning(f"RPC unexpected error calling {method} on {endpoint}: {e}")

            self._rotate_endpoint()

        raise last_error or RpcError("All RPC endpoints failed")

    def get_account_info(
        self,
        address: str,
        encoding: str = "base64",
        commitment: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Get account information

        Args:
            address: Account address (base58)
            encoding: Data encoding ("base64", "jsonParsed", etc.)
            commitment: Commitment level

        Returns:
            Account info or None if not found
        """
        params = [
            address,
            {
                "encoding": encoding,
                "commitment": commitment or self.commitment,
            },
        ]
        result = self.call("getAccountInfo", params)
        return result.get("value") if result else None

    def get_latest_blockhash(
        self,
        commitment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Get latest blockhash

        Returns:
            Dict with blockhash and lastValidBlockHeight
        """
        params = [{"commitment": commitment or self.commitment}]
        result = self.call("getLatestBlockhash", params)
        return result.get("value", {}) if result else {}

    def send_transaction(
        self,
        transaction: bytes,
        skip_preflight: bool = False,
        preflight_commitment: Optional[str] = None,
    ) -> str:
        """
        Send signed transaction

        Args:
            transaction: Signed transaction bytes
            skip_preflight: Skip preflight simulation
            preflight_commitment: Preflight commitment level

        Returns:
            Transaction signature (base58)
        """
        tx_data = base64.b64encode(transaction).decode("ascii")

        params = [
            tx_data,
            {
                "skipPreflight": skip_preflight,
                "preflightCommitment": preflight_commitment or self.commitment,
                "encoding": "base64",
                # Resending is left to the caller
                "maxRetries": 0,
            },
        ]
        return self.call("sendTransaction", params)

    def simulate_transaction(
        self,
        transaction: bytes,
        commitment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Simulate transaction execution

        Args:
            transaction: Signed transaction bytes
            commitment: Commitment level

        Returns:
            Simulation result
        """
        tx_data = base64.b64encode(transaction).decode("ascii")

        params = [
            tx_data,
            {
                "commitment": commitment or self.commitment,
                "encoding": "base64",
                "sigVerify": False,
                "replaceRecentBlockhash": True,
            },
        ]
        return self.call("simulateTransaction", params)

    def get_signature_status(self, signature: str) -> Optional[Dict[str, Any]]:
        """Get status of a single signature, None if unknown to the node"""
        result = self.call("getSignatureStatuses", [[signature]])
        if result and result.get("value"):
            return result["value"][0]
        return None

    def confirm_transaction(
        self,
        signature: str,
        commitment: Optional[str] = None,
        timeout_seconds: float = 60.0,
        poll_interval: float = 1.0,
    ) -> Optional[Dict[str, Any]]:
        """
        Wait for transaction confirmation

        Args:
            signature: Transaction signature
            commitment: Required commitment ("confirmed" or "finalized")
            timeout_seconds: Max wait time
            poll_interval: Delay between status polls

        Returns:
            Final status dict (check its "err" field) or None on timeout
        """
        wanted = ("finalized",) if (commitment or self.commitment) == "finalized" else ("confirmed", "finalized")
        deadline = time.monotonic() + timeout_seconds
        last_status = None

        while time.monotonic() < deadline:
            try:
                status = self.get_signature_status(signature)
                if status:
                    last_status = status
                    if status.get("err"):
                        logger.warning(f"Transaction {signature} failed on-chain: {status.get('err')}")
                        return status
                    if status.get("confirmationStatus") in wanted:
                        return status
            except RpcError as e:
                logger.debug(f"Error checking transaction status: {e}")

            time.sleep(poll_interval)

        if last_status is None:
            logger.warning(f"Transaction {signature} was never seen on chain (dropped/expired)")
        else:
            logger.warning(
                f"Transaction {signature} timeout. Last status: {last_status.get('confirmationStatus', 'unknown')}"
            )
        return None

    def close(self):
        """Close HTTP client"""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _rpc_error_code(error: Dict[str, Any]) -> ErrorCode:
    message = str(error.get("message", "")).lower()
    if "blockhash" in message:
        return ErrorCode.TX_INVALID_BLOCKHASH
    return ErrorCode.RPC_INVALID_RESPONSE
