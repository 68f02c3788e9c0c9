"""
Test RPC Client with Mocks

Tests for RPC client behavior with mocked responses.
"""

import sys
from pathlib import Path
from unittest.mock import Mock, patch

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))


def _response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.raise_for_status = Mock()
    return response


def test_rpc_config_override():
    """Test RpcConfig with overrides"""
    from clmm_batch.config import RpcConfig

    print("Testing RpcConfig override...")

    config = RpcConfig(urls=["https://a.example.com"], timeout_seconds=60.0, commitment="finalized")

    assert config.timeout_seconds == 60.0
    assert config.commitment == "finalized"
    assert config.urls == ["https://a.example.com"]

    print("  RpcConfig override: PASSED")


def test_rpc_client_init():
    """Test RpcClient initialization"""
    from clmm_batch.infra.rpc import RpcClient
    from clmm_batch.errors import ConfigurationError

    print("Testing RpcClient init...")

    client = RpcClient("https://api.mainnet-beta.solana.com")
    assert client.endpoint == "https://api.mainnet-beta.solana.com"

    client = RpcClient([
        "https://primary.example.com",
        "https://backup.example.com",
    ])
    assert client.endpoint == "https://primary.example.com"

    try:
        RpcClient([])
        assert False, "Should raise for empty endpoints"
    except ConfigurationError:
        pass

    print("  RpcClient init: PASSED")


def test_rpc_call_success():
    """Test successful RPC call"""
    import httpx
    from clmm_batch.infra.rpc import RpcClient

    print("Testing RPC call success...")

    response = _response({
        "jsonrpc": "2.0",
        "id": 1,
        "result": {"value": {"blockhash": "test_blockhash", "lastValidBlockHeight": 12345}},
    })

    with patch.object(httpx.Client, "post", return_value=response) as post:
        client = RpcClient("https://api.mainnet-beta.solana.com")
        result = client.get_latest_blockhash()

        assert result["blockhash"] == "test_blockhash"
        body = post.call_args.kwargs["json"]
        assert body["method"] == "getLatestBlockhash"
        assert body["params"] == [{"commitment": "confirmed"}]

    print("  RPC call success: PASSED")


def test_rpc_call_error():
    """Test a JSON-RPC error is raised without trying other endpoints"""
    import httpx
    from clmm_batch.infra.rpc import RpcClient
    from clmm_batch.errors import RpcError, ErrorCode

    print("Testing RPC error handling...")

    response = _response({
        "jsonrpc": "2.0",
        "id": 1,
        "error": {"code": -32600, "message": "Invalid request"},
    })

    with patch.object(httpx.Client, "post", return_value=response) as post:
        client = RpcClient(["https://a.example.com", "https://b.example.com"])

        try:
            client.call("invalidMethod", [])
            assert False, "Should raise RpcError"
        except RpcError as e:
            assert "Invalid request" in str(e)
            assert e.code == ErrorCode.RPC_INVALID_RESPONSE
            assert e.details["rpc_error_code"] == -32600

        assert post.call_count == 1

    print("  RPC error handling: PASSED")


def test_rpc_rate_limit_rotates():
    """Test a 429 moves on to the next endpoint"""
    import httpx
    from clmm_batch.infra.rpc import RpcClient

    print("Testing rate limit handling...")

    limited = _response({}, status_code=429)
    success = _response({"jsonrpc": "2.0", "id": 1, "result": 12345})

    with patch.object(httpx.Client, "post", side_effect=[limited, success]):
        client = RpcClient(["https://a.example.com", "https://b.example.com"])
        assert client.call("getSlot", []) == 12345
        assert client.endpoint == "https://b.example.com"

    print("  Rate limit handling: PASSED")


def test_rpc_timeout():
    """Test timeout on every endpoint raises a recoverable RpcError"""
    import httpx
    from clmm_batch.infra.rpc import RpcClient
    from clmm_batch.config import RpcConfig
    from clmm_batch.errors import RpcError, ErrorCode

    print("Testing timeout handling...")

    with patch.object(httpx.Client, "post", side_effect=httpx.TimeoutException("Timeout")) as post:
        urls = ["https://a.example.com", "https://b.example.com"]
        client = RpcClient(urls, RpcConfig(urls=urls, timeout_seconds=1.0))

        try:
            client.call("getSlot", [])
            assert False, "Should raise RpcError for timeout"
        except RpcError as e:
            assert e.recoverable
            assert e.code == ErrorCode.RPC_TIMEOUT
            assert "timed out" in str(e).lower()

        # Each endpoint tried once
        assert post.call_count == 2

    print("  Timeout handling: PASSED")


def test_rpc_endpoint_rotation():
    """Test endpoint rotation on HTTP failure"""
    import httpx
    from clmm_batch.infra.rpc import RpcClient

    print("Testing endpoint rotation...")

    fail = Mock()
    fail.status_code = 500
    fail.raise_for_status = Mock(side_effect=httpx.HTTPStatusError("Server Error", request=Mock(), response=fail))
    success = _response({"jsonrpc": "2.0", "id": 1, "result": 12345})

    with patch.object(httpx.Client, "post", side_effect=[fail, success]):
        client = RpcClient([
            "https://failing.example.com",
            "https://working.example.com",
        ])

        assert client.call("getSlot", []) == 12345
        assert client.endpoint == "https://working.example.com"

    print("  Endpoint rotation: PASSED")


def test_get_account_info():
    """Test get_account_info method"""
    import httpx
    from clmm_batch.infra.rpc import RpcClient

    print("Testing get_account_info...")

    response = _response({
        "jsonrpc": "2.0",
        "id": 1,
        "result": {
            "value": {
                "data": ["base64data", "base64"],
                "executable": False,
                "lamports": 1000000,
                "owner": "11111111111111111111111111111111",
            }
        },
    })

    with patch.object(httpx.Client, "post", return_value=response):
        client = RpcClient("https://api.mainnet-beta.solana.com")
        result = client.get_account_info("SomeAccountAddress")

        assert result["lamports"] == 1000000

    print("  get_account_info: PASSED")


def test_get_account_info_not_found():
    """Test get_account_info for non-existent account"""
    import httpx
    from clmm_batch.infra.rpc import RpcClient

    print("Testing get_account_info not found...")

    response = _response({"jsonrpc": "2.0", "id": 1, "result": {"value": None}})

    with patch.object(httpx.Client, "post", return_value=response):
        client = RpcClient("https://api.mainnet-beta.solana.com")
        assert client.get_account_info("NonExistentAccount") is None

    print("  get_account_info not found: PASSED")


def test_confirm_transaction():
    """Test confirmation polling returns the confirmed status"""
    import httpx
    from clmm_batch.infra.rpc import RpcClient

    print("Testing confirm_transaction...")

    pending = _response({"jsonrpc": "2.0", "id": 1, "result": {"value": [None]}})
    confirmed = _response({
        "jsonrpc": "2.0",
        "id": 1,
        "result": {"value": [{"confirmationStatus": "confirmed", "err": None}]},
    })

    with patch.object(httpx.Client, "post", side_effect=[pending, confirmed]):
        client = RpcClient("https://api.mainnet-beta.solana.com")
        status = client.confirm_transaction("Sig111", timeout_seconds=5.0, poll_interval=0.01)

        assert status["confirmationStatus"] == "confirmed"

    print("  confirm_transaction: PASSED")


def test_rpc_non_json_response():
    """Test a non-JSON body (e.g. a gateway error page) raises RpcError"""
    import httpx
    from clmm_batch.infra.rpc import RpcClient
    from clmm_batch.clmm.state_fetcher import StateFetcher
    from clmm_batch.config import DEFAULT_CLMM_PROGRAM_ID
    from clmm_batch.errors import ClmmBatchError, RpcError, ErrorCode

    print("Testing non-JSON response...")

    url = "https://a.example.com"

    def gateway_page(*args, **kwargs):
        return httpx.Response(200, text="<html>bad gateway</html>", request=httpx.Request("POST", url))

    with patch.object(httpx.Client, "post", side_effect=gateway_page):
        client = RpcClient(url)

        try:
            client.get_account_info("Account1111111111111111111111111111111111")
            assert False, "Should raise RpcError for a non-JSON body"
        except RpcError as e:
            assert e.code == ErrorCode.RPC_INVALID_RESPONSE
            assert e.endpoint == url
            assert e.original_error is not None

        fetcher = StateFetcher(client, DEFAULT_CLMM_PROGRAM_ID)
        try:
            fetcher.get_pool_state("Pool111111111111111111111111111111111111111")
            assert False, "Should raise ClmmBatchError"
        except ClmmBatchError as e:
            assert e.code == ErrorCode.RPC_INVALID_RESPONSE

    print("  Non-JSON response: PASSED")


def main():
    """Run all RPC mock tests"""
    print("=" * 60)
    print("RPC Mock Tests")
    print("=" * 60)

    tests = [
        test_rpc_config_override,
        test_rpc_client_init,
        test_rpc_call_success,
        test_rpc_call_error,
        test_rpc_rate_limit_rotates,
        test_rpc_timeout,
        test_rpc_endpoint_rotation,
        test_get_account_info,
        test_get_account_info_not_found,
        test_confirm_transaction,
        test_rpc_non_json_response,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"  FAILED: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print("=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
