"""
Test Increase Liquidity Instruction Builder

Tests for slippage limits, range validation, account layout and
wrapped-SOL handling.
"""

import struct
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))
sys.path.insert(0, str(Path(__file__).parent))


def _pool_and_position(tick_lower=-100, tick_upper=100, **pool_kwargs):
    from fakes import FakeFetcher, make_context
    from clmm_batch.clmm import AmmPool

    fetcher = FakeFetcher()
    request = fetcher.add_request(tick_lower=tick_lower, tick_upper=tick_upper, **pool_kwargs)
    context = make_context()
    pool_state = fetcher.pools[request.pool_address]
    pool = AmmPool(context, request.pool_address, pool_state, fetcher.configs[pool_state.amm_config], fetcher)
    return pool, fetcher.positions[request.position_address], context, fetcher


def test_build_in_range():
    """Test instruction data and accounts for an in-range position"""
    from solders.pubkey import Pubkey
    from clmm_batch.clmm.constants import INCREASE_LIQUIDITY_V2_DISCRIMINATOR, TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID
    from clmm_batch.clmm.instructions import (
        build_increase_liquidity,
        derive_tick_array_address,
        derive_protocol_position,
        derive_personal_position,
    )

    print("Testing build_increase_liquidity in range...")

    pool, position, context, _ = _pool_and_position()
    authority = context.wallet.pubkey

    result = build_increase_liquidity(authority, pool, position, 1000, 50)

    assert len(result.instructions) == 1
    assert result.signers == ()
    assert (result.amount_0_max, result.amount_1_max) == (5, 5)

    ix = result.instructions[0]
    pid = Pubkey.from_string(context.program_id)
    assert ix.program_id == pid

    data = bytes(ix.data)
    assert data[:8] == INCREASE_LIQUIDITY_V2_DISCRIMINATOR
    assert int.from_bytes(data[8:24], "little") == 1000
    assert struct.unpack("<QQ", data[24:40]) == (5, 5)
    assert data[40:] == b"\x00"

    accounts = ix.accounts
    assert len(accounts) == 15
    assert str(accounts[0].pubkey) == authority and accounts[0].is_signer
    pool_key = Pubkey.from_string(pool.address)
    assert accounts[2].pubkey == pool_key and accounts[2].is_writable
    assert accounts[3].pubkey == derive_protocol_position(pool_key, -100, 100, pid)
    assert accounts[4].pubkey == derive_personal_position(Pubkey.from_string(position.nft_mint), pid)
    assert accounts[5].pubkey == derive_tick_array_address(pool_key, -120, 1, pid)
    assert accounts[6].pubkey == derive_tick_array_address(pool_key, 60, 1, pid)
    assert accounts[5].pubkey != accounts[6].pubkey
    assert str(accounts[9].pubkey) == pool.pool_state.vault_0
    assert str(accounts[10].pubkey) == pool.pool_state.vault_1
    assert str(accounts[11].pubkey) == TOKEN_PROGRAM_ID
    assert str(accounts[12].pubkey) == TOKEN_2022_PROGRAM_ID
    assert str(accounts[13].pubkey) == pool.pool_state.mint_0
    assert str(accounts[14].pubkey) == pool.pool_state.mint_1

    print("  build_increase_liquidity in range: PASSED")


def test_zero_slippage_in_range_fails():
    """Test zero tolerance fails when the deposit rounds up"""
    from clmm_batch.clmm.instructions import build_increase_liquidity
    from clmm_batch.errors import SlippageExceeded

    print("Testing zero slippage...")

    pool, position, context, _ = _pool_and_position()

    try:
        build_increase_liquidity(context.wallet.pubkey, pool, position, 1000, 0)
        assert False, "Should raise SlippageExceeded"
    except SlippageExceeded as e:
        assert e.token == 0
        assert e.required == 5
        assert e.maximum == 4

    print("  Zero slippage: PASSED")


def test_out_of_range_single_side():
    """Test a position above the price only takes token 0"""
    from clmm_batch.clmm.instructions import build_increase_liquidity

    print("Testing out-of-range position...")

    pool, position, context, _ = _pool_and_position(tick_lower=100, tick_upper=200)

    result = build_increase_liquidity(context.wallet.pubkey, pool, position, 10 ** 9, 100)
    assert result.amount_0_max > 0
    assert result.amount_1_max == 0

    print("  Out-of-range position: PASSED")


def test_invalid_range():
    """Test inverted ticks and non-positive delta are rejected"""
    from clmm_batch.clmm.instructions import build_increase_liquidity
    from clmm_batch.errors import InvalidRange, ErrorCode

    print("Testing invalid range...")

    pool, position, context, _ = _pool_and_position(tick_lower=100, tick_upper=-100)
    try:
        build_increase_liquidity(context.wallet.pubkey, pool, position, 1000, 50)
        assert False, "Should raise InvalidRange"
    except InvalidRange as e:
        assert e.code == ErrorCode.RANGE_INVERTED

    pool, position, context, _ = _pool_and_position()
    for delta in (0, -5):
        try:
            build_increase_liquidity(context.wallet.pubkey, pool, position, delta, 50)
            assert False, "Should raise InvalidRange"
        except InvalidRange as e:
            assert e.code == ErrorCode.RANGE_NON_POSITIVE_LIQUIDITY

    pool, position, context, _ = _pool_and_position(tick_lower=-500000, tick_upper=100)
    try:
        build_increase_liquidity(context.wallet.pubkey, pool, position, 1000, 50)
        assert False, "Should raise InvalidRange"
    except InvalidRange as e:
        assert e.code == ErrorCode.RANGE_TICK_OUT_OF_BOUNDS

    print("  Invalid range: PASSED")


def test_position_of_other_pool():
    """Test a position belonging to another pool is rejected"""
    from dataclasses import replace
    from fakes import new_address
    from clmm_batch.clmm.instructions import build_increase_liquidity
    from clmm_batch.errors import ConfigurationError

    print("Testing position/pool mismatch...")

    pool, position, context, _ = _pool_and_position()
    foreign = replace(position, pool_id=new_address())

    try:
        build_increase_liquidity(context.wallet.pubkey, pool, foreign, 1000, 50)
        assert False, "Should raise ConfigurationError"
    except ConfigurationError:
        pass

    print("  Position/pool mismatch: PASSED")


def test_wrapped_sol_side():
    """Test wrapped SOL uses an ephemeral token account and signer"""
    from solders.pubkey import Pubkey
    from solders.system_program import decode_create_account
    from fakes import WRAPPED_SOL_MINT
    from clmm_batch.clmm.constants import TOKEN_ACCOUNT_RENT_LAMPORTS, TOKEN_PROGRAM_ID
    from clmm_batch.clmm.instructions import build_increase_liquidity

    print("Testing wrapped SOL side...")

    pool, position, context, _ = _pool_and_position(mint_0=WRAPPED_SOL_MINT)
    result = build_increase_liquidity(context.wallet.pubkey, pool, position, 10 ** 9, 100)

    assert len(result.signers) == 1
    ephemeral = result.signers[0]
    assert ephemeral.pubkey != context.wallet.pubkey

    create_ix, init_ix, increase_ix, close_ix = result.instructions

    params = decode_create_account(create_ix)
    assert str(params.to_pubkey) == ephemeral.pubkey
    assert params.lamports == TOKEN_ACCOUNT_RENT_LAMPORTS + result.amount_0_max
    assert str(params.owner) == TOKEN_PROGRAM_ID

    assert bytes(init_ix.data) == bytes([18]) + bytes(Pubkey.from_string(context.wallet.pubkey))
    assert str(increase_ix.accounts[7].pubkey) == ephemeral.pubkey
    assert bytes(close_ix.data) == bytes([9])
    assert str(close_ix.accounts[0].pubkey) == ephemeral.pubkey

    print("  Wrapped SOL side: PASSED")


def test_token_2022_mint():
    """Test Token-2022 mints use Token-2022 associated accounts"""
    from solders.pubkey import Pubkey
    from clmm_batch.clmm.constants import TOKEN_2022_PROGRAM_ID
    from clmm_batch.clmm.instructions import build_increase_liquidity, get_associated_token_address

    print("Testing Token-2022 mint...")

    pool, position, context, fetcher = _pool_and_position()
    fetcher.owners[pool.pool_state.mint_1] = TOKEN_2022_PROGRAM_ID

    result = build_increase_liquidity(context.wallet.pubkey, pool, position, 1000, 50)

    expected = get_associated_token_address(
        Pubkey.from_string(context.wallet.pubkey),
        Pubkey.from_string(pool.pool_state.mint_1),
        Pubkey.from_string(TOKEN_2022_PROGRAM_ID),
    )
    assert result.instructions[0].accounts[8].pubkey == expected

    print("  Token-2022 mint: PASSED")


def main():
    """Run all instruction builder tests"""
    print("=" * 60)
    print("Instruction Builder Tests")
    print("=" * 60)

    tests = [
        test_build_in_range,
        test_zero_slippage_in_range_fails,
        test_out_of_range_single_side,
        test_invalid_range,
        test_position_of_other_pool,
        test_wrapped_sol_side,
        test_token_2022_mint,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"  FAILED: {e}")
            failed += 1

    print("=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
