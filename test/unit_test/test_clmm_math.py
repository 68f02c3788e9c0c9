"""
Test CLMM Math Module

Tests for tick/price conversions and liquidity amount calculations.
"""

import sys
from decimal import Decimal
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

Q64 = 2 ** 64


def _sample_ticks():
    from clmm_batch.clmm.constants import MIN_TICK, MAX_TICK

    ticks = set(range(-300, 301))
    ticks.update(range(MIN_TICK, MAX_TICK + 1, 7919))
    ticks.update([MIN_TICK, MIN_TICK + 1, MAX_TICK - 1, MAX_TICK, 65535, 65536, -65536, 262143, -262144])
    return sorted(ticks)


def test_tick_to_sqrt_price_x64():
    """Test tick to sqrt price conversion"""
    from clmm_batch.clmm.math import tick_to_sqrt_price_x64
    from clmm_batch.clmm.constants import MIN_TICK, MAX_TICK
    from clmm_batch.errors import InvalidRange

    print("Testing tick_to_sqrt_price_x64...")

    # Tick 0 should give sqrt(1) * 2^64
    assert tick_to_sqrt_price_x64(0) == Q64

    # 1.0001^(100/2) ~= 1.0050123
    ratio = Decimal(tick_to_sqrt_price_x64(100)) / Decimal(Q64)
    assert abs(ratio - Decimal("1.0050123")) < Decimal("0.000001"), ratio

    ratio = Decimal(tick_to_sqrt_price_x64(-100)) / Decimal(Q64)
    assert abs(ratio - Decimal("0.9950127")) < Decimal("0.000001"), ratio

    for bad_tick in (MIN_TICK - 1, MAX_TICK + 1):
        try:
            tick_to_sqrt_price_x64(bad_tick)
            assert False, f"Should raise for tick {bad_tick}"
        except InvalidRange:
            pass

    print("  tick_to_sqrt_price_x64: PASSED")


def test_sqrt_price_strictly_increasing():
    """Test sqrt price is strictly increasing in tick"""
    from clmm_batch.clmm.math import tick_to_sqrt_price_x64

    print("Testing sqrt price monotonicity...")

    ticks = _sample_ticks()
    values = [tick_to_sqrt_price_x64(t) for t in ticks]
    for (t_a, v_a), (t_b, v_b) in zip(zip(ticks, values), zip(ticks[1:], values[1:])):
        assert v_a < v_b, f"sqrt({t_a})={v_a} not below sqrt({t_b})={v_b}"

    print("  sqrt price monotonicity: PASSED")


def test_sqrt_price_x64_to_tick_inverse():
    """Test sqrt price to tick recovers the original tick"""
    from clmm_batch.clmm.math import tick_to_sqrt_price_x64, sqrt_price_x64_to_tick

    print("Testing sqrt_price_x64_to_tick inverse...")

    for tick in _sample_ticks():
        assert sqrt_price_x64_to_tick(tick_to_sqrt_price_x64(tick)) == tick, tick

    # Between two ticks: rounds down
    between = (tick_to_sqrt_price_x64(10) + tick_to_sqrt_price_x64(11)) // 2
    assert sqrt_price_x64_to_tick(between) == 10

    between = (tick_to_sqrt_price_x64(-11) + tick_to_sqrt_price_x64(-10)) // 2
    assert sqrt_price_x64_to_tick(between) == -11

    print("  sqrt_price_x64_to_tick inverse: PASSED")


def test_sqrt_price_x64_to_tick_bounds():
    """Test sqrt price outside the supported range is rejected"""
    from clmm_batch.clmm.math import sqrt_price_x64_to_tick, MIN_SQRT_PRICE_X64, MAX_SQRT_PRICE_X64
    from clmm_batch.errors import InvalidRange

    print("Testing sqrt_price_x64_to_tick bounds...")

    for bad in (0, MIN_SQRT_PRICE_X64 - 1, MAX_SQRT_PRICE_X64 + 1):
        try:
            sqrt_price_x64_to_tick(bad)
            assert False, f"Should raise for {bad}"
        except InvalidRange:
            pass

    print("  sqrt_price_x64_to_tick bounds: PASSED")


def test_sqrt_price_x64_to_price():
    """Test sqrt price to human-readable price conversion"""
    from clmm_batch.clmm.math import sqrt_price_x64_to_price, tick_to_price

    print("Testing sqrt_price_x64_to_price...")

    assert sqrt_price_x64_to_price(Q64, 6, 6) == Decimal(1)

    # 9 vs 6 decimals scales by 10^3
    assert sqrt_price_x64_to_price(Q64, 9, 6) == Decimal(1000)
    assert sqrt_price_x64_to_price(2 * Q64, 6, 6) == Decimal(4)

    # Non-decreasing in the sqrt price for fixed decimals
    previous = None
    for sqrt_price in range(Q64 - 50, Q64 + 50):
        price = sqrt_price_x64_to_price(sqrt_price, 9, 6)
        if previous is not None:
            assert price >= previous
        previous = price

    assert tick_to_price(-100, 9, 6) < tick_to_price(0, 9, 6) < tick_to_price(100, 9, 6)

    print("  sqrt_price_x64_to_price: PASSED")


def test_amounts_from_liquidity():
    """Test token amounts below, inside, and above the range"""
    from clmm_batch.clmm.math import tick_to_sqrt_price_x64, get_amounts_from_liquidity

    print("Testing get_amounts_from_liquidity...")

    lower = tick_to_sqrt_price_x64(-100)
    upper = tick_to_sqrt_price_x64(100)
    liquidity = 10 ** 9

    # Below range: only token 0
    amount_0, amount_1 = get_amounts_from_liquidity(liquidity, tick_to_sqrt_price_x64(-200), lower, upper)
    assert amount_0 > 0 and amount_1 == 0

    # In range: both tokens, symmetric around tick 0
    amount_0, amount_1 = get_amounts_from_liquidity(liquidity, Q64, lower, upper)
    assert amount_0 > 0 and amount_1 > 0
    assert abs(amount_0 - amount_1) <= 1

    # Above range: only token 1
    amount_0, amount_1 = get_amounts_from_liquidity(liquidity, tick_to_sqrt_price_x64(200), lower, upper)
    assert amount_0 == 0 and amount_1 > 0

    # Rounding up never takes less, and at most one unit more
    floor_amounts = get_amounts_from_liquidity(1000, Q64, lower, upper)
    ceil_amounts = get_amounts_from_liquidity(1000, Q64, lower, upper, round_up=True)
    for low, high in zip(floor_amounts, ceil_amounts):
        assert 0 <= high - low <= 1

    print("  get_amounts_from_liquidity: PASSED")


def test_amounts_with_slippage():
    """Test slippage-scaled maximum amounts"""
    from clmm_batch.clmm.math import (
        tick_to_sqrt_price_x64,
        get_amounts_from_liquidity,
        get_amounts_with_slippage,
    )

    print("Testing get_amounts_with_slippage...")

    lower = tick_to_sqrt_price_x64(-100)
    upper = tick_to_sqrt_price_x64(100)

    # 1000 liquidity over +-100 ticks needs ~4.9875 of each token
    assert get_amounts_from_liquidity(1000, Q64, lower, upper, round_up=True) == (5, 5)
    assert get_amounts_with_slippage(1000, Q64, lower, upper, 50) == (5, 5)
    assert get_amounts_with_slippage(1000, Q64, lower, upper, 0) == (4, 4)

    # 100% tolerance doubles the exact amount
    exact = get_amounts_from_liquidity(10 ** 12, Q64, lower, upper)
    doubled = get_amounts_with_slippage(10 ** 12, Q64, lower, upper, 10_000)
    for single, double in zip(exact, doubled):
        assert 2 * single <= double <= 2 * single + 2

    print("  get_amounts_with_slippage: PASSED")


def test_tick_array_start_index():
    """Test tick array start index calculation"""
    from clmm_batch.clmm.math import get_tick_array_start_index

    print("Testing get_tick_array_start_index...")

    assert get_tick_array_start_index(0, 1) == 0
    assert get_tick_array_start_index(59, 1) == 0
    assert get_tick_array_start_index(60, 1) == 60
    assert get_tick_array_start_index(-1, 1) == -60
    assert get_tick_array_start_index(-601, 10) == -1200
    assert get_tick_array_start_index(100, 10) == 0

    print("  get_tick_array_start_index: PASSED")


def main():
    """Run all math tests"""
    print("=" * 60)
    print("CLMM Math Tests")
    print("=" * 60)

    tests = [
        test_tick_to_sqrt_price_x64,
        test_sqrt_price_strictly_increasing,
        test_sqrt_price_x64_to_tick_inverse,
        test_sqrt_price_x64_to_tick_bounds,
        test_sqrt_price_x64_to_price,
        test_amounts_from_liquidity,
        test_amounts_with_slippage,
        test_tick_array_start_index,
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
