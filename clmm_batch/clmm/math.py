"""
CLMM Math Utilities

Provides tick/price conversion and liquidity calculations on the
Q64.64 fixed-point sqrt price the pool stores.
"""

from decimal import Decimal
from fractions import Fraction
from typing import Tuple

from .constants import Q64, MAX_UINT128, MIN_TICK, MAX_TICK, TICK_ARRAY_SIZE, BPS_DENOMINATOR
from ..errors import InvalidRange


# Q64.64 values of 1.0001^(-2^i / 2), indexed by bit position
_TICK_CONSTANTS = [
    0xfffcb933bd6fb800,
    0xfff97272373d4000,
    0xfff2e50f5f657000,
    0xffe5caca7e10f000,
    0xffcb9843d60f7000,
    0xff973b41fa98e800,
    0xff2ea16466c9b000,
    0xfe5dee046a9a3800,
    0xfcbe86c7900bb000,
    0xf987a7253ac65800,
    0xf3392b0822bb6000,
    0xe7159475a2caf000,
    0xd097f3bdfd2f2000,
    0xa9f746462d9f8000,
    0x70d869a156f31c00,
    0x31be135f97ed3200,
    0x9aa508b5b85a500,
    0x5d6af8dedc582c,
    0x2216e584f5fa,
]


def tick_to_sqrt_price_x64(tick: int) -> int:
    """
    Convert tick to sqrt price in X64 fixed-point format

    Args:
        tick: Tick index

    Returns:
        Sqrt price as X64 fixed-point integer

    Raises:
        InvalidRange: If the tick is outside [MIN_TICK, MAX_TICK]
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise InvalidRange.tick_out_of_bounds(tick, MIN_TICK, MAX_TICK)

    tick_abs = abs(tick)

    ratio = _TICK_CONSTANTS[0] if (tick_abs & 0x1) != 0 else Q64

    for i in range(1, len(_TICK_CONSTANTS)):
        if (tick_abs & (1 << i)) != 0:
            ratio = (ratio * _TICK_CONSTANTS[i]) >> 64

    # ratio = 1.0001^(-|tick|/2); invert for positive ticks
    if tick > 0:
        ratio = MAX_UINT128 // ratio

    return ratio


MIN_SQRT_PRICE_X64 = tick_to_sqrt_price_x64(MIN_TICK)
MAX_SQRT_PRICE_X64 = tick_to_sqrt_price_x64(MAX_TICK)


def sqrt_price_x64_to_tick(sqrt_price_x64: int) -> int:
    """
    Convert sqrt price X64 to tick

    Returns the greatest tick whose sqrt price is <= the input, so values
    produced by tick_to_sqrt_price_x64 map back to their exact tick.

    Raises:
        InvalidRange: If the sqrt price is outside the supported range
    """
    if sqrt_price_x64 < MIN_SQRT_PRICE_X64 or sqrt_price_x64 > MAX_SQRT_PRICE_X64:
        raise InvalidRange.sqrt_price_out_of_bounds(sqrt_price_x64)

    tick_low = MIN_TICK
    tick_high = MAX_TICK + 1

    # Invariant: sqrt(tick_low) <= input < sqrt(tick_high)
    while tick_high - tick_low > 1:
        tick_mid = (tick_low + tick_high) // 2
        if tick_to_sqrt_price_x64(tick_mid) <= sqrt_price_x64:
            tick_low = tick_mid
        else:
            tick_high = tick_mid

    return tick_low


def sqrt_price_x64_to_price(
    sqrt_price_x64: int,
    decimals_0: int,
    decimals_1: int,
) -> Decimal:
    """
    Convert sqrt price X64 to human-readable price

    Args:
        sqrt_price_x64: Sqrt price in X64 format
        decimals_0: Token 0 decimals
        decimals_1: Token 1 decimals

    Returns:
        Price of token 0 in terms of token 1
    """
    # price = (sqrt_price_x64 / 2^64)^2 * 10^(decimals_0 - decimals_1)
    sqrt_price = Decimal(sqrt_price_x64) / Decimal(Q64)
    price = sqrt_price * sqrt_price

    decimal_adjustment = Decimal(10) ** (decimals_0 - decimals_1)
    return price * decimal_adjustment


def tick_to_price(
    tick: int,
    decimals_0: int,
    decimals_1: int,
) -> Decimal:
    """Convert tick to human-readable price"""
    return sqrt_price_x64_to_price(tick_to_sqrt_price_x64(tick), decimals_0, decimals_1)


def _ordered(sqrt_price_x64_a: int, sqrt_price_x64_b: int) -> Tuple[int, int]:
    if sqrt_price_x64_a > sqrt_price_x64_b:
        return sqrt_price_x64_b, sqrt_price_x64_a
    return sqrt_price_x64_a, sqrt_price_x64_b


def _amount_0_exact(liquidity: int, sqrt_price_x64_a: int, sqrt_price_x64_b: int) -> Fraction:
    # liquidity * (sqrtB - sqrtA) * Q64 / (sqrtA * sqrtB)
    sqrt_a, sqrt_b = _ordered(sqrt_price_x64_a, sqrt_price_x64_b)
    if liquidity == 0 or sqrt_a == sqrt_b:
        return Fraction(0)
    return Fraction(liquidity * (sqrt_b - sqrt_a) * Q64, sqrt_a * sqrt_b)


def _amount_1_exact(liquidity: int, sqrt_price_x64_a: int, sqrt_price_x64_b: int) -> Fraction:
    # liquidity * (sqrtB - sqrtA) / Q64
    sqrt_a, sqrt_b = _ordered(sqrt_price_x64_a, sqrt_price_x64_b)
    if liquidity == 0 or sqrt_a == sqrt_b:
        return Fraction(0)
    return Fraction(liquidity * (sqrt_b - sqrt_a), Q64)


def _round(value: Fraction, round_up: bool) -> int:
    if round_up:
        return -((-value.numerator) // value.denominator)
    return value.numerator // value.denominator


def get_token_amount_0_from_liquidity(
    liquidity: int,
    sqrt_price_x64_a: int,
    sqrt_price_x64_b: int,
    round_up: bool = False,
) -> int:
    """Calculate token 0 amount for liquidity between two sqrt prices"""
    return _round(_amount_0_exact(liquidity, sqrt_price_x64_a, sqrt_price_x64_b), round_up)


def get_token_amount_1_from_liquidity(
    liquidity: int,
    sqrt_price_x64_a: int,
    sqrt_price_x64_b: int,
    round_up: bool = False,
) -> int:
    """Calculate token 1 amount for liquidity between two sqrt prices"""
    return _round(_amount_1_exact(liquidity, sqrt_price_x64_a, sqrt_price_x64_b), round_up)


def _exact_amounts(
    liquidity: int,
    sqrt_price_current_x64: int,
    sqrt_price_x64_lower: int,
    sqrt_price_x64_upper: int,
) -> Tuple[Fraction, Fraction]:
    sqrt_lower, sqrt_upper = _ordered(sqrt_price_x64_lower, sqrt_price_x64_upper)

    if sqrt_price_current_x64 <= sqrt_lower:
        # Below range: only token 0
        return _amount_0_exact(liquidity, sqrt_lower, sqrt_upper), Fraction(0)
    if sqrt_price_current_x64 < sqrt_upper:
        # In range: both tokens
        return (
            _amount_0_exact(liquidity, sqrt_price_current_x64, sqrt_upper),
            _amount_1_exact(liquidity, sqrt_lower, sqrt_price_current_x64),
        )
    # Above range: only token 1
    return Fraction(0), _amount_1_exact(liquidity, sqrt_lower, sqrt_upper)


def get_amounts_from_liquidity(
    liquidity: int,
    sqrt_price_current_x64: int,
    sqrt_price_x64_lower: int,
    sqrt_price_x64_upper: int,
    round_up: bool = False,
) -> Tuple[int, int]:
    """
    Calculate token amounts from liquidity and price range

    Args:
        liquidity: Liquidity amount
        sqrt_price_current_x64: Current sqrt price
        sqrt_price_x64_lower: Lower bound sqrt price
        sqrt_price_x64_upper: Upper bound sqrt price
        round_up: Round each amount up (what a deposit actually pulls)

    Returns:
        (amount_0, amount_1) raw token amounts
    """
    amount_0, amount_1 = _exact_amounts(
        liquidity, sqrt_price_current_x64, sqrt_price_x64_lower, sqrt_price_x64_upper
    )
    return _round(amount_0, round_up), _round(amount_1, round_up)


def get_amounts_with_slippage(
    liquidity: int,
    sqrt_price_current_x64: int,
    sqrt_price_x64_lower: int,
    sqrt_price_x64_upper: int,
    slippage_bps: int,
) -> Tuple[int, int]:
    """
    Maximum token amounts a caller accepts for a liquidity deposit

    Each side is the exact amount scaled by (1 + slippage_bps / 10000),
    rounded down.
    """
    amount_0, amount_1 = _exact_amounts(
        liquidity, sqrt_price_current_x64, sqrt_price_x64_lower, sqrt_price_x64_upper
    )
    scale = Fraction(BPS_DENOMINATOR + slippage_bps, BPS_DENOMINATOR)
    return _round(amount_0 * scale, False), _round(amount_1 * scale, False)


def get_tick_array_start_index(tick: int, tick_spacing: int) -> int:
    """
    Calculate tick array start index for a given tick

    Args:
        tick: Tick index
        tick_spacing: Pool tick spacing

    Returns:
        Start tick of the tick array containing this tick
    """
    ticks_in_array = TICK_ARRAY_SIZE * tick_spacing

    # Floor division rounds towards negative infinity, as tick arrays do
    return (tick // ticks_in_array) * ticks_in_array
