"""
Concentrated-liquidity AMM protocol support: state decoding, price math,
instruction building
"""

from .pool import AmmPool
from .state_fetcher import StateFetcher
from .instructions import build_increase_liquidity
from .math import (
    tick_to_sqrt_price_x64,
    sqrt_price_x64_to_tick,
    sqrt_price_x64_to_price,
    tick_to_price,
)

__all__ = [
    "AmmPool",
    "StateFetcher",
    "build_increase_liquidity",
    "tick_to_sqrt_price_x64",
    "sqrt_price_x64_to_tick",
    "sqrt_price_x64_to_price",
    "tick_to_price",
]
