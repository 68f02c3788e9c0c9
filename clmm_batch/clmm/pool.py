"""
AmmPool - one pool's state bundled with the context that fetched it
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from .math import sqrt_price_x64_to_price, tick_to_price
from ..types import PoolSnapshot, ConfigSnapshot

if TYPE_CHECKING:
    from ..context import ChainContext
    from .state_fetcher import StateFetcher


class AmmPool:
    """
    Aggregated view of a pool for a single request

    Built once per request from the pool and config snapshots; the
    fetcher handle serves further lookups (positions, mint owners).
    """

    def __init__(
        self,
        context: "ChainContext",
        address: str,
        pool_state: PoolSnapshot,
        amm_config: ConfigSnapshot,
        state_fetcher: "StateFetcher",
    ):
        self.context = context
        self.address = address
        self.pool_state = pool_state
        self.amm_config = amm_config
        self.state_fetcher = state_fetcher

    @property
    def sqrt_price_x64(self) -> int:
        return self.pool_state.sqrt_price_x64

    @property
    def tick_current(self) -> int:
        return self.pool_state.tick_current

    @property
    def tick_spacing(self) -> int:
        return self.pool_state.tick_spacing

    @property
    def decimals(self):
        """(decimals_0, decimals_1)"""
        return self.pool_state.mint_decimals_0, self.pool_state.mint_decimals_1

    def token_price(self) -> Decimal:
        """Current price of token 0 in token 1"""
        return sqrt_price_x64_to_price(self.sqrt_price_x64, *self.decimals)

    def tick_price(self, tick: int) -> Decimal:
        """Price of token 0 in token 1 at a tick"""
        return tick_to_price(tick, *self.decimals)

    def __repr__(self) -> str:
        return f"AmmPool({self.address[:8]}..., tick={self.tick_current}, fee={self.amm_config.fee_tier_bps}bps)"
