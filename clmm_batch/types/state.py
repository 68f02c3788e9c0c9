"""
Decoded on-chain account snapshots

Each snapshot is decoded once at the fetch boundary and is only valid for
the instant it was read.

Token Naming Convention:
    - token0 / mint_0: The first token in the pool (base token)
    - token1 / mint_1: The second token in the pool (quote token)
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PoolSnapshot:
    """
    CLMM pool state

    Attributes:
        address: Pool account address
        amm_config: Referenced AmmConfig account
        owner: Pool creator
        mint_0 / mint_1: Token mints
        vault_0 / vault_1: Pool token vaults
        observation: Observation account
        mint_decimals_0 / mint_decimals_1: Token decimals
        tick_spacing: Tick spacing of the pool
        liquidity: Active liquidity
        sqrt_price_x64: Current sqrt price (Q64.64)
        tick_current: Current tick
        status: Pool status bitmask
    """
    address: str
    amm_config: str
    owner: str
    mint_0: str
    mint_1: str
    vault_0: str
    vault_1: str
    observation: str
    mint_decimals_0: int
    mint_decimals_1: int
    tick_spacing: int
    liquidity: int
    sqrt_price_x64: int
    tick_current: int
    fee_growth_global_0_x64: int = 0
    fee_growth_global_1_x64: int = 0
    status: int = 0


@dataclass(frozen=True)
class ConfigSnapshot:
    """
    AmmConfig (fee tier) shared by pools

    Fee rates are ratios, e.g. trade_fee_rate=0.0025 for a 0.25% tier.
    """
    address: str
    index: int
    owner: str
    protocol_fee_rate: Decimal
    trade_fee_rate: Decimal
    tick_spacing: int
    fund_fee_rate: Decimal

    @property
    def fee_tier_bps(self) -> int:
        """Trade fee in basis points"""
        return int(self.trade_fee_rate * 10000)


@dataclass(frozen=True)
class PositionSnapshot:
    """
    Personal position state

    Invariant: tick_lower <= tick_upper for positions created by the program.
    """
    address: str
    nft_mint: str
    pool_id: str
    tick_lower: int
    tick_upper: int
    liquidity: int
    fee_growth_inside_0_last_x64: int = 0
    fee_growth_inside_1_last_x64: int = 0
    token_fees_owed_0: int = 0
    token_fees_owed_1: int = 0
