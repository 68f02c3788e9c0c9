"""
Position request definition
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PositionRequest:
    """
    One liquidity increase to perform

    Attributes:
        pool_address: CLMM pool account (base58)
        position_address: Personal position account (base58)
        liquidity_delta: Liquidity to add, must be positive
        slippage_bps: Tolerance on token amounts in basis points
    """
    pool_address: str
    position_address: str
    liquidity_delta: int
    slippage_bps: int = 0

    def __str__(self) -> str:
        return (
            f"PositionRequest(pool={self.pool_address[:8]}..., "
            f"position={self.position_address[:8]}..., "
            f"liquidity={self.liquidity_delta}, slippage={self.slippage_bps}bps)"
        )
