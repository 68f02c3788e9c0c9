"""
CLMM program constants

Program ids, PDA seeds, Anchor discriminators and fixed-point bounds.
"""

import hashlib


def _anchor_discriminator(name: str) -> bytes:
    """Compute Anchor discriminator for instruction name"""
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:8]


def _anchor_account_discriminator(name: str) -> bytes:
    """Compute Anchor discriminator for account name"""
    return hashlib.sha256(f"account:{name}".encode("utf-8")).digest()[:8]


# Token Programs
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"

# Associated Token Program
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

# Wrapped SOL mint
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"

# SPL token account size and its rent-exempt minimum
TOKEN_ACCOUNT_SIZE = 165
TOKEN_ACCOUNT_RENT_LAMPORTS = 2_039_280

# SPL token instruction tags
TOKEN_IX_CLOSE_ACCOUNT = 9
TOKEN_IX_INITIALIZE_ACCOUNT3 = 18

# PDA seeds
POSITION_SEED = b"position"
TICK_ARRAY_SEED = b"tick_array"

# Tick array size (60 ticks per tick array)
TICK_ARRAY_SIZE = 60

# Tick bounds
MIN_TICK = -443636
MAX_TICK = 443636

# Q64 constant for fixed-point math
Q64 = 2 ** 64

# Max u128 / u64
MAX_UINT128 = 2 ** 128 - 1
MAX_UINT64 = 2 ** 64 - 1

# Basis points denominator
BPS_DENOMINATOR = 10_000

# Anchor discriminators for instructions
INCREASE_LIQUIDITY_V2_DISCRIMINATOR = _anchor_discriminator("increase_liquidity_v2")

# Account discriminators for parsing
ACCOUNT_DISCRIMINATORS = {
    "PoolState": _anchor_account_discriminator("PoolState"),
    "AmmConfig": _anchor_account_discriminator("AmmConfig"),
    "PersonalPositionState": _anchor_account_discriminator("PersonalPositionState"),
}
