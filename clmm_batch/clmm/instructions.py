"""
CLMM increase-liquidity instruction builder

Key features:
- Slippage-bounded token maximums at the pool's current price
- Auto-detection of token programs (Tokenkeg vs Token-2022)
- Ephemeral wrapped-SOL token accounts for SOL sides
- Floor-based tick array alignment
"""

import logging
import struct
from typing import List, Tuple

from solders.instruction import Instruction, AccountMeta
from solders.pubkey import Pubkey
from solders.system_program import create_account, CreateAccountParams

from .constants import (
    TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    WRAPPED_SOL_MINT,
    TOKEN_ACCOUNT_SIZE,
    TOKEN_ACCOUNT_RENT_LAMPORTS,
    TOKEN_IX_CLOSE_ACCOUNT,
    TOKEN_IX_INITIALIZE_ACCOUNT3,
    POSITION_SEED,
    TICK_ARRAY_SEED,
    MAX_UINT64,
    INCREASE_LIQUIDITY_V2_DISCRIMINATOR,
)
from .math import (
    tick_to_sqrt_price_x64,
    get_amounts_from_liquidity,
    get_amounts_with_slippage,
    get_tick_array_start_index,
)
from .pool import AmmPool
from ..infra import LocalSigner
from ..types import PositionSnapshot, BuildResult
from ..errors import InvalidRange, SlippageExceeded, ConfigurationError

logger = logging.getLogger(__name__)


def get_associated_token_address(
    owner: Pubkey,
    mint: Pubkey,
    token_program: Pubkey,
) -> Pubkey:
    """Get associated token account address"""
    seeds = [
        bytes(owner),
        bytes(token_program),
        bytes(mint),
    ]
    address, _ = Pubkey.find_program_address(seeds, Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID))
    return address


def derive_tick_array_address(
    pool: Pubkey,
    tick: int,
    tick_spacing: int,
    program_id: Pubkey,
) -> Pubkey:
    """
    Derive tick array PDA using floor-based alignment

    The start index is big-endian in the seeds.
    """
    start_index = get_tick_array_start_index(tick, tick_spacing)
    seeds = [
        TICK_ARRAY_SEED,
        bytes(pool),
        struct.pack(">i", start_index),
    ]
    address, _ = Pubkey.find_program_address(seeds, program_id)
    return address


def derive_protocol_position(
    pool: Pubkey,
    tick_lower: int,
    tick_upper: int,
    program_id: Pubkey,
) -> Pubkey:
    """Derive protocol position PDA (tick seeds are big-endian)"""
    seeds = [
        POSITION_SEED,
        bytes(pool),
        struct.pack(">i", tick_lower),
        struct.pack(">i", tick_upper),
    ]
    address, _ = Pubkey.find_program_address(seeds, program_id)
    return address


def derive_personal_position(nft_mint: Pubkey, program_id: Pubkey) -> Pubkey:
    """Derive personal position PDA from NFT mint"""
    address, _ = Pubkey.find_program_address([POSITION_SEED, bytes(nft_mint)], program_id)
    return address


def detect_token_program_for_mint(pool: AmmPool, mint: str) -> Pubkey:
    """
    Token program owning a mint

    Lookup errors propagate; a missing mint fails the request.
    """
    # WSOL always uses Tokenkeg
    if mint == WRAPPED_SOL_MINT:
        return Pubkey.from_string(TOKEN_PROGRAM_ID)

    owner = pool.state_fetcher.get_account_owner(mint)
    if owner == TOKEN_2022_PROGRAM_ID:
        return Pubkey.from_string(TOKEN_2022_PROGRAM_ID)
    return Pubkey.from_string(TOKEN_PROGRAM_ID)


def build_wrap_sol_account_instructions(
    owner: Pubkey,
    account: Pubkey,
    amount_lamports: int,
) -> List[Instruction]:
    """
    Create and initialize a fresh wrapped-SOL token account

    The account is funded with rent plus `amount_lamports` and must sign
    the transaction.
    """
    token_program = Pubkey.from_string(TOKEN_PROGRAM_ID)
    wsol_mint = Pubkey.from_string(WRAPPED_SOL_MINT)

    create_ix = create_account(CreateAccountParams(
        from_pubkey=owner,
        to_pubkey=account,
        lamports=TOKEN_ACCOUNT_RENT_LAMPORTS + amount_lamports,
        space=TOKEN_ACCOUNT_SIZE,
        owner=token_program,
    ))

    # InitializeAccount3: tag + owner, no rent sysvar
    init_accounts = [
        AccountMeta(account, is_signer=False, is_writable=True),
        AccountMeta(wsol_mint, is_signer=False, is_writable=False),
    ]
    init_ix = Instruction(token_program, bytes([TOKEN_IX_INITIALIZE_ACCOUNT3]) + bytes(owner), init_accounts)

    return [create_ix, init_ix]


def build_close_account_instruction(owner: Pubkey, account: Pubkey) -> Instruction:
    """Close a token account, returning its lamports to the owner"""
    close_accounts = [
        AccountMeta(account, is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=True, is_writable=False),
    ]
    return Instruction(Pubkey.from_string(TOKEN_PROGRAM_ID), bytes([TOKEN_IX_CLOSE_ACCOUNT]), close_accounts)


def encode_increase_liquidity_v2(liquidity: int, amount_0_max: int, amount_1_max: int) -> bytes:
    """Instruction data for increase_liquidity_v2 (base_flag = None)"""
    data = bytearray(INCREASE_LIQUIDITY_V2_DISCRIMINATOR)
    data.extend(liquidity.to_bytes(16, "little"))
    data.extend(struct.pack("<Q", amount_0_max))
    data.extend(struct.pack("<Q", amount_1_max))
    data.extend(b"\x00")
    return bytes(data)


def compute_amount_limits(
    pool: AmmPool,
    position: PositionSnapshot,
    liquidity_delta: int,
    slippage_bps: int,
) -> Tuple[int, int]:
    """
    Token maximums for a deposit of `liquidity_delta` into `position`

    Raises:
        SlippageExceeded: If the amount pulled for either side (rounded up)
            is above the tolerance-scaled exact amount
        InvalidRange: If a maximum does not fit in u64
    """
    sqrt_lower = tick_to_sqrt_price_x64(position.tick_lower)
    sqrt_upper = tick_to_sqrt_price_x64(position.tick_upper)

    required = get_amounts_from_liquidity(
        liquidity_delta, pool.sqrt_price_x64, sqrt_lower, sqrt_upper, round_up=True
    )
    maximums = get_amounts_with_slippage(
        liquidity_delta, pool.sqrt_price_x64, sqrt_lower, sqrt_upper, slippage_bps
    )

    for token in (0, 1):
        if required[token] > maximums[token]:
            raise SlippageExceeded.amount_exceeds(token, required[token], maximums[token], slippage_bps)
        if maximums[token] > MAX_UINT64:
            raise InvalidRange.amount_overflow(token, maximums[token])

    logger.debug(
        f"Amounts for liquidity {liquidity_delta}: required={required}, max={maximums} ({slippage_bps} bps)"
    )
    return maximums


def build_increase_liquidity(
    authority: str,
    pool: AmmPool,
    position: PositionSnapshot,
    liquidity_delta: int,
    slippage_bps: int,
) -> BuildResult:
    """
    Build instructions to increase liquidity of an existing position

    Args:
        authority: Owner wallet (holds the position NFT, pays the tokens)
        pool: Aggregated pool view
        position: Position snapshot
        liquidity_delta: Liquidity to add
        slippage_bps: Tolerance over the exact token amounts

    Returns:
        BuildResult with the instructions and any ephemeral signers

    Raises:
        InvalidRange: Non-positive delta, inverted or out-of-range ticks
        SlippageExceeded: Required amounts above the tolerance
        ConfigurationError: Position belongs to another pool
    """
    if liquidity_delta <= 0:
        raise InvalidRange.non_positive_liquidity(liquidity_delta)
    if position.tick_lower > position.tick_upper:
        raise InvalidRange.inverted_ticks(position.tick_lower, position.tick_upper)
    if position.pool_id != pool.address:
        raise ConfigurationError.invalid(
            "position_address",
            f"position {position.address} belongs to pool {position.pool_id}, not {pool.address}",
        )

    amount_0_max, amount_1_max = compute_amount_limits(pool, position, liquidity_delta, slippage_bps)

    state = pool.pool_state
    pid = Pubkey.from_string(pool.context.program_id)
    owner = Pubkey.from_string(authority)
    pool_pubkey = Pubkey.from_string(pool.address)
    nft_mint = Pubkey.from_string(position.nft_mint)
    mint_0 = Pubkey.from_string(state.mint_0)
    mint_1 = Pubkey.from_string(state.mint_1)

    nft_program = detect_token_program_for_mint(pool, position.nft_mint)
    nft_account = get_associated_token_address(owner, nft_mint, nft_program)

    instructions: List[Instruction] = []
    closing: List[Instruction] = []
    signers: List[LocalSigner] = []
    token_accounts = []

    for mint_str, mint, amount_max in ((state.mint_0, mint_0, amount_0_max), (state.mint_1, mint_1, amount_1_max)):
        if mint_str == WRAPPED_SOL_MINT and amount_max > 0:
            ephemeral = LocalSigner.generate()
            account = Pubkey.from_string(ephemeral.pubkey)
            instructions.extend(build_wrap_sol_account_instructions(owner, account, amount_max))
            closing.append(build_close_account_instruction(owner, account))
            signers.append(ephemeral)
            token_accounts.append(account)
        else:
            program = detect_token_program_for_mint(pool, mint_str)
            token_accounts.append(get_associated_token_address(owner, mint, program))

    # Account order for IncreaseLiquidityV2
    accounts = [
        AccountMeta(owner, is_signer=True, is_writable=False),
        AccountMeta(nft_account, is_signer=False, is_writable=False),
        AccountMeta(pool_pubkey, is_signer=False, is_writable=True),
        AccountMeta(
            derive_protocol_position(pool_pubkey, position.tick_lower, position.tick_upper, pid),
            is_signer=False, is_writable=True,
        ),
        AccountMeta(derive_personal_position(nft_mint, pid), is_signer=False, is_writable=True),
        AccountMeta(
            derive_tick_array_address(pool_pubkey, position.tick_lower, state.tick_spacing, pid),
            is_signer=False, is_writable=True,
        ),
        AccountMeta(
            derive_tick_array_address(pool_pubkey, position.tick_upper, state.tick_spacing, pid),
            is_signer=False, is_writable=True,
        ),
        AccountMeta(token_accounts[0], is_signer=False, is_writable=True),
        AccountMeta(token_accounts[1], is_signer=False, is_writable=True),
        AccountMeta(Pubkey.from_string(state.vault_0), is_signer=False, is_writable=True),
        AccountMeta(Pubkey.from_string(state.vault_1), is_signer=False, is_writable=True),
        AccountMeta(Pubkey.from_string(TOKEN_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(Pubkey.from_string(TOKEN_2022_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(mint_0, is_signer=False, is_writable=False),
        AccountMeta(mint_1, is_signer=False, is_writable=False),
    ]

    data = encode_increase_liquidity_v2(liquidity_delta, amount_0_max, amount_1_max)
    instructions.append(Instruction(pid, data, accounts))
    instructions.extend(closing)

    return BuildResult(
        instructions=tuple(instructions),
        signers=tuple(signers),
        amount_0_max=amount_0_max,
        amount_1_max=amount_1_max,
    )
