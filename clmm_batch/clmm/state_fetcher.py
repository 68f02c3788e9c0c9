"""
CLMM account state fetcher

Reads pool, config and personal position accounts over RPC and decodes
them into snapshots.
"""

import base64
import logging
import struct
from decimal import Decimal
from typing import Any, Dict

import base58

from .constants import ACCOUNT_DISCRIMINATORS
from ..infra import RpcClient
from ..types import PoolSnapshot, ConfigSnapshot, PositionSnapshot
from ..errors import AccountNotFound

logger = logging.getLogger(__name__)

# Smallest data length holding every decoded field
POOL_STATE_MIN_SIZE = 390
AMM_CONFIG_MIN_SIZE = 57
PERSONAL_POSITION_MIN_SIZE = 145

# Fee rates are stored in hundredths of a basis point
FEE_RATE_DENOMINATOR = Decimal(1_000_000)


def _pubkey_from_bytes(data: bytes) -> str:
    """Convert 32 bytes to base58 pubkey string"""
    return base58.b58encode(bytes(data)).decode("ascii")


def _check_layout(kind: str, address: str, data: bytes, min_size: int):
    if len(data) < min_size:
        raise AccountNotFound.invalid_data(kind, address, f"expected at least {min_size} bytes, got {len(data)}")
    if data[:8] != ACCOUNT_DISCRIMINATORS[kind]:
        raise AccountNotFound.invalid_data(kind, address, "account discriminator mismatch")


def parse_pool_state(address: str, data: bytes) -> PoolSnapshot:
    """
    Parse CLMM pool state account

    Layout:
    - blob(8): discriminator
    - u8: bump
    - publicKey(32) x7: ammConfig, owner, mint0, mint1, vault0, vault1, observation
    - u8 x2: mint decimals
    - u16: tickSpacing
    - u128: liquidity
    - u128: sqrtPriceX64
    - s32: tickCurrent
    - u16 x2: padding
    - u128 x2: feeGrowthGlobal
    - u64 x2: protocolFees
    - u128 x4: swap in/out totals
    - u8: status
    - ... (rewards, bitmaps; not decoded)
    """
    _check_layout("PoolState", address, data, POOL_STATE_MIN_SIZE)

    offset = 9  # discriminator + bump

    keys = []
    for _ in range(7):
        keys.append(_pubkey_from_bytes(data[offset:offset + 32]))
        offset += 32
    amm_config, owner, mint_0, mint_1, vault_0, vault_1, observation = keys

    mint_decimals_0 = data[offset]
    mint_decimals_1 = data[offset + 1]
    offset += 2

    tick_spacing = struct.unpack_from("<H", data, offset)[0]
    offset += 2

    liquidity = int.from_bytes(data[offset:offset + 16], "little")
    offset += 16

    sqrt_price_x64 = int.from_bytes(data[offset:offset + 16], "little")
    offset += 16

    tick_current = struct.unpack_from("<i", data, offset)[0]
    offset += 4

    # padding
    offset += 4

    fee_growth_global_0 = int.from_bytes(data[offset:offset + 16], "little")
    offset += 16
    fee_growth_global_1 = int.from_bytes(data[offset:offset + 16], "little")
    offset += 16

    # protocol fees (2 x u64) and swap totals (4 x u128)
    offset += 16 + 64

    status = data[offset]

    return PoolSnapshot(
        address=address,
        amm_config=amm_config,
        owner=owner,
        mint_0=mint_0,
        mint_1=mint_1,
        vault_0=vault_0,
        vault_1=vault_1,
        observation=observation,
        mint_decimals_0=mint_decimals_0,
        mint_decimals_1=mint_decimals_1,
        tick_spacing=tick_spacing,
        liquidity=liquidity,
        sqrt_price_x64=sqrt_price_x64,
        tick_current=tick_current,
        fee_growth_global_0_x64=fee_growth_global_0,
        fee_growth_global_1_x64=fee_growth_global_1,
        status=status,
    )


def parse_amm_config(address: str, data: bytes) -> ConfigSnapshot:
    """
    Parse AmmConfig account

    Layout: disc(8) bump(u8) index(u16) owner(32) protocol_fee_rate(u32)
    trade_fee_rate(u32) tick_spacing(u16) fund_fee_rate(u32)
    """
    _check_layout("AmmConfig", address, data, AMM_CONFIG_MIN_SIZE)

    index = struct.unpack_from("<H", data, 9)[0]
    owner = _pubkey_from_bytes(data[11:43])
    protocol_fee_rate, trade_fee_rate = struct.unpack_from("<II", data, 43)
    tick_spacing = struct.unpack_from("<H", data, 51)[0]
    fund_fee_rate = struct.unpack_from("<I", data, 53)[0]

    return ConfigSnapshot(
        address=address,
        index=index,
        owner=owner,
        protocol_fee_rate=Decimal(protocol_fee_rate) / FEE_RATE_DENOMINATOR,
        trade_fee_rate=Decimal(trade_fee_rate) / FEE_RATE_DENOMINATOR,
        tick_spacing=tick_spacing,
        fund_fee_rate=Decimal(fund_fee_rate) / FEE_RATE_DENOMINATOR,
    )


def parse_personal_position(address: str, data: bytes) -> PositionSnapshot:
    """
    Parse PersonalPositionState account

    Layout: disc(8) bump(u8) nft_mint(32) pool_id(32) tick_lower(i32)
    tick_upper(i32) liquidity(u128) fee_growth_inside_0/1(u128)
    token_fees_owed_0/1(u64)
    """
    _check_layout("PersonalPositionState", address, data, PERSONAL_POSITION_MIN_SIZE)

    offset = 9
    nft_mint = _pubkey_from_bytes(data[offset:offset + 32])
    offset += 32
    pool_id = _pubkey_from_bytes(data[offset:offset + 32])
    offset += 32

    tick_lower, tick_upper = struct.unpack_from("<ii", data, offset)
    offset += 8

    liquidity = int.from_bytes(data[offset:offset + 16], "little")
    offset += 16
    fee_growth_inside_0 = int.from_bytes(data[offset:offset + 16], "little")
    offset += 16
    fee_growth_inside_1 = int.from_bytes(data[offset:offset + 16], "little")
    offset += 16

    fees_owed_0, fees_owed_1 = struct.unpack_from("<QQ", data, offset)

    return PositionSnapshot(
        address=address,
        nft_mint=nft_mint,
        pool_id=pool_id,
        tick_lower=tick_lower,
        tick_upper=tick_upper,
        liquidity=liquidity,
        fee_growth_inside_0_last_x64=fee_growth_inside_0,
        fee_growth_inside_1_last_x64=fee_growth_inside_1,
        token_fees_owed_0=fees_owed_0,
        token_fees_owed_1=fees_owed_1,
    )


class StateFetcher:
    """
    Resolves CLMM account addresses to decoded snapshots

    Usage:
        fetcher = StateFetcher(rpc, program_id)
        pool = fetcher.get_pool_state(pool_address)
        config = fetcher.get_amm_config(pool.amm_config)
    """

    def __init__(self, rpc: RpcClient, program_id: str):
        self._rpc = rpc
        self._program_id = program_id

    @property
    def program_id(self) -> str:
        return self._program_id

    def _get_account(self, kind: str, address: str) -> Dict[str, Any]:
        account = self._rpc.get_account_info(address, encoding="base64")
        if not account:
            raise AccountNotFound.not_found(kind, address)
        return account

    def _get_program_data(self, kind: str, address: str) -> bytes:
        account = self._get_account(kind, address)

        owner = account.get("owner")
        if owner != self._program_id:
            raise AccountNotFound.wrong_owner(kind, address, owner, self._program_id)

        data = account.get("data", [])
        if isinstance(data, list) and len(data) > 0:
            return base64.b64decode(data[0])
        if isinstance(data, str):
            return base64.b64decode(data)
        raise AccountNotFound.invalid_data(kind, address, "invalid account data format")

    def get_pool_state(self, address: str) -> PoolSnapshot:
        pool = parse_pool_state(address, self._get_program_data("PoolState", address))
        logger.debug(f"Fetched pool {address}: tick={pool.tick_current}, spacing={pool.tick_spacing}")
        return pool

    def get_amm_config(self, address: str) -> ConfigSnapshot:
        return parse_amm_config(address, self._get_program_data("AmmConfig", address))

    def get_personal_position(self, address: str) -> PositionSnapshot:
        position = parse_personal_position(address, self._get_program_data("PersonalPositionState", address))
        logger.debug(
            f"Fetched position {address}: ticks=[{position.tick_lower}, {position.tick_upper}], "
            f"liquidity={position.liquidity}"
        )
        return position

    def get_account_owner(self, address: str) -> str:
        """Owning program of any account (e.g. a mint's token program)"""
        account = self._get_account("Account", address)
        return account.get("owner")
