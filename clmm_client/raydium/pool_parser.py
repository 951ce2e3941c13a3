"""
Raydium CLMM Pool State Parser

Decodes pool-level program accounts (AmmConfig, PoolState, tick array
bitmap extension) and SPL mint accounts from raw account data.
"""

import base64
import logging
import struct
from typing import Any, Optional, Tuple, Union

import base58

from .constants import (
    ACCOUNT_DISCRIMINATORS,
    AMM_CONFIG_LEN,
    POOL_STATE_LEN,
    TICK_ARRAY_BITMAP_EXTENSION_LEN,
    REWARD_INFO_LEN,
    REWARD_NUM,
    EXTENSION_TICKARRAY_BITMAP_SIZE,
    MINT_DECIMALS_OFFSET,
    MINT_LEN,
    TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
)
from ..errors import SnapshotDecodeError
from ..types import AmmConfig, MintInfo, PoolState, RewardInfo, TickArrayBitmapExtension

logger = logging.getLogger(__name__)

AccountData = Union[bytes, bytearray, str, list]


def decode_account_data(data: AccountData) -> bytes:
    """
    Normalize account data to bytes

    Accepts raw bytes, a base64 string, or the RPC ["<base64>", "base64"] pair.
    """
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, list) and len(data) > 0:
        data = data[0]
    if isinstance(data, str):
        try:
            return base64.b64decode(data, validate=True)
        except ValueError as e:
            raise SnapshotDecodeError(f"Account data is not valid base64: {e}") from e
    raise SnapshotDecodeError(f"Unsupported account data type: {type(data).__name__}")


def check_account(data: bytes, account_type: str, expected_len: int) -> None:
    """
    Validate length and Anchor discriminator

    Raises:
        SnapshotDecodeError: Buffer too short or discriminator mismatch
    """
    if len(data) < expected_len:
        raise SnapshotDecodeError.bad_length(account_type, expected_len, len(data))
    if data[:8] != ACCOUNT_DISCRIMINATORS[account_type]:
        raise SnapshotDecodeError.bad_discriminator(account_type, data[:8])


def pubkey_from_bytes(data: bytes) -> str:
    """Convert 32 bytes to base58 pubkey string"""
    return base58.b58encode(data).decode("ascii")


def read_pubkey(data: bytes, offset: int) -> Tuple[str, int]:
    return pubkey_from_bytes(data[offset:offset + 32]), offset + 32


def read_u128(data: bytes, offset: int) -> Tuple[int, int]:
    return int.from_bytes(data[offset:offset + 16], "little"), offset + 16


def read_i128(data: bytes, offset: int) -> Tuple[int, int]:
    return int.from_bytes(data[offset:offset + 16], "little", signed=True), offset + 16


def read(fmt: str, data: bytes, offset: int) -> Tuple[Any, int]:
    """Unpack a single little-endian struct value"""
    value = struct.unpack_from("<" + fmt, data, offset)[0]
    return value, offset + struct.calcsize("<" + fmt)


def parse_amm_config(address: str, account_data: AccountData, slot: Optional[int] = None) -> AmmConfig:
    """
    Parse AmmConfig account data

    Layout:
    - blob(8): discriminator
    - u8: bump (offset 8)
    - u16: index (offset 9)
    - publicKey(32): owner (offset 11)
    - u32: protocol_fee_rate (offset 43)
    - u32: trade_fee_rate (offset 47) - in 1e-6 units (e.g., 100 = 0.01%)
    - u16: tick_spacing (offset 51)
    - u32: fund_fee_rate (offset 53)
    - u32: padding (offset 57)
    - publicKey(32): fund_owner (offset 61)
    - [u64; 3]: padding (offset 93)
    """
    data = decode_account_data(account_data)
    check_account(data, "AmmConfig", AMM_CONFIG_LEN)

    bump, offset = read("B", data, 8)
    index, offset = read("H", data, offset)
    owner, offset = read_pubkey(data, offset)
    protocol_fee_rate, offset = read("I", data, offset)
    trade_fee_rate, offset = read("I", data, offset)
    tick_spacing, offset = read("H", data, offset)
    fund_fee_rate, offset = read("I", data, offset)
    offset += 4
    fund_owner, offset = read_pubkey(data, offset)

    return AmmConfig(
        address=address,
        bump=bump,
        index=index,
        owner=owner,
        protocol_fee_rate=protocol_fee_rate,
        trade_fee_rate=trade_fee_rate,
        tick_spacing=tick_spacing,
        fund_fee_rate=fund_fee_rate,
        fund_owner=fund_owner,
        slot=slot,
    )


def parse_pool_state(address: str, account_data: AccountData, slot: Optional[int] = None) -> PoolState:
    """
    Parse CLMM pool state account (PoolState)

    Layout:
    - blob(8): discriminator
    - u8: bump
    - publicKey(32) x 7: amm_config, owner, mint_0, mint_1, vault_0, vault_1, observation
    - u8: mint_decimals_0
    - u8: mint_decimals_1
    - u16: tick_spacing
    - u128: liquidity
    - u128: sqrt_price_x64
    - i32: tick_current
    - u16 x 2: padding
    - u128 x 2: fee_growth_global_{0,1}_x64
    - u64 x 2: protocol_fees_token_{0,1}
    - u128 x 4: swap in/out totals
    - u8: status
    - [u8; 7]: padding
    - RewardInfo x 3 (169 bytes each)
    - [u64; 16]: tick_array_bitmap
    - u64 x 6: fee totals
    - u64: open_time
    - u64: recent_epoch
    - padding up to 1544 bytes
    """
    data = decode_account_data(account_data)
    check_account(data, "PoolState", POOL_STATE_LEN)

    bump, offset = read("B", data, 8)
    amm_config, offset = read_pubkey(data, offset)
    owner, offset = read_pubkey(data, offset)
    mint_0, offset = read_pubkey(data, offset)
    mint_1, offset = read_pubkey(data, offset)
    vault_0, offset = read_pubkey(data, offset)
    vault_1, offset = read_pubkey(data, offset)
    observation, offset = read_pubkey(data, offset)
    decimals_0, offset = read("B", data, offset)
    decimals_1, offset = read("B", data, offset)
    tick_spacing, offset = read("H", data, offset)
    liquidity, offset = read_u128(data, offset)
    sqrt_price_x64, offset = read_u128(data, offset)
    tick_current, offset = read("i", data, offset)

    # padding3, padding4
    offset += 4

    fee_growth_global_0, offset = read_u128(data, offset)
    fee_growth_global_1, offset = read_u128(data, offset)
    protocol_fees_0, offset = read("Q", data, offset)
    protocol_fees_1, offset = read("Q", data, offset)

    # Skip swap amounts (4 x 16 bytes)
    offset += 64

    status, offset = read("B", data, offset)
    offset += 7

    reward_infos = []
    for _ in range(REWARD_NUM):
        reward_infos.append(parse_reward_info(data, offset))
        offset += REWARD_INFO_LEN

    tick_array_bitmap = struct.unpack_from("<16Q", data, offset)
    offset += 16 * 8

    # Skip fee totals (6 x u64)
    offset += 48

    open_time, offset = read("Q", data, offset)

    if tick_spacing == 0:
        raise SnapshotDecodeError.mismatch("PoolState", "tick_spacing is zero")

    state = PoolState(
        address=address,
        bump=bump,
        amm_config=amm_config,
        owner=owner,
        mint_0=mint_0,
        mint_1=mint_1,
        vault_0=vault_0,
        vault_1=vault_1,
        observation=observation,
        decimals_0=decimals_0,
        decimals_1=decimals_1,
        tick_spacing=tick_spacing,
        liquidity=liquidity,
        sqrt_price_x64=sqrt_price_x64,
        tick_current=tick_current,
        fee_growth_global_0_x64=fee_growth_global_0,
        fee_growth_global_1_x64=fee_growth_global_1,
        protocol_fees_0=protocol_fees_0,
        protocol_fees_1=protocol_fees_1,
        status=status,
        reward_infos=tuple(reward_infos),
        tick_array_bitmap=tuple(tick_array_bitmap),
        open_time=open_time,
        slot=slot,
    )
    logger.debug(f"Parsed pool {address}: tick={tick_current}, liquidity={liquidity}")
    return state


def parse_reward_info(account_data: bytes, offset: int) -> RewardInfo:
    """
    Parse RewardInfo struct (169 bytes)

    Layout:
    - reward_state: u8
    - open_time / end_time / last_update_time: u64
    - emissions_per_second_x64: u128
    - reward_total_emissioned / reward_claimed: u64
    - token_mint / token_vault / authority: Pubkey
    - reward_growth_global_x64: u128
    """
    reward_state, offset = read("B", account_data, offset)
    open_time, offset = read("Q", account_data, offset)
    end_time, offset = read("Q", account_data, offset)
    last_update_time, offset = read("Q", account_data, offset)
    emissions_per_second_x64, offset = read_u128(account_data, offset)
    reward_total_emissioned, offset = read("Q", account_data, offset)
    reward_claimed, offset = read("Q", account_data, offset)
    token_mint, offset = read_pubkey(account_data, offset)
    token_vault, offset = read_pubkey(account_data, offset)
    authority, offset = read_pubkey(account_data, offset)
    reward_growth_global_x64, _ = read_u128(account_data, offset)

    return RewardInfo(
        reward_state=reward_state,
        open_time=open_time,
        end_time=end_time,
        last_update_time=last_update_time,
        emissions_per_second_x64=emissions_per_second_x64,
        reward_total_emissioned=reward_total_emissioned,
        reward_claimed=reward_claimed,
        token_mint=token_mint,
        token_vault=token_vault,
        authority=authority,
        reward_growth_global_x64=reward_growth_global_x64,
    )


def parse_tick_array_bitmap_extension(
    address: str,
    account_data: AccountData,
    slot: Optional[int] = None,
) -> TickArrayBitmapExtension:
    """
    Parse TickArrayBitmapExtension account

    Layout:
    - blob(8): discriminator
    - publicKey(32): pool_id
    - [[u64; 8]; 14]: positive_tick_array_bitmap
    - [[u64; 8]; 14]: negative_tick_array_bitmap
    """
    data = decode_account_data(account_data)
    check_account(data, "TickArrayBitmapExtension", TICK_ARRAY_BITMAP_EXTENSION_LEN)

    pool_id, offset = read_pubkey(data, 8)

    bitmaps = []
    for _ in range(2 * EXTENSION_TICKARRAY_BITMAP_SIZE):
        bitmaps.append(struct.unpack_from("<8Q", data, offset))
        offset += 64

    return TickArrayBitmapExtension(
        address=address,
        pool_id=pool_id,
        positive_bitmaps=tuple(bitmaps[:EXTENSION_TICKARRAY_BITMAP_SIZE]),
        negative_bitmaps=tuple(bitmaps[EXTENSION_TICKARRAY_BITMAP_SIZE:]),
        slot=slot,
    )


def parse_mint(
    address: str,
    account_data: AccountData,
    owner: str,
    slot: Optional[int] = None,
) -> MintInfo:
    """
    Parse SPL / Token-2022 mint account

    Args:
        address: Mint address
        account_data: Raw account data
        owner: Account owner (the token program)
        slot: Slot the account was fetched at

    Returns:
        MintInfo with decimals and token program
    """
    if owner not in (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID):
        raise SnapshotDecodeError.mismatch("Mint", f"{address} is owned by {owner}, not a token program")

    data = decode_account_data(account_data)
    if len(data) < MINT_LEN:
        raise SnapshotDecodeError.bad_length("Mint", MINT_LEN, len(data))

    decimals = data[MINT_DECIMALS_OFFSET]
    is_initialized = data[MINT_DECIMALS_OFFSET + 1]
    if is_initialized != 1:
        raise SnapshotDecodeError.mismatch("Mint", f"{address} is not initialized")

    return MintInfo(address=address, decimals=decimals, token_program=owner, slot=slot)
