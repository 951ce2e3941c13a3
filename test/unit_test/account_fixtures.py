"""
Account fixtures for unit tests

Byte-level encoders for the program accounts the parsers decode, and a
small pool scenario shared by the builder tests:

- tick spacing 10 (tick arrays span 600 ticks), current tick 0, price 1
- one position over [-590, 590] holding POOL_LIQUIDITY
- tick arrays starting at -600 and 0 initialized in the pool bitmap
"""

import struct
import sys
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from solders.pubkey import Pubkey

from clmm_client.raydium.constants import (
    ACCOUNT_DISCRIMINATORS,
    AMM_CONFIG_LEN,
    PERSONAL_POSITION_LEN,
    POOL_STATE_LEN,
    TICK_ARRAY_BITMAP_EXTENSION_LEN,
    TICK_ARRAY_LEN,
    TICK_ARRAY_SIZE,
    TICK_STATE_LEN,
    TOKEN_PROGRAM_ID,
    Q64,
)
from clmm_client.types import (
    AmmConfig,
    MintInfo,
    PersonalPosition,
    PoolSnapshot,
    PoolState,
    PositionRewardInfo,
    RewardInfo,
    TickArray,
    TickState,
)

TICK_SPACING = 10
POOL_LIQUIDITY = 10 ** 12
TRADE_FEE_RATE = 2500


def key(n: int) -> Pubkey:
    """Deterministic pubkey made of one repeated byte"""
    return Pubkey(bytes([n]) * 32)


def key_str(n: int) -> str:
    return str(key(n))


OWNER = key(200)
POOL = key_str(10)
AMM_CONFIG = key_str(11)
MINT_0 = key_str(1)
MINT_1 = key_str(2)
MINT_2 = key_str(3)
DEFAULT_KEY = "11111111111111111111111111111111"


# =============================================================================
# Byte encoders
# =============================================================================

def _pk(value) -> bytes:
    if isinstance(value, Pubkey):
        return bytes(value)
    return bytes(Pubkey.from_string(value))


def _u128(value: int) -> bytes:
    return value.to_bytes(16, "little")


def _i128(value: int) -> bytes:
    return value.to_bytes(16, "little", signed=True)


def _pad(data: bytearray, length: int) -> bytes:
    assert len(data) <= length, f"encoded {len(data)} bytes, layout holds {length}"
    data.extend(b"\x00" * (length - len(data)))
    return bytes(data)


def encode_amm_config(
    index: int = 0,
    trade_fee_rate: int = TRADE_FEE_RATE,
    tick_spacing: int = TICK_SPACING,
    protocol_fee_rate: int = 120_000,
    fund_fee_rate: int = 40_000,
) -> bytes:
    data = bytearray(ACCOUNT_DISCRIMINATORS["AmmConfig"])
    data += struct.pack("<BH", 254, index)
    data += _pk(key(50))
    data += struct.pack("<IIHI", protocol_fee_rate, trade_fee_rate, tick_spacing, fund_fee_rate)
    data += b"\x00" * 4
    data += _pk(key(51))
    return _pad(data, AMM_CONFIG_LEN)


def encode_reward_info(
    reward_state: int = 0,
    token_mint: str = DEFAULT_KEY,
    token_vault: str = DEFAULT_KEY,
) -> bytes:
    data = bytearray(struct.pack("<BQQQ", reward_state, 0, 0, 0))
    data += _u128(0)
    data += struct.pack("<QQ", 0, 0)
    data += _pk(token_mint) + _pk(token_vault) + _pk(DEFAULT_KEY)
    data += _u128(0)
    return bytes(data)


def encode_pool_state(
    mint_0: str = MINT_0,
    mint_1: str = MINT_1,
    amm_config: str = AMM_CONFIG,
    decimals_0: int = 6,
    decimals_1: int = 6,
    tick_spacing: int = TICK_SPACING,
    liquidity: int = POOL_LIQUIDITY,
    sqrt_price_x64: int = Q64,
    tick_current: int = 0,
    bitmap: Sequence[int] = (),
    rewards: Sequence[bytes] = (),
    open_time: int = 0,
) -> bytes:
    data = bytearray(ACCOUNT_DISCRIMINATORS["PoolState"])
    data += struct.pack("<B", 255)
    for address in (amm_config, key_str(52), mint_0, mint_1, key_str(20), key_str(21), key_str(22)):
        data += _pk(address)
    data += struct.pack("<BBH", decimals_0, decimals_1, tick_spacing)
    data += _u128(liquidity) + _u128(sqrt_price_x64)
    data += struct.pack("<i", tick_current)
    data += b"\x00" * 4
    data += _u128(7) + _u128(9)
    data += struct.pack("<QQ", 11, 13)
    data += b"\x00" * 64
    data += struct.pack("<B", 0)
    data += b"\x00" * 7
    reward_bytes = list(rewards) + [encode_reward_info()] * (3 - len(rewards))
    for reward in reward_bytes:
        data += reward
    limbs = list(bitmap) + [0] * (16 - len(bitmap))
    data += struct.pack("<16Q", *limbs)
    data += b"\x00" * 48
    data += struct.pack("<QQ", open_time, 0)
    return _pad(data, POOL_STATE_LEN)


def encode_personal_position(
    nft_mint: str,
    pool_id: str = POOL,
    tick_lower: int = -590,
    tick_upper: int = 590,
    liquidity: int = 1_000_000,
    fees_owed: Tuple[int, int] = (0, 0),
    rewards_owed: Sequence[int] = (0, 0, 0),
) -> bytes:
    data = bytearray(ACCOUNT_DISCRIMINATORS["PersonalPositionState"])
    data += struct.pack("<B", 254)
    data += _pk(nft_mint) + _pk(pool_id)
    data += struct.pack("<ii", tick_lower, tick_upper)
    data += _u128(liquidity) + _u128(0) + _u128(0)
    data += struct.pack("<QQ", *fees_owed)
    for owed in rewards_owed:
        data += _u128(0) + struct.pack("<Q", owed)
    data += struct.pack("<Q", 0)
    return _pad(data, PERSONAL_POSITION_LEN)


def encode_tick_array(
    start_index: int,
    ticks: Optional[Dict[int, Tuple[int, int]]] = None,
    pool_id: str = POOL,
    tick_spacing: int = TICK_SPACING,
) -> bytes:
    """ticks maps tick index -> (liquidity_net, liquidity_gross)"""
    ticks = ticks or {}
    data = bytearray(ACCOUNT_DISCRIMINATORS["TickArrayState"])
    data += _pk(pool_id)
    data += struct.pack("<i", start_index)
    for i in range(TICK_ARRAY_SIZE):
        tick = start_index + i * tick_spacing
        net, gross = ticks.get(tick, (0, 0))
        entry = bytearray(struct.pack("<i", tick))
        entry += _i128(net) + _u128(gross) + _u128(0) + _u128(0)
        entry += _u128(0) * 3
        data += _pad(entry, TICK_STATE_LEN)
    data += struct.pack("<B", len(ticks))
    return _pad(data, TICK_ARRAY_LEN)


def encode_bitmap_extension(
    pool_id: str = POOL,
    positive: Optional[Dict[int, int]] = None,
    negative: Optional[Dict[int, int]] = None,
) -> bytes:
    """positive / negative map bitmap offset -> 512-bit integer"""
    data = bytearray(ACCOUNT_DISCRIMINATORS["TickArrayBitmapExtension"])
    data += _pk(pool_id)
    for side in (positive or {}, negative or {}):
        for offset in range(14):
            value = side.get(offset, 0)
            data += struct.pack("<8Q", *[(value >> (64 * i)) & (2 ** 64 - 1) for i in range(8)])
    return _pad(data, TICK_ARRAY_BITMAP_EXTENSION_LEN)


def encode_mint(decimals: int = 6, initialized: bool = True) -> bytes:
    data = bytearray(b"\x00" * 36)
    data += struct.pack("<Q", 1_000_000_000)
    data += struct.pack("<BB", decimals, 1 if initialized else 0)
    return _pad(data, 82)


# =============================================================================
# Snapshot builders
# =============================================================================

def bitmap_limbs(starts: Iterable[int], tick_spacing: int = TICK_SPACING) -> Tuple[int, ...]:
    """Default pool bitmap with the given tick arrays marked initialized"""
    value = 0
    for start in starts:
        value |= 1 << (start // (TICK_ARRAY_SIZE * tick_spacing) + 512)
    return tuple((value >> (64 * i)) & (2 ** 64 - 1) for i in range(16))


def make_reward(mint: str = DEFAULT_KEY, vault: str = DEFAULT_KEY, state: int = 0) -> RewardInfo:
    return RewardInfo(
        reward_state=state,
        open_time=0,
        end_time=0,
        last_update_time=0,
        emissions_per_second_x64=0,
        reward_total_emissioned=0,
        reward_claimed=0,
        token_mint=mint,
        token_vault=vault,
        authority=DEFAULT_KEY,
        reward_growth_global_x64=0,
    )


def make_pool_state(
    address: str = POOL,
    mint_0: str = MINT_0,
    mint_1: str = MINT_1,
    tick_current: int = 0,
    sqrt_price_x64: int = Q64,
    liquidity: int = POOL_LIQUIDITY,
    initialized_starts: Iterable[int] = (-600, 0),
    rewards: Sequence[RewardInfo] = (),
    slot: Optional[int] = None,
) -> PoolState:
    reward_infos = tuple(rewards) + (make_reward(),) * (3 - len(rewards))
    return PoolState(
        address=address,
        bump=255,
        amm_config=AMM_CONFIG,
        owner=key_str(52),
        mint_0=mint_0,
        mint_1=mint_1,
        vault_0=key_str(20),
        vault_1=key_str(21),
        observation=key_str(22),
        decimals_0=6,
        decimals_1=6,
        tick_spacing=TICK_SPACING,
        liquidity=liquidity,
        sqrt_price_x64=sqrt_price_x64,
        tick_current=tick_current,
        fee_growth_global_0_x64=0,
        fee_growth_global_1_x64=0,
        protocol_fees_0=0,
        protocol_fees_1=0,
        status=0,
        reward_infos=reward_infos,
        tick_array_bitmap=bitmap_limbs(initialized_starts),
        open_time=0,
        slot=slot,
    )


def make_tick_array(
    start_index: int,
    ticks: Optional[Dict[int, Tuple[int, int]]] = None,
    pool_id: str = POOL,
    slot: Optional[int] = None,
) -> TickArray:
    ticks = ticks or {}
    states = []
    for i in range(TICK_ARRAY_SIZE):
        tick = start_index + i * TICK_SPACING
        net, gross = ticks.get(tick, (0, 0))
        states.append(TickState(tick, net, gross, 0, 0, (0, 0, 0)))
    return TickArray(
        address=key_str(90),
        pool_id=pool_id,
        start_tick_index=start_index,
        ticks=tuple(states),
        initialized_tick_count=len(ticks),
        slot=slot,
    )


def make_amm_config(slot: Optional[int] = None) -> AmmConfig:
    return AmmConfig(
        address=AMM_CONFIG,
        bump=254,
        index=0,
        owner=key_str(50),
        protocol_fee_rate=120_000,
        trade_fee_rate=TRADE_FEE_RATE,
        tick_spacing=TICK_SPACING,
        fund_fee_rate=40_000,
        fund_owner=key_str(51),
        slot=slot,
    )


def make_mint(address: str, decimals: int = 6, token_program: str = TOKEN_PROGRAM_ID, slot=None) -> MintInfo:
    return MintInfo(address=address, decimals=decimals, token_program=token_program, slot=slot)


def make_snapshot(
    address: str = POOL,
    mint_0: str = MINT_0,
    mint_1: str = MINT_1,
    liquidity: int = POOL_LIQUIDITY,
    rewards: Sequence[RewardInfo] = (),
    reward_mints: Sequence[MintInfo] = (),
    slot: Optional[int] = None,
) -> PoolSnapshot:
    """Pool at tick 0 with one position over [-590, 590] and its two tick arrays loaded"""
    pool = make_pool_state(address, mint_0, mint_1, liquidity=liquidity, rewards=rewards, slot=slot)
    tick_arrays = (
        make_tick_array(-600, {-590: (liquidity, liquidity)}, pool_id=address, slot=slot),
        make_tick_array(0, {590: (-liquidity, liquidity)}, pool_id=address, slot=slot),
    )
    return PoolSnapshot(
        pool=pool,
        mint_0=make_mint(mint_0, slot=slot),
        mint_1=make_mint(mint_1, slot=slot),
        amm_config=make_amm_config(slot=slot),
        tick_arrays=tick_arrays,
        reward_mints=tuple(reward_mints),
    )


def make_position(
    liquidity: int = 1_000_000,
    pool_id: str = POOL,
    tick_lower: int = -590,
    tick_upper: int = 590,
    fees_owed: Tuple[int, int] = (0, 0),
    nft_mint: str = None,
    slot: Optional[int] = None,
) -> PersonalPosition:
    return PersonalPosition(
        address=key_str(70),
        bump=254,
        nft_mint=nft_mint or key_str(71),
        pool_id=pool_id,
        tick_lower=tick_lower,
        tick_upper=tick_upper,
        liquidity=liquidity,
        fee_growth_inside_0_last_x64=0,
        fee_growth_inside_1_last_x64=0,
        token_fees_owed_0=fees_owed[0],
        token_fees_owed_1=fees_owed[1],
        reward_infos=(PositionRewardInfo(0, 0),) * 3,
        recent_epoch=0,
        slot=slot,
    )
