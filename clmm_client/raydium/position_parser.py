"""
Raydium CLMM Position Parser

Decodes personal position and tick array accounts.

Token Naming Convention:
    - token0 / mint_0: The first token in the pool (sorts first byte-wise)
    - token1 / mint_1: The second token in the pool
"""

import logging
from typing import Optional

from .constants import (
    PERSONAL_POSITION_LEN,
    TICK_ARRAY_LEN,
    TICK_ARRAY_SIZE,
    TICK_STATE_LEN,
    REWARD_NUM,
    TOKEN_2022_PROGRAM_ID,
)
from .pool_parser import (
    AccountData,
    check_account,
    decode_account_data,
    read,
    read_i128,
    read_pubkey,
    read_u128,
)
from ..errors import SnapshotDecodeError
from ..types import PersonalPosition, PositionRewardInfo, TickArray, TickState

logger = logging.getLogger(__name__)


def parse_personal_position(
    address: str,
    account_data: AccountData,
    slot: Optional[int] = None,
    nft_token_program: str = TOKEN_2022_PROGRAM_ID,
) -> PersonalPosition:
    """
    Parse personal position account (PersonalPositionState)

    Layout:
    - blob(8): discriminator
    - u8: bump
    - publicKey(32): nft_mint
    - publicKey(32): pool_id
    - i32: tick_lower_index
    - i32: tick_upper_index
    - u128: liquidity
    - u128: fee_growth_inside_0_last_x64
    - u128: fee_growth_inside_1_last_x64
    - u64: token_fees_owed_0
    - u64: token_fees_owed_1
    - (u128 growth_inside_last_x64, u64 reward_amount_owed) x 3
    - u64: recent_epoch
    - [u64; 7]: padding

    Args:
        address: Personal position address
        account_data: Raw account data
        slot: Slot the account was fetched at
        nft_token_program: Token program owning the position NFT mint
    """
    data = decode_account_data(account_data)
    check_account(data, "PersonalPositionState", PERSONAL_POSITION_LEN)

    bump, offset = read("B", data, 8)
    nft_mint, offset = read_pubkey(data, offset)
    pool_id, offset = read_pubkey(data, offset)
    tick_lower, offset = read("i", data, offset)
    tick_upper, offset = read("i", data, offset)
    liquidity, offset = read_u128(data, offset)
    fee_growth_inside_0, offset = read_u128(data, offset)
    fee_growth_inside_1, offset = read_u128(data, offset)
    fees_owed_0, offset = read("Q", data, offset)
    fees_owed_1, offset = read("Q", data, offset)

    reward_infos = []
    for _ in range(REWARD_NUM):
        growth_inside, offset = read_u128(data, offset)
        amount_owed, offset = read("Q", data, offset)
        reward_infos.append(PositionRewardInfo(growth_inside, amount_owed))

    recent_epoch, offset = read("Q", data, offset)

    if tick_lower >= tick_upper:
        raise SnapshotDecodeError.mismatch(
            "PersonalPositionState",
            f"tick range [{tick_lower}, {tick_upper}] is inverted",
        )

    return PersonalPosition(
        address=address,
        bump=bump,
        nft_mint=nft_mint,
        pool_id=pool_id,
        tick_lower=tick_lower,
        tick_upper=tick_upper,
        liquidity=liquidity,
        fee_growth_inside_0_last_x64=fee_growth_inside_0,
        fee_growth_inside_1_last_x64=fee_growth_inside_1,
        token_fees_owed_0=fees_owed_0,
        token_fees_owed_1=fees_owed_1,
        reward_infos=tuple(reward_infos),
        recent_epoch=recent_epoch,
        nft_token_program=nft_token_program,
        slot=slot,
    )


def parse_tick_state(account_data: bytes, offset: int) -> TickState:
    """
    Parse TickState struct (168 bytes)

    Layout:
    - i32: tick
    - i128: liquidity_net
    - u128: liquidity_gross
    - u128: fee_growth_outside_0_x64
    - u128: fee_growth_outside_1_x64
    - [u128; 3]: reward_growths_outside_x64
    - [u32; 13]: padding
    """
    tick, offset = read("i", account_data, offset)
    liquidity_net, offset = read_i128(account_data, offset)
    liquidity_gross, offset = read_u128(account_data, offset)
    fee_growth_outside_0, offset = read_u128(account_data, offset)
    fee_growth_outside_1, offset = read_u128(account_data, offset)

    reward_growths = []
    for _ in range(REWARD_NUM):
        growth, offset = read_u128(account_data, offset)
        reward_growths.append(growth)

    return TickState(
        tick=tick,
        liquidity_net=liquidity_net,
        liquidity_gross=liquidity_gross,
        fee_growth_outside_0_x64=fee_growth_outside_0,
        fee_growth_outside_1_x64=fee_growth_outside_1,
        reward_growths_outside_x64=tuple(reward_growths),
    )


def parse_tick_array(
    address: str,
    account_data: AccountData,
    slot: Optional[int] = None,
) -> TickArray:
    """
    Parse TickArrayState account

    Layout:
    - blob(8): discriminator
    - publicKey(32): pool_id
    - i32: start_tick_index
    - TickState x 60 (168 bytes each)
    - u8: initialized_tick_count
    - u64: recent_epoch
    - [u8; 107]: padding
    """
    data = decode_account_data(account_data)
    check_account(data, "TickArrayState", TICK_ARRAY_LEN)

    pool_id, offset = read_pubkey(data, 8)
    start_tick_index, offset = read("i", data, offset)

    ticks = []
    for _ in range(TICK_ARRAY_SIZE):
        ticks.append(parse_tick_state(data, offset))
        offset += TICK_STATE_LEN

    initialized_tick_count, offset = read("B", data, offset)

    logger.debug(f"Parsed tick array {address}: start={start_tick_index}, initialized={initialized_tick_count}")

    return TickArray(
        address=address,
        pool_id=pool_id,
        start_tick_index=start_tick_index,
        ticks=tuple(ticks),
        initialized_tick_count=initialized_tick_count,
        slot=slot,
    )
