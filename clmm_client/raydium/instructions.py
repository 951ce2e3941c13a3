"""
Raydium CLMM Instruction Encoders

Low-level encoders for the program instructions this client builds, a
decoder for their data, and a decoder for the events the program logs. Account lists follow the program's account order;
callers supply every address explicitly.
"""

import logging
import re
import struct
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from .constants import (
    DISCRIMINATORS,
    EVENT_DISCRIMINATORS,
    REWARD_NUM,
    MAX_UINT64,
    MAX_UINT128,
    TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    RENT_SYSVAR_ID,
    MEMO_PROGRAM_ID,
)
from .pool_parser import decode_account_data, pubkey_from_bytes
from ..errors import ConfigurationError, SnapshotDecodeError

logger = logging.getLogger(__name__)

# Argument layouts (borsh) per instruction, in declaration order
INSTRUCTION_LAYOUTS: Dict[str, List[Tuple[str, str]]] = {
    "create_pool": [
        ("sqrt_price_x64", "u128"),
        ("open_time", "u64"),
    ],
    "open_position_with_token22_nft": [
        ("tick_lower_index", "i32"),
        ("tick_upper_index", "i32"),
        ("tick_array_lower_start_index", "i32"),
        ("tick_array_upper_start_index", "i32"),
        ("liquidity", "u128"),
        ("amount_0_max", "u64"),
        ("amount_1_max", "u64"),
        ("with_metadata", "bool"),
        ("base_flag", "option_bool"),
    ],
    "increase_liquidity_v2": [
        ("liquidity", "u128"),
        ("amount_0_max", "u64"),
        ("amount_1_max", "u64"),
        ("base_flag", "option_bool"),
    ],
    "decrease_liquidity_v2": [
        ("liquidity", "u128"),
        ("amount_0_min", "u64"),
        ("amount_1_min", "u64"),
    ],
    "close_position": [],
    "swap_v2": [
        ("amount", "u64"),
        ("other_amount_threshold", "u64"),
        ("sqrt_price_limit_x64", "u128"),
        ("is_base_input", "bool"),
    ],
    "initialize_reward": [
        ("open_time", "u64"),
        ("end_time", "u64"),
        ("emissions_per_second_x64", "u128"),
    ],
    "set_reward_params": [
        ("reward_index", "u8"),
        ("emissions_per_second_x64", "u128"),
        ("open_time", "u64"),
        ("end_time", "u64"),
    ],
}

# Event layouts, as emitted by the program through "Program data:" logs
EVENT_LAYOUTS: Dict[str, List[Tuple[str, str]]] = {
    "ConfigChangeEvent": [
        ("index", "u16"),
        ("owner", "pubkey"),
        ("protocol_fee_rate", "u32"),
        ("trade_fee_rate", "u32"),
        ("tick_spacing", "u16"),
        ("fund_fee_rate", "u32"),
        ("fund_owner", "pubkey"),
    ],
    "PoolCreatedEvent": [
        ("token_mint_0", "pubkey"),
        ("token_mint_1", "pubkey"),
        ("tick_spacing", "u16"),
        ("pool_state", "pubkey"),
        ("sqrt_price_x64", "u128"),
        ("tick", "i32"),
        ("token_vault_0", "pubkey"),
        ("token_vault_1", "pubkey"),
    ],
    "CollectProtocolFeeEvent": [
        ("pool_state", "pubkey"),
        ("recipient_token_account_0", "pubkey"),
        ("recipient_token_account_1", "pubkey"),
        ("amount_0", "u64"),
        ("amount_1", "u64"),
    ],
    "CollectPersonalFeeEvent": [
        ("position_nft_mint", "pubkey"),
        ("recipient_token_account_0", "pubkey"),
        ("recipient_token_account_1", "pubkey"),
        ("amount_0", "u64"),
        ("amount_1", "u64"),
    ],
    "UpdateRewardInfosEvent": [
        ("reward_growth_global_x64", "u128x3"),
    ],
    "CreatePersonalPositionEvent": [
        ("pool_state", "pubkey"),
        ("minter", "pubkey"),
        ("nft_owner", "pubkey"),
        ("tick_lower_index", "i32"),
        ("tick_upper_index", "i32"),
        ("liquidity", "u128"),
        ("deposit_amount_0", "u64"),
        ("deposit_amount_1", "u64"),
        ("deposit_amount_0_transfer_fee", "u64"),
        ("deposit_amount_1_transfer_fee", "u64"),
    ],
    "IncreaseLiquidityEvent": [
        ("position_nft_mint", "pubkey"),
        ("liquidity", "u128"),
        ("amount_0", "u64"),
        ("amount_1", "u64"),
        ("amount_0_transfer_fee", "u64"),
        ("amount_1_transfer_fee", "u64"),
    ],
    "DecreaseLiquidityEvent": [
        ("position_nft_mint", "pubkey"),
        ("liquidity", "u128"),
        ("decrease_amount_0", "u64"),
        ("decrease_amount_1", "u64"),
        ("fee_amount_0", "u64"),
        ("fee_amount_1", "u64"),
        ("reward_amounts", "u64x3"),
        ("transfer_fee_0", "u64"),
        ("transfer_fee_1", "u64"),
    ],
    "LiquidityCalculateEvent": [
        ("pool_liquidity", "u128"),
        ("pool_sqrt_price_x64", "u128"),
        ("pool_tick", "i32"),
        ("calc_amount_0", "u64"),
        ("calc_amount_1", "u64"),
        ("trade_fee_owed_0", "u64"),
        ("trade_fee_owed_1", "u64"),
        ("transfer_fee_0", "u64"),
        ("transfer_fee_1", "u64"),
    ],
    "LiquidityChangeEvent": [
        ("pool_state", "pubkey"),
        ("tick", "i32"),
        ("tick_lower", "i32"),
        ("tick_upper", "i32"),
        ("liquidity_before", "u128"),
        ("liquidity_after", "u128"),
    ],
    "SwapEvent": [
        ("pool_state", "pubkey"),
        ("sender", "pubkey"),
        ("token_account_0", "pubkey"),
        ("token_account_1", "pubkey"),
        ("amount_0", "u64"),
        ("transfer_fee_0", "u64"),
        ("amount_1", "u64"),
        ("transfer_fee_1", "u64"),
        ("zero_for_one", "bool"),
        ("sqrt_price_x64", "u128"),
        ("liquidity", "u128"),
        ("tick", "i32"),
    ],
}

_NAMES_BY_DISCRIMINATOR = {disc: name for name, disc in DISCRIMINATORS.items()}
_EVENTS_BY_DISCRIMINATOR = {disc: name for name, disc in EVENT_DISCRIMINATORS.items()}

# struct formats for fixed-size scalar kinds
_SCALAR_FORMATS = {
    "u8": "<B",
    "u16": "<H",
    "u32": "<I",
    "u64": "<Q",
    "i32": "<i",
    "bool": "<?",
}

_PROGRAM_DATA_PREFIX = "Program data: "
_INVOKE_LOG = re.compile(r"^Program ([1-9A-HJ-NP-Za-km-z]{32,44}) invoke \[\d+\]")
_EXIT_LOG = re.compile(r"^Program ([1-9A-HJ-NP-Za-km-z]{32,44}) (success|failed)")


@dataclass(frozen=True)
class DecodedInstruction:
    """Instruction name and decoded arguments"""
    name: str
    args: Dict[str, Any]


@dataclass(frozen=True)
class DecodedEvent:
    """Event name and decoded fields"""
    name: str
    fields: Dict[str, Any]


def _encode_field(name: str, kind: str, value: Any) -> bytes:
    if kind == "u128":
        if not 0 <= value <= MAX_UINT128:
            raise ConfigurationError.invalid(name, f"{value} does not fit in u128")
        return value.to_bytes(16, "little")
    if kind == "u64":
        if not 0 <= value <= MAX_UINT64:
            raise ConfigurationError.invalid(name, f"{value} does not fit in u64")
        return struct.pack("<Q", value)
    if kind in ("u8", "i32"):
        try:
            return struct.pack(_SCALAR_FORMATS[kind], value)
        except struct.error as e:
            raise ConfigurationError.invalid(name, f"{value} does not fit in {kind}") from e
    if kind == "bool":
        return struct.pack("<?", bool(value))
    if kind == "option_bool":
        if value is None:
            return b"\x00"
        return b"\x01" + (b"\x01" if value else b"\x00")
    raise ConfigurationError.invalid(name, f"unknown field kind {kind}")


def encode_instruction_data(name: str, **args: Any) -> bytes:
    """
    Encode discriminator + borsh arguments for a program instruction

    Args:
        name: Instruction name (key of INSTRUCTION_LAYOUTS)
        **args: Argument values by field name
    """
    data = bytearray(DISCRIMINATORS[name])
    for field_name, kind in INSTRUCTION_LAYOUTS[name]:
        data.extend(_encode_field(field_name, kind, args[field_name]))
    return bytes(data)


def _read_sized(data: bytes, offset: int, size: int) -> bytes:
    if len(data) < offset + size:
        raise struct.error(f"need {size} bytes at offset {offset}, have {len(data) - offset}")
    return bytes(data[offset:offset + size])


def _read_field(kind: str, data: bytes, offset: int) -> Tuple[Any, int]:
    if kind in _SCALAR_FORMATS:
        fmt = _SCALAR_FORMATS[kind]
        return struct.unpack_from(fmt, data, offset)[0], offset + struct.calcsize(fmt)
    if kind == "u128":
        return int.from_bytes(_read_sized(data, offset, 16), "little"), offset + 16
    if kind == "pubkey":
        return pubkey_from_bytes(_read_sized(data, offset, 32)), offset + 32
    if kind == "option_bool":
        tag, offset = _read_field("u8", data, offset)
        if tag == 0:
            return None, offset
        return _read_field("bool", data, offset)
    if kind in ("u64x3", "u128x3"):
        values = []
        for _ in range(REWARD_NUM):
            value, offset = _read_field(kind[:-2], data, offset)
            values.append(value)
        return tuple(values), offset
    raise struct.error(f"unknown field kind {kind}")


def _read_layout(
    data: bytes,
    layout: List[Tuple[str, str]],
    name: str,
    account_type: str,
) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    offset = 8
    try:
        for field_name, kind in layout:
            values[field_name], offset = _read_field(kind, data, offset)
    except struct.error as e:
        raise SnapshotDecodeError(f"Truncated {name} data: {e}", account_type=account_type) from e

    if offset != len(data):
        raise SnapshotDecodeError.mismatch(account_type, f"{len(data) - offset} trailing bytes after {name}")
    return values


def decode_instruction(data: bytes) -> DecodedInstruction:
    """
    Decode instruction data produced by this module

    Raises:
        SnapshotDecodeError: Unknown discriminator or truncated data
    """
    name = _NAMES_BY_DISCRIMINATOR.get(bytes(data[:8]))
    if name is None:
        raise SnapshotDecodeError.bad_discriminator("Instruction", bytes(data[:8]))
    return DecodedInstruction(name, _read_layout(data, INSTRUCTION_LAYOUTS[name], name, "Instruction"))


def decode_event(data: Union[bytes, str]) -> DecodedEvent:
    """
    Decode one program event

    Args:
        data: Raw event bytes, or the base64 payload of a "Program data:" log line

    Raises:
        SnapshotDecodeError: Not valid base64, unknown event or wrong length
    """
    data = decode_account_data(data)
    name = _EVENTS_BY_DISCRIMINATOR.get(data[:8])
    if name is None:
        raise SnapshotDecodeError.bad_discriminator("Event", data[:8])
    return DecodedEvent(name, _read_layout(data, EVENT_LAYOUTS[name], name, "Event"))


def decode_program_logs(logs: Sequence[str], program_id: Union[Pubkey, str]) -> List[DecodedEvent]:
    """
    Decode the events program_id emitted in a transaction's log messages

    Only "Program data:" lines written while program_id is the innermost
    running program are decoded; data logged by other programs (including
    CPIs made from program_id) is skipped. Lines that carry no known event
    discriminator are skipped with a debug log.

    Args:
        logs: meta.logMessages of a confirmed transaction
        program_id: CLMM program id

    Returns:
        Events in emission order
    """
    program_id = str(program_id)
    stack: List[str] = []
    events: List[DecodedEvent] = []

    for line in logs:
        invoke = _INVOKE_LOG.match(line)
        if invoke:
            stack.append(invoke.group(1))
        elif _EXIT_LOG.match(line):
            if stack:
                stack.pop()
        elif line.startswith(_PROGRAM_DATA_PREFIX) and stack and stack[-1] == program_id:
            payload = line[len(_PROGRAM_DATA_PREFIX):].strip()
            try:
                events.append(decode_event(payload))
            except SnapshotDecodeError as e:
                logger.debug(f"Skipping program data line: {e}")

    return events


def _pk(value: str) -> Pubkey:
    return Pubkey.from_string(value)


def create_pool_instruction(
    program_id: Pubkey,
    pool_creator: Pubkey,
    amm_config: Pubkey,
    pool_state: Pubkey,
    token_mint_0: Pubkey,
    token_mint_1: Pubkey,
    token_vault_0: Pubkey,
    token_vault_1: Pubkey,
    observation_state: Pubkey,
    tick_array_bitmap: Pubkey,
    token_program_0: Pubkey,
    token_program_1: Pubkey,
    sqrt_price_x64: int,
    open_time: int,
    support_mint_associated: Sequence[Pubkey] = (),
) -> Instruction:
    """
    Build create_pool instruction

    Args:
        support_mint_associated: SupportMintAssociated PDAs of whitelisted
            token-2022 mints in the pair, passed as remaining accounts
    """
    data = encode_instruction_data("create_pool", sqrt_price_x64=sqrt_price_x64, open_time=open_time)
    accounts = [
        AccountMeta(pool_creator, is_signer=True, is_writable=True),
        AccountMeta(amm_config, is_signer=False, is_writable=False),
        AccountMeta(pool_state, is_signer=False, is_writable=True),
        AccountMeta(token_mint_0, is_signer=False, is_writable=False),
        AccountMeta(token_mint_1, is_signer=False, is_writable=False),
        AccountMeta(token_vault_0, is_signer=False, is_writable=True),
        AccountMeta(token_vault_1, is_signer=False, is_writable=True),
        AccountMeta(observation_state, is_signer=False, is_writable=True),
        AccountMeta(tick_array_bitmap, is_signer=False, is_writable=True),
        AccountMeta(token_program_0, is_signer=False, is_writable=False),
        AccountMeta(token_program_1, is_signer=False, is_writable=False),
        AccountMeta(_pk(SYSTEM_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_pk(RENT_SYSVAR_ID), is_signer=False, is_writable=False),
    ]
    for support_mint in support_mint_associated:
        accounts.append(AccountMeta(support_mint, is_signer=False, is_writable=False))
    return Instruction(program_id, data, accounts)


def initialize_reward_instruction(
    program_id: Pubkey,
    reward_funder: Pubkey,
    funder_token_account: Pubkey,
    amm_config: Pubkey,
    pool_state: Pubkey,
    operation_state: Pubkey,
    reward_token_mint: Pubkey,
    reward_token_vault: Pubkey,
    reward_token_program: Pubkey,
    open_time: int,
    end_time: int,
    emissions_per_second_x64: int,
) -> Instruction:
    """
    Build initialize_reward instruction

    The program creates reward_token_vault and moves the full emission for
    [open_time, end_time) from funder_token_account into it.
    """
    data = encode_instruction_data(
        "initialize_reward",
        open_time=open_time,
        end_time=end_time,
        emissions_per_second_x64=emissions_per_second_x64,
    )
    accounts = [
        AccountMeta(reward_funder, is_signer=True, is_writable=True),
        AccountMeta(funder_token_account, is_signer=False, is_writable=True),
        AccountMeta(amm_config, is_signer=False, is_writable=False),
        AccountMeta(pool_state, is_signer=False, is_writable=True),
        AccountMeta(operation_state, is_signer=False, is_writable=False),
        AccountMeta(reward_token_mint, is_signer=False, is_writable=False),
        AccountMeta(reward_token_vault, is_signer=False, is_writable=True),
        AccountMeta(reward_token_program, is_signer=False, is_writable=False),
        AccountMeta(_pk(SYSTEM_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_pk(RENT_SYSVAR_ID), is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, data, accounts)


def set_reward_params_instruction(
    program_id: Pubkey,
    authority: Pubkey,
    amm_config: Pubkey,
    pool_state: Pubkey,
    operation_state: Pubkey,
    reward_index: int,
    emissions_per_second_x64: int,
    open_time: int,
    end_time: int,
    reward_token_vault: Optional[Pubkey] = None,
    authority_token_account: Optional[Pubkey] = None,
    reward_vault_mint: Optional[Pubkey] = None,
) -> Instruction:
    """
    Build set_reward_params instruction

    Remaining accounts (vault, authority token account, vault mint) are only
    needed when the change extends a running reward and the authority tops
    up the vault; pass all three or none.
    """
    data = encode_instruction_data(
        "set_reward_params",
        reward_index=reward_index,
        emissions_per_second_x64=emissions_per_second_x64,
        open_time=open_time,
        end_time=end_time,
    )
    accounts = [
        AccountMeta(authority, is_signer=True, is_writable=False),
        AccountMeta(amm_config, is_signer=False, is_writable=False),
        AccountMeta(pool_state, is_signer=False, is_writable=True),
        AccountMeta(operation_state, is_signer=False, is_writable=False),
        AccountMeta(_pk(TOKEN_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_pk(TOKEN_2022_PROGRAM_ID), is_signer=False, is_writable=False),
    ]
    top_up = (reward_token_vault, authority_token_account, reward_vault_mint)
    if any(account is not None for account in top_up):
        if any(account is None for account in top_up):
            raise ConfigurationError.invalid(
                "reward_token_vault", "vault, authority token account and vault mint go together"
            )
        accounts.append(AccountMeta(reward_token_vault, is_signer=False, is_writable=True))
        accounts.append(AccountMeta(authority_token_account, is_signer=False, is_writable=True))
        accounts.append(AccountMeta(reward_vault_mint, is_signer=False, is_writable=False))

    return Instruction(program_id, data, accounts)


def open_position_instruction(
    program_id: Pubkey,
    payer: Pubkey,
    position_nft_owner: Pubkey,
    position_nft_mint: Pubkey,
    position_nft_account: Pubkey,
    pool_state: Pubkey,
    protocol_position: Pubkey,
    tick_array_lower: Pubkey,
    tick_array_upper: Pubkey,
    personal_position: Pubkey,
    token_account_0: Pubkey,
    token_account_1: Pubkey,
    token_vault_0: Pubkey,
    token_vault_1: Pubkey,
    vault_0_mint: Pubkey,
    vault_1_mint: Pubkey,
    tick_lower_index: int,
    tick_upper_index: int,
    tick_array_lower_start_index: int,
    tick_array_upper_start_index: int,
    liquidity: int,
    amount_0_max: int,
    amount_1_max: int,
    with_metadata: bool,
    base_flag: Optional[bool],
    tick_array_bitmap_extension: Optional[Pubkey] = None,
) -> Instruction:
    """
    Build open_position_with_token22_nft instruction

    The position NFT is a Token-2022 mint; position_nft_mint must sign.
    """
    data = encode_instruction_data(
        "open_position_with_token22_nft",
        tick_lower_index=tick_lower_index,
        tick_upper_index=tick_upper_index,
        tick_array_lower_start_index=tick_array_lower_start_index,
        tick_array_upper_start_index=tick_array_upper_start_index,
        liquidity=liquidity,
        amount_0_max=amount_0_max,
        amount_1_max=amount_1_max,
        with_metadata=with_metadata,
        base_flag=base_flag,
    )

    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),                  # 0: payer
        AccountMeta(position_nft_owner, is_signer=False, is_writable=False),   # 1: position_nft_owner
        AccountMeta(position_nft_mint, is_signer=True, is_writable=True),      # 2: position_nft_mint
        AccountMeta(position_nft_account, is_signer=False, is_writable=True),  # 3: position_nft_account
        AccountMeta(pool_state, is_signer=False, is_writable=True),            # 4: pool_state
        AccountMeta(protocol_position, is_signer=False, is_writable=True),     # 5: protocol_position
        AccountMeta(tick_array_lower, is_signer=False, is_writable=True),      # 6: tick_array_lower
        AccountMeta(tick_array_upper, is_signer=False, is_writable=True),      # 7: tick_array_upper
        AccountMeta(personal_position, is_signer=False, is_writable=True),     # 8: personal_position
        AccountMeta(token_account_0, is_signer=False, is_writable=True),       # 9: token_account_0
        AccountMeta(token_account_1, is_signer=False, is_writable=True),       # 10: token_account_1
        AccountMeta(token_vault_0, is_signer=False, is_writable=True),         # 11: token_vault_0
        AccountMeta(token_vault_1, is_signer=False, is_writable=True),         # 12: token_vault_1
        AccountMeta(_pk(RENT_SYSVAR_ID), is_signer=False, is_writable=False),              # 13: rent
        AccountMeta(_pk(SYSTEM_PROGRAM_ID), is_signer=False, is_writable=False),            # 14: system_program
        AccountMeta(_pk(TOKEN_PROGRAM_ID), is_signer=False, is_writable=False),             # 15: token_program
        AccountMeta(_pk(ASSOCIATED_TOKEN_PROGRAM_ID), is_signer=False, is_writable=False),  # 16: ata_program
        AccountMeta(_pk(TOKEN_2022_PROGRAM_ID), is_signer=False, is_writable=False),        # 17: token_program_2022
        AccountMeta(vault_0_mint, is_signer=False, is_writable=False),         # 18: vault_0_mint
        AccountMeta(vault_1_mint, is_signer=False, is_writable=False),         # 19: vault_1_mint
    ]
    if tick_array_bitmap_extension is not None:
        accounts.append(AccountMeta(tick_array_bitmap_extension, is_signer=False, is_writable=True))

    return Instruction(program_id, data, accounts)


def increase_liquidity_instruction(
    program_id: Pubkey,
    nft_owner: Pubkey,
    nft_account: Pubkey,
    pool_state: Pubkey,
    protocol_position: Pubkey,
    personal_position: Pubkey,
    tick_array_lower: Pubkey,
    tick_array_upper: Pubkey,
    token_account_0: Pubkey,
    token_account_1: Pubkey,
    token_vault_0: Pubkey,
    token_vault_1: Pubkey,
    vault_0_mint: Pubkey,
    vault_1_mint: Pubkey,
    liquidity: int,
    amount_0_max: int,
    amount_1_max: int,
    base_flag: Optional[bool],
    tick_array_bitmap_extension: Optional[Pubkey] = None,
) -> Instruction:
    """Build increase_liquidity_v2 instruction"""
    data = encode_instruction_data(
        "increase_liquidity_v2",
        liquidity=liquidity,
        amount_0_max=amount_0_max,
        amount_1_max=amount_1_max,
        base_flag=base_flag,
    )
    accounts = [
        AccountMeta(nft_owner, is_signer=True, is_writable=False),
        AccountMeta(nft_account, is_signer=False, is_writable=False),
        AccountMeta(pool_state, is_signer=False, is_writable=True),
        AccountMeta(protocol_position, is_signer=False, is_writable=True),
        AccountMeta(personal_position, is_signer=False, is_writable=True),
        AccountMeta(tick_array_lower, is_signer=False, is_writable=True),
        AccountMeta(tick_array_upper, is_signer=False, is_writable=True),
        AccountMeta(token_account_0, is_signer=False, is_writable=True),
        AccountMeta(token_account_1, is_signer=False, is_writable=True),
        AccountMeta(token_vault_0, is_signer=False, is_writable=True),
        AccountMeta(token_vault_1, is_signer=False, is_writable=True),
        AccountMeta(_pk(TOKEN_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_pk(TOKEN_2022_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(vault_0_mint, is_signer=False, is_writable=False),
        AccountMeta(vault_1_mint, is_signer=False, is_writable=False),
    ]
    if tick_array_bitmap_extension is not None:
        accounts.append(AccountMeta(tick_array_bitmap_extension, is_signer=False, is_writable=True))

    return Instruction(program_id, data, accounts)


def decrease_liquidity_instruction(
    program_id: Pubkey,
    nft_owner: Pubkey,
    nft_account: Pubkey,
    personal_position: Pubkey,
    pool_state: Pubkey,
    protocol_position: Pubkey,
    token_vault_0: Pubkey,
    token_vault_1: Pubkey,
    tick_array_lower: Pubkey,
    tick_array_upper: Pubkey,
    recipient_token_account_0: Pubkey,
    recipient_token_account_1: Pubkey,
    vault_0_mint: Pubkey,
    vault_1_mint: Pubkey,
    liquidity: int,
    amount_0_min: int,
    amount_1_min: int,
    tick_array_bitmap_extension: Optional[Pubkey] = None,
    reward_accounts: Sequence[Tuple[Pubkey, Pubkey, Pubkey]] = (),
) -> Instruction:
    """
    Build decrease_liquidity_v2 instruction

    With liquidity=0 this only collects owed fees and rewards.

    Args:
        reward_accounts: (reward_vault, recipient_token_account, reward_mint)
            per initialized reward, appended after the optional bitmap extension
    """
    data = encode_instruction_data(
        "decrease_liquidity_v2",
        liquidity=liquidity,
        amount_0_min=amount_0_min,
        amount_1_min=amount_1_min,
    )
    accounts = [
        AccountMeta(nft_owner, is_signer=True, is_writable=False),
        AccountMeta(nft_account, is_signer=False, is_writable=False),
        AccountMeta(personal_position, is_signer=False, is_writable=True),
        AccountMeta(pool_state, is_signer=False, is_writable=True),
        AccountMeta(protocol_position, is_signer=False, is_writable=True),
        AccountMeta(token_vault_0, is_signer=False, is_writable=True),
        AccountMeta(token_vault_1, is_signer=False, is_writable=True),
        AccountMeta(tick_array_lower, is_signer=False, is_writable=True),
        AccountMeta(tick_array_upper, is_signer=False, is_writable=True),
        AccountMeta(recipient_token_account_0, is_signer=False, is_writable=True),
        AccountMeta(recipient_token_account_1, is_signer=False, is_writable=True),
        AccountMeta(_pk(TOKEN_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_pk(TOKEN_2022_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_pk(MEMO_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(vault_0_mint, is_signer=False, is_writable=False),
        AccountMeta(vault_1_mint, is_signer=False, is_writable=False),
    ]
    if tick_array_bitmap_extension is not None:
        accounts.append(AccountMeta(tick_array_bitmap_extension, is_signer=False, is_writable=True))
    for reward_vault, recipient, reward_mint in reward_accounts:
        accounts.append(AccountMeta(reward_vault, is_signer=False, is_writable=True))
        accounts.append(AccountMeta(recipient, is_signer=False, is_writable=True))
        accounts.append(AccountMeta(reward_mint, is_signer=False, is_writable=False))

    return Instruction(program_id, data, accounts)


def close_position_instruction(
    program_id: Pubkey,
    nft_owner: Pubkey,
    position_nft_mint: Pubkey,
    position_nft_account: Pubkey,
    personal_position: Pubkey,
    nft_token_program: Pubkey,
) -> Instruction:
    """
    Build close_position instruction

    The position must hold no liquidity and nothing owed; the owner receives the rent.
    """
    accounts = [
        AccountMeta(nft_owner, is_signer=True, is_writable=True),
        AccountMeta(position_nft_mint, is_signer=False, is_writable=True),
        AccountMeta(position_nft_account, is_signer=False, is_writable=True),
        AccountMeta(personal_position, is_signer=False, is_writable=True),
        AccountMeta(_pk(SYSTEM_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(nft_token_program, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, encode_instruction_data("close_position"), accounts)


def swap_instruction(
    program_id: Pubkey,
    payer: Pubkey,
    amm_config: Pubkey,
    pool_state: Pubkey,
    input_token_account: Pubkey,
    output_token_account: Pubkey,
    input_vault: Pubkey,
    output_vault: Pubkey,
    observation_state: Pubkey,
    input_vault_mint: Pubkey,
    output_vault_mint: Pubkey,
    tick_arrays: Sequence[Pubkey],
    amount: int,
    other_amount_threshold: int,
    sqrt_price_limit_x64: int,
    is_base_input: bool,
    tick_array_bitmap_extension: Optional[Pubkey] = None,
) -> Instruction:
    """
    Build swap_v2 instruction

    Remaining accounts: bitmap extension (optional) then tick arrays in
    traversal order, the first one holding the current price.
    """
    data = encode_instruction_data(
        "swap_v2",
        amount=amount,
        other_amount_threshold=other_amount_threshold,
        sqrt_price_limit_x64=sqrt_price_limit_x64,
        is_base_input=is_base_input,
    )
    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=False),
        AccountMeta(amm_config, is_signer=False, is_writable=False),
        AccountMeta(pool_state, is_signer=False, is_writable=True),
        AccountMeta(input_token_account, is_signer=False, is_writable=True),
        AccountMeta(output_token_account, is_signer=False, is_writable=True),
        AccountMeta(input_vault, is_signer=False, is_writable=True),
        AccountMeta(output_vault, is_signer=False, is_writable=True),
        AccountMeta(observation_state, is_signer=False, is_writable=True),
        AccountMeta(_pk(TOKEN_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_pk(TOKEN_2022_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_pk(MEMO_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(input_vault_mint, is_signer=False, is_writable=False),
        AccountMeta(output_vault_mint, is_signer=False, is_writable=False),
    ]
    if tick_array_bitmap_extension is not None:
        accounts.append(AccountMeta(tick_array_bitmap_extension, is_signer=False, is_writable=True))
    for tick_array in tick_arrays:
        accounts.append(AccountMeta(tick_array, is_signer=False, is_writable=True))

    return Instruction(program_id, data, accounts)
