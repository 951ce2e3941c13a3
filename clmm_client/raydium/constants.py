"""
Raydium CLMM Constants

Program ids, PDA seeds, Anchor discriminators and fixed-point bounds.
"""

import hashlib
from typing import Dict


def _anchor_discriminator(name: str) -> bytes:
    """Compute Anchor discriminator for instruction name"""
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:8]


def _anchor_account_discriminator(name: str) -> bytes:
    """Compute Anchor discriminator for account name"""
    return hashlib.sha256(f"account:{name}".encode("utf-8")).digest()[:8]


def _anchor_event_discriminator(name: str) -> bytes:
    """Compute Anchor discriminator for event name"""
    return hashlib.sha256(f"event:{name}".encode("utf-8")).digest()[:8]


# Raydium CLMM Program ID (mainnet). Builders take the program id explicitly;
# this is only the default used by config.
CLMM_PROGRAM_ID = "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK"

# Token Programs
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"

# Associated Token Program
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

# System Program
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"

# Rent Sysvar
RENT_SYSVAR_ID = "SysvarRent111111111111111111111111111111111"

# Memo Program
MEMO_PROGRAM_ID = "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr"

# Wrapped SOL mint
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"

# PDA seeds
AMM_CONFIG_SEED = b"amm_config"
POOL_SEED = b"pool"
POOL_VAULT_SEED = b"pool_vault"
OBSERVATION_SEED = b"observation"
TICK_ARRAY_SEED = b"tick_array"
POSITION_SEED = b"position"
POOL_TICK_ARRAY_BITMAP_SEED = b"pool_tick_array_bitmap_extension"
OPERATION_SEED = b"operation"
POOL_REWARD_VAULT_SEED = b"pool_reward_vault"
SUPPORT_MINT_SEED = b"support_mint"

# Solana PDA rules
MAX_SEED_LEN = 32
MAX_SEEDS = 16

# Tick array size (Raydium CLMM uses 60 ticks per tick array)
TICK_ARRAY_SIZE = 60

# Default pool bitmap covers 512 tick arrays on each side of zero (1024 bits)
TICK_ARRAY_BITMAP_SIZE = 512

# Bitmap extension holds 14 bitmaps of 512 bits per side
EXTENSION_TICKARRAY_BITMAP_SIZE = 14

# Tick bounds
MIN_TICK = -443636
MAX_TICK = 443636

# Sqrt price bounds (sqrt price at MIN_TICK / MAX_TICK)
MIN_SQRT_PRICE_X64 = 4295048016
MAX_SQRT_PRICE_X64 = 79226673521066979257578248091

# Q64 constant for fixed-point math
Q64 = 2 ** 64

# Max u128 / u64
MAX_UINT128 = 2 ** 128 - 1
MAX_UINT64 = 2 ** 64 - 1

# Fee rates are expressed in hundredths of a basis point
FEE_RATE_DENOMINATOR = 1_000_000

# Anchor discriminators for instructions
# Computed as sha256("global:<instruction_name>")[0:8]
INSTRUCTION_NAMES = (
    "create_pool",
    "open_position_with_token22_nft",
    "increase_liquidity_v2",
    "decrease_liquidity_v2",
    "close_position",
    "swap_v2",
    "initialize_reward",
    "set_reward_params",
)

DISCRIMINATORS: Dict[str, bytes] = {
    name: _anchor_discriminator(name) for name in INSTRUCTION_NAMES
}

# Account discriminators for snapshot decoding
ACCOUNT_DISCRIMINATORS: Dict[str, bytes] = {
    "AmmConfig": _anchor_account_discriminator("AmmConfig"),
    "PoolState": _anchor_account_discriminator("PoolState"),
    "PersonalPositionState": _anchor_account_discriminator("PersonalPositionState"),
    "TickArrayState": _anchor_account_discriminator("TickArrayState"),
    "TickArrayBitmapExtension": _anchor_account_discriminator("TickArrayBitmapExtension"),
}

# Anchor discriminators for events emitted as "Program data:" log lines
# Computed as sha256("event:<EventName>")[0:8]
EVENT_NAMES = (
    "ConfigChangeEvent",
    "PoolCreatedEvent",
    "CollectProtocolFeeEvent",
    "CollectPersonalFeeEvent",
    "UpdateRewardInfosEvent",
    "CreatePersonalPositionEvent",
    "IncreaseLiquidityEvent",
    "DecreaseLiquidityEvent",
    "LiquidityCalculateEvent",
    "LiquidityChangeEvent",
    "SwapEvent",
)

EVENT_DISCRIMINATORS: Dict[str, bytes] = {
    name: _anchor_event_discriminator(name) for name in EVENT_NAMES
}

# Account sizes (including the 8-byte discriminator)
AMM_CONFIG_LEN = 117
POOL_STATE_LEN = 1544
PERSONAL_POSITION_LEN = 281
TICK_ARRAY_LEN = 10240
TICK_STATE_LEN = 168
TICK_ARRAY_BITMAP_EXTENSION_LEN = 1832
REWARD_INFO_LEN = 169

# Number of reward slots on a pool / position
REWARD_NUM = 3

# SPL token instruction tags
TOKEN_IX_CLOSE_ACCOUNT = 9
TOKEN_IX_SYNC_NATIVE = 17

# System program transfer tag
SYSTEM_IX_TRANSFER = 2

# SPL mint account: decimals byte offset and minimum size
MINT_DECIMALS_OFFSET = 44
MINT_LEN = 82

# Solana per-transaction compute unit ceiling
MAX_COMPUTE_UNIT_LIMIT = 1_400_000
