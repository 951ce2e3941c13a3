"""
Raydium CLMM Protocol Layer

Address derivation, fixed-point math, account decoding and instruction
encoding for the Raydium Concentrated Liquidity Market Maker.

Key features:
- Token-2022 NFT positions (open_position_with_token22_nft)
- Bit-exact tick / sqrt price math
- Tick array bitmap and bitmap extension lookups
- Client-side swap simulation
- Decoding of the events the program logs
"""

from .constants import (
    CLMM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    WRAPPED_SOL_MINT,
    TICK_ARRAY_SIZE,
    MIN_TICK,
    MAX_TICK,
    MIN_SQRT_PRICE_X64,
    MAX_SQRT_PRICE_X64,
    DISCRIMINATORS,
)
from .math import (
    Rounding,
    tick_to_sqrt_price_x64,
    sqrt_price_x64_to_tick,
    sqrt_price_x64_to_price,
    price_to_sqrt_price_x64,
    price_to_tick,
    tick_to_price,
    tick_with_spacing,
    one_tick_range,
    validate_tick_range,
    liquidity_to_amounts,
    amounts_to_liquidity,
    single_amount_to_liquidity,
    apply_slippage_max,
    apply_slippage_min,
    get_tick_array_start_index,
)
from .pda import (
    DerivedAddress,
    derive_amm_config,
    derive_pool,
    derive_pool_vault,
    derive_observation,
    derive_tick_array,
    derive_tick_array_bitmap_extension,
    derive_protocol_position,
    derive_personal_position,
    derive_operation_state,
    derive_reward_vault,
    derive_support_mint_associated,
    derive_associated_token_account,
)
from .pool_parser import parse_amm_config, parse_pool_state, parse_tick_array_bitmap_extension, parse_mint
from .position_parser import parse_personal_position, parse_tick_array
from .swap_math import compute_swap_step, simulate_swap
from .token_accounts import TokenAccountResolver, ResolvedTokenAccount, get_associated_token_address
from .instructions import (
    decode_instruction,
    decode_event,
    decode_program_logs,
    DecodedInstruction,
    DecodedEvent,
)

__all__ = [
    # Constants
    "CLMM_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "TOKEN_2022_PROGRAM_ID",
    "WRAPPED_SOL_MINT",
    "TICK_ARRAY_SIZE",
    "MIN_TICK",
    "MAX_TICK",
    "MIN_SQRT_PRICE_X64",
    "MAX_SQRT_PRICE_X64",
    "DISCRIMINATORS",
    # Math
    "Rounding",
    "tick_to_sqrt_price_x64",
    "sqrt_price_x64_to_tick",
    "sqrt_price_x64_to_price",
    "price_to_sqrt_price_x64",
    "price_to_tick",
    "tick_to_price",
    "tick_with_spacing",
    "one_tick_range",
    "validate_tick_range",
    "liquidity_to_amounts",
    "amounts_to_liquidity",
    "single_amount_to_liquidity",
    "apply_slippage_max",
    "apply_slippage_min",
    "get_tick_array_start_index",
    # Address derivation
    "DerivedAddress",
    "derive_amm_config",
    "derive_pool",
    "derive_pool_vault",
    "derive_observation",
    "derive_tick_array",
    "derive_tick_array_bitmap_extension",
    "derive_protocol_position",
    "derive_personal_position",
    "derive_operation_state",
    "derive_reward_vault",
    "derive_support_mint_associated",
    "derive_associated_token_account",
    # Decoding
    "parse_amm_config",
    "parse_pool_state",
    "parse_tick_array_bitmap_extension",
    "parse_mint",
    "parse_personal_position",
    "parse_tick_array",
    "decode_instruction",
    "DecodedInstruction",
    "decode_event",
    "decode_program_logs",
    "DecodedEvent",
    # Swap estimation
    "compute_swap_step",
    "simulate_swap",
    # Token accounts
    "TokenAccountResolver",
    "ResolvedTokenAccount",
    "get_associated_token_address",
]
