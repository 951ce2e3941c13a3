"""
Raydium CLMM Address Derivation

Pure PDA derivation helpers. Every function takes the owning program id
explicitly and returns the address together with its bump seed.
"""

import struct
from typing import List, NamedTuple, Optional, Union

from solders.pubkey import Pubkey

from .constants import (
    AMM_CONFIG_SEED,
    POOL_SEED,
    POOL_VAULT_SEED,
    OBSERVATION_SEED,
    TICK_ARRAY_SEED,
    POSITION_SEED,
    POOL_TICK_ARRAY_BITMAP_SEED,
    OPERATION_SEED,
    POOL_REWARD_VAULT_SEED,
    SUPPORT_MINT_SEED,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    MAX_SEED_LEN,
    MAX_SEEDS,
    TICK_ARRAY_SIZE,
)
from ..errors import InvalidSeed


PubkeyLike = Union[Pubkey, str]


class DerivedAddress(NamedTuple):
    """Program derived address and its canonical bump"""
    address: Pubkey
    bump: int


def to_pubkey(value: PubkeyLike, name: str = "address") -> Pubkey:
    """
    Coerce a base58 string or Pubkey to Pubkey

    Raises:
        InvalidSeed: value is not a valid public key
    """
    if isinstance(value, Pubkey):
        return value
    if not isinstance(value, str):
        raise InvalidSeed.bad_value(name, f"expected Pubkey or base58 string, got {type(value).__name__}")
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise InvalidSeed.bad_value(name, f"not a valid public key ({e})") from e


def _pack_i32(value: int, name: str) -> bytes:
    try:
        # Raydium seeds encode tick indexes big-endian
        return struct.pack(">i", value)
    except struct.error as e:
        raise InvalidSeed.bad_value(name, f"{value} does not fit in i32") from e


def find_program_address(seeds: List[bytes], program_id: PubkeyLike) -> DerivedAddress:
    """
    Find PDA for seeds under program_id

    Raises:
        InvalidSeed: Too many seeds or a seed longer than 32 bytes
    """
    if len(seeds) > MAX_SEEDS - 1:
        # One slot is reserved for the bump seed
        raise InvalidSeed.bad_value("seeds", f"{len(seeds)} seeds exceeds the limit of {MAX_SEEDS - 1}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise InvalidSeed.bad_value(seed.hex(), f"seed is {len(seed)} bytes, limit is {MAX_SEED_LEN}")

    address, bump = Pubkey.find_program_address(seeds, to_pubkey(program_id, "program_id"))
    return DerivedAddress(address, bump)


def derive_amm_config(index: int, program_id: PubkeyLike) -> DerivedAddress:
    """Derive AMM config (fee tier) PDA from its u16 index"""
    if not 0 <= index <= 0xFFFF:
        raise InvalidSeed.bad_value("amm_config_index", f"{index} does not fit in u16")
    return find_program_address([AMM_CONFIG_SEED, struct.pack(">H", index)], program_id)


def derive_pool(
    amm_config: PubkeyLike,
    mint_0: PubkeyLike,
    mint_1: PubkeyLike,
    program_id: PubkeyLike,
) -> DerivedAddress:
    """
    Derive pool PDA

    mint_0 must sort before mint_1 byte-wise, the program rejects any other order.
    """
    mint_0 = to_pubkey(mint_0, "mint_0")
    mint_1 = to_pubkey(mint_1, "mint_1")
    if bytes(mint_0) >= bytes(mint_1):
        raise InvalidSeed.bad_value("mint_0", f"{mint_0} must sort before {mint_1}")

    seeds = [
        POOL_SEED,
        bytes(to_pubkey(amm_config, "amm_config")),
        bytes(mint_0),
        bytes(mint_1),
    ]
    return find_program_address(seeds, program_id)


def derive_pool_vault(pool: PubkeyLike, mint: PubkeyLike, program_id: PubkeyLike) -> DerivedAddress:
    """Derive the pool's token vault PDA for one of its mints"""
    seeds = [POOL_VAULT_SEED, bytes(to_pubkey(pool, "pool")), bytes(to_pubkey(mint, "mint"))]
    return find_program_address(seeds, program_id)


def derive_observation(pool: PubkeyLike, program_id: PubkeyLike) -> DerivedAddress:
    """Derive the pool's observation (oracle) PDA"""
    return find_program_address([OBSERVATION_SEED, bytes(to_pubkey(pool, "pool"))], program_id)


def derive_tick_array(
    pool: PubkeyLike,
    start_index: int,
    tick_spacing: int,
    program_id: PubkeyLike,
) -> DerivedAddress:
    """
    Derive tick array PDA from its start index

    Raises:
        InvalidSeed: start_index is not a multiple of 60 * tick_spacing
    """
    if tick_spacing <= 0:
        raise InvalidSeed.bad_value("tick_spacing", f"must be positive, got {tick_spacing}")
    if start_index % (TICK_ARRAY_SIZE * tick_spacing) != 0:
        raise InvalidSeed.unaligned_tick_array(start_index, tick_spacing)

    seeds = [
        TICK_ARRAY_SEED,
        bytes(to_pubkey(pool, "pool")),
        _pack_i32(start_index, "tick_array_start_index"),
    ]
    return find_program_address(seeds, program_id)


def derive_tick_array_bitmap_extension(pool: PubkeyLike, program_id: PubkeyLike) -> DerivedAddress:
    """Derive the pool's tick array bitmap extension PDA"""
    return find_program_address(
        [POOL_TICK_ARRAY_BITMAP_SEED, bytes(to_pubkey(pool, "pool"))],
        program_id,
    )


def derive_protocol_position(
    pool: PubkeyLike,
    tick_lower: int,
    tick_upper: int,
    program_id: PubkeyLike,
) -> DerivedAddress:
    """Derive protocol position PDA for a tick range"""
    seeds = [
        POSITION_SEED,
        bytes(to_pubkey(pool, "pool")),
        _pack_i32(tick_lower, "tick_lower"),
        _pack_i32(tick_upper, "tick_upper"),
    ]
    return find_program_address(seeds, program_id)


def derive_personal_position(nft_mint: PubkeyLike, program_id: PubkeyLike) -> DerivedAddress:
    """Derive personal position PDA from the position NFT mint"""
    return find_program_address([POSITION_SEED, bytes(to_pubkey(nft_mint, "nft_mint"))], program_id)


def derive_operation_state(program_id: PubkeyLike) -> DerivedAddress:
    """Derive the program-wide operation account (reward mint whitelist, operators)"""
    return find_program_address([OPERATION_SEED], program_id)


def derive_reward_vault(pool: PubkeyLike, reward_mint: PubkeyLike, program_id: PubkeyLike) -> DerivedAddress:
    """Derive the pool's vault for a reward mint"""
    seeds = [
        POOL_REWARD_VAULT_SEED,
        bytes(to_pubkey(pool, "pool")),
        bytes(to_pubkey(reward_mint, "reward_mint")),
    ]
    return find_program_address(seeds, program_id)


def derive_support_mint_associated(mint: PubkeyLike, program_id: PubkeyLike) -> DerivedAddress:
    """
    Derive the SupportMintAssociated PDA for a mint

    The account exists only for token-2022 mints whose extensions the
    program has explicitly whitelisted.
    """
    return find_program_address([SUPPORT_MINT_SEED, bytes(to_pubkey(mint, "mint"))], program_id)


def derive_associated_token_account(
    owner: PubkeyLike,
    mint: PubkeyLike,
    token_program: Optional[PubkeyLike] = None,
) -> DerivedAddress:
    """
    Derive associated token account address

    Args:
        owner: Wallet owner
        mint: Token mint
        token_program: Token program (defaults to Tokenkeg)
    """
    seeds = [
        bytes(to_pubkey(owner, "owner")),
        bytes(to_pubkey(token_program or TOKEN_PROGRAM_ID, "token_program")),
        bytes(to_pubkey(mint, "mint")),
    ]
    return find_program_address(seeds, ASSOCIATED_TOKEN_PROGRAM_ID)
