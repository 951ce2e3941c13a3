"""
Pool type definitions

Decoded snapshots of Raydium CLMM program accounts. All addresses are
base58 strings, all fixed-point values are raw integers.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Tuple

from .common import MintInfo
from ..errors import SnapshotDecodeError

DEFAULT_PUBKEY = "11111111111111111111111111111111"


@dataclass(frozen=True)
class AmmConfig:
    """
    AMM config (fee tier) account

    Attributes:
        address: Config account address
        index: Config index used in its PDA seed
        trade_fee_rate: Swap fee in 1e-6 units (e.g., 2500 = 0.25%)
        protocol_fee_rate: Protocol share of the trade fee in 1e-6 units
        fund_fee_rate: Fund share of the trade fee in 1e-6 units
        tick_spacing: Tick spacing of pools created with this config
    """
    address: str
    bump: int
    index: int
    owner: str
    protocol_fee_rate: int
    trade_fee_rate: int
    tick_spacing: int
    fund_fee_rate: int
    fund_owner: str
    slot: Optional[int] = None

    @property
    def trade_fee(self) -> Decimal:
        """Trade fee as a ratio"""
        return Decimal(self.trade_fee_rate) / Decimal(1_000_000)


@dataclass(frozen=True)
class RewardInfo:
    """Reward slot of a pool (169 bytes on chain)"""
    reward_state: int
    open_time: int
    end_time: int
    last_update_time: int
    emissions_per_second_x64: int
    reward_total_emissioned: int
    reward_claimed: int
    token_mint: str
    token_vault: str
    authority: str
    reward_growth_global_x64: int

    @property
    def is_initialized(self) -> bool:
        # reward_state: 0=uninitialized, 1=initialized, 2=opening, 3=ended
        return self.reward_state != 0 and self.token_mint != DEFAULT_PUBKEY


@dataclass(frozen=True)
class PoolState:
    """
    Raydium CLMM pool account

    Attributes:
        address: Pool address
        amm_config: Fee tier config address
        mint_0 / mint_1: Token mints (mint_0 sorts before mint_1)
        vault_0 / vault_1: Pool token vaults
        observation: Oracle observation account
        tick_spacing: Tick spacing
        liquidity: Active liquidity at the current tick
        sqrt_price_x64: Current sqrt price (Q64.64)
        tick_current: Current tick
        tick_array_bitmap: 16 u64 limbs of the default 1024-bit tick array bitmap
        slot: Slot the account was fetched at
    """
    address: str
    bump: int
    amm_config: str
    owner: str
    mint_0: str
    mint_1: str
    vault_0: str
    vault_1: str
    observation: str
    decimals_0: int
    decimals_1: int
    tick_spacing: int
    liquidity: int
    sqrt_price_x64: int
    tick_current: int
    fee_growth_global_0_x64: int
    fee_growth_global_1_x64: int
    protocol_fees_0: int
    protocol_fees_1: int
    status: int
    reward_infos: Tuple[RewardInfo, ...]
    tick_array_bitmap: Tuple[int, ...]
    open_time: int
    slot: Optional[int] = None

    def __repr__(self) -> str:
        return f"PoolState({self.address[:8]}..., tick={self.tick_current}, spacing={self.tick_spacing})"

    @property
    def price(self) -> Decimal:
        """Price of token 0 in terms of token 1"""
        from ..raydium.math import sqrt_price_x64_to_price
        return sqrt_price_x64_to_price(self.sqrt_price_x64, self.decimals_0, self.decimals_1)

    @property
    def initialized_rewards(self) -> List[RewardInfo]:
        return [r for r in self.reward_infos if r.is_initialized]


@dataclass(frozen=True)
class TickState:
    """Single tick inside a tick array"""
    tick: int
    liquidity_net: int
    liquidity_gross: int
    fee_growth_outside_0_x64: int
    fee_growth_outside_1_x64: int
    reward_growths_outside_x64: Tuple[int, ...]

    @property
    def is_initialized(self) -> bool:
        return self.liquidity_gross != 0


@dataclass(frozen=True)
class TickArray:
    """
    Tick array account: 60 consecutive ticks starting at start_tick_index
    """
    address: str
    pool_id: str
    start_tick_index: int
    ticks: Tuple[TickState, ...]
    initialized_tick_count: int
    slot: Optional[int] = None

    def __repr__(self) -> str:
        return f"TickArray(start={self.start_tick_index}, initialized={self.initialized_tick_count})"

    def initialized_ticks(self) -> Iterator[TickState]:
        for tick_state in self.ticks:
            if tick_state.is_initialized:
                yield tick_state


@dataclass(frozen=True)
class TickArrayBitmapExtension:
    """
    Bitmap extension: 14 positive and 14 negative 512-bit bitmaps (8 u64 limbs each)
    """
    address: str
    pool_id: str
    positive_bitmaps: Tuple[Tuple[int, ...], ...]
    negative_bitmaps: Tuple[Tuple[int, ...], ...]
    slot: Optional[int] = None


@dataclass(frozen=True)
class PoolSnapshot:
    """
    Everything a builder needs to know about one pool

    Attributes:
        pool: Decoded pool account
        mint_0 / mint_1: Mint info matching pool.mint_0 / pool.mint_1
        amm_config: Fee tier account (required for swap estimation)
        bitmap_extension: Bitmap extension account (required when the pool
            uses tick arrays outside the default bitmap)
        tick_arrays: Decoded tick arrays (required for swap estimation)
        reward_mints: Mint info for reward tokens (their token program decides
            the recipient account of collected rewards)
    """
    pool: PoolState
    mint_0: MintInfo
    mint_1: MintInfo
    amm_config: Optional[AmmConfig] = None
    bitmap_extension: Optional[TickArrayBitmapExtension] = None
    tick_arrays: Tuple[TickArray, ...] = ()
    reward_mints: Tuple[MintInfo, ...] = ()
    _tick_array_index: Dict[int, TickArray] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.mint_0.address != self.pool.mint_0 or self.mint_1.address != self.pool.mint_1:
            raise SnapshotDecodeError.mismatch(
                "PoolState",
                f"mints {self.mint_0.address}/{self.mint_1.address} do not match pool "
                f"{self.pool.mint_0}/{self.pool.mint_1}",
            )
        if self.amm_config is not None and self.amm_config.address != self.pool.amm_config:
            raise SnapshotDecodeError.mismatch(
                "AmmConfig",
                f"{self.amm_config.address} is not the pool's config {self.pool.amm_config}",
            )
        for tick_array in self.tick_arrays:
            if tick_array.pool_id != self.pool.address:
                raise SnapshotDecodeError.mismatch(
                    "TickArrayState",
                    f"tick array {tick_array.start_tick_index} belongs to pool {tick_array.pool_id}",
                )
            self._tick_array_index[tick_array.start_tick_index] = tick_array

    @property
    def address(self) -> str:
        return self.pool.address

    def get_tick_array(self, start_tick_index: int) -> Optional[TickArray]:
        return self._tick_array_index.get(start_tick_index)

    def mint_info(self, mint: str) -> MintInfo:
        """Get mint info by address"""
        if mint == self.mint_0.address:
            return self.mint_0
        if mint == self.mint_1.address:
            return self.mint_1
        raise SnapshotDecodeError.mismatch("PoolState", f"mint {mint} is not part of pool {self.pool.address}")

    def reward_mint_info(self, mint: str) -> Optional[MintInfo]:
        """Mint info for a reward token, None when the snapshot does not carry it"""
        for info in (self.mint_0, self.mint_1) + tuple(self.reward_mints):
            if info.address == mint:
                return info
        return None

    def markers(self) -> List[Tuple[str, Optional[int]]]:
        """(name, slot) pairs for freshness checks"""
        markers = [(f"pool {self.pool.address}", self.pool.slot)]
        if self.amm_config is not None:
            markers.append((f"amm config {self.amm_config.address}", self.amm_config.slot))
        if self.bitmap_extension is not None:
            markers.append((f"bitmap extension {self.bitmap_extension.address}", self.bitmap_extension.slot))
        for tick_array in self.tick_arrays:
            markers.append((f"tick array {tick_array.start_tick_index}", tick_array.slot))
        return markers
