"""
Operation request definitions

Each request is a typed value for exactly one OperationKind. Requests carry
the snapshots their builder reads, plus an optional freshness threshold.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import ClassVar, List, Optional, Tuple

from .common import Freshness, MintInfo
from .pool import AmmConfig, PoolSnapshot
from .position import PersonalPosition
from ..errors import ConfigurationError


class OperationKind(Enum):
    """Closed set of operations the builders support"""
    CREATE_POOL = "create_pool"
    OPEN_POSITION = "open_position"
    INCREASE_LIQUIDITY = "increase_liquidity"
    DECREASE_LIQUIDITY = "decrease_liquidity"
    COLLECT_FEES = "collect_fees"
    CLOSE_POSITION = "close_position"
    SWAP = "swap"
    SWAP_ROUTED = "swap_routed"
    WRAP_NATIVE = "wrap_native"
    UNWRAP_NATIVE = "unwrap_native"
    INITIALIZE_REWARD = "initialize_reward"
    SET_REWARD_PARAMS = "set_reward_params"


@dataclass(frozen=True)
class CreatePoolRequest:
    """
    Create a pool for a mint pair under a fee tier

    Mints may be given in either order; initial_price is always the price
    of mint_a in terms of mint_b.
    Mints listed in supported_mints are on the program's token-2022
    extension whitelist; their SupportMintAssociated accounts are passed
    along with the instruction.
    """
    kind: ClassVar[OperationKind] = OperationKind.CREATE_POOL

    amm_config: AmmConfig
    mint_a: MintInfo
    mint_b: MintInfo
    initial_price: Decimal
    open_time: int = 0
    supported_mints: Tuple[str, ...] = ()
    freshness: Optional[Freshness] = None


@dataclass(frozen=True)
class OpenPositionRequest:
    """
    Open a position over [tick_lower, tick_upper]

    Exactly one of liquidity or amount is given. With amount, is_base_0
    selects which token the amount refers to and the other side is derived.
    """
    kind: ClassVar[OperationKind] = OperationKind.OPEN_POSITION

    pool: PoolSnapshot
    tick_lower: int
    tick_upper: int
    liquidity: Optional[int] = None
    amount: Optional[int] = None
    is_base_0: bool = True
    slippage_bps: Optional[int] = None
    with_metadata: Optional[bool] = None
    freshness: Optional[Freshness] = None

    def __post_init__(self):
        _require_one_of(self.liquidity, self.amount)


@dataclass(frozen=True)
class IncreaseLiquidityRequest:
    """Add liquidity to an existing position"""
    kind: ClassVar[OperationKind] = OperationKind.INCREASE_LIQUIDITY

    position: PersonalPosition
    pool: PoolSnapshot
    liquidity: Optional[int] = None
    amount: Optional[int] = None
    is_base_0: bool = True
    slippage_bps: Optional[int] = None
    freshness: Optional[Freshness] = None

    def __post_init__(self):
        _require_one_of(self.liquidity, self.amount)


@dataclass(frozen=True)
class DecreaseLiquidityRequest:
    """
    Remove liquidity from a position

    liquidity=None removes everything. Owed fees are collected by the same
    instruction.
    """
    kind: ClassVar[OperationKind] = OperationKind.DECREASE_LIQUIDITY

    position: PersonalPosition
    pool: PoolSnapshot
    liquidity: Optional[int] = None
    slippage_bps: Optional[int] = None
    freshness: Optional[Freshness] = None


@dataclass(frozen=True)
class CollectFeesRequest:
    """Collect owed fees and rewards without touching liquidity"""
    kind: ClassVar[OperationKind] = OperationKind.COLLECT_FEES

    position: PersonalPosition
    pool: PoolSnapshot
    freshness: Optional[Freshness] = None


@dataclass(frozen=True)
class ClosePositionRequest:
    """
    Close a position and burn its NFT

    With withdraw=True, remaining liquidity and owed amounts are withdrawn
    first in the same transaction.
    """
    kind: ClassVar[OperationKind] = OperationKind.CLOSE_POSITION

    position: PersonalPosition
    pool: PoolSnapshot
    withdraw: bool = True
    slippage_bps: Optional[int] = None
    freshness: Optional[Freshness] = None


@dataclass(frozen=True)
class SwapRequest:
    """
    Single-hop swap

    Attributes:
        pool: Pool snapshot including amm config and tick arrays
        input_mint: Mint being sold (decides the direction)
        amount: Exact input (is_base_input=True) or exact output amount
        other_amount_threshold: Minimum output (exact-in) or maximum input
            (exact-out). Derived from the estimate and slippage_bps if None.
        slippage_bps: Tolerance used when other_amount_threshold is None
        sqrt_price_limit_x64: Price limit, 0 for none
    """
    kind: ClassVar[OperationKind] = OperationKind.SWAP

    pool: PoolSnapshot
    input_mint: str
    amount: int
    other_amount_threshold: Optional[int] = None
    is_base_input: bool = True
    slippage_bps: Optional[int] = None
    sqrt_price_limit_x64: int = 0
    freshness: Optional[Freshness] = None

    @property
    def zero_for_one(self) -> bool:
        return self.input_mint == self.pool.pool.mint_0

    @property
    def output_mint(self) -> str:
        pool = self.pool.pool
        return pool.mint_1 if self.zero_for_one else pool.mint_0

    def __post_init__(self):
        if self.amount <= 0:
            raise ConfigurationError.invalid("amount", f"must be positive, got {self.amount}")
        # Raises if the mint is not part of the pool
        self.pool.mint_info(self.input_mint)


@dataclass(frozen=True)
class SwapHop:
    """One hop of a route: a pool and the mint sold into it"""
    pool: PoolSnapshot
    input_mint: str

    @property
    def output_mint(self) -> str:
        pool = self.pool.pool
        return pool.mint_1 if self.input_mint == pool.mint_0 else pool.mint_0


@dataclass(frozen=True)
class SwapRoute:
    """
    Ordered hops where each hop's output mint is the next hop's input mint
    """
    hops: Tuple[SwapHop, ...]

    def __post_init__(self):
        if not self.hops:
            raise ConfigurationError.invalid("route", "route has no hops")
        for hop in self.hops:
            hop.pool.mint_info(hop.input_mint)
        for prev, nxt in zip(self.hops, self.hops[1:]):
            if prev.output_mint != nxt.input_mint:
                raise ConfigurationError.invalid(
                    "route",
                    f"hop output {prev.output_mint} does not feed next hop input {nxt.input_mint}",
                )

    @property
    def input_mint(self) -> str:
        return self.hops[0].input_mint

    @property
    def output_mint(self) -> str:
        return self.hops[-1].output_mint

    def mints(self) -> List[str]:
        return [self.input_mint] + [hop.output_mint for hop in self.hops]


@dataclass(frozen=True)
class RoutedSwapRequest:
    """Exact-in swap across a route; only the last hop enforces minimum_amount_out"""
    kind: ClassVar[OperationKind] = OperationKind.SWAP_ROUTED

    route: SwapRoute
    amount_in: int
    minimum_amount_out: int
    freshness: Optional[Freshness] = None

    def __post_init__(self):
        if self.amount_in <= 0:
            raise ConfigurationError.invalid("amount_in", f"must be positive, got {self.amount_in}")


@dataclass(frozen=True)
class WrapNativeRequest:
    """Move lamports into the owner's wrapped SOL account"""
    kind: ClassVar[OperationKind] = OperationKind.WRAP_NATIVE

    lamports: int

    def __post_init__(self):
        if self.lamports <= 0:
            raise ConfigurationError.invalid("lamports", f"must be positive, got {self.lamports}")


@dataclass(frozen=True)
class UnwrapNativeRequest:
    """Close the owner's wrapped SOL account, reclaiming lamports"""
    kind: ClassVar[OperationKind] = OperationKind.UNWRAP_NATIVE


@dataclass(frozen=True)
class InitializeRewardRequest:
    """
    Open one of the pool's reward slots for reward_mint

    emissions_per_second is in raw token units. The funder (the owner) pays
    the whole emission for [open_time, end_time) up front.
    """
    kind: ClassVar[OperationKind] = OperationKind.INITIALIZE_REWARD

    pool: PoolSnapshot
    reward_mint: MintInfo
    open_time: int
    end_time: int
    emissions_per_second: Decimal
    freshness: Optional[Freshness] = None

    def __post_init__(self):
        _require_period(self.open_time, self.end_time)
        if Decimal(str(self.emissions_per_second)) <= 0:
            raise ConfigurationError.invalid(
                "emissions_per_second", f"must be positive, got {self.emissions_per_second}"
            )


@dataclass(frozen=True)
class SetRewardParamsRequest:
    """Change the emission rate or period of an initialized reward slot"""
    kind: ClassVar[OperationKind] = OperationKind.SET_REWARD_PARAMS

    pool: PoolSnapshot
    reward_index: int
    open_time: int
    end_time: int
    emissions_per_second: Decimal
    freshness: Optional[Freshness] = None

    def __post_init__(self):
        _require_period(self.open_time, self.end_time)
        if Decimal(str(self.emissions_per_second)) < 0:
            raise ConfigurationError.invalid(
                "emissions_per_second", f"must be non-negative, got {self.emissions_per_second}"
            )


def _require_one_of(liquidity: Optional[int], amount: Optional[int]) -> None:
    if (liquidity is None) == (amount is None):
        raise ConfigurationError.invalid("liquidity/amount", "exactly one of liquidity or amount is required")
    value = liquidity if liquidity is not None else amount
    if value <= 0:
        raise ConfigurationError.invalid("liquidity/amount", f"must be positive, got {value}")


def _require_period(open_time: int, end_time: int) -> None:
    if open_time < 0:
        raise ConfigurationError.invalid("open_time", f"must be non-negative, got {open_time}")
    if end_time <= open_time:
        raise ConfigurationError.invalid("end_time", f"end_time {end_time} must be after open_time {open_time}")
