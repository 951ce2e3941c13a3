"""
Instruction builders for ClmmClient

Provides:
- LiquidityModule: pool creation and LP position operations
- SwapModule: single-hop and routed swaps
- RewardModule: pool reward setup
- build_operation: dispatch of a request to its builder by OperationKind
"""

from typing import Callable, Dict

from .context import BuildContext
from .liquidity import (
    LiquidityModule,
    build_create_pool,
    build_open_position,
    build_increase_liquidity,
    build_decrease_liquidity,
    build_collect_fees,
    build_close_position,
    build_wrap_native,
    build_unwrap_native,
)
from .rewards import RewardModule, build_initialize_reward, build_set_reward_params
from .swap import SwapModule, build_swap, build_routed_swap, quote_swap
from ..errors import OperationNotSupported
from ..types import InstructionSet, OperationKind

# One builder per operation the program supports
_BUILDERS: Dict[OperationKind, Callable[..., InstructionSet]] = {
    OperationKind.CREATE_POOL: build_create_pool,
    OperationKind.OPEN_POSITION: build_open_position,
    OperationKind.INCREASE_LIQUIDITY: build_increase_liquidity,
    OperationKind.DECREASE_LIQUIDITY: build_decrease_liquidity,
    OperationKind.COLLECT_FEES: build_collect_fees,
    OperationKind.CLOSE_POSITION: build_close_position,
    OperationKind.SWAP: build_swap,
    OperationKind.SWAP_ROUTED: build_routed_swap,
    OperationKind.WRAP_NATIVE: build_wrap_native,
    OperationKind.UNWRAP_NATIVE: build_unwrap_native,
    OperationKind.INITIALIZE_REWARD: build_initialize_reward,
    OperationKind.SET_REWARD_PARAMS: build_set_reward_params,
}


def build_operation(request, ctx: BuildContext) -> InstructionSet:
    """
    Build the instruction set for any request

    Raises:
        OperationNotSupported: request.kind has no builder
    """
    kind = getattr(request, "kind", None)
    builder = _BUILDERS.get(kind)
    if builder is None:
        raise OperationNotSupported.unknown(getattr(kind, "value", type(request).__name__))
    return builder(request, ctx)


__all__ = [
    # Modules
    "LiquidityModule",
    "SwapModule",
    "RewardModule",
    # Dispatch
    "BuildContext",
    "build_operation",
    # Builders
    "build_create_pool",
    "build_open_position",
    "build_increase_liquidity",
    "build_decrease_liquidity",
    "build_collect_fees",
    "build_close_position",
    "build_wrap_native",
    "build_unwrap_native",
    "build_swap",
    "build_routed_swap",
    "quote_swap",
    "build_initialize_reward",
    "build_set_reward_params",
]
