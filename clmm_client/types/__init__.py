"""
Type definitions for CLMM Client
"""

from .common import MintInfo, Freshness, ensure_fresh
from .pool import (
    AmmConfig,
    RewardInfo,
    PoolState,
    TickState,
    TickArray,
    TickArrayBitmapExtension,
    PoolSnapshot,
)
from .position import PersonalPosition, PositionRewardInfo
from .requests import (
    OperationKind,
    CreatePoolRequest,
    OpenPositionRequest,
    IncreaseLiquidityRequest,
    DecreaseLiquidityRequest,
    CollectFeesRequest,
    ClosePositionRequest,
    SwapRequest,
    SwapHop,
    SwapRoute,
    RoutedSwapRequest,
    WrapNativeRequest,
    UnwrapNativeRequest,
    InitializeRewardRequest,
    SetRewardParamsRequest,
)
from .result import (
    Phase,
    InstructionStep,
    CreatedAccount,
    SwapQuote,
    InstructionSet,
    TransactionPackage,
)

__all__ = [
    # Snapshots
    "MintInfo",
    "Freshness",
    "ensure_fresh",
    "AmmConfig",
    "RewardInfo",
    "PoolState",
    "TickState",
    "TickArray",
    "TickArrayBitmapExtension",
    "PoolSnapshot",
    "PersonalPosition",
    "PositionRewardInfo",
    # Requests
    "OperationKind",
    "CreatePoolRequest",
    "OpenPositionRequest",
    "IncreaseLiquidityRequest",
    "DecreaseLiquidityRequest",
    "CollectFeesRequest",
    "ClosePositionRequest",
    "SwapRequest",
    "SwapHop",
    "SwapRoute",
    "RoutedSwapRequest",
    "WrapNativeRequest",
    "UnwrapNativeRequest",
    "InitializeRewardRequest",
    "SetRewardParamsRequest",
    # Results
    "Phase",
    "InstructionStep",
    "CreatedAccount",
    "SwapQuote",
    "InstructionSet",
    "TransactionPackage",
]
