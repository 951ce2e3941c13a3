"""
CLMM Client - Transaction construction for Raydium concentrated liquidity pools

Provides instruction sets for:
- Pool creation
- Position lifecycle (open, increase, decrease, collect, close)
- Single-hop and routed swaps with client-side estimates
- Wrapped SOL handling
- Pool reward setup (initialize_reward, set_reward_params)

and packs them into size-limited, phase-ordered unsigned transactions.
"""

from .client import ClmmClient
from .types import (
    MintInfo,
    Freshness,
    PoolSnapshot,
    PersonalPosition,
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
    Phase,
    InstructionSet,
    TransactionPackage,
    SwapQuote,
)
from .errors import (
    ClmmError,
    ErrorCode,
    InvalidSeed,
    InvalidRange,
    TickOutOfBounds,
    AccountResolutionError,
    StaleSnapshot,
    SnapshotDecodeError,
    InsufficientLiquidity,
    SlippageExceeded,
    TransactionTooLarge,
    ConfigurationError,
    OperationNotSupported,
)
from .infra import AssemblerConfig, TransactionAssembler
from .modules import BuildContext, build_operation

__version__ = "0.1.0"

__all__ = [
    # Client
    "ClmmClient",
    "BuildContext",
    "build_operation",
    "AssemblerConfig",
    "TransactionAssembler",
    # Types
    "MintInfo",
    "Freshness",
    "PoolSnapshot",
    "PersonalPosition",
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
    "Phase",
    "InstructionSet",
    "TransactionPackage",
    "SwapQuote",
    # Errors
    "ClmmError",
    "ErrorCode",
    "InvalidSeed",
    "InvalidRange",
    "TickOutOfBounds",
    "AccountResolutionError",
    "StaleSnapshot",
    "SnapshotDecodeError",
    "InsufficientLiquidity",
    "SlippageExceeded",
    "TransactionTooLarge",
    "ConfigurationError",
    "OperationNotSupported",
]
