"""
Error definitions for CLMM Client
"""

from .exceptions import (
    ErrorCode,
    ClmmError,
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

__all__ = [
    "ErrorCode",
    "ClmmError",
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
