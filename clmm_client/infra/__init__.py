"""
Infrastructure layer for CLMM Client
"""

from .tx_builder import (
    AssemblerConfig,
    TransactionAssembler,
    build_unsigned_transaction,
    transaction_size,
)

__all__ = [
    "AssemblerConfig",
    "TransactionAssembler",
    "build_unsigned_transaction",
    "transaction_size",
]
