"""
Exception definitions for CLMM Client
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """
    Unified error codes for transaction building

    1xxx - Address derivation errors
    2xxx - Tick/range errors
    3xxx - Token account errors
    4xxx - Snapshot errors
    5xxx - Liquidity/slippage errors
    6xxx - Transaction assembly errors
    7xxx - Operation errors
    9xxx - Configuration errors
    """
    # Address derivation errors
    INVALID_SEED = "1001"

    # Tick/range errors
    INVALID_RANGE = "2001"
    TICK_OUT_OF_BOUNDS = "2002"

    # Token account errors
    ACCOUNT_RESOLUTION_FAILED = "3001"

    # Snapshot errors
    SNAPSHOT_STALE = "4001"
    SNAPSHOT_DECODE_FAILED = "4002"

    # Liquidity/slippage errors
    LIQUIDITY_INSUFFICIENT = "5001"
    SLIPPAGE_EXCEEDED = "5002"

    # Transaction assembly errors
    TX_TOO_LARGE = "6001"

    # Operation errors
    OPERATION_NOT_SUPPORTED = "7001"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"


class ClmmError(Exception):
    """
    Base exception for all CLMM client errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether re-fetching state and rebuilding might succeed
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    @property
    def should_refetch(self) -> bool:
        """Indicate if the caller should refresh snapshots and rebuild"""
        return self.recoverable


class InvalidSeed(ClmmError):
    """
    Seed violates the program's derivation rules - not recoverable

    Raised when:
    - A seed is longer than 32 bytes or there are too many seeds
    - A tick array start index is not aligned to the array span
    - An address or index cannot be encoded
    """

    def __init__(self, message: str, seed: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.INVALID_SEED,
            recoverable=False,
            details={"seed": seed},
        )
        self.seed = seed

    @classmethod
    def bad_value(cls, seed: str, reason: str) -> "InvalidSeed":
        return cls(f"Invalid seed '{seed}': {reason}", seed=seed)

    @classmethod
    def unaligned_tick_array(cls, start_index: int, tick_spacing: int) -> "InvalidSeed":
        return cls(
            f"Tick array start index {start_index} is not a multiple of 60 * {tick_spacing}",
            seed="tick_array",
        )


class InvalidRange(ClmmError):
    """
    Tick range rejected before any instruction is built

    Raised when:
    - lower tick >= upper tick
    - a bound is not a multiple of the pool's tick spacing
    """

    def __init__(
        self,
        message: str,
        tick_lower: Optional[int] = None,
        tick_upper: Optional[int] = None,
    ):
        super().__init__(
            message,
            ErrorCode.INVALID_RANGE,
            recoverable=False,
            details={"tick_lower": tick_lower, "tick_upper": tick_upper},
        )
        self.tick_lower = tick_lower
        self.tick_upper = tick_upper

    @classmethod
    def empty(cls, tick_lower: int, tick_upper: int) -> "InvalidRange":
        return cls(
            f"Tick range [{tick_lower}, {tick_upper}] is empty or inverted",
            tick_lower=tick_lower,
            tick_upper=tick_upper,
        )

    @classmethod
    def unaligned(cls, tick_lower: int, tick_upper: int, tick_spacing: int) -> "InvalidRange":
        return cls(
            f"Tick range [{tick_lower}, {tick_upper}] is not aligned to tick spacing {tick_spacing}",
            tick_lower=tick_lower,
            tick_upper=tick_upper,
        )


class TickOutOfBounds(ClmmError):
    """Tick or sqrt price outside the representable range"""

    def __init__(self, message: str, value: Optional[int] = None):
        super().__init__(
            message,
            ErrorCode.TICK_OUT_OF_BOUNDS,
            recoverable=False,
            details={"value": value},
        )
        self.value = value

    @classmethod
    def tick(cls, tick: int, min_tick: int, max_tick: int) -> "TickOutOfBounds":
        return cls(f"Tick must be in [{min_tick}, {max_tick}], got {tick}", value=tick)

    @classmethod
    def sqrt_price(cls, sqrt_price_x64: int) -> "TickOutOfBounds":
        return cls(f"Sqrt price {sqrt_price_x64} is outside the supported range", value=sqrt_price_x64)


class AccountResolutionError(ClmmError):
    """
    Token account could not be resolved

    Raised when:
    - Owner or mint is not a valid public key
    - A mint's token program is unknown
    """

    def __init__(
        self,
        message: str,
        owner: Optional[str] = None,
        mint: Optional[str] = None,
    ):
        super().__init__(
            message,
            ErrorCode.ACCOUNT_RESOLUTION_FAILED,
            recoverable=False,
            details={"owner": owner, "mint": mint},
        )
        self.owner = owner
        self.mint = mint

    @classmethod
    def malformed(cls, field_name: str, value: object) -> "AccountResolutionError":
        return cls(f"Malformed {field_name}: {value!r}")


class StaleSnapshot(ClmmError):
    """
    Snapshot older than the caller's freshness threshold - recoverable by refetching
    """

    def __init__(
        self,
        message: str,
        taken_at: Optional[int] = None,
        current: Optional[int] = None,
        max_age: Optional[int] = None,
    ):
        super().__init__(
            message,
            ErrorCode.SNAPSHOT_STALE,
            recoverable=True,
            details={"taken_at": taken_at, "current": current, "max_age": max_age},
        )
        self.taken_at = taken_at
        self.current = current
        self.max_age = max_age

    @classmethod
    def too_old(cls, name: str, taken_at: int, current: int, max_age: int) -> "StaleSnapshot":
        return cls(
            f"{name} snapshot taken at {taken_at} is {current - taken_at} old (limit {max_age})",
            taken_at=taken_at,
            current=current,
            max_age=max_age,
        )

    @classmethod
    def unmarked(cls, name: str) -> "StaleSnapshot":
        return cls(f"{name} snapshot carries no 'taken at' marker but freshness was requested")


class SnapshotDecodeError(ClmmError):
    """
    Account data does not match the program's binary layout - fatal
    """

    def __init__(self, message: str, account_type: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.SNAPSHOT_DECODE_FAILED,
            recoverable=False,
            details={"account_type": account_type},
        )
        self.account_type = account_type

    @classmethod
    def bad_length(cls, account_type: str, expected: int, actual: int) -> "SnapshotDecodeError":
        return cls(
            f"{account_type} data must be at least {expected} bytes, got {actual}",
            account_type=account_type,
        )

    @classmethod
    def bad_discriminator(cls, account_type: str, actual: bytes) -> "SnapshotDecodeError":
        return cls(
            f"{account_type} discriminator mismatch (got {actual.hex()})",
            account_type=account_type,
        )

    @classmethod
    def mismatch(cls, account_type: str, reason: str) -> "SnapshotDecodeError":
        return cls(f"{account_type} snapshot mismatch: {reason}", account_type=account_type)


class InsufficientLiquidity(ClmmError):
    """
    Pool state cannot satisfy the request

    Raised when:
    - A swap cannot be filled within the covered tick arrays
    - A decrease asks for more liquidity than the position holds
    - Computed liquidity rounds to zero
    """

    def __init__(
        self,
        message: str,
        requested: Optional[int] = None,
        available: Optional[int] = None,
    ):
        super().__init__(
            message,
            ErrorCode.LIQUIDITY_INSUFFICIENT,
            recoverable=False,
            details={"requested": requested, "available": available},
        )
        self.requested = requested
        self.available = available

    @classmethod
    def swap_unfilled(cls, requested: int, filled: int) -> "InsufficientLiquidity":
        return cls(
            f"Swap can only fill {filled} of {requested} within the covered tick arrays",
            requested=requested,
            available=filled,
        )

    @classmethod
    def position_liquidity(cls, requested: int, available: int) -> "InsufficientLiquidity":
        return cls(
            f"Cannot remove {requested} liquidity, position holds {available}",
            requested=requested,
            available=available,
        )

    @classmethod
    def zero_liquidity(cls) -> "InsufficientLiquidity":
        return cls("Deposit amounts produce zero liquidity for this range", requested=0)


class SlippageExceeded(ClmmError):
    """
    Client-side estimate violates the caller's bound - recoverable with retry
    """

    def __init__(
        self,
        message: str,
        expected: Optional[int] = None,
        bound: Optional[int] = None,
        slippage_bps: Optional[int] = None,
    ):
        super().__init__(
            message,
            ErrorCode.SLIPPAGE_EXCEEDED,
            recoverable=True,
            details={
                "expected": expected,
                "bound": bound,
                "slippage_bps": slippage_bps,
            },
        )
        self.expected = expected
        self.bound = bound
        self.slippage_bps = slippage_bps

    @classmethod
    def output_below_minimum(cls, expected: int, minimum: int) -> "SlippageExceeded":
        return cls(
            f"Estimated output {expected} is below the requested minimum {minimum}",
            expected=expected,
            bound=minimum,
        )

    @classmethod
    def input_above_maximum(cls, expected: int, maximum: int) -> "SlippageExceeded":
        return cls(
            f"Estimated input {expected} exceeds the allowed maximum {maximum}",
            expected=expected,
            bound=maximum,
        )


class TransactionTooLarge(ClmmError):
    """An atomic instruction set cannot fit in one transaction"""

    def __init__(
        self,
        message: str,
        label: Optional[str] = None,
        size: Optional[int] = None,
        instructions: Optional[int] = None,
    ):
        super().__init__(
            message,
            ErrorCode.TX_TOO_LARGE,
            recoverable=False,
            details={"label": label, "size": size, "instructions": instructions},
        )
        self.label = label
        self.size = size
        self.instructions = instructions

    @classmethod
    def exceeds(
        cls,
        label: str,
        size: int,
        max_size: int,
        instructions: int,
        max_instructions: int,
    ) -> "TransactionTooLarge":
        return cls(
            f"'{label}' needs {instructions} instructions / {size} bytes, "
            f"limit is {max_instructions} instructions / {max_size} bytes",
            label=label,
            size=size,
            instructions=instructions,
        )


class ConfigurationError(ClmmError):
    """
    Configuration-related errors

    Raised when:
    - Required configuration is missing
    - Configuration or request values are invalid
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(f"Missing required configuration: {param}", ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)


class OperationNotSupported(ClmmError):
    """
    Operation not enabled or not known to the builder registry
    """

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.OPERATION_NOT_SUPPORTED,
            recoverable=False,
            details={"operation": operation},
        )
        self.operation = operation

    @classmethod
    def disabled(cls, operation: str, flag: str) -> "OperationNotSupported":
        return cls(
            f"Operation '{operation}' is disabled (set {flag} to enable)",
            operation=operation,
        )

    @classmethod
    def unknown(cls, operation: str) -> "OperationNotSupported":
        return cls(f"No builder registered for '{operation}'", operation=operation)
