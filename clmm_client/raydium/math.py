"""
Raydium CLMM Math Utilities

Provides tick/price conversion and liquidity calculations.

All fixed-point routines mirror the on-chain program's integer arithmetic
(Q64.64 sqrt prices, u128 inversion, explicit rounding direction) so that
client-side amounts match what the program computes.
"""

from decimal import Decimal, Context, ROUND_FLOOR, ROUND_HALF_EVEN
from enum import Enum
from typing import Optional, Tuple

from .constants import (
    Q64,
    MAX_UINT128,
    MIN_TICK,
    MAX_TICK,
    MIN_SQRT_PRICE_X64,
    MAX_SQRT_PRICE_X64,
    TICK_ARRAY_SIZE,
)
from ..errors import TickOutOfBounds, InvalidRange, ConfigurationError


# Enough digits for (2^96)^2 with room to spare
_CTX = Context(prec=100)

# Multipliers for bits 1..18 of |tick|: 2^64 / sqrt(1.0001)^(2^i)
_TICK_BIT_RATIOS = (
    (0x2, 0xfff97272373d4000),
    (0x4, 0xfff2e50f5f657000),
    (0x8, 0xffe5caca7e10f000),
    (0x10, 0xffcb9843d60f7000),
    (0x20, 0xff973b41fa98e800),
    (0x40, 0xff2ea16466c9b000),
    (0x80, 0xfe5dee046a9a3800),
    (0x100, 0xfcbe86c7900bb000),
    (0x200, 0xf987a7253ac65800),
    (0x400, 0xf3392b0822bb6000),
    (0x800, 0xe7159475a2caf000),
    (0x1000, 0xd097f3bdfd2f2000),
    (0x2000, 0xa9f746462d9f8000),
    (0x4000, 0x70d869a156f31c00),
    (0x8000, 0x31be135f97ed3200),
    (0x10000, 0x9aa508b5b85a500),
    (0x20000, 0x5d6af8dedc582c),
    (0x40000, 0x2216e584f5fa),
)


class Rounding(Enum):
    """
    Rounding direction for price -> tick conversion

    DOWN rounds toward the lower tick (use for a range's lower bound),
    UP rounds toward the higher tick (use for a range's upper bound).
    """
    DOWN = "down"
    UP = "up"


def div_ceil(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def mul_div(a: int, b: int, denominator: int, round_up: bool) -> int:
    if round_up:
        return div_ceil(a * b, denominator)
    return (a * b) // denominator


def check_tick(tick: int) -> None:
    """Raise TickOutOfBounds if tick is outside [MIN_TICK, MAX_TICK]"""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise TickOutOfBounds.tick(tick, MIN_TICK, MAX_TICK)


def tick_to_sqrt_price_x64(tick: int) -> int:
    """
    Convert tick to sqrt price in X64 fixed-point format

    Args:
        tick: Tick index

    Returns:
        Sqrt price as X64 fixed-point integer
    """
    check_tick(tick)

    tick_abs = abs(tick)

    # Bit 0 seeds the ratio, 2^64 otherwise
    ratio = 0xfffcb933bd6fb800 if (tick_abs & 0x1) != 0 else Q64

    for bit, multiplier in _TICK_BIT_RATIOS:
        if (tick_abs & bit) != 0:
            ratio = (ratio * multiplier) >> 64

    # ratio = 1.0001^(-|tick|/2); invert with u128::MAX like the program
    if tick > 0:
        ratio = MAX_UINT128 // ratio

    return ratio


def sqrt_price_x64_to_tick(sqrt_price_x64: int) -> int:
    """
    Greatest tick whose sqrt price is <= sqrt_price_x64

    Args:
        sqrt_price_x64: Sqrt price in X64 format

    Returns:
        Tick index
    """
    if sqrt_price_x64 < MIN_SQRT_PRICE_X64 or sqrt_price_x64 > MAX_SQRT_PRICE_X64:
        raise TickOutOfBounds.sqrt_price(sqrt_price_x64)

    low, high = MIN_TICK, MAX_TICK
    while low < high:
        mid = (low + high + 1) // 2
        if tick_to_sqrt_price_x64(mid) <= sqrt_price_x64:
            low = mid
        else:
            high = mid - 1
    return low


def sqrt_price_x64_to_price(
    sqrt_price_x64: int,
    decimals_0: int,
    decimals_1: int,
) -> Decimal:
    """
    Convert sqrt price X64 to human-readable price

    Args:
        sqrt_price_x64: Sqrt price in X64 format
        decimals_0: Token 0 decimals
        decimals_1: Token 1 decimals

    Returns:
        Price of token 0 in terms of token 1
    """
    # price = (sqrt_price_x64 / 2^64)^2 * 10^(decimals_0 - decimals_1)
    sqrt_price = _CTX.divide(Decimal(sqrt_price_x64), Decimal(Q64))
    price = _CTX.multiply(sqrt_price, sqrt_price)
    return _CTX.multiply(price, _CTX.power(Decimal(10), decimals_0 - decimals_1))


def price_to_sqrt_price_x64(
    price: Decimal,
    decimals_0: int,
    decimals_1: int,
) -> int:
    """
    Convert price to sqrt price X64 (nearest integer)

    Args:
        price: Price of token 0 in terms of token 1
        decimals_0: Token 0 decimals
        decimals_1: Token 1 decimals

    Returns:
        Sqrt price in X64 format
    """
    price = Decimal(str(price)) if not isinstance(price, Decimal) else price
    if price <= 0:
        raise ConfigurationError.invalid("price", f"price must be positive, got {price}")

    raw_price = _CTX.multiply(price, _CTX.power(Decimal(10), decimals_1 - decimals_0))
    sqrt_price = _CTX.sqrt(raw_price)
    scaled = _CTX.multiply(sqrt_price, Decimal(Q64))
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_EVEN, context=_CTX))


def tick_to_price(
    tick: int,
    decimals_0: int,
    decimals_1: int,
) -> Decimal:
    """Convert tick to human-readable price of token 0 in token 1"""
    sqrt_price_x64 = tick_to_sqrt_price_x64(tick)
    return sqrt_price_x64_to_price(sqrt_price_x64, decimals_0, decimals_1)


def price_to_tick(
    price: Decimal,
    decimals_0: int,
    decimals_1: int,
    tick_spacing: int,
    rounding: Rounding,
) -> int:
    """
    Convert price to tick aligned to tick spacing

    Args:
        price: Price of token 0 in terms of token 1
        decimals_0: Token 0 decimals
        decimals_1: Token 1 decimals
        tick_spacing: Tick spacing for the pool
        rounding: Direction to round when the price is not exactly on an aligned tick

    Returns:
        Tick index (multiple of tick_spacing)
    """
    if tick_spacing <= 0:
        raise ConfigurationError.invalid("tick_spacing", f"must be positive, got {tick_spacing}")

    sqrt_price_x64 = price_to_sqrt_price_x64(price, decimals_0, decimals_1)
    tick = sqrt_price_x64_to_tick(sqrt_price_x64)

    aligned = (tick // tick_spacing) * tick_spacing
    if rounding == Rounding.UP:
        on_tick = aligned == tick and tick_to_sqrt_price_x64(tick) == sqrt_price_x64
        if not on_tick:
            aligned += tick_spacing

    check_tick(aligned)
    return aligned


def invert_price(price: Decimal) -> Decimal:
    """Price of token 1 in terms of token 0, at the module's precision"""
    price = Decimal(str(price)) if not isinstance(price, Decimal) else price
    if price <= 0:
        raise ConfigurationError.invalid("price", f"price must be positive, got {price}")
    return _CTX.divide(Decimal(1), price)


def emissions_per_second_to_x64(emissions_per_second: Decimal) -> int:
    """
    Reward emission rate (raw tokens per second) as Q64.64, rounded down

    Raises:
        ConfigurationError: Negative rate or a rate that does not fit in u128
    """
    if not isinstance(emissions_per_second, Decimal):
        emissions_per_second = Decimal(str(emissions_per_second))
    if emissions_per_second < 0:
        raise ConfigurationError.invalid(
            "emissions_per_second", f"must be non-negative, got {emissions_per_second}"
        )
    scaled = _CTX.multiply(emissions_per_second, Decimal(Q64))
    emissions_x64 = int(scaled.to_integral_value(rounding=ROUND_FLOOR, context=_CTX))
    if emissions_x64 > MAX_UINT128:
        raise ConfigurationError.invalid("emissions_per_second", f"{emissions_per_second} overflows u128")
    return emissions_x64


def reward_amount_for_period(emissions_per_second_x64: int, open_time: int, end_time: int) -> int:
    """Tokens a reward emits between open_time and end_time (rounded up)"""
    if end_time <= open_time:
        raise ConfigurationError.invalid(
            "end_time", f"end_time {end_time} must be after open_time {open_time}"
        )
    return div_ceil(emissions_per_second_x64 * (end_time - open_time), Q64)


def tick_with_spacing(tick: int, tick_spacing: int) -> int:
    """Round tick down to a multiple of tick spacing"""
    return (tick // tick_spacing) * tick_spacing


def one_tick_range(
    current_tick: int,
    tick_spacing: int,
) -> Tuple[int, int]:
    """
    Calculate single-spacing range containing the current tick

    Returns:
        (lower_tick, upper_tick)
    """
    lower_tick = tick_with_spacing(current_tick, tick_spacing)
    return lower_tick, lower_tick + tick_spacing


def validate_tick_range(tick_lower: int, tick_upper: int, tick_spacing: int) -> None:
    """
    Reject ranges the program would refuse

    Raises:
        TickOutOfBounds: A bound is outside [MIN_TICK, MAX_TICK]
        InvalidRange: Empty/inverted range or bounds not on tick spacing
    """
    check_tick(tick_lower)
    check_tick(tick_upper)
    if tick_lower >= tick_upper:
        raise InvalidRange.empty(tick_lower, tick_upper)
    if tick_spacing <= 0 or tick_lower % tick_spacing != 0 or tick_upper % tick_spacing != 0:
        raise InvalidRange.unaligned(tick_lower, tick_upper, tick_spacing)


def get_delta_amount_0(
    sqrt_price_x64_a: int,
    sqrt_price_x64_b: int,
    liquidity: int,
    round_up: bool,
) -> int:
    """
    Token 0 delta between two sqrt prices

    Formula: liquidity * 2^64 * (sqrtB - sqrtA) / sqrtB / sqrtA
    """
    if sqrt_price_x64_a > sqrt_price_x64_b:
        sqrt_price_x64_a, sqrt_price_x64_b = sqrt_price_x64_b, sqrt_price_x64_a

    numerator_1 = liquidity << 64
    numerator_2 = sqrt_price_x64_b - sqrt_price_x64_a

    if round_up:
        return div_ceil(mul_div(numerator_1, numerator_2, sqrt_price_x64_b, True), sqrt_price_x64_a)
    return mul_div(numerator_1, numerator_2, sqrt_price_x64_b, False) // sqrt_price_x64_a


def get_delta_amount_1(
    sqrt_price_x64_a: int,
    sqrt_price_x64_b: int,
    liquidity: int,
    round_up: bool,
) -> int:
    """
    Token 1 delta between two sqrt prices

    Formula: liquidity * (sqrtB - sqrtA) / 2^64
    """
    if sqrt_price_x64_a > sqrt_price_x64_b:
        sqrt_price_x64_a, sqrt_price_x64_b = sqrt_price_x64_b, sqrt_price_x64_a

    return mul_div(liquidity, sqrt_price_x64_b - sqrt_price_x64_a, Q64, round_up)


def liquidity_to_amounts(
    liquidity: int,
    tick_lower: int,
    tick_upper: int,
    tick_current: int,
    round_up: bool,
    sqrt_price_current_x64: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Token amounts for a liquidity delta over a tick range

    The regime is chosen by the current tick, as the program does:
    below the range only token 0, above it only token 1, inside it both
    (split at the current sqrt price).

    Args:
        liquidity: Liquidity delta (non-negative)
        tick_lower: Lower tick of the range
        tick_upper: Upper tick of the range
        tick_current: Pool's current tick
        round_up: True for deposits (user pays at least what the pool needs),
            False for withdrawals (user never expects more than the pool pays)
        sqrt_price_current_x64: Pool's sqrt price; derived from tick_current if omitted

    Returns:
        (amount_0, amount_1) raw token amounts
    """
    check_tick(tick_lower)
    check_tick(tick_upper)
    if tick_lower >= tick_upper:
        raise InvalidRange.empty(tick_lower, tick_upper)
    if liquidity < 0:
        raise ConfigurationError.invalid("liquidity", f"must be non-negative, got {liquidity}")

    sqrt_lower = tick_to_sqrt_price_x64(tick_lower)
    sqrt_upper = tick_to_sqrt_price_x64(tick_upper)
    if sqrt_price_current_x64 is None:
        sqrt_price_current_x64 = tick_to_sqrt_price_x64(tick_current)

    if tick_current < tick_lower:
        return get_delta_amount_0(sqrt_lower, sqrt_upper, liquidity, round_up), 0
    if tick_current < tick_upper:
        amount_0 = get_delta_amount_0(sqrt_price_current_x64, sqrt_upper, liquidity, round_up)
        amount_1 = get_delta_amount_1(sqrt_lower, sqrt_price_current_x64, liquidity, round_up)
        return amount_0, amount_1
    return 0, get_delta_amount_1(sqrt_lower, sqrt_upper, liquidity, round_up)


def get_liquidity_from_amount_0(
    sqrt_price_x64_a: int,
    sqrt_price_x64_b: int,
    amount_0: int,
) -> int:
    """
    Liquidity from token 0 amount (rounded down)

    Formula: amount * (sqrtA * sqrtB / 2^64) / (sqrtB - sqrtA)
    """
    if sqrt_price_x64_a > sqrt_price_x64_b:
        sqrt_price_x64_a, sqrt_price_x64_b = sqrt_price_x64_b, sqrt_price_x64_a

    if amount_0 == 0 or sqrt_price_x64_a == sqrt_price_x64_b:
        return 0

    intermediate = (sqrt_price_x64_a * sqrt_price_x64_b) // Q64
    return (amount_0 * intermediate) // (sqrt_price_x64_b - sqrt_price_x64_a)


def get_liquidity_from_amount_1(
    sqrt_price_x64_a: int,
    sqrt_price_x64_b: int,
    amount_1: int,
) -> int:
    """
    Liquidity from token 1 amount (rounded down)

    Formula: amount * 2^64 / (sqrtB - sqrtA)
    """
    if sqrt_price_x64_a > sqrt_price_x64_b:
        sqrt_price_x64_a, sqrt_price_x64_b = sqrt_price_x64_b, sqrt_price_x64_a

    if amount_1 == 0 or sqrt_price_x64_a == sqrt_price_x64_b:
        return 0

    return (amount_1 * Q64) // (sqrt_price_x64_b - sqrt_price_x64_a)


def amounts_to_liquidity(
    amount_0: int,
    amount_1: int,
    tick_lower: int,
    tick_upper: int,
    sqrt_price_current_x64: int,
) -> int:
    """
    Largest liquidity both amounts can fund, rounded down

    Args:
        amount_0: Token 0 amount available
        amount_1: Token 1 amount available
        tick_lower: Lower tick of the range
        tick_upper: Upper tick of the range
        sqrt_price_current_x64: Pool's current sqrt price

    Returns:
        Liquidity
    """
    check_tick(tick_lower)
    check_tick(tick_upper)
    if tick_lower >= tick_upper:
        raise InvalidRange.empty(tick_lower, tick_upper)

    sqrt_lower = tick_to_sqrt_price_x64(tick_lower)
    sqrt_upper = tick_to_sqrt_price_x64(tick_upper)

    if sqrt_price_current_x64 <= sqrt_lower:
        return get_liquidity_from_amount_0(sqrt_lower, sqrt_upper, amount_0)
    if sqrt_price_current_x64 < sqrt_upper:
        liquidity_0 = get_liquidity_from_amount_0(sqrt_price_current_x64, sqrt_upper, amount_0)
        liquidity_1 = get_liquidity_from_amount_1(sqrt_lower, sqrt_price_current_x64, amount_1)
        return min(liquidity_0, liquidity_1)
    return get_liquidity_from_amount_1(sqrt_lower, sqrt_upper, amount_1)


def single_amount_to_liquidity(
    amount: int,
    is_base_0: bool,
    tick_lower: int,
    tick_upper: int,
    sqrt_price_current_x64: int,
) -> int:
    """
    Liquidity funded by one side only, the other side being derived from it

    Args:
        amount: Amount of the base token
        is_base_0: True if amount is token 0, False for token 1
        tick_lower: Lower tick of the range
        tick_upper: Upper tick of the range
        sqrt_price_current_x64: Pool's current sqrt price

    Returns:
        Liquidity (0 when the base token is not used at the current price)
    """
    check_tick(tick_lower)
    check_tick(tick_upper)
    if tick_lower >= tick_upper:
        raise InvalidRange.empty(tick_lower, tick_upper)

    sqrt_lower = tick_to_sqrt_price_x64(tick_lower)
    sqrt_upper = tick_to_sqrt_price_x64(tick_upper)

    if is_base_0:
        if sqrt_price_current_x64 <= sqrt_lower:
            return get_liquidity_from_amount_0(sqrt_lower, sqrt_upper, amount)
        if sqrt_price_current_x64 < sqrt_upper:
            return get_liquidity_from_amount_0(sqrt_price_current_x64, sqrt_upper, amount)
        return 0

    if sqrt_price_current_x64 <= sqrt_lower:
        return 0
    if sqrt_price_current_x64 < sqrt_upper:
        return get_liquidity_from_amount_1(sqrt_lower, sqrt_price_current_x64, amount)
    return get_liquidity_from_amount_1(sqrt_lower, sqrt_upper, amount)


def apply_slippage_max(amount: int, slippage_bps: int) -> int:
    """Upper bound for an amount the user pays (rounded up)"""
    return div_ceil(amount * (10_000 + slippage_bps), 10_000)


def apply_slippage_min(amount: int, slippage_bps: int) -> int:
    """Lower bound for an amount the user receives (rounded down)"""
    if slippage_bps >= 10_000:
        return 0
    return (amount * (10_000 - slippage_bps)) // 10_000


def tick_array_span(tick_spacing: int) -> int:
    """Number of ticks covered by one tick array"""
    return TICK_ARRAY_SIZE * tick_spacing


def get_tick_array_start_index(tick: int, tick_spacing: int) -> int:
    """
    Calculate tick array start index for a given tick

    Args:
        tick: Tick index
        tick_spacing: Pool tick spacing

    Returns:
        Start tick of the tick array containing this tick
    """
    ticks_in_array = tick_array_span(tick_spacing)

    # Python floor division already rounds towards negative infinity,
    # which is correct for tick array indexing
    return (tick // ticks_in_array) * ticks_in_array
