"""
Raydium CLMM Swap Math

Client-side swap estimation. Mirrors the program's compute_swap_step and
swap loop so that estimates match on-chain results for the same state.
"""

import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence

from .constants import (
    FEE_RATE_DENOMINATOR,
    MAX_UINT64,
    MIN_TICK,
    MAX_TICK,
    MIN_SQRT_PRICE_X64,
    MAX_SQRT_PRICE_X64,
)
from .math import (
    div_ceil,
    mul_div,
    get_delta_amount_0,
    get_delta_amount_1,
    sqrt_price_x64_to_tick,
    tick_to_sqrt_price_x64,
)
from ..errors import ConfigurationError, InsufficientLiquidity
from ..types import PoolState, TickArray, TickState

logger = logging.getLogger(__name__)


class SwapStep(NamedTuple):
    """Result of one swap step within a single liquidity range"""
    sqrt_price_next_x64: int
    amount_in: int
    amount_out: int
    fee_amount: int


@dataclass
class SwapSimulation:
    """
    Outcome of a simulated swap

    Attributes:
        amount_in: Input consumed including fee
        amount_out: Output produced
        fee_amount: Trade fee in the input token
        sqrt_price_after_x64: Sqrt price after the swap
        tick_after: Tick after the swap
        liquidity_after: Active liquidity after the swap
        amount_remaining: Unfilled part of the specified amount (non-zero only
            when the price limit stopped the swap)
        ticks_crossed: Number of initialized ticks crossed
    """
    amount_in: int
    amount_out: int
    fee_amount: int
    sqrt_price_after_x64: int
    tick_after: int
    liquidity_after: int
    amount_remaining: int
    ticks_crossed: int


def get_next_sqrt_price_from_amount_0_rounding_up(
    sqrt_price_x64: int,
    liquidity: int,
    amount: int,
    add: bool,
) -> int:
    """
    Next sqrt price after adding/removing token 0

    Formula: liquidity * sqrtP / (liquidity +- amount * sqrtP)
    """
    if amount == 0:
        return sqrt_price_x64

    numerator_1 = liquidity << 64
    product = amount * sqrt_price_x64
    if add:
        return mul_div(numerator_1, sqrt_price_x64, numerator_1 + product, True)

    if numerator_1 <= product:
        raise InsufficientLiquidity(f"Output of {amount} token 0 exceeds available liquidity")
    return mul_div(numerator_1, sqrt_price_x64, numerator_1 - product, True)


def get_next_sqrt_price_from_amount_1_rounding_down(
    sqrt_price_x64: int,
    liquidity: int,
    amount: int,
    add: bool,
) -> int:
    """
    Next sqrt price after adding/removing token 1

    Formula: sqrtP +- amount / liquidity
    """
    if add:
        return sqrt_price_x64 + (amount << 64) // liquidity

    quotient = div_ceil(amount << 64, liquidity)
    if sqrt_price_x64 <= quotient:
        raise InsufficientLiquidity(f"Output of {amount} token 1 exceeds available liquidity")
    return sqrt_price_x64 - quotient


def get_next_sqrt_price_from_input(sqrt_price_x64: int, liquidity: int, amount_in: int, zero_for_one: bool) -> int:
    if zero_for_one:
        return get_next_sqrt_price_from_amount_0_rounding_up(sqrt_price_x64, liquidity, amount_in, True)
    return get_next_sqrt_price_from_amount_1_rounding_down(sqrt_price_x64, liquidity, amount_in, True)


def get_next_sqrt_price_from_output(sqrt_price_x64: int, liquidity: int, amount_out: int, zero_for_one: bool) -> int:
    if zero_for_one:
        return get_next_sqrt_price_from_amount_1_rounding_down(sqrt_price_x64, liquidity, amount_out, False)
    return get_next_sqrt_price_from_amount_0_rounding_up(sqrt_price_x64, liquidity, amount_out, False)


def _amount_in_range(
    sqrt_price_current_x64: int,
    sqrt_price_target_x64: int,
    liquidity: int,
    zero_for_one: bool,
    is_base_input: bool,
) -> Optional[int]:
    """Amount needed (exact-in) or produced (exact-out) to reach the target; None if it overflows u64"""
    if is_base_input:
        if zero_for_one:
            amount = get_delta_amount_0(sqrt_price_target_x64, sqrt_price_current_x64, liquidity, True)
        else:
            amount = get_delta_amount_1(sqrt_price_current_x64, sqrt_price_target_x64, liquidity, True)
    else:
        if zero_for_one:
            amount = get_delta_amount_1(sqrt_price_target_x64, sqrt_price_current_x64, liquidity, False)
        else:
            amount = get_delta_amount_0(sqrt_price_current_x64, sqrt_price_target_x64, liquidity, False)
    return amount if amount <= MAX_UINT64 else None


def compute_swap_step(
    sqrt_price_current_x64: int,
    sqrt_price_target_x64: int,
    liquidity: int,
    amount_remaining: int,
    fee_rate: int,
    is_base_input: bool,
    zero_for_one: bool,
) -> SwapStep:
    """
    Swap within one liquidity range towards a target price

    Args:
        sqrt_price_current_x64: Current sqrt price
        sqrt_price_target_x64: Price the step may not cross
        liquidity: Active liquidity
        amount_remaining: Remaining input (exact-in) or output (exact-out)
        fee_rate: Trade fee in 1e-6 units
        is_base_input: Exact-in (True) or exact-out (False)
        zero_for_one: Direction

    Returns:
        SwapStep with the next price and amounts
    """
    amount_in = 0
    amount_out = 0

    if is_base_input:
        amount_remaining_less_fee = amount_remaining * (FEE_RATE_DENOMINATOR - fee_rate) // FEE_RATE_DENOMINATOR
        in_range = _amount_in_range(
            sqrt_price_current_x64, sqrt_price_target_x64, liquidity, zero_for_one, True
        )
        if in_range is not None:
            amount_in = in_range
        if in_range is not None and amount_remaining_less_fee >= amount_in:
            sqrt_price_next_x64 = sqrt_price_target_x64
        else:
            sqrt_price_next_x64 = get_next_sqrt_price_from_input(
                sqrt_price_current_x64, liquidity, amount_remaining_less_fee, zero_for_one
            )
    else:
        in_range = _amount_in_range(
            sqrt_price_current_x64, sqrt_price_target_x64, liquidity, zero_for_one, False
        )
        if in_range is not None:
            amount_out = in_range
        if in_range is not None and amount_remaining >= amount_out:
            sqrt_price_next_x64 = sqrt_price_target_x64
        else:
            sqrt_price_next_x64 = get_next_sqrt_price_from_output(
                sqrt_price_current_x64, liquidity, amount_remaining, zero_for_one
            )

    reached_target = sqrt_price_next_x64 == sqrt_price_target_x64

    if zero_for_one:
        if not (reached_target and is_base_input):
            amount_in = get_delta_amount_0(sqrt_price_next_x64, sqrt_price_current_x64, liquidity, True)
        if not (reached_target and not is_base_input):
            amount_out = get_delta_amount_1(sqrt_price_next_x64, sqrt_price_current_x64, liquidity, False)
    else:
        if not (reached_target and is_base_input):
            amount_in = get_delta_amount_1(sqrt_price_current_x64, sqrt_price_next_x64, liquidity, True)
        if not (reached_target and not is_base_input):
            amount_out = get_delta_amount_0(sqrt_price_current_x64, sqrt_price_next_x64, liquidity, False)

    if not is_base_input and amount_out > amount_remaining:
        amount_out = amount_remaining

    if is_base_input and not reached_target:
        # Everything that was not swapped is taken as fee
        fee_amount = amount_remaining - amount_in
    else:
        fee_amount = mul_div(amount_in, fee_rate, FEE_RATE_DENOMINATOR - fee_rate, True)

    return SwapStep(sqrt_price_next_x64, amount_in, amount_out, fee_amount)


def default_sqrt_price_limit(zero_for_one: bool) -> int:
    """Widest allowed price limit for a direction"""
    return MIN_SQRT_PRICE_X64 + 1 if zero_for_one else MAX_SQRT_PRICE_X64 - 1


def _initialized_ticks_in_direction(
    tick_arrays: Sequence[TickArray],
    zero_for_one: bool,
) -> List[TickState]:
    ticks = [t for array in tick_arrays for t in array.initialized_ticks()]
    return sorted(ticks, key=lambda t: t.tick, reverse=zero_for_one)


def simulate_swap(
    pool: PoolState,
    tick_arrays: Sequence[TickArray],
    fee_rate: int,
    amount: int,
    zero_for_one: bool,
    is_base_input: bool,
    sqrt_price_limit_x64: int = 0,
) -> SwapSimulation:
    """
    Simulate a swap across the supplied tick arrays

    Args:
        pool: Pool state (price, tick, liquidity)
        tick_arrays: Tick arrays the swap instruction will receive
        fee_rate: Trade fee in 1e-6 units
        amount: Exact input (is_base_input) or exact output
        zero_for_one: Direction
        is_base_input: Exact-in (True) or exact-out (False)
        sqrt_price_limit_x64: Price limit, 0 for the widest

    Returns:
        SwapSimulation

    Raises:
        InsufficientLiquidity: The covered tick arrays cannot fill the amount
    """
    if sqrt_price_limit_x64 == 0:
        sqrt_price_limit_x64 = default_sqrt_price_limit(zero_for_one)

    if zero_for_one:
        valid_limit = MIN_SQRT_PRICE_X64 < sqrt_price_limit_x64 < pool.sqrt_price_x64
    else:
        valid_limit = pool.sqrt_price_x64 < sqrt_price_limit_x64 < MAX_SQRT_PRICE_X64
    if not valid_limit:
        raise ConfigurationError.invalid(
            "sqrt_price_limit_x64",
            f"{sqrt_price_limit_x64} is on the wrong side of the pool price {pool.sqrt_price_x64}",
        )

    remaining = amount
    calculated = 0
    fee_total = 0
    sqrt_price = pool.sqrt_price_x64
    tick = pool.tick_current
    liquidity = pool.liquidity
    ticks_crossed = 0

    pending = _initialized_ticks_in_direction(tick_arrays, zero_for_one)
    # Ticks already behind the current price in the trade direction are irrelevant
    if zero_for_one:
        pending = [t for t in pending if t.tick <= tick]
    else:
        pending = [t for t in pending if t.tick > tick]
    position = 0

    while remaining != 0 and sqrt_price != sqrt_price_limit_x64 and MIN_TICK < tick < MAX_TICK:
        if position >= len(pending):
            filled = amount - remaining
            logger.debug(f"Swap ran out of initialized ticks after filling {filled} of {amount}")
            raise InsufficientLiquidity.swap_unfilled(amount, filled)

        next_tick = pending[position]
        tick_next = min(max(next_tick.tick, MIN_TICK), MAX_TICK)
        sqrt_price_next = tick_to_sqrt_price_x64(tick_next)

        if (zero_for_one and sqrt_price_next < sqrt_price_limit_x64) or (
            not zero_for_one and sqrt_price_next > sqrt_price_limit_x64
        ):
            target = sqrt_price_limit_x64
        else:
            target = sqrt_price_next

        sqrt_price_start = sqrt_price
        step = compute_swap_step(sqrt_price, target, liquidity, remaining, fee_rate, is_base_input, zero_for_one)
        sqrt_price = step.sqrt_price_next_x64

        if is_base_input:
            remaining -= step.amount_in + step.fee_amount
            calculated += step.amount_out
        else:
            remaining -= step.amount_out
            calculated += step.amount_in + step.fee_amount
        fee_total += step.fee_amount

        if sqrt_price == sqrt_price_next:
            liquidity_net = -next_tick.liquidity_net if zero_for_one else next_tick.liquidity_net
            liquidity += liquidity_net
            if liquidity < 0:
                raise InsufficientLiquidity(f"Liquidity underflow crossing tick {tick_next}")
            ticks_crossed += 1
            position += 1
            tick = tick_next - 1 if zero_for_one else tick_next
        elif sqrt_price != sqrt_price_start:
            tick = sqrt_price_x64_to_tick(sqrt_price)

    if is_base_input:
        amount_in, amount_out = amount - remaining, calculated
    else:
        amount_in, amount_out = calculated, amount - remaining

    return SwapSimulation(
        amount_in=amount_in,
        amount_out=amount_out,
        fee_amount=fee_total,
        sqrt_price_after_x64=sqrt_price,
        tick_after=tick,
        liquidity_after=liquidity,
        amount_remaining=remaining,
        ticks_crossed=ticks_crossed,
    )
