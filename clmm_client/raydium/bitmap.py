"""
Raydium CLMM Tick Array Bitmap

The pool account tracks which tick arrays are initialized in a 1024-bit
bitmap covering 512 arrays on each side of tick 0. Arrays beyond that range
are tracked by the bitmap extension account (14 x 512 bits per side).
"""

from typing import List, Optional, Sequence, Tuple

from .constants import (
    MIN_TICK,
    MAX_TICK,
    TICK_ARRAY_BITMAP_SIZE,
    EXTENSION_TICKARRAY_BITMAP_SIZE,
)
from .math import get_tick_array_start_index, tick_array_span
from ..errors import ConfigurationError, InvalidSeed
from ..types import PoolState, TickArrayBitmapExtension


def limbs_to_int(limbs: Sequence[int]) -> int:
    """Combine little-endian u64 limbs into one integer"""
    value = 0
    for i, limb in enumerate(limbs):
        value |= limb << (64 * i)
    return value


def max_tick_in_default_bitmap(tick_spacing: int) -> int:
    """Ticks covered by one 512-bit half of a bitmap"""
    return tick_array_span(tick_spacing) * TICK_ARRAY_BITMAP_SIZE


def is_overflow_default_bitmap(start_index: int, tick_spacing: int) -> bool:
    """True if the tick array lies outside the pool's default bitmap"""
    boundary = max_tick_in_default_bitmap(tick_spacing)
    return start_index < -boundary or start_index >= boundary


def min_tick_array_start(tick_spacing: int) -> int:
    return get_tick_array_start_index(MIN_TICK, tick_spacing)


def max_tick_array_start(tick_spacing: int) -> int:
    return get_tick_array_start_index(MAX_TICK, tick_spacing)


def _check_start_index(start_index: int, tick_spacing: int) -> None:
    if start_index % tick_array_span(tick_spacing) != 0:
        raise InvalidSeed.unaligned_tick_array(start_index, tick_spacing)


def default_bitmap_bit(start_index: int, tick_spacing: int) -> int:
    """Bit position of a tick array in the pool's 1024-bit bitmap"""
    _check_start_index(start_index, tick_spacing)
    return start_index // tick_array_span(tick_spacing) + TICK_ARRAY_BITMAP_SIZE


def extension_bitmap_position(start_index: int, tick_spacing: int) -> Tuple[bool, int, int]:
    """
    Locate a tick array in the bitmap extension

    Returns:
        (is_negative, bitmap offset 0..13, bit position 0..511)
    """
    _check_start_index(start_index, tick_spacing)
    if not is_overflow_default_bitmap(start_index, tick_spacing):
        raise ConfigurationError.invalid(
            "start_index", f"{start_index} is covered by the default bitmap"
        )

    ticks_in_one_bitmap = max_tick_in_default_bitmap(tick_spacing)
    offset = abs(start_index) // ticks_in_one_bitmap - 1
    if start_index < 0 and abs(start_index) % ticks_in_one_bitmap == 0:
        offset -= 1
    if offset >= EXTENSION_TICKARRAY_BITMAP_SIZE:
        raise ConfigurationError.invalid("start_index", f"{start_index} is beyond the bitmap extension")

    m = abs(start_index) % ticks_in_one_bitmap
    bit = m // tick_array_span(tick_spacing)
    if start_index < 0 and m != 0:
        bit = TICK_ARRAY_BITMAP_SIZE - bit

    return start_index < 0, offset, bit


def is_tick_array_initialized(
    pool: PoolState,
    extension: Optional[TickArrayBitmapExtension],
    start_index: int,
) -> bool:
    """
    Check the pool bitmap (or the extension) for an initialized tick array

    Raises:
        ConfigurationError: The array is outside the default bitmap and no
            extension snapshot was supplied
    """
    if not is_overflow_default_bitmap(start_index, pool.tick_spacing):
        bit = default_bitmap_bit(start_index, pool.tick_spacing)
        return (limbs_to_int(pool.tick_array_bitmap) >> bit) & 1 == 1

    if extension is None:
        raise ConfigurationError.missing(
            f"tick array bitmap extension snapshot (tick array {start_index} is outside the default bitmap)"
        )

    is_negative, offset, bit = extension_bitmap_position(start_index, pool.tick_spacing)
    bitmaps = extension.negative_bitmaps if is_negative else extension.positive_bitmaps
    return (limbs_to_int(bitmaps[offset]) >> bit) & 1 == 1


def initialized_tick_array_starts(
    pool: PoolState,
    extension: Optional[TickArrayBitmapExtension],
    from_start: int,
    zero_for_one: bool,
    count: int,
) -> List[int]:
    """
    Start indexes of up to count initialized tick arrays, beginning at
    from_start (inclusive) and walking in the swap direction

    Arrays beyond the default bitmap are skipped when no extension snapshot
    is available.
    """
    spacing = pool.tick_spacing
    step = tick_array_span(spacing)
    lowest = min_tick_array_start(spacing)
    highest = max_tick_array_start(spacing)

    starts: List[int] = []
    start = from_start
    while lowest <= start <= highest and len(starts) < count:
        if extension is not None or not is_overflow_default_bitmap(start, spacing):
            if is_tick_array_initialized(pool, extension, start):
                starts.append(start)
        start = start - step if zero_for_one else start + step
    return starts
