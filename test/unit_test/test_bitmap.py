"""
Unit tests for tick array bitmap lookups
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from account_fixtures import POOL, TICK_SPACING, key_str, make_pool_state
from clmm_client.errors import ConfigurationError, InvalidSeed
from clmm_client.raydium.bitmap import (
    default_bitmap_bit,
    extension_bitmap_position,
    initialized_tick_array_starts,
    is_overflow_default_bitmap,
    is_tick_array_initialized,
    limbs_to_int,
    max_tick_in_default_bitmap,
)
from clmm_client.types import TickArrayBitmapExtension

BOUNDARY = 600 * 512


def _extension(positive=None, negative=None):
    def limbs(values):
        bitmaps = []
        for offset in range(14):
            value = (values or {}).get(offset, 0)
            bitmaps.append(tuple((value >> (64 * i)) & (2 ** 64 - 1) for i in range(8)))
        return tuple(bitmaps)

    return TickArrayBitmapExtension(
        address=key_str(91),
        pool_id=POOL,
        positive_bitmaps=limbs(positive),
        negative_bitmaps=limbs(negative),
    )


class TestDefaultBitmap:
    """Tests for the pool's own 1024-bit bitmap"""

    def test_limbs_to_int(self):
        assert limbs_to_int((1, 0)) == 1
        assert limbs_to_int((0, 1)) == 1 << 64

    def test_bit_positions(self):
        assert default_bitmap_bit(0, TICK_SPACING) == 512
        assert default_bitmap_bit(-600, TICK_SPACING) == 511
        assert default_bitmap_bit(600, TICK_SPACING) == 513

    def test_unaligned_start(self):
        with pytest.raises(InvalidSeed):
            default_bitmap_bit(10, TICK_SPACING)

    def test_overflow_boundary(self):
        assert max_tick_in_default_bitmap(TICK_SPACING) == BOUNDARY
        assert not is_overflow_default_bitmap(BOUNDARY - 600, TICK_SPACING)
        assert is_overflow_default_bitmap(BOUNDARY, TICK_SPACING)
        assert not is_overflow_default_bitmap(-BOUNDARY, TICK_SPACING)
        assert is_overflow_default_bitmap(-BOUNDARY - 600, TICK_SPACING)

    def test_initialized_lookup(self):
        pool = make_pool_state(initialized_starts=(-600, 0))
        assert is_tick_array_initialized(pool, None, 0)
        assert is_tick_array_initialized(pool, None, -600)
        assert not is_tick_array_initialized(pool, None, 600)


class TestExtensionBitmap:
    """Tests for arrays tracked by the bitmap extension"""

    def test_positions(self):
        assert extension_bitmap_position(BOUNDARY, TICK_SPACING) == (False, 0, 0)
        assert extension_bitmap_position(BOUNDARY + 600, TICK_SPACING) == (False, 0, 1)
        assert extension_bitmap_position(-BOUNDARY - 600, TICK_SPACING) == (True, 0, 511)

    def test_inside_default_bitmap(self):
        with pytest.raises(ConfigurationError):
            extension_bitmap_position(0, TICK_SPACING)

    def test_missing_extension(self):
        pool = make_pool_state()
        with pytest.raises(ConfigurationError):
            is_tick_array_initialized(pool, None, BOUNDARY)

    def test_lookup(self):
        pool = make_pool_state()
        extension = _extension(positive={0: 1}, negative={0: 1 << 511})
        assert is_tick_array_initialized(pool, extension, BOUNDARY)
        assert not is_tick_array_initialized(pool, extension, BOUNDARY + 600)
        assert is_tick_array_initialized(pool, extension, -BOUNDARY - 600)


class TestInitializedStarts:
    """Tests for walking initialized tick arrays in swap direction"""

    def test_zero_for_one(self):
        pool = make_pool_state(initialized_starts=(-600, 0))
        assert initialized_tick_array_starts(pool, None, 0, True, 3) == [0, -600]

    def test_one_for_zero(self):
        pool = make_pool_state(initialized_starts=(-600, 0))
        assert initialized_tick_array_starts(pool, None, 0, False, 3) == [0]

    def test_count_limit(self):
        pool = make_pool_state(initialized_starts=(-1200, -600, 0))
        assert initialized_tick_array_starts(pool, None, 0, True, 2) == [0, -600]

    def test_walks_into_extension(self):
        pool = make_pool_state(initialized_starts=(0,))
        extension = _extension(positive={0: 1})
        assert initialized_tick_array_starts(pool, extension, 0, False, 3) == [0, BOUNDARY]
