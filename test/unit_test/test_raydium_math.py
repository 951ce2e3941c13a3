"""
Test Raydium Math Module

Tests for tick/price conversions and liquidity calculations.
"""

import sys
from decimal import Decimal
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))


def test_tick_to_sqrt_price_x64():
    """Test tick to sqrt price conversion"""
    from clmm_client.raydium.math import tick_to_sqrt_price_x64
    from clmm_client.raydium.constants import MIN_TICK, MAX_TICK, MIN_SQRT_PRICE_X64, MAX_SQRT_PRICE_X64

    print("Testing tick_to_sqrt_price_x64...")

    # Tick 0 should give sqrt(1) * 2^64
    sqrt_price_0 = tick_to_sqrt_price_x64(0)
    expected_0 = 2 ** 64
    assert sqrt_price_0 == expected_0, f"Tick 0: expected {expected_0}, got {sqrt_price_0}"

    # Positive ticks should give higher prices
    sqrt_price_100 = tick_to_sqrt_price_x64(100)
    assert sqrt_price_100 > sqrt_price_0, "Positive tick should give higher sqrt price"

    # Negative ticks should give lower prices
    sqrt_price_neg100 = tick_to_sqrt_price_x64(-100)
    assert sqrt_price_neg100 < sqrt_price_0, "Negative tick should give lower sqrt price"

    # Bounds match the program constants
    assert tick_to_sqrt_price_x64(MIN_TICK) == MIN_SQRT_PRICE_X64
    assert tick_to_sqrt_price_x64(MAX_TICK) == MAX_SQRT_PRICE_X64

    # Invalid ticks should raise TickOutOfBounds
    from clmm_client.errors import TickOutOfBounds
    try:
        tick_to_sqrt_price_x64(MIN_TICK - 1)
        assert False, "Should raise for tick below MIN_TICK"
    except TickOutOfBounds:
        pass

    try:
        tick_to_sqrt_price_x64(MAX_TICK + 1)
        assert False, "Should raise for tick above MAX_TICK"
    except TickOutOfBounds:
        pass

    print("  tick_to_sqrt_price_x64: PASSED")


def test_sqrt_price_round_trip():
    """Sqrt price -> tick returns the greatest tick at or below the price"""
    from clmm_client.raydium.math import tick_to_sqrt_price_x64, sqrt_price_x64_to_tick
    from clmm_client.raydium.constants import MIN_TICK, MAX_TICK

    print("Testing sqrt_price_x64_to_tick round trip...")

    for tick in (MIN_TICK, -443635, -100_000, -1, 0, 1, 64, 100_000, MAX_TICK - 1, MAX_TICK):
        sqrt_price = tick_to_sqrt_price_x64(tick)
        assert sqrt_price_x64_to_tick(sqrt_price) == tick, f"Round trip failed for tick {tick}"
        # A price just above the tick's price still maps to the same tick
        if tick < MAX_TICK:
            assert sqrt_price_x64_to_tick(sqrt_price + 1) == tick

    from clmm_client.errors import TickOutOfBounds
    from clmm_client.raydium.constants import MIN_SQRT_PRICE_X64, MAX_SQRT_PRICE_X64

    # Both bounds are valid prices
    assert sqrt_price_x64_to_tick(MIN_SQRT_PRICE_X64) == MIN_TICK
    assert sqrt_price_x64_to_tick(MAX_SQRT_PRICE_X64) == MAX_TICK

    for sqrt_price in (MIN_SQRT_PRICE_X64 - 1, MAX_SQRT_PRICE_X64 + 1):
        try:
            sqrt_price_x64_to_tick(sqrt_price)
            assert False, f"Should raise outside the bounds ({sqrt_price})"
        except TickOutOfBounds:
            pass

    print("  sqrt_price_x64_to_tick: PASSED")


def test_sqrt_price_x64_to_price():
    """Test sqrt price to human-readable price conversion"""
    from clmm_client.raydium.math import sqrt_price_x64_to_price

    print("Testing sqrt_price_x64_to_price...")

    Q64 = 2 ** 64

    # sqrt(1) with same decimals should give price 1
    price = sqrt_price_x64_to_price(Q64, 9, 9)
    assert price == Decimal(1), f"Price should be 1, got {price}"

    # token0=9 decimals, token1=6 decimals: price is scaled by 10^(9-6)
    price_adjusted = sqrt_price_x64_to_price(Q64, 9, 6)
    assert price_adjusted == Decimal(1000), f"Adjusted price should be 1000, got {price_adjusted}"

    # Half the sqrt price is a quarter of the price
    assert sqrt_price_x64_to_price(Q64 // 2, 6, 6) == Decimal("0.25")

    print("  sqrt_price_x64_to_price: PASSED")


def test_price_to_sqrt_price_x64():
    """Exact squares convert exactly"""
    from clmm_client.raydium.math import price_to_sqrt_price_x64
    from clmm_client.errors import ConfigurationError

    print("Testing price_to_sqrt_price_x64...")

    assert price_to_sqrt_price_x64(Decimal(1), 6, 6) == 2 ** 64
    assert price_to_sqrt_price_x64(Decimal(4), 6, 6) == 2 ** 65
    assert price_to_sqrt_price_x64(Decimal("0.25"), 6, 6) == 2 ** 63
    # 1000 token1 per token0 with 9 vs 6 decimals is a raw price of 1
    assert price_to_sqrt_price_x64(Decimal(1000), 9, 6) == 2 ** 64

    try:
        price_to_sqrt_price_x64(Decimal(0), 6, 6)
        assert False, "Zero price should raise"
    except ConfigurationError:
        pass

    print("  price_to_sqrt_price_x64: PASSED")


def test_price_to_tick():
    """Test price to tick with explicit rounding"""
    from clmm_client.raydium.math import price_to_tick, tick_to_price, Rounding

    print("Testing price_to_tick...")

    # Price exactly on an aligned tick
    assert price_to_tick(Decimal(1), 6, 6, 10, Rounding.DOWN) == 0
    assert price_to_tick(Decimal(1), 6, 6, 10, Rounding.UP) == 0

    # 1.0005 sits between ticks 4 and 5
    assert price_to_tick(Decimal("1.0005"), 6, 6, 10, Rounding.DOWN) == 0
    assert price_to_tick(Decimal("1.0005"), 6, 6, 10, Rounding.UP) == 10

    # Negative ticks round towards negative infinity when rounding down
    assert price_to_tick(Decimal("0.9995"), 6, 6, 10, Rounding.DOWN) == -10
    assert price_to_tick(Decimal("0.9995"), 6, 6, 10, Rounding.UP) == 0

    # Result is always aligned
    for price in (Decimal("0.5"), Decimal("3.7"), Decimal("150.25")):
        for rounding in (Rounding.DOWN, Rounding.UP):
            assert price_to_tick(price, 6, 6, 64, rounding) % 64 == 0

    # Round trip through the aligned tick's price
    tick = price_to_tick(Decimal("2"), 6, 6, 1, Rounding.DOWN)
    assert tick_to_price(tick, 6, 6) <= Decimal("2") < tick_to_price(tick + 1, 6, 6)

    print("  price_to_tick: PASSED")


def test_tick_price_round_trip_spacings():
    """Aligned ticks survive tick -> price -> tick for every spacing and decimal pair"""
    from clmm_client.raydium.math import price_to_tick, tick_to_price, Rounding
    from clmm_client.raydium.constants import MIN_TICK, MAX_TICK

    print("Testing tick/price round trip across spacings...")

    checked = 0
    for spacing in (1, 10, 60, 200):
        top = (MAX_TICK // spacing) * spacing
        bottom = -((-MIN_TICK) // spacing) * spacing
        ticks = (
            bottom,
            -100_000 // spacing * spacing,
            -7 * spacing,
            -spacing,
            0,
            spacing,
            13 * spacing,
            250_000 // spacing * spacing,
            top,
        )
        for decimals_0, decimals_1 in ((6, 9), (9, 6), (6, 6)):
            for tick in ticks:
                price = tick_to_price(tick, decimals_0, decimals_1)
                for rounding in (Rounding.DOWN, Rounding.UP):
                    result = price_to_tick(price, decimals_0, decimals_1, spacing, rounding)
                    assert result == tick, (
                        f"spacing={spacing} decimals={decimals_0}/{decimals_1} "
                        f"{rounding.value}: {tick} -> {price} -> {result}"
                    )
                    checked += 1

    # Spacing 1 reaches both tick bounds exactly
    assert price_to_tick(tick_to_price(MAX_TICK, 9, 6), 9, 6, 1, Rounding.DOWN) == MAX_TICK
    assert price_to_tick(tick_to_price(MIN_TICK, 6, 9), 6, 9, 1, Rounding.UP) == MIN_TICK

    print(f"  tick/price round trip ({checked} cases): PASSED")


def test_invert_price():
    """Inverted prices keep the module's 100 significant digits"""
    from clmm_client.raydium.math import invert_price, price_to_sqrt_price_x64
    from clmm_client.errors import ConfigurationError

    print("Testing invert_price...")

    third = invert_price(Decimal(3))
    assert len(third.as_tuple().digits) == 100
    assert third.as_tuple().digits == (3,) * 100

    assert invert_price(Decimal(4)) == Decimal("0.25")
    assert invert_price("0.5") == Decimal(2)

    # Inverting swaps the token roles: sqrt prices multiply to 2^128
    sqrt_forward = price_to_sqrt_price_x64(Decimal(4), 6, 6)
    sqrt_inverse = price_to_sqrt_price_x64(invert_price(Decimal(4)), 6, 6)
    assert sqrt_forward * sqrt_inverse == 2 ** 128

    for bad in (Decimal(0), Decimal(-2)):
        try:
            invert_price(bad)
            assert False, f"Price {bad} should be rejected"
        except ConfigurationError:
            pass

    print("  invert_price: PASSED")


def test_reward_emissions():
    """Emission rate conversion and period funding"""
    from clmm_client.raydium.math import emissions_per_second_to_x64, reward_amount_for_period
    from clmm_client.errors import ConfigurationError

    print("Testing reward emission helpers...")

    assert emissions_per_second_to_x64(Decimal(1)) == 2 ** 64
    assert emissions_per_second_to_x64(Decimal("0.5")) == 2 ** 63
    # 1/3 is rounded down
    assert emissions_per_second_to_x64(Decimal(1) / Decimal(3)) == (2 ** 64) // 3
    assert emissions_per_second_to_x64(Decimal(0)) == 0

    # One token per second for a day
    assert reward_amount_for_period(2 ** 64, 1_000, 1_000 + 86_400) == 86_400
    # Fractional rates round the funding up
    assert reward_amount_for_period((2 ** 64) // 3, 0, 10) == 4

    try:
        emissions_per_second_to_x64(Decimal(-1))
        assert False, "Negative rate should be rejected"
    except ConfigurationError:
        pass

    try:
        reward_amount_for_period(2 ** 64, 100, 100)
        assert False, "Empty period should be rejected"
    except ConfigurationError:
        pass

    print("  reward emission helpers: PASSED")


def test_one_tick_range():
    """Test single-spacing range around the current tick"""
    from clmm_client.raydium.math import one_tick_range

    print("Testing one_tick_range...")

    assert one_tick_range(5, 10) == (0, 10)
    assert one_tick_range(-5, 10) == (-10, 0)
    assert one_tick_range(-10, 10) == (-10, 0)

    print("  one_tick_range: PASSED")


def test_validate_tick_range():
    """Ranges must be ordered and aligned"""
    from clmm_client.raydium.math import validate_tick_range
    from clmm_client.errors import InvalidRange, TickOutOfBounds
    from clmm_client.raydium.constants import MAX_TICK

    print("Testing validate_tick_range...")

    validate_tick_range(-128, 128, 64)

    for lower, upper in ((128, -128), (64, 64)):
        try:
            validate_tick_range(lower, upper, 64)
            assert False, f"Range [{lower}, {upper}] should be rejected"
        except InvalidRange:
            pass

    try:
        validate_tick_range(-100, 128, 64)
        assert False, "Unaligned lower tick should be rejected"
    except InvalidRange:
        pass

    try:
        validate_tick_range(0, MAX_TICK + 1, 1)
        assert False, "Out of bounds tick should be rejected"
    except TickOutOfBounds:
        pass

    print("  validate_tick_range: PASSED")


def test_liquidity_to_amounts_regimes():
    """Token amounts per regime: below, inside and above the range"""
    from clmm_client.raydium.math import liquidity_to_amounts

    print("Testing liquidity_to_amounts regimes...")

    liquidity = 1_000_000_000

    # Current tick below the range: only token 0
    amount_0, amount_1 = liquidity_to_amounts(liquidity, 100, 200, 50, round_up=True)
    assert amount_0 > 0 and amount_1 == 0

    # Current tick above the range: only token 1
    amount_0, amount_1 = liquidity_to_amounts(liquidity, 100, 200, 250, round_up=True)
    assert amount_0 == 0 and amount_1 > 0

    # Current tick at the upper bound counts as above
    amount_0, amount_1 = liquidity_to_amounts(liquidity, 100, 200, 200, round_up=True)
    assert amount_0 == 0 and amount_1 > 0

    # Inside the range: both
    amount_0, amount_1 = liquidity_to_amounts(liquidity, 100, 200, 150, round_up=True)
    assert amount_0 > 0 and amount_1 > 0

    # Rounding up never gives less than rounding down
    down_0, down_1 = liquidity_to_amounts(liquidity, 100, 200, 150, round_up=False)
    assert amount_0 >= down_0 and amount_1 >= down_1
    assert amount_0 - down_0 <= 1 and amount_1 - down_1 <= 1

    print("  liquidity_to_amounts: PASSED")


def test_symmetric_range_scenario():
    """Spacing 64, range [-128, 128], liquidity 1_000_000 at price 1"""
    from clmm_client.raydium.math import liquidity_to_amounts, amounts_to_liquidity, tick_to_sqrt_price_x64

    print("Testing symmetric range scenario...")

    liquidity = 1_000_000
    amount_0, amount_1 = liquidity_to_amounts(liquidity, -128, 128, 0, round_up=True)

    # sqrt(1.0001^128) - 1 is about 0.64%, split evenly around price 1
    assert 6370 < amount_0 < 6390, f"amount_0 out of range: {amount_0}"
    assert 6370 < amount_1 < 6390, f"amount_1 out of range: {amount_1}"
    assert abs(amount_0 - amount_1) <= 2

    # Liquidity from rounded-down amounts never exceeds the input
    down_0, down_1 = liquidity_to_amounts(liquidity, -128, 128, 0, round_up=False)
    recovered = amounts_to_liquidity(down_0, down_1, -128, 128, tick_to_sqrt_price_x64(0))
    assert recovered <= liquidity
    assert liquidity - recovered < 400

    print("  symmetric range scenario: PASSED")


def test_liquidity_recovery_bound():
    """Liquidity from rounded-down amounts never exceeds the input liquidity, in every regime"""
    from clmm_client.raydium.math import liquidity_to_amounts, amounts_to_liquidity, tick_to_sqrt_price_x64
    from clmm_client.raydium.constants import MIN_TICK, MAX_TICK

    print("Testing liquidity recovery bound...")

    ranges = (
        (-128, 128),
        (-600, 1200),
        (-60_000, 60),
        (100, 443_600),
        (-443_600, -200_000),
        (MIN_TICK, MAX_TICK),
    )
    checked = 0
    for tick_lower, tick_upper in ranges:
        width = tick_upper - tick_lower
        currents = (
            tick_lower - 1 if tick_lower > MIN_TICK else None,  # below
            tick_lower,                                         # at the lower bound
            tick_lower + width // 3,                            # inside, off centre
            tick_upper - 1,                                     # just under the upper bound
            tick_upper,                                         # at the upper bound
            tick_upper + 1 if tick_upper < MAX_TICK else None,  # above
        )
        for tick_current in currents:
            if tick_current is None:
                continue
            sqrt_current = tick_to_sqrt_price_x64(tick_current)
            for liquidity in (1, 999_999, 10 ** 12 + 7, 2 ** 100):
                amount_0, amount_1 = liquidity_to_amounts(
                    liquidity, tick_lower, tick_upper, tick_current, round_up=False
                )
                if tick_current < tick_lower:
                    assert amount_1 == 0
                if tick_current >= tick_upper:
                    assert amount_0 == 0

                recovered = amounts_to_liquidity(amount_0, amount_1, tick_lower, tick_upper, sqrt_current)
                assert recovered <= liquidity, (
                    f"[{tick_lower}, {tick_upper}] at {tick_current}: {recovered} > {liquidity}"
                )

                up_0, up_1 = liquidity_to_amounts(liquidity, tick_lower, tick_upper, tick_current, round_up=True)
                assert up_0 >= amount_0 and up_1 >= amount_1
                checked += 1

    print(f"  liquidity recovery bound ({checked} cases): PASSED")


def test_single_amount_to_liquidity():
    """Liquidity funded by one side"""
    from clmm_client.raydium.math import single_amount_to_liquidity, liquidity_to_amounts, tick_to_sqrt_price_x64

    print("Testing single_amount_to_liquidity...")

    sqrt_price = tick_to_sqrt_price_x64(0)

    liquidity = single_amount_to_liquidity(1_000_000, True, -600, 600, sqrt_price)
    assert liquidity > 0
    amount_0, _ = liquidity_to_amounts(liquidity, -600, 600, 0, round_up=False)
    assert amount_0 <= 1_000_000

    # Token 0 is not used when the price is above the range
    assert single_amount_to_liquidity(1_000_000, True, -1200, -600, sqrt_price) == 0
    # Token 1 is not used when the price is below the range
    assert single_amount_to_liquidity(1_000_000, False, 600, 1200, sqrt_price) == 0

    print("  single_amount_to_liquidity: PASSED")


def test_slippage_helpers():
    """Slippage bounds round against the user"""
    from clmm_client.raydium.math import apply_slippage_max, apply_slippage_min

    print("Testing slippage helpers...")

    assert apply_slippage_max(1000, 50) == 1005
    assert apply_slippage_max(1001, 50) == 1007  # 1006.005 rounded up
    assert apply_slippage_min(1000, 50) == 995
    assert apply_slippage_min(1001, 50) == 995   # 995.995 rounded down
    assert apply_slippage_min(1000, 10_000) == 0
    assert apply_slippage_max(0, 100) == 0

    print("  slippage helpers: PASSED")


def test_get_tick_array_start_index():
    """Test tick array start index calculation"""
    from clmm_client.raydium.math import get_tick_array_start_index

    print("Testing get_tick_array_start_index...")

    # With spacing 10 each array covers 600 ticks
    assert get_tick_array_start_index(0, 10) == 0
    assert get_tick_array_start_index(599, 10) == 0
    assert get_tick_array_start_index(600, 10) == 600
    assert get_tick_array_start_index(-1, 10) == -600
    assert get_tick_array_start_index(-600, 10) == -600
    assert get_tick_array_start_index(-601, 10) == -1200

    # Spacing 64 -> 3840 ticks per array
    assert get_tick_array_start_index(128, 64) == 0
    assert get_tick_array_start_index(-128, 64) == -3840

    print("  get_tick_array_start_index: PASSED")


def main():
    """Run all tests"""
    print("=" * 60)
    print("Raydium Math Unit Tests")
    print("=" * 60)

    tests = [
        test_tick_to_sqrt_price_x64,
        test_sqrt_price_round_trip,
        test_sqrt_price_x64_to_price,
        test_price_to_sqrt_price_x64,
        test_price_to_tick,
        test_tick_price_round_trip_spacings,
        test_invert_price,
        test_reward_emissions,
        test_one_tick_range,
        test_validate_tick_range,
        test_liquidity_to_amounts_regimes,
        test_symmetric_range_scenario,
        test_liquidity_recovery_bound,
        test_single_amount_to_liquidity,
        test_slippage_helpers,
        test_get_tick_array_start_index,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"  FAILED: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print("=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
