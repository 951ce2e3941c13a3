"""
Unit tests for client-side swap estimation
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from account_fixtures import POOL_LIQUIDITY, TRADE_FEE_RATE, make_pool_state, make_tick_array
from clmm_client.errors import ConfigurationError, InsufficientLiquidity
from clmm_client.raydium.constants import Q64
from clmm_client.raydium.math import get_delta_amount_0, mul_div, tick_to_sqrt_price_x64
from clmm_client.raydium.swap_math import compute_swap_step, default_sqrt_price_limit, simulate_swap


def _arrays():
    return (
        make_tick_array(-600, {-590: (POOL_LIQUIDITY, POOL_LIQUIDITY)}),
        make_tick_array(0, {590: (-POOL_LIQUIDITY, POOL_LIQUIDITY)}),
    )


class TestComputeSwapStep:
    """Tests for a single swap step"""

    def test_reaches_target(self):
        target = tick_to_sqrt_price_x64(-10)
        step = compute_swap_step(Q64, target, POOL_LIQUIDITY, 10 ** 15, TRADE_FEE_RATE, True, True)

        expected_in = get_delta_amount_0(target, Q64, POOL_LIQUIDITY, True)
        assert step.sqrt_price_next_x64 == target
        assert step.amount_in == expected_in
        assert step.fee_amount == mul_div(expected_in, TRADE_FEE_RATE, 1_000_000 - TRADE_FEE_RATE, True)
        assert step.amount_out > 0

    def test_partial_step_takes_remainder_as_fee(self):
        target = tick_to_sqrt_price_x64(-590)
        step = compute_swap_step(Q64, target, POOL_LIQUIDITY, 1_000_000, TRADE_FEE_RATE, True, True)

        assert target < step.sqrt_price_next_x64 < Q64
        assert step.amount_in + step.fee_amount == 1_000_000
        assert step.fee_amount >= 2_500

    def test_exact_output_capped(self):
        target = tick_to_sqrt_price_x64(590)
        step = compute_swap_step(Q64, target, POOL_LIQUIDITY, 1_000, 0, False, False)
        assert step.amount_out == 1_000
        assert step.amount_in >= 1_000


class TestSimulateSwap:
    """Tests for the swap loop"""

    def test_small_zero_for_one(self):
        pool = make_pool_state()
        result = simulate_swap(pool, _arrays(), TRADE_FEE_RATE, 1_000_000, True, True)

        assert result.amount_in == 1_000_000
        assert result.amount_remaining == 0
        assert result.fee_amount >= 2_500
        assert 997_000 < result.amount_out <= 997_500
        assert result.ticks_crossed == 0
        assert result.tick_after == -1
        assert result.sqrt_price_after_x64 < Q64

    def test_small_one_for_zero(self):
        pool = make_pool_state()
        result = simulate_swap(pool, _arrays(), TRADE_FEE_RATE, 1_000_000, False, True)

        assert result.amount_in == 1_000_000
        assert 997_000 < result.amount_out <= 997_500
        assert result.tick_after >= 0
        assert result.sqrt_price_after_x64 > Q64

    def test_exact_output(self):
        pool = make_pool_state()
        result = simulate_swap(pool, _arrays(), TRADE_FEE_RATE, 1_000_000, True, False)

        assert result.amount_out == 1_000_000
        assert result.amount_in > 1_000_000

    def test_price_limit_stops_swap(self):
        pool = make_pool_state()
        limit = tick_to_sqrt_price_x64(-100)
        result = simulate_swap(pool, _arrays(), TRADE_FEE_RATE, 10 ** 11, True, True, limit)

        assert result.sqrt_price_after_x64 == limit
        assert result.amount_remaining > 0
        assert result.ticks_crossed == 0

    def test_wrong_side_limit(self):
        pool = make_pool_state()
        with pytest.raises(ConfigurationError):
            simulate_swap(pool, _arrays(), TRADE_FEE_RATE, 1_000, True, True, Q64 * 2)
        with pytest.raises(ConfigurationError):
            simulate_swap(pool, _arrays(), TRADE_FEE_RATE, 1_000, False, True, Q64 // 2)

    def test_no_tick_arrays(self):
        pool = make_pool_state()
        with pytest.raises(InsufficientLiquidity):
            simulate_swap(pool, (), TRADE_FEE_RATE, 1_000, True, True)

    def test_runs_out_of_liquidity(self):
        pool = make_pool_state()
        with pytest.raises(InsufficientLiquidity):
            simulate_swap(pool, _arrays(), TRADE_FEE_RATE, 10 ** 11, True, True)

    def test_default_limits(self):
        assert default_sqrt_price_limit(True) < Q64 < default_sqrt_price_limit(False)
