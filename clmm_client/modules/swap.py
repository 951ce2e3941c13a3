"""
Swap Module

Instruction builders for single-hop and routed swaps, plus the SwapModule
facade used by ClmmClient.

Each hop is estimated client-side against the supplied tick arrays before
any instruction is built, so an unreachable minimum output (or maximum
input) fails here with SlippageExceeded instead of on chain.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, TYPE_CHECKING

from solders.pubkey import Pubkey

if TYPE_CHECKING:
    from ..client import ClmmClient

from .context import BuildContext
from ..errors import ConfigurationError, InsufficientLiquidity, OperationNotSupported, SlippageExceeded
from ..raydium.bitmap import initialized_tick_array_starts
from ..raydium.constants import MAX_COMPUTE_UNIT_LIMIT
from ..raydium.instructions import swap_instruction
from ..raydium.math import apply_slippage_max, apply_slippage_min, get_tick_array_start_index
from ..raydium.pda import derive_tick_array, derive_tick_array_bitmap_extension, to_pubkey
from ..raydium.swap_math import SwapSimulation, simulate_swap
from ..types import (
    InstructionSet,
    InstructionStep,
    OperationKind,
    Phase,
    PoolSnapshot,
    RoutedSwapRequest,
    SwapHop,
    SwapQuote,
    SwapRequest,
    SwapRoute,
    ensure_fresh,
)

logger = logging.getLogger(__name__)


@dataclass
class HopEstimate:
    """Simulation of one hop and the tick arrays its instruction references"""
    simulation: SwapSimulation
    tick_array_starts: List[int]
    tick_arrays: List[Pubkey]
    bitmap_extension: Pubkey


def estimate_hop(
    ctx: BuildContext,
    snapshot: PoolSnapshot,
    zero_for_one: bool,
    amount: int,
    is_base_input: bool,
    sqrt_price_limit_x64: int = 0,
) -> HopEstimate:
    """
    Simulate one hop over the pool's tick arrays

    The instruction gets the current tick array plus initialized arrays in
    the trade direction, up to CLMM_SWAP_TICK_ARRAY_COUNT. The simulation
    runs over the leading arrays the snapshot actually carries.

    Raises:
        ConfigurationError: AMM config or current tick array snapshot missing
        InsufficientLiquidity: Covered tick arrays cannot fill the amount
    """
    pool = snapshot.pool
    if snapshot.amm_config is None:
        raise ConfigurationError.missing(f"amm config snapshot for pool {pool.address}")

    current_start = get_tick_array_start_index(pool.tick_current, pool.tick_spacing)
    starts = initialized_tick_array_starts(
        pool,
        snapshot.bitmap_extension,
        current_start,
        zero_for_one,
        ctx.settings.clmm.swap_tick_array_count,
    )
    if not starts:
        raise InsufficientLiquidity.swap_unfilled(amount, 0)

    loaded = []
    for start in starts:
        tick_array = snapshot.get_tick_array(start)
        if tick_array is None:
            break
        loaded.append(tick_array)
    if not loaded:
        raise ConfigurationError.missing(f"tick array {starts[0]} snapshot for pool {pool.address}")

    simulation = simulate_swap(
        pool,
        loaded,
        snapshot.amm_config.trade_fee_rate,
        amount,
        zero_for_one,
        is_base_input,
        sqrt_price_limit_x64,
    )
    if not is_base_input and simulation.amount_remaining > 0:
        # Exact-out must deliver the full amount
        raise InsufficientLiquidity.swap_unfilled(amount, simulation.amount_out)

    addresses = [derive_tick_array(pool.address, s, pool.tick_spacing, ctx.program_id).address for s in starts]
    logger.debug(
        f"Swap estimate on {pool.address}: in={simulation.amount_in}, out={simulation.amount_out}, "
        f"fee={simulation.fee_amount}, tick arrays={starts}"
    )
    return HopEstimate(
        simulation=simulation,
        tick_array_starts=starts,
        tick_arrays=addresses,
        bitmap_extension=derive_tick_array_bitmap_extension(pool.address, ctx.program_id).address,
    )


def _swap_hop_instruction(
    ctx: BuildContext,
    snapshot: PoolSnapshot,
    input_mint: str,
    input_account: Pubkey,
    output_account: Pubkey,
    estimate: HopEstimate,
    amount: int,
    other_amount_threshold: int,
    sqrt_price_limit_x64: int,
    is_base_input: bool,
):
    pool = snapshot.pool
    if input_mint == pool.mint_0:
        input_vault, output_vault = pool.vault_0, pool.vault_1
        input_vault_mint, output_vault_mint = pool.mint_0, pool.mint_1
    else:
        input_vault, output_vault = pool.vault_1, pool.vault_0
        input_vault_mint, output_vault_mint = pool.mint_1, pool.mint_0

    return swap_instruction(
        program_id=ctx.program_id,
        payer=ctx.owner,
        amm_config=to_pubkey(pool.amm_config, "amm_config"),
        pool_state=to_pubkey(pool.address, "pool"),
        input_token_account=input_account,
        output_token_account=output_account,
        input_vault=to_pubkey(input_vault, "input_vault"),
        output_vault=to_pubkey(output_vault, "output_vault"),
        observation_state=to_pubkey(pool.observation, "observation"),
        input_vault_mint=to_pubkey(input_vault_mint, "input_vault_mint"),
        output_vault_mint=to_pubkey(output_vault_mint, "output_vault_mint"),
        tick_arrays=estimate.tick_arrays,
        amount=amount,
        other_amount_threshold=other_amount_threshold,
        sqrt_price_limit_x64=sqrt_price_limit_x64,
        is_base_input=is_base_input,
        tick_array_bitmap_extension=estimate.bitmap_extension,
    )


def quote_swap(request: SwapRequest, ctx: BuildContext) -> Tuple[SwapQuote, HopEstimate]:
    """
    Estimate a single-hop swap and derive its on-chain threshold

    Returns:
        (quote, hop estimate with the tick arrays to reference)

    Raises:
        SlippageExceeded: The estimate violates the caller's explicit threshold
    """
    snapshot = request.pool
    ensure_fresh(request.freshness, snapshot.markers())

    estimate = estimate_hop(
        ctx, snapshot, request.zero_for_one, request.amount,
        request.is_base_input, request.sqrt_price_limit_x64,
    )
    simulation = estimate.simulation
    slippage_bps = ctx.slippage_bps(request.slippage_bps)

    if request.is_base_input:
        threshold = request.other_amount_threshold
        if threshold is None:
            threshold = apply_slippage_min(simulation.amount_out, slippage_bps)
        elif simulation.amount_out < threshold:
            raise SlippageExceeded.output_below_minimum(simulation.amount_out, threshold)
    else:
        threshold = request.other_amount_threshold
        if threshold is None:
            threshold = apply_slippage_max(simulation.amount_in, slippage_bps)
        elif simulation.amount_in > threshold:
            raise SlippageExceeded.input_above_maximum(simulation.amount_in, threshold)

    return SwapQuote(
        amount_in=simulation.amount_in,
        amount_out=simulation.amount_out,
        fee_amount=simulation.fee_amount,
        other_amount_threshold=threshold,
        sqrt_price_after_x64=simulation.sqrt_price_after_x64,
        tick_after=simulation.tick_after,
        zero_for_one=request.zero_for_one,
        is_base_input=request.is_base_input,
        tick_array_starts=tuple(estimate.tick_array_starts),
    ), estimate


def build_swap(request: SwapRequest, ctx: BuildContext) -> InstructionSet:
    """Build swap_v2 for one pool, with the estimate attached as the set's quote"""
    quote, estimate = quote_swap(request, ctx)
    snapshot = request.pool

    input_info = snapshot.mint_info(request.input_mint)
    output_info = snapshot.mint_info(request.output_mint)
    accounts, steps, created = ctx.resolve_token_accounts([input_info, output_info])

    ix = _swap_hop_instruction(
        ctx, snapshot, request.input_mint,
        accounts[0].address, accounts[1].address, estimate,
        amount=request.amount,
        other_amount_threshold=quote.other_amount_threshold,
        sqrt_price_limit_x64=request.sqrt_price_limit_x64,
        is_base_input=request.is_base_input,
    )
    steps.append(InstructionStep(ix, Phase.OPERATION, "swap"))

    return InstructionSet(
        kind=OperationKind.SWAP,
        label=f"swap {request.input_mint[:8]}->{request.output_mint[:8]}",
        steps=tuple(steps),
        created_accounts=tuple(created),
        amounts={
            "amount_in": quote.amount_in,
            "amount_out": quote.amount_out,
            "fee_amount": quote.fee_amount,
            "other_amount_threshold": quote.other_amount_threshold,
        },
        quote=quote,
        compute_units=ctx.settings.tx.compute_units,
    )


def build_routed_swap(request: RoutedSwapRequest, ctx: BuildContext) -> InstructionSet:
    """
    Build one swap_v2 per hop of a route (exact input)

    Each hop spends the previous hop's estimated output. Only the last hop
    carries minimum_amount_out; intermediate hops use a zero threshold as
    their output is consumed by the next hop in the same transaction.

    Raises:
        OperationNotSupported: Routed swaps are disabled (CLMM_ENABLE_ROUTED_SWAPS)
        SlippageExceeded: Estimated final output below minimum_amount_out
    """
    if not ctx.settings.clmm.enable_routed_swaps:
        raise OperationNotSupported.disabled(OperationKind.SWAP_ROUTED.value, "CLMM_ENABLE_ROUTED_SWAPS")

    route = request.route
    for hop in route.hops:
        ensure_fresh(request.freshness, hop.pool.markers())

    # Estimate every hop before building anything
    hop_amounts: List[Tuple[SwapHop, int, HopEstimate]] = []
    amount = request.amount_in
    for index, hop in enumerate(route.hops):
        zero_for_one = hop.input_mint == hop.pool.pool.mint_0
        estimate = estimate_hop(ctx, hop.pool, zero_for_one, amount, is_base_input=True)
        hop_amounts.append((hop, amount, estimate))
        amount = estimate.simulation.amount_out
        if amount == 0:
            raise InsufficientLiquidity(f"Route hop {index} through {hop.pool.address} produces no output")

    if amount < request.minimum_amount_out:
        raise SlippageExceeded.output_below_minimum(amount, request.minimum_amount_out)

    mint_infos = [route.hops[0].pool.mint_info(route.input_mint)]
    for hop in route.hops:
        mint_infos.append(hop.pool.mint_info(hop.output_mint))
    accounts, steps, created = ctx.resolve_token_accounts(mint_infos)

    amounts = {"amount_in": request.amount_in, "amount_out": amount, "minimum_amount_out": request.minimum_amount_out}
    last = len(hop_amounts) - 1
    for index, (hop, hop_amount, estimate) in enumerate(hop_amounts):
        threshold = request.minimum_amount_out if index == last else 0
        ix = _swap_hop_instruction(
            ctx, hop.pool, hop.input_mint,
            accounts[index].address, accounts[index + 1].address, estimate,
            amount=hop_amount,
            other_amount_threshold=threshold,
            sqrt_price_limit_x64=0,
            is_base_input=True,
        )
        steps.append(InstructionStep(ix, Phase.OPERATION, f"swap hop {index}"))
        amounts[f"hop_{index}_amount_out"] = estimate.simulation.amount_out

    logger.debug(f"Routed swap over {len(route.hops)} hops: {request.amount_in} -> {amount}")

    return InstructionSet(
        kind=OperationKind.SWAP_ROUTED,
        label=f"swap_routed {route.input_mint[:8]}->{route.output_mint[:8]} ({len(route.hops)} hops)",
        steps=tuple(steps),
        created_accounts=tuple(created),
        amounts=amounts,
        compute_units=min(ctx.settings.tx.compute_units * len(route.hops), MAX_COMPUTE_UNIT_LIMIT),
    )


class SwapModule:
    """
    Swap operations module

    Usage:
        client = ClmmClient(owner_pubkey)

        # Estimate only
        quote = client.swap.quote(pool, input_mint=usdc, amount=1_000_000)

        # Exact-in swap with 0.5% slippage
        ix_set = client.swap.swap(pool, input_mint=usdc, amount=1_000_000, slippage_bps=50)

        # Two-hop route (requires CLMM_ENABLE_ROUTED_SWAPS=true)
        route = SwapRoute((SwapHop(pool_ab, mint_a), SwapHop(pool_bc, mint_b)))
        ix_set = client.swap.swap_route(route, amount_in=1_000_000, minimum_amount_out=990_000)
    """

    def __init__(self, client: "ClmmClient"):
        self._client = client

    def _request(
        self,
        pool: PoolSnapshot,
        input_mint: str,
        amount: int,
        other_amount_threshold: Optional[int],
        is_base_input: bool,
        slippage_bps: Optional[int],
        sqrt_price_limit_x64: int,
    ) -> SwapRequest:
        return SwapRequest(
            pool=pool,
            input_mint=input_mint,
            amount=amount,
            other_amount_threshold=other_amount_threshold,
            is_base_input=is_base_input,
            slippage_bps=slippage_bps,
            sqrt_price_limit_x64=sqrt_price_limit_x64,
        )

    def quote(
        self,
        pool: PoolSnapshot,
        input_mint: str,
        amount: int,
        is_base_input: bool = True,
        slippage_bps: Optional[int] = None,
        sqrt_price_limit_x64: int = 0,
    ) -> SwapQuote:
        """
        Estimate a swap without building instructions

        Args:
            pool: Pool snapshot with amm config and tick arrays
            input_mint: Mint being sold
            amount: Exact input (is_base_input) or exact output
            is_base_input: Exact-in (True) or exact-out (False)
            slippage_bps: Slippage used for the threshold (defaults to DEFAULT_SLIPPAGE_BPS)
            sqrt_price_limit_x64: Price limit, 0 for none

        Returns:
            SwapQuote
        """
        request = self._request(pool, input_mint, amount, None, is_base_input, slippage_bps, sqrt_price_limit_x64)
        quote, _ = quote_swap(request, self._client.context)
        return quote

    def swap(
        self,
        pool: PoolSnapshot,
        input_mint: str,
        amount: int,
        other_amount_threshold: Optional[int] = None,
        is_base_input: bool = True,
        slippage_bps: Optional[int] = None,
        sqrt_price_limit_x64: int = 0,
    ) -> InstructionSet:
        """Build a single-hop swap"""
        request = self._request(
            pool, input_mint, amount, other_amount_threshold, is_base_input, slippage_bps, sqrt_price_limit_x64,
        )
        return build_swap(request, self._client.context)

    def swap_route(self, route: SwapRoute, amount_in: int, minimum_amount_out: int) -> InstructionSet:
        """Build a routed exact-in swap"""
        return build_routed_swap(RoutedSwapRequest(route, amount_in, minimum_amount_out), self._client.context)
