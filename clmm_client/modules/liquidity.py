"""
Liquidity Module

Instruction builders for pool creation and LP position operations, plus
the LiquidityModule facade used by ClmmClient.

Every builder is a pure function (request, BuildContext) -> InstructionSet.
Predictable failures (stale snapshots, zero liquidity, over-withdrawal,
invalid ranges) are raised before any instruction is built.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Tuple, TYPE_CHECKING

from solders.keypair import Keypair
from solders.pubkey import Pubkey

if TYPE_CHECKING:
    from ..client import ClmmClient

from .context import BuildContext, account_creation_steps, tick_array_created_accounts
from ..errors import ConfigurationError, InsufficientLiquidity, SnapshotDecodeError, TickOutOfBounds
from ..raydium.constants import MAX_SQRT_PRICE_X64, TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID, WRAPPED_SOL_MINT
from ..raydium.instructions import (
    create_pool_instruction,
    open_position_instruction,
    increase_liquidity_instruction,
    decrease_liquidity_instruction,
    close_position_instruction,
)
from ..raydium.math import (
    Rounding,
    apply_slippage_max,
    apply_slippage_min,
    invert_price,
    liquidity_to_amounts,
    price_to_sqrt_price_x64,
    price_to_tick,
    single_amount_to_liquidity,
    sqrt_price_x64_to_tick,
    validate_tick_range,
)
from ..raydium.pda import (
    derive_pool,
    derive_pool_vault,
    derive_observation,
    derive_tick_array_bitmap_extension,
    derive_protocol_position,
    derive_personal_position,
    derive_support_mint_associated,
    to_pubkey,
)
from ..raydium.token_accounts import get_associated_token_address
from ..types import (
    ClosePositionRequest,
    CollectFeesRequest,
    CreatedAccount,
    CreatePoolRequest,
    DecreaseLiquidityRequest,
    IncreaseLiquidityRequest,
    InstructionSet,
    InstructionStep,
    OpenPositionRequest,
    OperationKind,
    PersonalPosition,
    Phase,
    PoolSnapshot,
    PoolState,
    UnwrapNativeRequest,
    WrapNativeRequest,
    ensure_fresh,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Deposit / withdrawal bounds
# =============================================================================

def deposit_bounds(
    pool: PoolState,
    tick_lower: int,
    tick_upper: int,
    liquidity: Optional[int],
    amount: Optional[int],
    is_base_0: bool,
    slippage_bps: int,
) -> dict:
    """
    Liquidity and maximum token amounts for a deposit

    With amount, liquidity is derived from the base side (rounded down) and
    the instruction carries base_flag so the program recomputes it from the
    base amount at execution price; the base side's maximum is the amount
    itself and only the derived side gets a slippage margin.

    Returns:
        dict with liquidity, amount_0, amount_1, amount_0_max, amount_1_max,
        liquidity_arg and base_flag (instruction arguments)

    Raises:
        InsufficientLiquidity: The deposit funds zero liquidity
    """
    if liquidity is None:
        liquidity = single_amount_to_liquidity(amount, is_base_0, tick_lower, tick_upper, pool.sqrt_price_x64)
    if liquidity == 0:
        raise InsufficientLiquidity.zero_liquidity()

    amount_0, amount_1 = liquidity_to_amounts(
        liquidity, tick_lower, tick_upper, pool.tick_current,
        round_up=True, sqrt_price_current_x64=pool.sqrt_price_x64,
    )
    bounds = {
        "liquidity": liquidity,
        "amount_0": amount_0,
        "amount_1": amount_1,
        "amount_0_max": apply_slippage_max(amount_0, slippage_bps),
        "amount_1_max": apply_slippage_max(amount_1, slippage_bps),
        "liquidity_arg": liquidity,
        "base_flag": None,
    }
    if amount is not None:
        bounds["liquidity_arg"] = 0
        bounds["base_flag"] = is_base_0
        bounds["amount_0_max" if is_base_0 else "amount_1_max"] = amount
    return bounds


def withdrawal_bounds(
    pool: PoolState,
    position: PersonalPosition,
    liquidity: int,
    slippage_bps: int,
) -> Tuple[int, int, int, int]:
    """(amount_0, amount_1, amount_0_min, amount_1_min) for removing liquidity"""
    if liquidity == 0:
        return 0, 0, 0, 0
    amount_0, amount_1 = liquidity_to_amounts(
        liquidity, position.tick_lower, position.tick_upper, pool.tick_current,
        round_up=False, sqrt_price_current_x64=pool.sqrt_price_x64,
    )
    return amount_0, amount_1, apply_slippage_min(amount_0, slippage_bps), apply_slippage_min(amount_1, slippage_bps)


def _check_position_pool(position: PersonalPosition, snapshot: PoolSnapshot) -> None:
    if position.pool_id != snapshot.address:
        raise SnapshotDecodeError.mismatch(
            "PersonalPosition",
            f"position {position.nft_mint} belongs to pool {position.pool_id}, not {snapshot.address}",
        )


# =============================================================================
# Create pool
# =============================================================================

def build_create_pool(request: CreatePoolRequest, ctx: BuildContext) -> InstructionSet:
    """
    Build create_pool

    Mints are sorted byte-wise as the program requires; when they were given
    in reverse order the initial price is inverted.
    """
    markers = [
        (f"amm config {request.amm_config.address}", request.amm_config.slot),
        (f"mint {request.mint_a.address}", request.mint_a.slot),
        (f"mint {request.mint_b.address}", request.mint_b.slot),
    ]
    ensure_fresh(request.freshness, markers)

    if request.mint_a.address == request.mint_b.address:
        raise ConfigurationError.invalid("mint_b", "pool mints must differ")
    price = Decimal(str(request.initial_price))
    if price <= 0:
        raise ConfigurationError.invalid("initial_price", f"price must be positive, got {price}")

    mint_a = to_pubkey(request.mint_a.address, "mint_a")
    mint_b = to_pubkey(request.mint_b.address, "mint_b")
    if bytes(mint_a) < bytes(mint_b):
        mint_0, mint_1 = request.mint_a, request.mint_b
    else:
        mint_0, mint_1 = request.mint_b, request.mint_a
        price = invert_price(price)
        logger.debug(f"Mints given in reverse order, initial price inverted to {price}")

    sqrt_price_x64 = price_to_sqrt_price_x64(price, mint_0.decimals, mint_1.decimals)
    if sqrt_price_x64 >= MAX_SQRT_PRICE_X64:
        # The program only accepts initial prices strictly below the max tick's
        raise TickOutOfBounds.sqrt_price(sqrt_price_x64)
    tick = sqrt_price_x64_to_tick(sqrt_price_x64)

    program_id = ctx.program_id
    amm_config = to_pubkey(request.amm_config.address, "amm_config")
    pool = derive_pool(amm_config, mint_0.address, mint_1.address, program_id).address
    vault_0 = derive_pool_vault(pool, mint_0.address, program_id).address
    vault_1 = derive_pool_vault(pool, mint_1.address, program_id).address
    observation = derive_observation(pool, program_id).address
    bitmap_extension = derive_tick_array_bitmap_extension(pool, program_id).address

    pair = (mint_0.address, mint_1.address)
    unknown = [mint for mint in request.supported_mints if mint not in pair]
    if unknown:
        raise ConfigurationError.invalid("supported_mints", f"{unknown[0]} is not one of the pool mints")
    support_mint_associated = [
        derive_support_mint_associated(mint, program_id).address
        for mint in pair
        if mint in request.supported_mints
    ]

    logger.debug(f"Creating pool {pool}: sqrt_price_x64={sqrt_price_x64}, tick={tick}")

    ix = create_pool_instruction(
        program_id=program_id,
        pool_creator=ctx.owner,
        amm_config=amm_config,
        pool_state=pool,
        token_mint_0=to_pubkey(mint_0.address, "mint_0"),
        token_mint_1=to_pubkey(mint_1.address, "mint_1"),
        token_vault_0=vault_0,
        token_vault_1=vault_1,
        observation_state=observation,
        tick_array_bitmap=bitmap_extension,
        token_program_0=to_pubkey(mint_0.token_program, "token_program_0"),
        token_program_1=to_pubkey(mint_1.token_program, "token_program_1"),
        sqrt_price_x64=sqrt_price_x64,
        open_time=request.open_time,
        support_mint_associated=support_mint_associated,
    )

    created = tuple(
        CreatedAccount(str(address), kind, Phase.OPERATION)
        for address, kind in (
            (pool, "pool"),
            (vault_0, "pool_vault"),
            (vault_1, "pool_vault"),
            (observation, "observation"),
            (bitmap_extension, "tick_array_bitmap_extension"),
        )
    )
    return InstructionSet(
        kind=OperationKind.CREATE_POOL,
        label=f"create_pool {mint_0.address[:8]}/{mint_1.address[:8]}",
        steps=(InstructionStep(ix, Phase.OPERATION, "create pool"),),
        created_accounts=created,
        amounts={"sqrt_price_x64": sqrt_price_x64, "tick": tick},
        compute_units=ctx.settings.tx.lp_compute_units,
    )


# =============================================================================
# Open / increase
# =============================================================================

def build_open_position(request: OpenPositionRequest, ctx: BuildContext) -> InstructionSet:
    """
    Build open_position_with_token22_nft

    A fresh keypair is generated for the position NFT mint and returned as
    an extra signer. Tick arrays not yet set in the pool bitmap are reported
    as created accounts; the program allocates them during the open.
    """
    snapshot = request.pool
    ensure_fresh(request.freshness, snapshot.markers())
    pool = snapshot.pool
    validate_tick_range(request.tick_lower, request.tick_upper, pool.tick_spacing)

    slippage_bps = ctx.slippage_bps(request.slippage_bps, lp=True)
    bounds = deposit_bounds(
        pool, request.tick_lower, request.tick_upper,
        request.liquidity, request.amount, request.is_base_0, slippage_bps,
    )

    program_id = ctx.program_id
    nft_mint = Keypair()
    nft_mint_pubkey = nft_mint.pubkey()
    personal_position = derive_personal_position(nft_mint_pubkey, program_id).address
    protocol_position = derive_protocol_position(pool.address, request.tick_lower, request.tick_upper, program_id).address
    nft_account = get_associated_token_address(ctx.owner, nft_mint_pubkey, Pubkey.from_string(TOKEN_2022_PROGRAM_ID))

    lower_array = ctx.tick_array(snapshot, request.tick_lower)
    upper_array = ctx.tick_array(snapshot, request.tick_upper)
    bitmap_extension = ctx.bitmap_extension_for(snapshot, (lower_array.start_index, upper_array.start_index))

    accounts, steps, created = ctx.resolve_token_accounts([snapshot.mint_0, snapshot.mint_1])

    with_metadata = request.with_metadata
    if with_metadata is None:
        with_metadata = ctx.settings.clmm.with_metadata

    logger.debug(
        f"Open position [{request.tick_lower}, {request.tick_upper}] on {pool.address}: "
        f"liquidity={bounds['liquidity']}, max=({bounds['amount_0_max']}, {bounds['amount_1_max']})"
    )

    ix = open_position_instruction(
        program_id=program_id,
        payer=ctx.owner,
        position_nft_owner=ctx.owner,
        position_nft_mint=nft_mint_pubkey,
        position_nft_account=nft_account,
        pool_state=to_pubkey(pool.address, "pool"),
        protocol_position=protocol_position,
        tick_array_lower=lower_array.address,
        tick_array_upper=upper_array.address,
        personal_position=personal_position,
        token_account_0=accounts[0].address,
        token_account_1=accounts[1].address,
        token_vault_0=to_pubkey(pool.vault_0, "vault_0"),
        token_vault_1=to_pubkey(pool.vault_1, "vault_1"),
        vault_0_mint=to_pubkey(pool.mint_0, "mint_0"),
        vault_1_mint=to_pubkey(pool.mint_1, "mint_1"),
        tick_lower_index=request.tick_lower,
        tick_upper_index=request.tick_upper,
        tick_array_lower_start_index=lower_array.start_index,
        tick_array_upper_start_index=upper_array.start_index,
        liquidity=bounds["liquidity_arg"],
        amount_0_max=bounds["amount_0_max"],
        amount_1_max=bounds["amount_1_max"],
        with_metadata=with_metadata,
        base_flag=bounds["base_flag"],
        tick_array_bitmap_extension=bitmap_extension,
    )
    steps.append(InstructionStep(ix, Phase.OPERATION, "open position"))

    created_accounts = tick_array_created_accounts([lower_array, upper_array]) + created + [
        CreatedAccount(str(nft_mint_pubkey), "position_nft", Phase.OPERATION),
        CreatedAccount(str(nft_account), "position_nft_account", Phase.OPERATION),
        CreatedAccount(str(personal_position), "personal_position", Phase.OPERATION),
    ]

    return InstructionSet(
        kind=OperationKind.OPEN_POSITION,
        label=f"open_position {pool.address[:8]} [{request.tick_lower}, {request.tick_upper}]",
        steps=tuple(steps),
        signers=(nft_mint,),
        created_accounts=tuple(created_accounts),
        amounts=_public_amounts(bounds),
        compute_units=ctx.settings.tx.lp_compute_units,
    )


def build_increase_liquidity(request: IncreaseLiquidityRequest, ctx: BuildContext) -> InstructionSet:
    """Build increase_liquidity_v2 with slippage-bounded maximum amounts"""
    snapshot = request.pool
    position = request.position
    ensure_fresh(request.freshness, snapshot.markers() + position.markers())
    _check_position_pool(position, snapshot)
    pool = snapshot.pool

    slippage_bps = ctx.slippage_bps(request.slippage_bps, lp=True)
    bounds = deposit_bounds(
        pool, position.tick_lower, position.tick_upper,
        request.liquidity, request.amount, request.is_base_0, slippage_bps,
    )

    program_id = ctx.program_id
    lower_array = ctx.tick_array(snapshot, position.tick_lower)
    upper_array = ctx.tick_array(snapshot, position.tick_upper)
    bitmap_extension = ctx.bitmap_extension_for(snapshot, (lower_array.start_index, upper_array.start_index))
    accounts, steps, created = ctx.resolve_token_accounts([snapshot.mint_0, snapshot.mint_1])

    ix = increase_liquidity_instruction(
        program_id=program_id,
        nft_owner=ctx.owner,
        nft_account=_nft_account(ctx, position),
        pool_state=to_pubkey(pool.address, "pool"),
        protocol_position=derive_protocol_position(
            pool.address, position.tick_lower, position.tick_upper, program_id
        ).address,
        personal_position=to_pubkey(position.address, "personal_position"),
        tick_array_lower=lower_array.address,
        tick_array_upper=upper_array.address,
        token_account_0=accounts[0].address,
        token_account_1=accounts[1].address,
        token_vault_0=to_pubkey(pool.vault_0, "vault_0"),
        token_vault_1=to_pubkey(pool.vault_1, "vault_1"),
        vault_0_mint=to_pubkey(pool.mint_0, "mint_0"),
        vault_1_mint=to_pubkey(pool.mint_1, "mint_1"),
        liquidity=bounds["liquidity_arg"],
        amount_0_max=bounds["amount_0_max"],
        amount_1_max=bounds["amount_1_max"],
        base_flag=bounds["base_flag"],
        tick_array_bitmap_extension=bitmap_extension,
    )
    steps.append(InstructionStep(ix, Phase.OPERATION, "increase liquidity"))

    return InstructionSet(
        kind=OperationKind.INCREASE_LIQUIDITY,
        label=f"increase_liquidity {position.nft_mint[:8]}",
        steps=tuple(steps),
        created_accounts=tuple(created),
        amounts=_public_amounts(bounds),
        compute_units=ctx.settings.tx.lp_compute_units,
    )


def _public_amounts(bounds: dict) -> dict:
    return {k: v for k, v in bounds.items() if k in ("liquidity", "amount_0", "amount_1", "amount_0_max", "amount_1_max")}


def _nft_account(ctx: BuildContext, position: PersonalPosition) -> Pubkey:
    return get_associated_token_address(
        ctx.owner,
        to_pubkey(position.nft_mint, "nft_mint"),
        to_pubkey(position.nft_token_program, "nft_token_program"),
    )


# =============================================================================
# Decrease / collect / close
# =============================================================================

def _decrease_steps(
    ctx: BuildContext,
    snapshot: PoolSnapshot,
    position: PersonalPosition,
    liquidity: int,
    slippage_bps: int,
) -> Tuple[List[InstructionStep], List[CreatedAccount], dict]:
    """
    decrease_liquidity_v2 with its token account creations

    Owed fees and rewards are transferred by the same instruction. Reward
    recipient accounts are passed for initialized reward slots in order;
    a slot whose mint info is unknown ends the list (later slots cannot be
    passed without it) and its rewards stay owed.
    """
    if liquidity > position.liquidity:
        raise InsufficientLiquidity.position_liquidity(liquidity, position.liquidity)

    pool = snapshot.pool
    amount_0, amount_1, amount_0_min, amount_1_min = withdrawal_bounds(pool, position, liquidity, slippage_bps)

    accounts, steps, created = ctx.resolve_token_accounts([snapshot.mint_0, snapshot.mint_1])

    reward_accounts = []
    for index, reward in enumerate(pool.reward_infos):
        if not reward.is_initialized:
            continue
        mint_info = snapshot.reward_mint_info(reward.token_mint)
        if mint_info is None:
            logger.warning(
                f"Reward slot {index} mint {reward.token_mint} has no mint info, "
                f"skipping reward collection from this slot on"
            )
            break
        recipient = ctx.resolver.resolve_one(ctx.owner, mint_info.address, mint_info.token_program)
        reward_steps, reward_created = account_creation_steps([recipient])
        steps.extend(reward_steps)
        created.extend(reward_created)
        reward_accounts.append((
            to_pubkey(reward.token_vault, "reward_vault"),
            recipient.address,
            to_pubkey(reward.token_mint, "reward_mint"),
        ))

    program_id = ctx.program_id
    lower_array = ctx.tick_array(snapshot, position.tick_lower)
    upper_array = ctx.tick_array(snapshot, position.tick_upper)
    bitmap_extension = ctx.bitmap_extension_for(snapshot, (lower_array.start_index, upper_array.start_index))

    logger.debug(
        f"Decrease {liquidity} of {position.liquidity} liquidity on {position.nft_mint}: "
        f"min=({amount_0_min}, {amount_1_min}), rewards={len(reward_accounts)}"
    )

    ix = decrease_liquidity_instruction(
        program_id=program_id,
        nft_owner=ctx.owner,
        nft_account=_nft_account(ctx, position),
        personal_position=to_pubkey(position.address, "personal_position"),
        pool_state=to_pubkey(pool.address, "pool"),
        protocol_position=derive_protocol_position(
            pool.address, position.tick_lower, position.tick_upper, program_id
        ).address,
        token_vault_0=to_pubkey(pool.vault_0, "vault_0"),
        token_vault_1=to_pubkey(pool.vault_1, "vault_1"),
        tick_array_lower=lower_array.address,
        tick_array_upper=upper_array.address,
        recipient_token_account_0=accounts[0].address,
        recipient_token_account_1=accounts[1].address,
        vault_0_mint=to_pubkey(pool.mint_0, "mint_0"),
        vault_1_mint=to_pubkey(pool.mint_1, "mint_1"),
        liquidity=liquidity,
        amount_0_min=amount_0_min,
        amount_1_min=amount_1_min,
        tick_array_bitmap_extension=bitmap_extension,
        reward_accounts=reward_accounts,
    )
    description = "decrease liquidity" if liquidity else "collect fees"
    steps.append(InstructionStep(ix, Phase.OPERATION, description))

    amounts = {
        "liquidity": liquidity,
        "amount_0": amount_0,
        "amount_1": amount_1,
        "amount_0_min": amount_0_min,
        "amount_1_min": amount_1_min,
        "fees_owed_0": position.token_fees_owed_0,
        "fees_owed_1": position.token_fees_owed_1,
    }
    return steps, created, amounts


def build_decrease_liquidity(request: DecreaseLiquidityRequest, ctx: BuildContext) -> InstructionSet:
    """Build decrease_liquidity_v2 with slippage-bounded minimum amounts"""
    snapshot = request.pool
    position = request.position
    ensure_fresh(request.freshness, snapshot.markers() + position.markers())
    _check_position_pool(position, snapshot)

    liquidity = position.liquidity if request.liquidity is None else request.liquidity
    if liquidity < 0:
        raise ConfigurationError.invalid("liquidity", f"must be non-negative, got {liquidity}")
    steps, created, amounts = _decrease_steps(
        ctx, snapshot, position, liquidity, ctx.slippage_bps(request.slippage_bps, lp=True)
    )

    return InstructionSet(
        kind=OperationKind.DECREASE_LIQUIDITY,
        label=f"decrease_liquidity {position.nft_mint[:8]}",
        steps=tuple(steps),
        created_accounts=tuple(created),
        amounts=amounts,
        compute_units=ctx.settings.tx.lp_compute_units,
    )


def build_collect_fees(request: CollectFeesRequest, ctx: BuildContext) -> InstructionSet:
    """Collect owed fees and rewards: decrease_liquidity_v2 with zero liquidity"""
    snapshot = request.pool
    position = request.position
    ensure_fresh(request.freshness, snapshot.markers() + position.markers())
    _check_position_pool(position, snapshot)

    steps, created, amounts = _decrease_steps(ctx, snapshot, position, 0, 0)

    return InstructionSet(
        kind=OperationKind.COLLECT_FEES,
        label=f"collect_fees {position.nft_mint[:8]}",
        steps=tuple(steps),
        created_accounts=tuple(created),
        amounts=amounts,
        compute_units=ctx.settings.tx.lp_compute_units,
    )


def build_close_position(request: ClosePositionRequest, ctx: BuildContext) -> InstructionSet:
    """
    Build close_position, optionally preceded by a full withdrawal

    The program only closes a position with no liquidity and nothing owed.
    With withdraw=True the remaining liquidity, fees and rewards are taken
    out by a decrease in the same transaction; with withdraw=False a
    position that still holds anything is rejected here.
    """
    snapshot = request.pool
    position = request.position
    ensure_fresh(request.freshness, snapshot.markers() + position.markers())
    _check_position_pool(position, snapshot)

    steps: List[InstructionStep] = []
    created: List[CreatedAccount] = []
    amounts = {}
    if request.withdraw:
        steps, created, amounts = _decrease_steps(
            ctx, snapshot, position, position.liquidity, ctx.slippage_bps(request.slippage_bps, lp=True)
        )
    elif not position.is_empty:
        raise ConfigurationError.invalid(
            "position",
            f"{position.nft_mint} still holds liquidity or owed amounts, close with withdraw=True",
        )

    ix = close_position_instruction(
        program_id=ctx.program_id,
        nft_owner=ctx.owner,
        position_nft_mint=to_pubkey(position.nft_mint, "nft_mint"),
        position_nft_account=_nft_account(ctx, position),
        personal_position=to_pubkey(position.address, "personal_position"),
        nft_token_program=to_pubkey(position.nft_token_program, "nft_token_program"),
    )
    steps.append(InstructionStep(ix, Phase.CLEANUP, "close position"))

    return InstructionSet(
        kind=OperationKind.CLOSE_POSITION,
        label=f"close_position {position.nft_mint[:8]}",
        steps=tuple(steps),
        created_accounts=tuple(created),
        amounts=amounts,
        compute_units=ctx.settings.tx.lp_compute_units,
    )


# =============================================================================
# Native SOL
# =============================================================================

def build_wrap_native(request: WrapNativeRequest, ctx: BuildContext) -> InstructionSet:
    """Create the owner's wrapped SOL account if needed, then fund and sync it"""
    account = ctx.resolver.resolve_one(ctx.owner, WRAPPED_SOL_MINT, TOKEN_PROGRAM_ID)
    steps, created = account_creation_steps([account])
    for ix in ctx.resolver.wrap_native(ctx.owner, request.lamports):
        steps.append(InstructionStep(ix, Phase.WRAP, "wrap native SOL"))

    return InstructionSet(
        kind=OperationKind.WRAP_NATIVE,
        label=f"wrap_native {request.lamports}",
        steps=tuple(steps),
        created_accounts=tuple(created),
        amounts={"lamports": request.lamports},
        independent=True,
    )


def build_unwrap_native(request: UnwrapNativeRequest, ctx: BuildContext) -> InstructionSet:
    """Close the owner's wrapped SOL account"""
    ix = ctx.resolver.unwrap_native(ctx.owner)
    return InstructionSet(
        kind=OperationKind.UNWRAP_NATIVE,
        label="unwrap_native",
        steps=(InstructionStep(ix, Phase.CLEANUP, "unwrap native SOL"),),
    )


# =============================================================================
# Facade
# =============================================================================

class LiquidityModule:
    """
    Liquidity operations module

    Provides LP instruction building against caller-supplied snapshots:
    - Create pools
    - Open positions (by tick or by price)
    - Add/remove liquidity
    - Collect fees/rewards
    - Close positions

    Usage:
        client = ClmmClient(owner_pubkey)

        # Open position by price range
        ix_set = client.lp.open_by_price(
            pool=snapshot,
            price_lower=Decimal("90"),
            price_upper=Decimal("110"),
            amount=1_000_000,
        )

        # Close position
        ix_set = client.lp.close(position, snapshot)

        packages = client.assemble(ix_set)
    """

    def __init__(self, client: "ClmmClient"):
        """
        Initialize liquidity module

        Args:
            client: ClmmClient instance
        """
        self._client = client

    @property
    def _ctx(self) -> BuildContext:
        return self._client.context

    def create_pool(
        self,
        amm_config,
        mint_a,
        mint_b,
        initial_price: Decimal,
        open_time: int = 0,
        supported_mints: Tuple[str, ...] = (),
    ) -> InstructionSet:
        """Create a pool; initial_price is the price of mint_a in mint_b"""
        request = CreatePoolRequest(amm_config, mint_a, mint_b, initial_price, open_time, tuple(supported_mints))
        return build_create_pool(request, self._ctx)

    def open(
        self,
        pool: PoolSnapshot,
        tick_lower: int,
        tick_upper: int,
        liquidity: Optional[int] = None,
        amount: Optional[int] = None,
        is_base_0: bool = True,
        slippage_bps: Optional[int] = None,
        with_metadata: Optional[bool] = None,
    ) -> InstructionSet:
        """
        Open new LP position over [tick_lower, tick_upper]

        Args:
            pool: Pool snapshot
            tick_lower: Lower tick (multiple of tick spacing)
            tick_upper: Upper tick (multiple of tick spacing)
            liquidity: Liquidity to add (or give amount)
            amount: Raw amount of the base token (or give liquidity)
            is_base_0: amount refers to token 0 (True) or token 1 (False)
            slippage_bps: Slippage tolerance (defaults to DEFAULT_LP_SLIPPAGE_BPS)
            with_metadata: Initialize NFT metadata (defaults to CLMM_WITH_METADATA)
        """
        request = OpenPositionRequest(
            pool, tick_lower, tick_upper, liquidity, amount, is_base_0, slippage_bps, with_metadata,
        )
        return build_open_position(request, self._ctx)

    def open_by_price(
        self,
        pool: PoolSnapshot,
        price_lower: Decimal,
        price_upper: Decimal,
        liquidity: Optional[int] = None,
        amount: Optional[int] = None,
        is_base_0: bool = True,
        slippage_bps: Optional[int] = None,
    ) -> InstructionSet:
        """
        Open position over a price range

        The lower price rounds down and the upper price rounds up to the
        pool's tick spacing, so the range never shrinks below the request.
        """
        state = pool.pool
        tick_lower = price_to_tick(price_lower, state.decimals_0, state.decimals_1, state.tick_spacing, Rounding.DOWN)
        tick_upper = price_to_tick(price_upper, state.decimals_0, state.decimals_1, state.tick_spacing, Rounding.UP)
        return self.open(pool, tick_lower, tick_upper, liquidity, amount, is_base_0, slippage_bps)

    def increase(
        self,
        position: PersonalPosition,
        pool: PoolSnapshot,
        liquidity: Optional[int] = None,
        amount: Optional[int] = None,
        is_base_0: bool = True,
        slippage_bps: Optional[int] = None,
    ) -> InstructionSet:
        """Add liquidity to position"""
        request = IncreaseLiquidityRequest(position, pool, liquidity, amount, is_base_0, slippage_bps)
        return build_increase_liquidity(request, self._ctx)

    def decrease(
        self,
        position: PersonalPosition,
        pool: PoolSnapshot,
        liquidity: Optional[int] = None,
        slippage_bps: Optional[int] = None,
    ) -> InstructionSet:
        """Remove liquidity from position (all of it when liquidity is None)"""
        return build_decrease_liquidity(DecreaseLiquidityRequest(position, pool, liquidity, slippage_bps), self._ctx)

    def collect(self, position: PersonalPosition, pool: PoolSnapshot) -> InstructionSet:
        """Collect owed fees and rewards"""
        return build_collect_fees(CollectFeesRequest(position, pool), self._ctx)

    def close(
        self,
        position: PersonalPosition,
        pool: PoolSnapshot,
        withdraw: bool = True,
        slippage_bps: Optional[int] = None,
    ) -> InstructionSet:
        """Withdraw everything (optional) and close position"""
        return build_close_position(ClosePositionRequest(position, pool, withdraw, slippage_bps), self._ctx)

    def wrap_for_deposit(self, instruction_set: InstructionSet, pool: PoolSnapshot) -> Optional[InstructionSet]:
        """
        Wrap enough SOL to cover a deposit's wrapped SOL side

        Returns None when neither pool mint is wrapped SOL or the deposit
        takes none of it. The wrap amount is the deposit maximum plus
        SOLANA_WSOL_WRAP_BUFFER.
        """
        for index, mint in enumerate((pool.mint_0, pool.mint_1)):
            if not mint.is_native_sol:
                continue
            maximum = instruction_set.amounts.get(f"amount_{index}_max", 0)
            if maximum > 0:
                lamports = maximum + self._ctx.settings.solana.wsol_wrap_buffer
                return build_wrap_native(WrapNativeRequest(lamports), self._ctx)
        return None

    def unwrap(self) -> InstructionSet:
        """Close the wrapped SOL account"""
        return build_unwrap_native(UnwrapNativeRequest(), self._ctx)
