"""
Rewards Module

Builders for opening a pool reward slot and changing its emission
parameters, plus the RewardModule facade used by ClmmClient.
"""

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..client import ClmmClient

from .context import BuildContext
from ..errors import ConfigurationError
from ..raydium.constants import REWARD_NUM
from ..raydium.instructions import initialize_reward_instruction, set_reward_params_instruction
from ..raydium.math import emissions_per_second_to_x64, reward_amount_for_period
from ..raydium.pda import derive_operation_state, derive_reward_vault, to_pubkey
from ..raydium.token_accounts import get_associated_token_address
from ..types import (
    CreatedAccount,
    InitializeRewardRequest,
    InstructionSet,
    InstructionStep,
    MintInfo,
    OperationKind,
    Phase,
    PoolSnapshot,
    SetRewardParamsRequest,
    ensure_fresh,
)

logger = logging.getLogger(__name__)


def _free_reward_index(snapshot: PoolSnapshot, reward_mint: str) -> int:
    """First uninitialized reward slot; rewards fill slots in order"""
    for index, reward in enumerate(snapshot.pool.reward_infos):
        if reward.is_initialized:
            if reward.token_mint == reward_mint:
                raise ConfigurationError.invalid(
                    "reward_mint", f"{reward_mint} is already reward {index} of pool {snapshot.address}"
                )
            continue
        return index
    raise ConfigurationError.invalid("reward_mint", f"pool {snapshot.address} has no free reward slot")


def build_initialize_reward(request: InitializeRewardRequest, ctx: BuildContext) -> InstructionSet:
    """
    Build initialize_reward

    The owner funds the reward: the whole emission for the period moves from
    the owner's associated token account into a vault the program creates.
    """
    snapshot = request.pool
    reward_mint = request.reward_mint
    ensure_fresh(request.freshness, snapshot.markers() + [(f"mint {reward_mint.address}", reward_mint.slot)])

    reward_index = _free_reward_index(snapshot, reward_mint.address)
    emissions_x64 = emissions_per_second_to_x64(request.emissions_per_second)
    if emissions_x64 == 0:
        raise ConfigurationError.invalid(
            "emissions_per_second", f"{request.emissions_per_second} rounds to zero in Q64.64"
        )
    reward_amount = reward_amount_for_period(emissions_x64, request.open_time, request.end_time)

    program_id = ctx.program_id
    pool = snapshot.pool
    reward_vault = derive_reward_vault(pool.address, reward_mint.address, program_id).address
    funder_account = get_associated_token_address(ctx.owner, reward_mint.address, reward_mint.token_program)

    logger.debug(
        f"Initialize reward {reward_index} on {pool.address}: mint={reward_mint.address}, "
        f"emissions_x64={emissions_x64}, funding={reward_amount}"
    )

    ix = initialize_reward_instruction(
        program_id=program_id,
        reward_funder=ctx.owner,
        funder_token_account=funder_account,
        amm_config=to_pubkey(pool.amm_config, "amm_config"),
        pool_state=to_pubkey(pool.address, "pool"),
        operation_state=derive_operation_state(program_id).address,
        reward_token_mint=to_pubkey(reward_mint.address, "reward_mint"),
        reward_token_vault=reward_vault,
        reward_token_program=to_pubkey(reward_mint.token_program, "reward_token_program"),
        open_time=request.open_time,
        end_time=request.end_time,
        emissions_per_second_x64=emissions_x64,
    )

    return InstructionSet(
        kind=OperationKind.INITIALIZE_REWARD,
        label=f"initialize_reward {pool.address[:8]} #{reward_index}",
        steps=(InstructionStep(ix, Phase.OPERATION, f"initialize reward {reward_index}"),),
        created_accounts=(CreatedAccount(str(reward_vault), "reward_vault", Phase.OPERATION),),
        amounts={
            "reward_index": reward_index,
            "emissions_per_second_x64": emissions_x64,
            "reward_amount": reward_amount,
        },
        compute_units=ctx.settings.tx.compute_units,
    )


def build_set_reward_params(request: SetRewardParamsRequest, ctx: BuildContext) -> InstructionSet:
    """
    Build set_reward_params for an initialized reward slot

    When the snapshot carries the reward's mint info, the vault, the owner's
    token account and the mint are passed so the program can pull extra
    funding for an extended or faster emission.
    """
    snapshot = request.pool
    ensure_fresh(request.freshness, snapshot.markers())

    if not 0 <= request.reward_index < REWARD_NUM:
        raise ConfigurationError.invalid(
            "reward_index", f"must be in [0, {REWARD_NUM}), got {request.reward_index}"
        )
    pool = snapshot.pool
    reward = pool.reward_infos[request.reward_index]
    if not reward.is_initialized:
        raise ConfigurationError.invalid(
            "reward_index", f"reward {request.reward_index} of pool {pool.address} is not initialized"
        )

    emissions_x64 = emissions_per_second_to_x64(request.emissions_per_second)
    program_id = ctx.program_id

    top_up = {}
    mint_info = snapshot.reward_mint_info(reward.token_mint)
    if mint_info is not None:
        top_up = {
            "reward_token_vault": to_pubkey(reward.token_vault, "reward_vault"),
            "authority_token_account": get_associated_token_address(
                ctx.owner, mint_info.address, mint_info.token_program
            ),
            "reward_vault_mint": to_pubkey(mint_info.address, "reward_mint"),
        }
    else:
        logger.debug(f"No mint info for reward {reward.token_mint}, building without top-up accounts")

    ix = set_reward_params_instruction(
        program_id=program_id,
        authority=ctx.owner,
        amm_config=to_pubkey(pool.amm_config, "amm_config"),
        pool_state=to_pubkey(pool.address, "pool"),
        operation_state=derive_operation_state(program_id).address,
        reward_index=request.reward_index,
        emissions_per_second_x64=emissions_x64,
        open_time=request.open_time,
        end_time=request.end_time,
        **top_up,
    )

    amounts = {"reward_index": request.reward_index, "emissions_per_second_x64": emissions_x64}
    if emissions_x64 > 0:
        amounts["reward_amount"] = reward_amount_for_period(emissions_x64, request.open_time, request.end_time)

    return InstructionSet(
        kind=OperationKind.SET_REWARD_PARAMS,
        label=f"set_reward_params {pool.address[:8]} #{request.reward_index}",
        steps=(InstructionStep(ix, Phase.OPERATION, f"set reward {request.reward_index} params"),),
        amounts=amounts,
        compute_units=ctx.settings.tx.compute_units,
    )


class RewardModule:
    """
    Pool reward operations module

    Usage:
        client = ClmmClient(owner_pubkey)
        ix_set = client.rewards.initialize(
            pool=snapshot,
            reward_mint=mint_info,
            open_time=start,
            end_time=start + 7 * 86400,
            emissions_per_second=Decimal("1000"),
        )
    """

    def __init__(self, client: "ClmmClient"):
        self._client = client

    @property
    def _ctx(self) -> BuildContext:
        return self._client.context

    def initialize(
        self,
        pool: PoolSnapshot,
        reward_mint: MintInfo,
        open_time: int,
        end_time: int,
        emissions_per_second: Decimal,
    ) -> InstructionSet:
        """Open the next free reward slot, funded by the owner"""
        request = InitializeRewardRequest(pool, reward_mint, open_time, end_time, emissions_per_second)
        return build_initialize_reward(request, self._ctx)

    def set_params(
        self,
        pool: PoolSnapshot,
        reward_index: int,
        open_time: int,
        end_time: int,
        emissions_per_second: Decimal,
    ) -> InstructionSet:
        """Change an initialized reward's period or emission rate"""
        request = SetRewardParamsRequest(pool, reward_index, open_time, end_time, emissions_per_second)
        return build_set_reward_params(request, self._ctx)
