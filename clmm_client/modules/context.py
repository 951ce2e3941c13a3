"""
Build context shared by the instruction builders

A BuildContext belongs to one build session: it fixes the owner, the CLMM
program id every address is derived against, and the token account resolver
that remembers which accounts the session has already created.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from ..config import Config, get_config
from ..raydium.bitmap import is_overflow_default_bitmap, is_tick_array_initialized
from ..raydium.math import get_tick_array_start_index
from ..raydium.pda import PubkeyLike, derive_tick_array, derive_tick_array_bitmap_extension, to_pubkey
from ..raydium.token_accounts import ResolvedTokenAccount, TokenAccountResolver
from ..types import CreatedAccount, InstructionStep, MintInfo, Phase, PoolSnapshot

logger = logging.getLogger(__name__)


@dataclass
class TickArrayAccount:
    """Tick array an instruction references"""
    start_index: int
    address: Pubkey
    initialized: bool


@dataclass
class BuildContext:
    """
    Per-session build context

    Usage:
        ctx = BuildContext.create(owner_pubkey)
        instruction_set = build_open_position(request, ctx)
    """
    owner: Pubkey
    program_id: Pubkey
    resolver: TokenAccountResolver
    settings: Config

    @classmethod
    def create(
        cls,
        owner: PubkeyLike,
        program_id: Optional[PubkeyLike] = None,
        existing_accounts: Iterable[PubkeyLike] = (),
        settings: Optional[Config] = None,
    ) -> "BuildContext":
        """
        Create a context for one build session

        Args:
            owner: Wallet that owns positions and token accounts (also the payer)
            program_id: CLMM program id (defaults to config)
            existing_accounts: Token accounts known to exist on chain
            settings: Configuration (defaults to the global config)
        """
        settings = settings or get_config()
        owner_pubkey = to_pubkey(owner, "owner")
        return cls(
            owner=owner_pubkey,
            program_id=to_pubkey(program_id or settings.clmm.program_id, "program_id"),
            resolver=TokenAccountResolver(owner_pubkey, existing_accounts),
            settings=settings,
        )

    def slippage_bps(self, requested: Optional[int], lp: bool = False) -> int:
        """Requested slippage or the configured default"""
        if requested is not None:
            return requested
        if lp:
            return self.settings.clmm.default_lp_slippage_bps
        return self.settings.clmm.default_slippage_bps

    def resolve_token_accounts(
        self,
        mints: Sequence[MintInfo],
    ) -> Tuple[List[ResolvedTokenAccount], List[InstructionStep], List[CreatedAccount]]:
        """
        Resolve the owner's token accounts for mints

        Returns:
            (accounts in input order, ACCOUNT_CREATE steps, created accounts)
        """
        accounts = self.resolver.resolve(self.owner, [(m.address, m.token_program) for m in mints])
        steps, created = account_creation_steps(accounts)
        return accounts, steps, created

    def tick_array(self, snapshot: PoolSnapshot, tick: int) -> TickArrayAccount:
        """Tick array holding tick, with its initialization state from the pool bitmap"""
        pool = snapshot.pool
        start = get_tick_array_start_index(tick, pool.tick_spacing)
        address = derive_tick_array(pool.address, start, pool.tick_spacing, self.program_id).address
        initialized = is_tick_array_initialized(pool, snapshot.bitmap_extension, start)
        return TickArrayAccount(start, address, initialized)

    def bitmap_extension_for(self, snapshot: PoolSnapshot, starts: Iterable[int]) -> Optional[Pubkey]:
        """Bitmap extension address when any of the tick arrays overflows the default bitmap"""
        spacing = snapshot.pool.tick_spacing
        if any(is_overflow_default_bitmap(start, spacing) for start in starts):
            return derive_tick_array_bitmap_extension(snapshot.address, self.program_id).address
        return None


def account_creation_steps(
    accounts: Iterable[ResolvedTokenAccount],
) -> Tuple[List[InstructionStep], List[CreatedAccount]]:
    """ACCOUNT_CREATE steps and created accounts for resolved accounts that need creation"""
    steps = []
    created = []
    for account in accounts:
        if account.create_instruction is None:
            continue
        steps.append(InstructionStep(
            account.create_instruction,
            Phase.ACCOUNT_CREATE,
            f"create token account for {account.mint}",
        ))
        created.append(CreatedAccount(str(account.address), "token_account", Phase.ACCOUNT_CREATE))
    return steps, created


def tick_array_created_accounts(tick_arrays: Iterable[TickArrayAccount]) -> List[CreatedAccount]:
    """Uninitialized tick arrays, allocated by the program in the TICK_ARRAY_INIT phase"""
    created = []
    seen = set()
    for tick_array in tick_arrays:
        if tick_array.initialized or tick_array.start_index in seen:
            continue
        seen.add(tick_array.start_index)
        logger.debug(f"Tick array {tick_array.start_index} ({tick_array.address}) will be initialized")
        created.append(CreatedAccount(str(tick_array.address), "tick_array", Phase.TICK_ARRAY_INIT))
    return created
