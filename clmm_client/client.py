"""
ClmmClient - Unified entry point for CLMM transaction construction

Provides a high-level interface for building Raydium CLMM instruction sets
through functional modules (lp, swap, rewards) and packing them into transactions.
Network access and signing stay with the caller: the client only reads the
snapshots it is handed and returns unsigned transaction packages.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Tuple, TYPE_CHECKING

from solders.pubkey import Pubkey

from .config import Config, get_config
from .errors import ConfigurationError
from .infra import AssemblerConfig, TransactionAssembler
from .modules import BuildContext, build_operation
from .raydium.constants import TOKEN_PROGRAM_ID
from .raydium.pda import PubkeyLike, derive_tick_array_bitmap_extension
from .raydium.pool_parser import (
    AccountData,
    parse_amm_config,
    parse_mint,
    parse_pool_state,
    parse_tick_array_bitmap_extension,
)
from .raydium.position_parser import parse_personal_position, parse_tick_array
from .types import InstructionSet, PersonalPosition, PoolSnapshot, TransactionPackage

logger = logging.getLogger(__name__)


class ClmmClient:
    """
    Unified CLMM client

    Provides access to builders through functional modules:
    - lp: Pool creation and liquidity operations (open, increase, decrease, collect, close)
    - swap: Quotes, single-hop and routed swaps

    A client is one build session: token accounts created by earlier
    instruction sets are remembered until new_session() is called.

    Usage:
        client = ClmmClient(owner_pubkey)

        pool = client.load_pool(pool_address, pool_data, mints={...})
        open_set = client.lp.open(pool, tick_lower=-128, tick_upper=128, amount=1_000_000)
        swap_set = client.swap.swap(pool, input_mint=usdc, amount=500_000)

        packages = client.assemble(open_set, swap_set)
        for package in packages:
            tx = package.to_unsigned_transaction(blockhash)
    """

    def __init__(
        self,
        owner: PubkeyLike,
        program_id: Optional[PubkeyLike] = None,
        existing_accounts: Iterable[PubkeyLike] = (),
        settings: Optional[Config] = None,
        assembler_config: Optional[AssemblerConfig] = None,
    ):
        """
        Initialize ClmmClient

        Args:
            owner: Wallet that owns positions and pays for transactions
            program_id: CLMM program id (defaults to config)
            existing_accounts: Token accounts known to exist on chain
            settings: Optional configuration (defaults to the global config)
            assembler_config: Optional transaction assembly configuration
        """
        self._settings = settings or get_config()
        self._existing_accounts = list(existing_accounts)
        self._context = BuildContext.create(
            owner,
            program_id=program_id,
            existing_accounts=self._existing_accounts,
            settings=self._settings,
        )

        if assembler_config is None:
            tx = self._settings.tx
            assembler_config = AssemblerConfig(
                compute_units=tx.compute_units,
                compute_unit_price=tx.compute_unit_price,
                max_instructions=tx.max_instructions,
                max_transaction_size=tx.max_transaction_size,
            )
        self._assembler = TransactionAssembler(self._context.owner, config=assembler_config)

        # Lazy-loaded modules
        self._swap: Optional["SwapModule"] = None
        self._lp: Optional["LiquidityModule"] = None
        self._rewards: Optional["RewardModule"] = None

    @property
    def owner(self) -> Pubkey:
        """Owner and fee payer"""
        return self._context.owner

    @property
    def program_id(self) -> Pubkey:
        return self._context.program_id

    @property
    def settings(self) -> Config:
        return self._settings

    @property
    def context(self) -> BuildContext:
        """Build context of the current session"""
        return self._context

    @property
    def assembler(self) -> TransactionAssembler:
        """Access to transaction assembler"""
        return self._assembler

    @property
    def swap(self) -> "SwapModule":
        """
        Swap module

        Provides:
        - quote(pool, input_mint, amount): Client-side estimate
        - swap(pool, input_mint, amount): Single-hop swap instruction set
        - swap_route(route, amount_in, minimum_amount_out): Routed swap
        """
        if self._swap is None:
            from .modules.swap import SwapModule
            self._swap = SwapModule(self)
        return self._swap

    @property
    def lp(self) -> "LiquidityModule":
        """
        Liquidity module for LP operations

        Provides:
        - create_pool(amm_config, mint_a, mint_b, price): Create pool
        - open(pool, tick_lower, tick_upper, ...): Open position
        - open_by_price(pool, price_lower, price_upper, ...): Open position by price
        - increase(position, pool, ...): Add liquidity
        - decrease(position, pool, ...): Remove liquidity
        - collect(position, pool): Collect fees and rewards
        - close(position, pool): Close position
        """
        if self._lp is None:
            from .modules.liquidity import LiquidityModule
            self._lp = LiquidityModule(self)
        return self._lp

    @property
    def rewards(self) -> "RewardModule":
        """
        Reward module

        Provides:
        - initialize(pool, reward_mint, open_time, end_time, emissions_per_second)
        - set_params(pool, reward_index, open_time, end_time, emissions_per_second)
        """
        if self._rewards is None:
            from .modules.rewards import RewardModule
            self._rewards = RewardModule(self)
        return self._rewards

    def new_session(self) -> None:
        """Forget token accounts created by earlier instruction sets"""
        self._context = BuildContext.create(
            self._context.owner,
            program_id=self._context.program_id,
            existing_accounts=self._existing_accounts,
            settings=self._settings,
        )
        logger.debug(f"Started new build session for {self._context.owner}")

    def mark_existing(self, *accounts: PubkeyLike) -> None:
        """Record token accounts that exist on chain (kept across sessions)"""
        for account in accounts:
            self._existing_accounts.append(account)
            self._context.resolver.mark_existing(account)

    def build(self, request) -> InstructionSet:
        """
        Build the instruction set for a request

        Args:
            request: Any operation request (OpenPositionRequest, SwapRequest, ...)

        Returns:
            InstructionSet for the operation
        """
        instruction_set = build_operation(request, self._context)
        logger.info(f"Built {instruction_set.label}: {len(instruction_set.steps)} instruction(s)")
        return instruction_set

    def assemble(self, *instruction_sets: InstructionSet) -> List[TransactionPackage]:
        """Pack instruction sets into transaction packages, in order"""
        return self._assembler.assemble(instruction_sets)

    def prepare(self, *requests) -> List[TransactionPackage]:
        """
        Build every request then pack the results

        All requests share the current session, so a token account created
        for one request is not created again for a later one.
        """
        if not requests:
            raise ConfigurationError.invalid("requests", "at least one request is required")
        return self.assemble(*[self.build(request) for request in requests])

    def load_pool(
        self,
        pool_address: str,
        pool_data: AccountData,
        mints: Mapping[str, Tuple[AccountData, str]],
        amm_config_data: Optional[AccountData] = None,
        bitmap_extension_data: Optional[AccountData] = None,
        tick_arrays: Optional[Mapping[str, AccountData]] = None,
        slot: Optional[int] = None,
    ) -> PoolSnapshot:
        """
        Decode raw accounts into a pool snapshot

        Args:
            pool_address: Pool address
            pool_data: Pool account data
            mints: Mint address -> (account data, owner program) for both pool
                mints, plus any reward mints
            amm_config_data: Fee tier account data (needed for swaps)
            bitmap_extension_data: Bitmap extension account data
            tick_arrays: Tick array address -> account data
            slot: Slot every account was fetched at

        Returns:
            PoolSnapshot

        Raises:
            SnapshotDecodeError: Account data is malformed or inconsistent
            ConfigurationError: A pool mint is missing from mints
        """
        pool = parse_pool_state(pool_address, pool_data, slot)

        def mint(address: str):
            if address not in mints:
                raise ConfigurationError.missing(f"mint account {address}")
            data, owner = mints[address]
            return parse_mint(address, data, owner or TOKEN_PROGRAM_ID, slot)

        amm_config = None
        if amm_config_data is not None:
            amm_config = parse_amm_config(pool.amm_config, amm_config_data, slot)

        bitmap_extension = None
        if bitmap_extension_data is not None:
            address = derive_tick_array_bitmap_extension(pool_address, self.program_id).address
            bitmap_extension = parse_tick_array_bitmap_extension(str(address), bitmap_extension_data, slot)

        arrays = tuple(
            parse_tick_array(address, data, slot)
            for address, data in (tick_arrays or {}).items()
        )

        rewards = tuple(
            mint(reward.token_mint)
            for reward in pool.initialized_rewards
            if reward.token_mint in mints
        )

        snapshot = PoolSnapshot(
            pool=pool,
            mint_0=mint(pool.mint_0),
            mint_1=mint(pool.mint_1),
            amm_config=amm_config,
            bitmap_extension=bitmap_extension,
            tick_arrays=arrays,
            reward_mints=rewards,
        )
        logger.debug(f"Loaded {pool} with {len(arrays)} tick array(s)")
        return snapshot

    def load_position(
        self,
        address: str,
        data: AccountData,
        slot: Optional[int] = None,
    ) -> PersonalPosition:
        """Decode a personal position account"""
        return parse_personal_position(address, data, slot)

    def __repr__(self) -> str:
        return f"ClmmClient(owner={str(self.owner)[:8]}..., program={str(self.program_id)[:8]}...)"


# Type hints for modules (resolved at runtime)
if TYPE_CHECKING:
    from .modules.swap import SwapModule
    from .modules.liquidity import LiquidityModule
    from .modules.rewards import RewardModule
