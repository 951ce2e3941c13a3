"""
Token account resolution

Associated token account lookup/creation plus explicit wrapped SOL steps.
A TokenAccountResolver belongs to one build session and remembers every
account it has resolved, so the same account is never created twice.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from .constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    WRAPPED_SOL_MINT,
    TOKEN_IX_CLOSE_ACCOUNT,
    TOKEN_IX_SYNC_NATIVE,
    SYSTEM_IX_TRANSFER,
)
from .pda import PubkeyLike, derive_associated_token_account
from ..errors import AccountResolutionError, InvalidSeed

logger = logging.getLogger(__name__)

_TOKEN_PROGRAMS = (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID)


@dataclass(frozen=True)
class ResolvedTokenAccount:
    """
    Token account for one (owner, mint)

    Attributes:
        address: Account address (existing or to be created)
        owner: Account owner
        mint: Token mint
        token_program: Token program owning the mint
        create_instruction: Idempotent ATA creation, None when the account
            exists or was already created earlier in the session
    """
    address: Pubkey
    owner: Pubkey
    mint: Pubkey
    token_program: Pubkey
    create_instruction: Optional[Instruction] = None

    @property
    def needs_creation(self) -> bool:
        return self.create_instruction is not None


def get_associated_token_address(
    owner: PubkeyLike,
    mint: PubkeyLike,
    token_program: Optional[PubkeyLike] = None,
) -> Pubkey:
    """
    Get associated token account address

    Args:
        owner: Wallet owner
        mint: Token mint
        token_program: Token program (defaults to Tokenkeg)

    Returns:
        ATA address
    """
    return derive_associated_token_account(owner, mint, token_program).address


def build_create_ata_idempotent_instruction(
    payer: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    token_program: Optional[Pubkey] = None,
) -> Instruction:
    """
    Build create_associated_token_account_idempotent instruction

    This creates the ATA if it doesn't exist, or does nothing if it does.
    """
    if token_program is None:
        token_program = Pubkey.from_string(TOKEN_PROGRAM_ID)

    ata_address = get_associated_token_address(owner, mint, token_program)

    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(ata_address, is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=False, is_writable=False),
        AccountMeta(mint, is_signer=False, is_writable=False),
        AccountMeta(Pubkey.from_string(SYSTEM_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(token_program, is_signer=False, is_writable=False),
    ]

    # Instruction data: single byte 1 for idempotent create
    return Instruction(Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID), bytes([1]), accounts)


def build_system_transfer_instruction(source: Pubkey, destination: Pubkey, lamports: int) -> Instruction:
    """System program transfer: u32 tag 2 + u64 lamports"""
    data = struct.pack("<IQ", SYSTEM_IX_TRANSFER, lamports)
    accounts = [
        AccountMeta(source, is_signer=True, is_writable=True),
        AccountMeta(destination, is_signer=False, is_writable=True),
    ]
    return Instruction(Pubkey.from_string(SYSTEM_PROGRAM_ID), data, accounts)


def build_sync_native_instruction(account: Pubkey) -> Instruction:
    """SPL token SyncNative: refresh a wrapped SOL account's amount from its lamports"""
    return Instruction(
        Pubkey.from_string(TOKEN_PROGRAM_ID),
        bytes([TOKEN_IX_SYNC_NATIVE]),
        [AccountMeta(account, is_signer=False, is_writable=True)],
    )


def build_close_account_instruction(
    account: Pubkey,
    destination: Pubkey,
    owner: Pubkey,
    token_program: Optional[Pubkey] = None,
) -> Instruction:
    """SPL token CloseAccount: reclaim rent (and wrapped SOL) to destination"""
    accounts = [
        AccountMeta(account, is_signer=False, is_writable=True),
        AccountMeta(destination, is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=True, is_writable=False),
    ]
    return Instruction(
        token_program or Pubkey.from_string(TOKEN_PROGRAM_ID),
        bytes([TOKEN_IX_CLOSE_ACCOUNT]),
        accounts,
    )


def _parse_pubkey(value: PubkeyLike, field_name: str) -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    try:
        return Pubkey.from_string(value)
    except (ValueError, TypeError) as e:
        raise AccountResolutionError.malformed(field_name, value) from e


class TokenAccountResolver:
    """
    Resolve token accounts for one build session

    Usage:
        resolver = TokenAccountResolver(payer, existing_accounts=[...])

        accounts = resolver.resolve(owner, [(mint_0, program_0), (mint_1, program_1)])
        for account in accounts:
            if account.create_instruction:
                instructions.append(account.create_instruction)

    Wrapping and unwrapping native SOL are never done implicitly; callers ask
    for them with wrap_native() / unwrap_native().
    """

    def __init__(
        self,
        payer: PubkeyLike,
        existing_accounts: Iterable[PubkeyLike] = (),
    ):
        """
        Initialize resolver

        Args:
            payer: Pays for account creation
            existing_accounts: Token accounts known to exist on chain
        """
        self._payer = _parse_pubkey(payer, "payer")
        self._existing: Set[Pubkey] = {_parse_pubkey(a, "existing account") for a in existing_accounts}
        self._resolved: Dict[Tuple[Pubkey, Pubkey, Pubkey], Pubkey] = {}

    @property
    def payer(self) -> Pubkey:
        return self._payer

    def mark_existing(self, address: PubkeyLike) -> None:
        """Record that an account exists (e.g., after its creation landed)"""
        self._existing.add(_parse_pubkey(address, "existing account"))

    def is_known(self, address: Pubkey) -> bool:
        """True if the account exists or this session already emitted its creation"""
        return address in self._existing or address in self._resolved.values()

    def resolve_one(
        self,
        owner: PubkeyLike,
        mint: PubkeyLike,
        token_program: Optional[PubkeyLike] = None,
    ) -> ResolvedTokenAccount:
        """
        Resolve the associated token account for (owner, mint)

        Raises:
            AccountResolutionError: Malformed owner, mint or token program
        """
        owner_pubkey = _parse_pubkey(owner, "owner")
        mint_pubkey = _parse_pubkey(mint, "mint")
        program = _parse_pubkey(token_program or TOKEN_PROGRAM_ID, "token_program")
        if str(program) not in _TOKEN_PROGRAMS:
            raise AccountResolutionError(
                f"Unknown token program {program} for mint {mint_pubkey}",
                owner=str(owner_pubkey),
                mint=str(mint_pubkey),
            )

        try:
            address = get_associated_token_address(owner_pubkey, mint_pubkey, program)
        except InvalidSeed as e:
            raise AccountResolutionError(str(e), owner=str(owner_pubkey), mint=str(mint_pubkey)) from e

        key = (owner_pubkey, mint_pubkey, program)
        if address in self._existing or key in self._resolved:
            return ResolvedTokenAccount(address, owner_pubkey, mint_pubkey, program)

        self._resolved[key] = address
        logger.debug(f"Token account {address} for mint {mint_pubkey} will be created")
        return ResolvedTokenAccount(
            address,
            owner_pubkey,
            mint_pubkey,
            program,
            create_instruction=build_create_ata_idempotent_instruction(self._payer, owner_pubkey, mint_pubkey, program),
        )

    def resolve(
        self,
        owner: PubkeyLike,
        mints: Iterable[Tuple[PubkeyLike, Optional[PubkeyLike]]],
    ) -> List[ResolvedTokenAccount]:
        """
        Resolve token accounts for several mints

        Args:
            owner: Account owner
            mints: (mint, token_program) pairs; token_program None means Tokenkeg

        Returns:
            One ResolvedTokenAccount per mint, in input order
        """
        return [self.resolve_one(owner, mint, program) for mint, program in mints]

    def wrap_native(self, owner: PubkeyLike, lamports: int) -> List[Instruction]:
        """
        Instructions that move lamports into the owner's wrapped SOL account

        Creates the account first if this session has not seen it.
        """
        if lamports <= 0:
            raise AccountResolutionError(f"Wrap amount must be positive, got {lamports}")

        account = self.resolve_one(owner, WRAPPED_SOL_MINT, TOKEN_PROGRAM_ID)
        instructions = []
        if account.create_instruction is not None:
            instructions.append(account.create_instruction)
        instructions.append(build_system_transfer_instruction(account.owner, account.address, lamports))
        instructions.append(build_sync_native_instruction(account.address))
        logger.debug(f"Wrapping {lamports} lamports into {account.address}")
        return instructions

    def unwrap_native(self, owner: PubkeyLike) -> Instruction:
        """Close the owner's wrapped SOL account, returning all lamports to the owner"""
        owner_pubkey = _parse_pubkey(owner, "owner")
        address = get_associated_token_address(owner_pubkey, WRAPPED_SOL_MINT, TOKEN_PROGRAM_ID)
        return build_close_account_instruction(address, owner_pubkey, owner_pubkey)
