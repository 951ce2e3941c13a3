"""
Transaction assembler

Provides utilities for:
- Packing instruction sets into size- and count-limited transactions
- Adding compute budget instructions
- Compiling unsigned versioned transactions for the signing collaborator
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from ..config import config as global_config
from ..errors import TransactionTooLarge
from ..raydium.constants import ASSOCIATED_TOKEN_PROGRAM_ID, MAX_COMPUTE_UNIT_LIMIT
from ..raydium.pda import PubkeyLike, to_pubkey
from ..types import InstructionSet, InstructionStep, TransactionPackage

logger = logging.getLogger(__name__)

_ATA_PROGRAM = Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID)
_CREATE_IDEMPOTENT = bytes([1])


@dataclass
class AssemblerConfig:
    """
    Transaction assembler runtime configuration

    Pulls defaults from the global config (clmm_client.config.TxConfig)
    for any value left unset.

    Usage:
        # Use all defaults from environment
        assembler = TransactionAssembler(payer)

        # Override specific settings
        cfg = AssemblerConfig(max_instructions=8, compute_unit_price=0)
        assembler = TransactionAssembler(payer, config=cfg)
    """
    compute_units: int = None
    compute_unit_price: int = None
    max_instructions: int = None
    max_transaction_size: int = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.compute_units is None:
            self.compute_units = global_config.tx.compute_units
        if self.compute_unit_price is None:
            self.compute_unit_price = global_config.tx.compute_unit_price
        if self.max_instructions is None:
            self.max_instructions = global_config.tx.max_instructions
        if self.max_transaction_size is None:
            self.max_transaction_size = global_config.tx.max_transaction_size


def build_unsigned_transaction(
    payer: Pubkey,
    instructions: Sequence[Instruction],
    recent_blockhash: Union[Hash, str],
) -> VersionedTransaction:
    """
    Compile instructions into a v0 transaction with placeholder signatures

    Args:
        payer: Fee payer
        instructions: Ordered instructions
        recent_blockhash: Blockhash (Hash or base58 string)

    Returns:
        Unsigned VersionedTransaction
    """
    if isinstance(recent_blockhash, str):
        recent_blockhash = Hash.from_string(recent_blockhash)

    message = MessageV0.try_compile(
        payer,
        list(instructions),
        [],  # Address lookup tables
        recent_blockhash,
    )

    # VersionedTransaction requires signatures array to match num_required_signatures
    num_signers = message.header.num_required_signatures
    return VersionedTransaction.populate(message, [Signature.default()] * num_signers)


def transaction_size(payer: Pubkey, instructions: Sequence[Instruction]) -> int:
    """Serialized size of the transaction with placeholder signatures"""
    return len(bytes(build_unsigned_transaction(payer, instructions, Hash.default())))


def _instruction_key(ix: Instruction) -> Tuple:
    return (
        bytes(ix.program_id),
        bytes(ix.data),
        tuple((bytes(meta.pubkey), meta.is_signer, meta.is_writable) for meta in ix.accounts),
    )


def _is_idempotent_ata_create(ix: Instruction) -> bool:
    return ix.program_id == _ATA_PROGRAM and bytes(ix.data) == _CREATE_IDEMPOTENT


class TransactionAssembler:
    """
    Pack instruction sets into transaction packages

    Handles:
    - Phase ordering inside each set (creations before use, cleanup last)
    - Greedy packing of whole sets under instruction count and byte limits
    - De-duplicating identical idempotent ATA creations in one transaction
    - Compute budget instructions per transaction
    - Abort flags between dependent packages

    Usage:
        assembler = TransactionAssembler(payer)
        packages = assembler.assemble([open_set, swap_set])
        for package in packages:
            tx = package.to_unsigned_transaction(blockhash)
    """

    def __init__(self, payer: PubkeyLike, config: Optional[AssemblerConfig] = None):
        """
        Initialize assembler

        Args:
            payer: Fee payer for every package
            config: Assembler configuration
        """
        self._payer = to_pubkey(payer, "payer")
        self._config = config or AssemblerConfig()

    @property
    def payer(self) -> Pubkey:
        return self._payer

    @property
    def config(self) -> AssemblerConfig:
        return self._config

    def compose(self, instruction_sets: Sequence[InstructionSet]) -> Tuple[List[Instruction], int]:
        """
        Instructions for one transaction holding instruction_sets

        Sets keep their relative order; steps inside a set are phase-sorted.

        Returns:
            (instructions including compute budget, compute unit limit)
        """
        compute_units = min(
            sum(s.compute_units or self._config.compute_units for s in instruction_sets),
            MAX_COMPUTE_UNIT_LIMIT,
        )

        instructions: List[Instruction] = []
        if compute_units > 0:
            instructions.append(set_compute_unit_limit(compute_units))
        if self._config.compute_unit_price > 0:
            instructions.append(set_compute_unit_price(self._config.compute_unit_price))

        seen_creates = set()
        for instruction_set in instruction_sets:
            for step in instruction_set.ordered_steps():
                ix = step.instruction
                if _is_idempotent_ata_create(ix):
                    key = _instruction_key(ix)
                    if key in seen_creates:
                        logger.debug(f"Dropping duplicate token account creation in '{instruction_set.label}'")
                        continue
                    seen_creates.add(key)
                instructions.append(ix)

        return instructions, compute_units

    def measure(self, instruction_sets: Sequence[InstructionSet]) -> Tuple[int, int]:
        """(instruction count, serialized size) of one transaction holding instruction_sets"""
        instructions, _ = self.compose(instruction_sets)
        return len(instructions), transaction_size(self._payer, instructions)

    def fits(self, instruction_sets: Sequence[InstructionSet]) -> bool:
        count, size = self.measure(instruction_sets)
        return count <= self._config.max_instructions and size <= self._config.max_transaction_size

    def assemble(self, instruction_sets: Iterable[InstructionSet]) -> List[TransactionPackage]:
        """
        Partition instruction sets into transaction packages

        Sets are never reordered. A set joins the current package while the
        package stays within limits; otherwise a new package starts. A
        non-atomic set that cannot fit alone is split between its steps.

        Returns:
            Packages in submission order

        Raises:
            TransactionTooLarge: An atomic set does not fit in one transaction
        """
        instruction_sets = [s for s in instruction_sets if s.steps]
        groups: List[List[InstructionSet]] = []
        current: List[InstructionSet] = []

        for instruction_set in instruction_sets:
            if current and self.fits(current + [instruction_set]):
                current.append(instruction_set)
                continue
            if current:
                groups.append(current)
                current = []

            if self.fits([instruction_set]):
                current = [instruction_set]
                continue

            if instruction_set.atomic:
                self._raise_too_large(instruction_set)

            chunks = self._split(instruction_set)
            groups.extend([chunk] for chunk in chunks[:-1])
            current = [chunks[-1]]

        if current:
            groups.append(current)

        packages = []
        for index, group in enumerate(groups):
            # A failure here must stop later packages that depend on earlier ones
            dependents_follow = any(not s.independent for later in groups[index + 1:] for s in later)
            packages.append(self._package(group, abort_on_failure=dependents_follow))

        logger.info(
            f"Assembled {len(packages)} transaction(s) from {len(instruction_sets)} instruction set(s)"
        )
        for package in packages:
            logger.debug(f"  {package}")
        return packages

    def _package(self, group: List[InstructionSet], abort_on_failure: bool) -> TransactionPackage:
        instructions, compute_units = self.compose(group)

        signers: List[Keypair] = []
        signer_keys = set()
        for instruction_set in group:
            for keypair in instruction_set.signers:
                if keypair.pubkey() not in signer_keys:
                    signer_keys.add(keypair.pubkey())
                    signers.append(keypair)

        return TransactionPackage(
            payer=self._payer,
            instructions=instructions,
            signers=signers,
            labels=[s.label for s in group],
            abort_on_failure=abort_on_failure,
            size=transaction_size(self._payer, instructions),
            compute_units=compute_units,
        )

    def _split(self, instruction_set: InstructionSet) -> List[InstructionSet]:
        """Split a non-atomic set into consecutive chunks that each fit"""
        chunks: List[InstructionSet] = []
        steps: List[InstructionStep] = []

        for step in instruction_set.ordered_steps():
            if steps and not self.fits([self._chunk(instruction_set, steps + [step], len(chunks))]):
                chunks.append(self._chunk(instruction_set, steps, len(chunks)))
                steps = []
            steps.append(step)
            if len(steps) == 1:
                single = self._chunk(instruction_set, steps, len(chunks))
                if not self.fits([single]):
                    self._raise_too_large(single)

        chunks.append(self._chunk(instruction_set, steps, len(chunks)))
        logger.debug(f"Split '{instruction_set.label}' into {len(chunks)} transactions")
        return chunks

    @staticmethod
    def _chunk(instruction_set: InstructionSet, steps: List[InstructionStep], index: int) -> InstructionSet:
        required = {
            meta.pubkey
            for step in steps
            for meta in step.instruction.accounts
            if meta.is_signer
        }
        return replace(
            instruction_set,
            label=f"{instruction_set.label} ({index + 1})",
            steps=tuple(steps),
            signers=tuple(k for k in instruction_set.signers if k.pubkey() in required),
            # Later chunks depend on the earlier ones
            independent=instruction_set.independent and index == 0,
        )

    def _raise_too_large(self, instruction_set: InstructionSet) -> None:
        count, size = self.measure([instruction_set])
        raise TransactionTooLarge.exceeds(
            instruction_set.label,
            size,
            self._config.max_transaction_size,
            count,
            self._config.max_instructions,
        )
