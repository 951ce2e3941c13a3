"""
Result type definitions for instruction sets, transaction packages and quotes
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

from .requests import OperationKind

if TYPE_CHECKING:
    from solders.hash import Hash
    from solders.instruction import Instruction
    from solders.keypair import Keypair
    from solders.pubkey import Pubkey
    from solders.transaction import VersionedTransaction


class Phase(IntEnum):
    """
    Dependency phase of an instruction

    Lower phases run first inside a transaction: accounts an operation uses
    are created before the operation, cleanup comes last.
    """
    COMPUTE_BUDGET = 0
    TICK_ARRAY_INIT = 1
    ACCOUNT_CREATE = 2
    WRAP = 3
    OPERATION = 4
    CLEANUP = 5


@dataclass(frozen=True)
class InstructionStep:
    """Instruction tagged with its dependency phase"""
    instruction: "Instruction"
    phase: Phase
    description: str = ""


@dataclass(frozen=True)
class CreatedAccount:
    """
    Account an instruction set brings into existence

    Attributes:
        address: Account address
        kind: "tick_array", "token_account", "position_nft", "personal_position", "pool", ...
        phase: Phase in which the account comes into existence
    """
    address: str
    kind: str
    phase: Phase


@dataclass(frozen=True)
class SwapQuote:
    """
    Client-side swap estimate

    Attributes:
        amount_in: Input amount including fee
        amount_out: Output amount
        fee_amount: Trade fee paid in the input token
        other_amount_threshold: Bound sent on chain (min out for exact-in,
            max in for exact-out)
        sqrt_price_after_x64: Pool sqrt price after the swap
        tick_after: Pool tick after the swap
        zero_for_one: Direction (token 0 in, token 1 out)
        is_base_input: Exact-in (True) or exact-out (False)
        tick_array_starts: Start indexes of the tick arrays passed to the swap
    """
    amount_in: int
    amount_out: int
    fee_amount: int
    other_amount_threshold: int
    sqrt_price_after_x64: int
    tick_after: int
    zero_for_one: bool
    is_base_input: bool
    tick_array_starts: Tuple[int, ...] = ()


@dataclass(frozen=True)
class InstructionSet:
    """
    Instructions for one logical operation

    Attributes:
        kind: Operation that produced the set
        label: Human-readable label for logs and errors
        steps: Instructions tagged with phases (not yet phase-ordered)
        signers: Extra keypairs that must sign (e.g., position NFT mint)
        created_accounts: Accounts the set brings into existence
        amounts: Expected or bounding token amounts keyed by name
        quote: Swap estimate, for swap operations
        compute_units: Compute unit limit hint for the set
        atomic: Whole set must land in one transaction
        independent: Set does not depend on earlier sets succeeding
    """
    kind: OperationKind
    label: str
    steps: Tuple[InstructionStep, ...]
    signers: Tuple["Keypair", ...] = ()
    created_accounts: Tuple[CreatedAccount, ...] = ()
    amounts: Dict[str, int] = field(default_factory=dict, compare=False)
    quote: Optional[SwapQuote] = None
    compute_units: Optional[int] = None
    atomic: bool = True
    independent: bool = False

    def __repr__(self) -> str:
        return f"InstructionSet({self.label}, steps={len(self.steps)})"

    def ordered_steps(self) -> List[InstructionStep]:
        """Steps sorted by phase, keeping emission order within a phase"""
        return sorted(self.steps, key=lambda step: step.phase)

    @property
    def instructions(self) -> List["Instruction"]:
        return [step.instruction for step in self.ordered_steps()]


@dataclass
class TransactionPackage:
    """
    One transaction worth of instructions, ready for signing

    Attributes:
        payer: Fee payer
        instructions: Ordered instructions including compute budget
        signers: Extra keypairs that must sign in addition to the payer
        labels: Labels of the instruction sets packed into this transaction
        abort_on_failure: Skip remaining packages if this one fails
        size: Serialized size estimate in bytes (with placeholder signatures)
        compute_units: Compute unit limit requested
    """
    payer: "Pubkey"
    instructions: List["Instruction"]
    signers: List["Keypair"] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)
    abort_on_failure: bool = False
    size: int = 0
    compute_units: int = 0

    def __repr__(self) -> str:
        return (
            f"TransactionPackage({'+'.join(self.labels)}, "
            f"instructions={len(self.instructions)}, size={self.size})"
        )

    @property
    def required_signers(self) -> List["Pubkey"]:
        """Payer first, then every other signer in instruction order"""
        signers = [self.payer]
        for ix in self.instructions:
            for meta in ix.accounts:
                if meta.is_signer and meta.pubkey not in signers:
                    signers.append(meta.pubkey)
        return signers

    def to_unsigned_transaction(self, recent_blockhash: "Hash") -> "VersionedTransaction":
        """Compile to a v0 transaction with placeholder signatures"""
        from ..infra.tx_builder import build_unsigned_transaction
        return build_unsigned_transaction(self.payer, self.instructions, recent_blockhash)
