"""
Common type definitions
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Tuple, Union

from ..errors import StaleSnapshot
from ..raydium.constants import TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID, WRAPPED_SOL_MINT


@dataclass(frozen=True)
class MintInfo:
    """
    Token mint information

    Attributes:
        address: Mint address (base58)
        decimals: Number of decimal places
        token_program: Owning token program (Tokenkeg or Token-2022)
        slot: Slot the mint account was fetched at
    """
    address: str
    decimals: int
    token_program: str = TOKEN_PROGRAM_ID
    slot: Optional[int] = None

    def __repr__(self) -> str:
        return f"MintInfo({self.address[:8]}..., decimals={self.decimals})"

    @property
    def is_native_sol(self) -> bool:
        """Check if this is native SOL (wrapped)"""
        return self.address == WRAPPED_SOL_MINT

    @property
    def is_token_2022(self) -> bool:
        return self.token_program == TOKEN_2022_PROGRAM_ID

    def ui_amount(self, raw_amount: int) -> Decimal:
        """Convert raw amount to UI amount"""
        return Decimal(raw_amount) / Decimal(10 ** self.decimals)

    def raw_amount(self, ui_amount: Union[Decimal, float, int, str]) -> int:
        """Convert UI amount to raw amount (truncated)"""
        if not isinstance(ui_amount, Decimal):
            ui_amount = Decimal(str(ui_amount))
        return int(ui_amount * Decimal(10 ** self.decimals))


@dataclass(frozen=True)
class Freshness:
    """
    Caller-supplied freshness threshold for snapshots

    Attributes:
        current_slot: Slot the caller considers "now"
        max_age_slots: Oldest acceptable snapshot age in slots
    """
    current_slot: int
    max_age_slots: int

    def check(self, name: str, slot: Optional[int]) -> None:
        """
        Raise StaleSnapshot if a snapshot taken at slot is too old

        A snapshot without a slot marker cannot be judged and is rejected.
        """
        if slot is None:
            raise StaleSnapshot.unmarked(name)
        if self.current_slot - slot > self.max_age_slots:
            raise StaleSnapshot.too_old(name, slot, self.current_slot, self.max_age_slots)


def ensure_fresh(
    freshness: Optional[Freshness],
    markers: Iterable[Tuple[str, Optional[int]]],
) -> None:
    """Check every (name, slot) marker against freshness, no-op when freshness is None"""
    if freshness is None:
        return
    for name, slot in markers:
        freshness.check(name, slot)
