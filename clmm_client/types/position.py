"""
Position type definitions
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..raydium.constants import TOKEN_2022_PROGRAM_ID


@dataclass(frozen=True)
class PositionRewardInfo:
    """Per-position reward accounting"""
    growth_inside_last_x64: int
    reward_amount_owed: int


@dataclass(frozen=True)
class PersonalPosition:
    """
    Raydium CLMM personal position account

    Attributes:
        address: Personal position PDA
        nft_mint: Position NFT mint (identifies the position)
        pool_id: Pool the position belongs to
        tick_lower: Lower tick index
        tick_upper: Upper tick index
        liquidity: Position liquidity
        token_fees_owed_0 / token_fees_owed_1: Fees settled but not yet collected
        reward_infos: Per-slot reward accounting
        nft_token_program: Token program of the NFT mint (Token-2022 for
            positions opened with open_position_with_token22_nft)
        slot: Slot the account was fetched at
    """
    address: str
    bump: int
    nft_mint: str
    pool_id: str
    tick_lower: int
    tick_upper: int
    liquidity: int
    fee_growth_inside_0_last_x64: int
    fee_growth_inside_1_last_x64: int
    token_fees_owed_0: int
    token_fees_owed_1: int
    reward_infos: Tuple[PositionRewardInfo, ...]
    recent_epoch: int
    nft_token_program: str = TOKEN_2022_PROGRAM_ID
    slot: Optional[int] = None

    def __repr__(self) -> str:
        return (
            f"PersonalPosition({self.nft_mint[:8]}..., "
            f"[{self.tick_lower}, {self.tick_upper}], liquidity={self.liquidity})"
        )

    @property
    def has_fees_owed(self) -> bool:
        return self.token_fees_owed_0 > 0 or self.token_fees_owed_1 > 0

    @property
    def is_empty(self) -> bool:
        """No liquidity and nothing left to collect"""
        return (
            self.liquidity == 0
            and not self.has_fees_owed
            and all(r.reward_amount_owed == 0 for r in self.reward_infos)
        )

    def is_in_range(self, tick_current: int) -> bool:
        return self.tick_lower <= tick_current < self.tick_upper

    def markers(self) -> List[Tuple[str, Optional[int]]]:
        return [(f"position {self.nft_mint}", self.slot)]
