"""Domain models for cc_ledger: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class CreditAccount:
    player_id: str
    club_id: str
    credit_limit: int        # paise
    current_balance: int     # paise, outstanding credit
    eligibility: str         # Eligibility value
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def available_credit(self) -> int:
        return self.credit_limit - self.current_balance

    @property
    def is_eligible(self) -> bool:
        return self.eligibility == "ACTIVE"


@dataclass
class CreditMovement:
    id: int
    player_id: str
    movement_type: str               # MovementType value
    amount: int                      # paise, positive=credit negative=debit
    balance_after: int               # paise, current_balance snapshot after op
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


@dataclass
class PlayerBalance:
    player_id: str
    available_balance: int
    table_balance: int

    @property
    def total_balance(self) -> int:
        return self.available_balance + self.table_balance
