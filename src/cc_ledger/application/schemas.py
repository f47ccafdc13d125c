"""Pydantic schemas and cursor utilities for cc_ledger API."""

import base64
import json

from pydantic import BaseModel, Field

from src.cc_common.enums import AdjustDirection
from src.cc_common.money import paise_to_display
from src.cc_ledger.domain.models import CreditAccount, CreditMovement, PlayerBalance

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class SetLimitRequest(BaseModel):
    credit_limit: int = Field(..., description="New credit limit in paise, must be > 0")
    club_id: str | None = Field(None, description="Club for a new account; defaults to the caller's club")


class AdjustRequest(BaseModel):
    delta: int = Field(..., description="Adjustment amount in paise, must be > 0")
    direction: AdjustDirection
    description: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    player_id: str
    club_id: str
    credit_limit: int
    current_balance: int
    available_credit: int
    credit_limit_display: str
    current_balance_display: str
    available_credit_display: str
    eligibility: str
    version: int

    @classmethod
    def from_domain(cls, account: CreditAccount) -> "AccountResponse":
        return cls(
            player_id=account.player_id,
            club_id=account.club_id,
            credit_limit=account.credit_limit,
            current_balance=account.current_balance,
            available_credit=account.available_credit,
            credit_limit_display=paise_to_display(account.credit_limit),
            current_balance_display=paise_to_display(account.current_balance),
            available_credit_display=paise_to_display(account.available_credit),
            eligibility=account.eligibility,
            version=account.version,
        )


class AccountListResponse(BaseModel):
    items: list[AccountResponse]


class MovementItem(BaseModel):
    id: int
    movement_type: str
    amount: int
    amount_display: str
    balance_after: int
    balance_after_display: str
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, m: CreditMovement) -> "MovementItem":
        return cls(
            id=m.id,
            movement_type=m.movement_type,
            amount=m.amount,
            amount_display=paise_to_display(m.amount),
            balance_after=m.balance_after,
            balance_after_display=paise_to_display(m.balance_after),
            reference_type=m.reference_type,
            reference_id=m.reference_id,
            description=m.description,
            created_at=m.created_at.isoformat() if m.created_at else "",
        )


class MovementsResponse(BaseModel):
    items: list[MovementItem]
    next_cursor: str | None
    has_more: bool


class PlayerBalanceResponse(BaseModel):
    player_id: str
    available_balance: int
    table_balance: int
    total_balance: int
    available_balance_display: str
    table_balance_display: str
    total_balance_display: str

    @classmethod
    def from_domain(cls, balance: PlayerBalance) -> "PlayerBalanceResponse":
        return cls(
            player_id=balance.player_id,
            available_balance=balance.available_balance,
            table_balance=balance.table_balance,
            total_balance=balance.total_balance,
            available_balance_display=paise_to_display(balance.available_balance),
            table_balance_display=paise_to_display(balance.table_balance),
            total_balance_display=paise_to_display(balance.total_balance),
        )
