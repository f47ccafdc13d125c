"""Pydantic schemas for cc_disbursement API."""

from pydantic import BaseModel, Field

from src.cc_common.datetime_utils import isoformat_or_none
from src.cc_common.money import paise_to_display
from src.cc_disbursement.domain.models import DisbursementRequest


class OpenDisbursementRequest(BaseModel):
    credit_request_id: str


class RejectDisbursementRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class DisbursementResponse(BaseModel):
    id: str
    club_id: str
    player_id: str
    credit_request_id: str
    approved_limit: int
    current_balance_snapshot: int
    requested_amount: int
    requested_amount_display: str
    status: str
    rejection_reason: str | None
    created_at: str | None
    decided_at: str | None
    decided_by: str | None

    @classmethod
    def from_domain(cls, d: DisbursementRequest) -> "DisbursementResponse":
        return cls(
            id=d.id,
            club_id=d.club_id,
            player_id=d.player_id,
            credit_request_id=d.credit_request_id,
            approved_limit=d.approved_limit,
            current_balance_snapshot=d.current_balance_snapshot,
            requested_amount=d.requested_amount,
            requested_amount_display=paise_to_display(d.requested_amount),
            status=d.status,
            rejection_reason=d.rejection_reason,
            created_at=isoformat_or_none(d.created_at),
            decided_at=isoformat_or_none(d.decided_at),
            decided_by=d.decided_by,
        )


class DisbursementListResponse(BaseModel):
    items: list[DisbursementResponse]
