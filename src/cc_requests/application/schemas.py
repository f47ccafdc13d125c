"""Pydantic schemas for credit limit and credit feature requests."""

from pydantic import BaseModel, Field

from src.cc_common.datetime_utils import isoformat_or_none
from src.cc_common.enums import AccountStatus, KycStatus
from src.cc_common.money import paise_to_display
from src.cc_requests.domain.models import CreditFeatureRequest, CreditLimitRequest

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class SubmitCreditRequest(BaseModel):
    amount: int = Field(..., description="Requested credit in paise, must be > 0")
    requested_limit: int | None = Field(
        None, description="Requested credit limit in paise; defaults to amount"
    )
    reason: str | None = Field(None, max_length=500)


class DecisionRequest(BaseModel):
    notes: str | None = Field(None, max_length=500)


class VisibilityRequest(BaseModel):
    visible: bool


class SubmitFeatureRequest(BaseModel):
    player_id: str
    kyc_status: KycStatus
    account_status: AccountStatus


class FeatureDecisionRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CreditRequestResponse(BaseModel):
    id: str
    club_id: str
    player_id: str
    amount: int
    amount_display: str
    requested_limit: int
    requested_limit_display: str
    status: str
    reason: str | None
    visible_to_player: bool
    requested_at: str | None
    decided_at: str | None
    decided_by: str | None
    decision_notes: str | None

    @classmethod
    def from_domain(cls, req: CreditLimitRequest) -> "CreditRequestResponse":
        return cls(
            id=req.id,
            club_id=req.club_id,
            player_id=req.player_id,
            amount=req.amount,
            amount_display=paise_to_display(req.amount),
            requested_limit=req.requested_limit,
            requested_limit_display=paise_to_display(req.requested_limit),
            status=req.status,
            reason=req.reason,
            visible_to_player=req.visible_to_player,
            requested_at=isoformat_or_none(req.requested_at),
            decided_at=isoformat_or_none(req.decided_at),
            decided_by=req.decided_by,
            decision_notes=req.decision_notes,
        )


class CreditRequestListResponse(BaseModel):
    items: list[CreditRequestResponse]


class FeatureRequestResponse(BaseModel):
    id: str
    club_id: str
    player_id: str
    kyc_status: str
    account_status: str
    status: str
    rejection_reason: str | None
    requested_by: str | None
    requested_at: str | None
    decided_at: str | None
    decided_by: str | None

    @classmethod
    def from_domain(cls, req: CreditFeatureRequest) -> "FeatureRequestResponse":
        return cls(
            id=req.id,
            club_id=req.club_id,
            player_id=req.player_id,
            kyc_status=req.kyc_status,
            account_status=req.account_status,
            status=req.status,
            rejection_reason=req.rejection_reason,
            requested_by=req.requested_by,
            requested_at=isoformat_or_none(req.requested_at),
            decided_at=isoformat_or_none(req.decided_at),
            decided_by=req.decided_by,
        )


class FeatureRequestListResponse(BaseModel):
    items: list[FeatureRequestResponse]
