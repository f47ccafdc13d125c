from dataclasses import dataclass
from datetime import datetime

from src.cc_common.enums import AccountStatus, KycStatus, RequestStatus


@dataclass
class CreditLimitRequest:
    id: str
    club_id: str
    player_id: str
    amount: int
    requested_limit: int
    status: str
    reason: str | None = None
    visible_to_player: bool = True
    requested_at: datetime | None = None
    decided_at: datetime | None = None
    decided_by: str | None = None
    decision_notes: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value


@dataclass
class CreditFeatureRequest:
    id: str
    club_id: str
    player_id: str
    kyc_status: str
    account_status: str
    status: str
    rejection_reason: str | None = None
    requested_by: str | None = None
    requested_at: datetime | None = None
    decided_at: datetime | None = None
    decided_by: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    def ineligibility(self) -> str | None:
        """Why this player cannot be granted credit, or None when the gate passes."""
        if self.kyc_status != KycStatus.APPROVED.value:
            return f"KYC status is {self.kyc_status}"
        if self.account_status != AccountStatus.ACTIVE.value:
            return f"account status is {self.account_status}"
        return None
