from dataclasses import dataclass
from datetime import datetime

from src.cc_common.enums import RequestStatus


@dataclass
class DisbursementRequest:
    """A pending ask to move an approved credit request into the player's balance.

    approved_limit and current_balance_snapshot are taken when the
    disbursement is opened and are for display only; approval re-reads the
    live account.
    """

    id: str
    club_id: str
    player_id: str
    credit_request_id: str
    approved_limit: int
    current_balance_snapshot: int
    requested_amount: int
    status: str
    rejection_reason: str | None = None
    created_at: datetime | None = None
    decided_at: datetime | None = None
    decided_by: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value
