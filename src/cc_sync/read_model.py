"""Local read model of one dashboard and the event → resource mapping.

The read model only ever holds what the API returned; events never write
into it, they only say which resource to re-fetch.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.cc_common.enums import EventType, Role


class Resource(str, Enum):
    BALANCE = "balance"
    CREDIT_REQUESTS = "credit_requests"
    WAITLIST = "waitlist"
    TABLES = "tables"
    DISBURSEMENTS = "disbursements"
    CREDIT_ACCOUNTS = "credit_accounts"


RESOURCES_BY_EVENT: dict[str, tuple[Resource, ...]] = {
    EventType.CREDIT_STATUS_CHANGED.value: (
        Resource.BALANCE,
        Resource.CREDIT_REQUESTS,
        Resource.DISBURSEMENTS,
        Resource.CREDIT_ACCOUNTS,
    ),
    EventType.WAITLIST_STATUS_CHANGED.value: (Resource.WAITLIST,),
    EventType.WAITLIST_POSITION_UPDATED.value: (Resource.WAITLIST,),
    EventType.TABLE_STATUS_CHANGED.value: (Resource.TABLES,),
    EventType.TABLES_UPDATED.value: (Resource.TABLES,),
    EventType.TABLE_AVAILABLE.value: (Resource.TABLES,),
}

PLAYER_RESOURCES: tuple[Resource, ...] = (
    Resource.BALANCE,
    Resource.CREDIT_REQUESTS,
    Resource.WAITLIST,
    Resource.TABLES,
)
STAFF_RESOURCES: tuple[Resource, ...] = (
    Resource.CREDIT_REQUESTS,
    Resource.DISBURSEMENTS,
    Resource.CREDIT_ACCOUNTS,
    Resource.TABLES,
)


def resources_for_role(role: Role) -> tuple[Resource, ...]:
    return PLAYER_RESOURCES if role == Role.PLAYER else STAFF_RESOURCES


@dataclass
class DashboardReadModel:
    balance: dict[str, Any] | None = None
    credit_requests: list[dict[str, Any]] = field(default_factory=list)
    waitlist: dict[str, Any] | None = None
    tables: list[dict[str, Any]] = field(default_factory=list)
    disbursements: list[dict[str, Any]] = field(default_factory=list)
    credit_accounts: list[dict[str, Any]] = field(default_factory=list)
    fetch_counts: dict[Resource, int] = field(default_factory=lambda: {r: 0 for r in Resource})
    last_synced_at: datetime | None = None

    def apply(self, resource: Resource, data: Any) -> None:
        if resource == Resource.BALANCE:
            self.balance = data
        elif resource == Resource.CREDIT_REQUESTS:
            self.credit_requests = list(data.get("items", [])) if data else []
        elif resource == Resource.WAITLIST:
            self.waitlist = data
        elif resource == Resource.TABLES:
            self.tables = list(data.get("items", [])) if data else []
        elif resource == Resource.DISBURSEMENTS:
            self.disbursements = list(data.get("items", [])) if data else []
        elif resource == Resource.CREDIT_ACCOUNTS:
            self.credit_accounts = list(data.get("items", [])) if data else []
        self.fetch_counts[resource] += 1


class RecentEventIds:
    """Bounded memory of handled event ids; the oldest are forgotten first."""

    def __init__(self, max_size: int = 1024) -> None:
        self._max_size = max_size
        self._ids: OrderedDict[str, None] = OrderedDict()

    def seen(self, event_id: str) -> bool:
        """True if event_id was already recorded; records it otherwise."""
        if event_id in self._ids:
            self._ids.move_to_end(event_id)
            return True
        self._ids[event_id] = None
        if len(self._ids) > self._max_size:
            self._ids.popitem(last=False)
        return False

    def __len__(self) -> int:
        return len(self._ids)
