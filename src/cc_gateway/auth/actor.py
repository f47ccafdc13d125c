"""The authenticated caller as seen by every endpoint and the realtime gateway."""

from dataclasses import dataclass

from src.cc_common.enums import Role
from src.cc_common.errors import PermissionDeniedError

STAFF_ROLES: frozenset[Role] = frozenset(
    {Role.CASHIER, Role.ADMIN, Role.SUPERADMIN, Role.GRE, Role.HR, Role.STAFF, Role.AFFILIATE}
)
CREDIT_DECIDERS: frozenset[Role] = frozenset({Role.ADMIN, Role.SUPERADMIN})
DISBURSERS: frozenset[Role] = frozenset({Role.CASHIER, Role.ADMIN, Role.SUPERADMIN})
FLOOR_MANAGERS: frozenset[Role] = frozenset({Role.GRE, Role.STAFF, Role.ADMIN, Role.SUPERADMIN})


@dataclass(frozen=True)
class Actor:
    id: str
    role: Role
    club_id: str

    @property
    def is_player(self) -> bool:
        return self.role == Role.PLAYER

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def scope_club_id(self) -> str | None:
        """Club filter for queries; superadmins see every club."""
        return None if self.role == Role.SUPERADMIN else self.club_id

    def can_access_club(self, club_id: str) -> bool:
        return self.role == Role.SUPERADMIN or self.club_id == club_id

    def can_access_player(self, player_id: str) -> bool:
        return self.is_staff or self.id == player_id

    def require_player_access(self, player_id: str) -> None:
        if not self.can_access_player(player_id):
            raise PermissionDeniedError("Players may only access their own data")
