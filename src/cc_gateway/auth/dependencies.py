"""FastAPI dependencies: get_current_actor and role guards.

Usage in any protected router:
    from src.cc_gateway.auth.dependencies import require_roles

    @router.post("/{id}/approve")
    async def approve(actor: Actor = Depends(require_roles(*CREDIT_DECIDERS))):
        ...
"""

from collections.abc import Awaitable, Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.cc_common.enums import Role
from src.cc_common.errors import InvalidCredentialsError, PermissionDeniedError
from src.cc_gateway.auth.actor import Actor
from src.cc_gateway.auth.jwt_handler import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Actor:
    """Validate the Bearer token and return the Actor. Missing/invalid → 401."""
    if credentials is None or not credentials.credentials:
        raise InvalidCredentialsError()
    return decode_token(credentials.credentials)


def require_roles(*roles: Role) -> Callable[..., Awaitable[Actor]]:
    allowed = frozenset(roles)

    async def _guard(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            raise PermissionDeniedError(f"Role {actor.role.value} may not perform this action")
        return actor

    return _guard


async def require_player(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_player:
        raise PermissionDeniedError("Player account required")
    return actor


async def require_staff(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_staff:
        raise PermissionDeniedError("Staff account required")
    return actor
