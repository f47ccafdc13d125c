"""JWT access-token creation and verification.

Tokens are issued by the club's sign-in service (outside this repository);
this module only needs to agree on the claims:
  sub      actor id (player or staff id)
  role     Role value
  club_id  the club the actor belongs to

HS256 with one shared JWT_SECRET. No refresh tokens and no revocation here.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.cc_common.enums import Role
from src.cc_common.errors import InvalidCredentialsError
from src.cc_gateway.auth.actor import Actor

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(actor_id: str, role: Role | str, club_id: str) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": actor_id,
        "role": Role(role).value,
        "club_id": club_id,
        "type": "access",
        "iat": now,
        "exp": now + _ACCESS_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> Actor:
    """Decode and validate an access token into an Actor.

    Raises:
        InvalidCredentialsError: signature/expiry invalid, wrong token type,
                                 or missing/unknown claims.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access":
        raise InvalidCredentialsError()
    actor_id = payload.get("sub")
    club_id = payload.get("club_id")
    if not actor_id or not club_id:
        raise InvalidCredentialsError()
    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise InvalidCredentialsError() from None
    return Actor(id=str(actor_id), role=role, club_id=str(club_id))
