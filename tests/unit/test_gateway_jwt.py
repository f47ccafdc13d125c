"""Unit tests for the JWT handler and Actor permissions."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from jose import jwt

from config.settings import settings
from src.cc_common.enums import Role
from src.cc_common.errors import InvalidCredentialsError, PermissionDeniedError
from src.cc_gateway.auth.actor import Actor
from src.cc_gateway.auth.jwt_handler import create_access_token, decode_token


def test_access_token_contains_correct_claims() -> None:
    token = create_access_token("player-1", Role.PLAYER, "club-1")
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "player-1"
    assert payload["role"] == "player"
    assert payload["club_id"] == "club-1"
    assert payload["type"] == "access"


def test_decode_valid_token_returns_actor() -> None:
    actor = decode_token(create_access_token("admin-1", "admin", "club-9"))
    assert actor == Actor(id="admin-1", role=Role.ADMIN, club_id="club-9")


def test_expired_token_raises_credentials_error() -> None:
    with patch("src.cc_gateway.auth.jwt_handler._ACCESS_EXPIRE", timedelta(seconds=-1)):
        token = create_access_token("player-1", Role.PLAYER, "club-1")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def test_tampered_token_raises() -> None:
    token = create_access_token("player-1", Role.PLAYER, "club-1")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))


def test_unknown_role_raises() -> None:
    token = jwt.encode(
        {"sub": "x", "role": "wizard", "club_id": "c", "type": "access"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def test_non_access_token_raises() -> None:
    token = jwt.encode(
        {"sub": "x", "role": "player", "club_id": "c", "type": "refresh"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


class TestActor:
    def test_player_only_reaches_own_data(self) -> None:
        actor = Actor(id="p1", role=Role.PLAYER, club_id="c1")
        actor.require_player_access("p1")
        with pytest.raises(PermissionDeniedError):
            actor.require_player_access("p2")

    def test_staff_scoped_to_club(self) -> None:
        actor = Actor(id="s1", role=Role.CASHIER, club_id="c1")
        assert actor.is_staff
        assert actor.scope_club_id == "c1"
        assert actor.can_access_club("c1")
        assert not actor.can_access_club("c2")

    def test_superadmin_sees_every_club(self) -> None:
        actor = Actor(id="root", role=Role.SUPERADMIN, club_id="c1")
        assert actor.scope_club_id is None
        assert actor.can_access_club("c2")
