"""End-to-end credit lifecycle over HTTP: request → decision → disbursement → balance."""

from collections.abc import Callable
from typing import Any

from httpx import AsyncClient

from src.cc_common.enums import Role
from src.cc_realtime.bus.event_bus import get_event_bus
from src.cc_realtime.domain.models import player_topic

AuthHeaders = Callable[..., dict[str, str]]


def _data(resp: Any, status: int = 200) -> Any:
    assert resp.status_code == status, resp.text
    body = resp.json()
    assert body["code"] == 0
    return body["data"]


async def _credit_account(
    client: AsyncClient, auth: AuthHeaders, player_id: str, limit: int, balance: int = 0
) -> None:
    admin = auth(Role.ADMIN)
    _data(await client.put(
        f"/api/v1/ledger/{player_id}/limit", json={"credit_limit": limit}, headers=admin
    ))
    if balance:
        _data(await client.post(
            f"/api/v1/ledger/{player_id}/adjust",
            json={"delta": balance, "direction": "CREDIT"},
            headers=auth(Role.CASHIER),
        ))


async def _approved_disbursement(
    client: AsyncClient, auth: AuthHeaders, player_id: str, amount: int
) -> str:
    player = auth(Role.PLAYER, player_id)
    req = _data(
        await client.post("/api/v1/credit-requests", json={"amount": amount}, headers=player), 201
    )
    _data(await client.post(
        f"/api/v1/credit-requests/{req['id']}/approve", headers=auth(Role.ADMIN)
    ))
    dsb = _data(
        await client.post(
            "/api/v1/disbursements",
            json={"credit_request_id": req["id"]},
            headers=auth(Role.CASHIER),
        ),
        201,
    )
    return dsb["id"]


class TestCreditFlow:
    async def test_full_lifecycle(
        self, client: AsyncClient, auth: AuthHeaders, player_id: str
    ) -> None:
        await _credit_account(client, auth, player_id, 100000)
        dsb_id = await _approved_disbursement(client, auth, player_id, 30000)

        approved = _data(await client.post(
            f"/api/v1/disbursements/{dsb_id}/approve", headers=auth(Role.CASHIER)
        ))
        assert approved["status"] == "APPROVED"

        balance = _data(await client.get(
            "/api/v1/players/me/balance", headers=auth(Role.PLAYER, player_id)
        ))
        assert balance["available_balance"] == 30000
        assert balance["available_balance_display"] == "₹300.00"

        mine = _data(await client.get(
            "/api/v1/credit-requests", headers=auth(Role.PLAYER, player_id)
        ))
        assert [r["status"] for r in mine["items"]] == ["APPROVED"]

    async def test_overdraw_rejected_over_http(
        self, client: AsyncClient, auth: AuthHeaders, player_id: str
    ) -> None:
        await _credit_account(client, auth, player_id, 100000, 80000)
        dsb_id = await _approved_disbursement(client, auth, player_id, 25000)

        resp = await client.post(
            f"/api/v1/disbursements/{dsb_id}/approve", headers=auth(Role.CASHIER)
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == 3001

        account = _data(await client.get(
            f"/api/v1/ledger/{player_id}", headers=auth(Role.ADMIN)
        ))
        assert account["current_balance"] == 80000

    async def test_second_approval_conflicts(
        self, client: AsyncClient, auth: AuthHeaders, player_id: str
    ) -> None:
        await _credit_account(client, auth, player_id, 100000)
        dsb_id = await _approved_disbursement(client, auth, player_id, 1000)
        url = f"/api/v1/disbursements/{dsb_id}/approve"

        _data(await client.post(url, headers=auth(Role.CASHIER)))
        resp = await client.post(url, headers=auth(Role.CASHIER))

        assert resp.status_code == 409
        assert resp.json()["code"] == 2002

    async def test_decided_request_is_final(
        self, client: AsyncClient, auth: AuthHeaders, player_id: str
    ) -> None:
        req = _data(await client.post(
            "/api/v1/credit-requests", json={"amount": 500},
            headers=auth(Role.PLAYER, player_id),
        ), 201)
        _data(await client.post(
            f"/api/v1/credit-requests/{req['id']}/reject",
            json={"notes": "not this week"},
            headers=auth(Role.ADMIN),
        ))
        resp = await client.post(
            f"/api/v1/credit-requests/{req['id']}/approve", headers=auth(Role.ADMIN)
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == 2001

    async def test_events_published_after_decision(
        self, client: AsyncClient, auth: AuthHeaders, player_id: str
    ) -> None:
        bus = get_event_bus()
        conn = bus.connect()
        try:
            bus.subscribe(conn, player_topic(player_id))
            req = _data(await client.post(
                "/api/v1/credit-requests", json={"amount": 500},
                headers=auth(Role.PLAYER, player_id),
            ), 201)
            _data(await client.post(
                f"/api/v1/credit-requests/{req['id']}/approve", headers=auth(Role.ADMIN)
            ))
            statuses = [e.payload["status"] for e in conn.pending()]
        finally:
            bus.disconnect(conn)
        assert statuses == ["PENDING", "APPROVED"]


class TestAccessRules:
    async def test_missing_token(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/players/me/balance")
        assert resp.status_code == 401
        assert resp.json()["code"] == 9101

    async def test_player_cannot_approve(
        self, client: AsyncClient, auth: AuthHeaders, player_id: str
    ) -> None:
        req = _data(await client.post(
            "/api/v1/credit-requests", json={"amount": 500},
            headers=auth(Role.PLAYER, player_id),
        ), 201)
        resp = await client.post(
            f"/api/v1/credit-requests/{req['id']}/approve", headers=auth(Role.PLAYER, player_id)
        )
        assert resp.status_code == 403

    async def test_other_club_sees_not_found(
        self, client: AsyncClient, auth: AuthHeaders, player_id: str
    ) -> None:
        req = _data(await client.post(
            "/api/v1/credit-requests", json={"amount": 500},
            headers=auth(Role.PLAYER, player_id),
        ), 201)
        resp = await client.post(
            f"/api/v1/credit-requests/{req['id']}/approve",
            headers=auth(Role.ADMIN, club="another-club"),
        )
        assert resp.status_code == 404

    async def test_player_reads_only_own_balance(
        self, client: AsyncClient, auth: AuthHeaders, player_id: str
    ) -> None:
        resp = await client.get(
            "/api/v1/players/someone-else/balance", headers=auth(Role.PLAYER, player_id)
        )
        assert resp.status_code == 403

    async def test_body_validation_envelope(
        self, client: AsyncClient, auth: AuthHeaders, player_id: str
    ) -> None:
        resp = await client.post(
            "/api/v1/credit-requests", json={"amount": "lots"},
            headers=auth(Role.PLAYER, player_id),
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == 1001

    async def test_non_positive_amount(
        self, client: AsyncClient, auth: AuthHeaders, player_id: str
    ) -> None:
        resp = await client.post(
            "/api/v1/credit-requests", json={"amount": 0}, headers=auth(Role.PLAYER, player_id)
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == 1001


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.json()["status"] == "ok"
