"""HTTP client a dashboard uses for reads and commands.

Every call returns the envelope's data on success. A non-zero envelope code
is raised as the matching AppError subclass, so callers handle the same
typed errors the services raise.
"""

import logging
from typing import Any

import httpx

from src.cc_common.errors import ConnectionLostError, InternalError, error_from_envelope

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class DashboardApiClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + API_PREFIX,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            resp = await self._client.request(method, path, json=json, params=params)
        except httpx.TransportError as exc:
            raise ConnectionLostError(f"{method} {path} failed: {exc}") from exc
        try:
            body = resp.json()
        except ValueError:
            raise InternalError(f"{method} {path} returned non-JSON ({resp.status_code})") from None
        code = body.get("code", 0)
        if code != 0:
            logger.debug("%s %s -> %d %s", method, path, code, body.get("message"))
            raise error_from_envelope(code, body.get("message", ""), resp.status_code)
        return body.get("data")

    # --- reads ---

    async def get_player_balance(self) -> dict[str, Any]:
        return await self._request("GET", "/players/me/balance")

    async def list_credit_requests(self, status: str | None = None) -> dict[str, Any]:
        params = {"status": status} if status else None
        return await self._request("GET", "/credit-requests", params=params)

    async def get_waitlist_status(self) -> dict[str, Any]:
        return await self._request("GET", "/waitlist/me")

    async def list_tables(self) -> dict[str, Any]:
        return await self._request("GET", "/tables")

    async def list_disbursements(self, status: str | None = None) -> dict[str, Any]:
        params = {"status": status} if status else None
        return await self._request("GET", "/disbursements", params=params)

    async def list_credit_accounts(self) -> dict[str, Any]:
        return await self._request("GET", "/ledger")

    # --- commands ---

    async def request_credit(self, amount: int, notes: str | None = None) -> dict[str, Any]:
        return await self._request(
            "POST", "/credit-requests", json={"amount": amount, "reason": notes}
        )

    async def join_waitlist(
        self, table_type: str | None = None, party_size: int = 1
    ) -> dict[str, Any]:
        return await self._request(
            "POST", "/waitlist", json={"table_type": table_type, "party_size": party_size}
        )

    async def cancel_waitlist(self, entry_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/waitlist/{entry_id}")
