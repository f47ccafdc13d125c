"""ClientSyncAdapter: keeps one dashboard's read model in step with the server.

Events are invalidation signals only. Each one names resources to re-fetch;
the fresh API response is what lands in the read model. Duplicate events are
dropped by event_id, and a refresh already running for a resource absorbs
further requests for it (it runs once more afterwards if anything arrived
meanwhile). A full refresh runs on every (re)connect and every
resync_interval seconds, which heals anything the socket missed.
"""

import asyncio
import logging
from typing import Any

from config.settings import settings
from src.cc_common.datetime_utils import utc_now
from src.cc_common.enums import Role
from src.cc_common.errors import AppError, RealtimeUnavailableError
from src.cc_realtime.domain.models import EVENT_TYPES
from src.cc_sync.api_client import DashboardApiClient
from src.cc_sync.connection import RealtimeConnection
from src.cc_sync.read_model import (
    RESOURCES_BY_EVENT,
    DashboardReadModel,
    RecentEventIds,
    Resource,
    resources_for_role,
)

logger = logging.getLogger(__name__)


class ClientSyncAdapter:
    def __init__(
        self,
        api: DashboardApiClient,
        connection: RealtimeConnection | None,
        *,
        actor_id: str,
        role: Role,
        club_id: str,
        resync_interval: float = settings.SYNC_RESYNC_SECONDS,
        dedupe_size: int = 1024,
    ) -> None:
        self._api = api
        self._connection = connection
        self.actor_id = actor_id
        self.role = role
        self.club_id = club_id
        self.resources = resources_for_role(role)
        self.model = DashboardReadModel()
        self.realtime_available = connection is not None
        self._resync_interval = resync_interval
        self._seen = RecentEventIds(dedupe_size)
        self._inflight: dict[Resource, asyncio.Task[None]] = {}
        self._dirty: set[Resource] = set()
        self._tasks: list[asyncio.Task[None]] = []
        if connection is not None:
            connection.on_connected = self.refresh_all

    def subscriptions(self) -> list[tuple[str, dict[str, Any]]]:
        """Player: own topic plus club topic. Staff: club topic only."""
        if self.role == Role.PLAYER:
            return [("subscribe:player", {"playerId": self.actor_id, "clubId": self.club_id})]
        return [("subscribe:club", {"clubId": self.club_id})]

    # --- lifecycle ---

    async def start(self) -> None:
        if self._connection is not None:
            for event, data in self.subscriptions():
                await self._connection.subscribe(event, data)
            try:
                # on_connected performs the initial full refresh
                await self._connection.connect()
            except RealtimeUnavailableError:
                self._mark_realtime_unavailable()
                await self.refresh_all()
            else:
                self._tasks.append(asyncio.create_task(self._run_events()))
        else:
            await self.refresh_all()
        if self._resync_interval > 0:
            self._tasks.append(asyncio.create_task(self._run_resync()))

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        if self._connection is not None:
            await self._connection.close()

    # --- events ---

    async def handle_message(self, message: dict[str, Any]) -> bool:
        """Apply one server message. Returns True when it triggered a refresh."""
        event = message.get("event")
        data = message.get("data") or {}
        if event == "error":
            logger.warning("Realtime error from server: %s", data)
            return False
        if event not in EVENT_TYPES:
            return False
        event_id = data.get("event_id")
        if event_id and self._seen.seen(event_id):
            logger.debug("Duplicate event %s ignored", event_id)
            return False
        targets = [r for r in RESOURCES_BY_EVENT.get(event, ()) if r in self.resources]
        await asyncio.gather(*(self.refresh(r) for r in targets))
        return bool(targets)

    # --- refresh ---

    async def refresh(self, resource: Resource) -> None:
        """Re-fetch one resource; concurrent calls share the running fetch."""
        running = self._inflight.get(resource)
        if running is not None and not running.done():
            self._dirty.add(resource)
            await asyncio.shield(running)
            return
        task = asyncio.create_task(self._refresh_until_clean(resource))
        self._inflight[resource] = task
        task.add_done_callback(lambda t: self._forget(resource, t))
        await asyncio.shield(task)

    def _forget(self, resource: Resource, task: asyncio.Task[None]) -> None:
        if self._inflight.get(resource) is task:
            del self._inflight[resource]

    async def refresh_all(self) -> None:
        await asyncio.gather(*(self.refresh(r) for r in self.resources))
        self.model.last_synced_at = utc_now()

    async def _refresh_until_clean(self, resource: Resource) -> None:
        while True:
            self._dirty.discard(resource)
            self.model.apply(resource, await self._fetch(resource))
            if resource not in self._dirty:
                return

    async def _fetch(self, resource: Resource) -> Any:
        if resource == Resource.BALANCE:
            return await self._api.get_player_balance()
        if resource == Resource.CREDIT_REQUESTS:
            return await self._api.list_credit_requests()
        if resource == Resource.WAITLIST:
            return await self._api.get_waitlist_status()
        if resource == Resource.DISBURSEMENTS:
            return await self._api.list_disbursements()
        if resource == Resource.CREDIT_ACCOUNTS:
            return await self._api.list_credit_accounts()
        return await self._api.list_tables()

    # --- commands: await the server, then refresh; never mutate locally first ---

    async def request_credit(self, amount: int, notes: str | None = None) -> dict[str, Any]:
        result = await self._api.request_credit(amount, notes)
        await self.refresh(Resource.CREDIT_REQUESTS)
        return result

    async def join_waitlist(
        self, table_type: str | None = None, party_size: int = 1
    ) -> dict[str, Any]:
        result = await self._api.join_waitlist(table_type, party_size)
        await self.refresh(Resource.WAITLIST)
        return result

    async def cancel_waitlist(self, entry_id: str) -> None:
        await self._api.cancel_waitlist(entry_id)
        await self.refresh(Resource.WAITLIST)

    # --- background loops ---

    async def _run_events(self) -> None:
        assert self._connection is not None
        try:
            async for message in self._connection.events():
                try:
                    await self.handle_message(message)
                except AppError as exc:
                    # The periodic resync retries whatever this refresh missed
                    logger.warning("Refresh after %s failed: %s", message.get("event"), exc.message)
        except RealtimeUnavailableError:
            self._mark_realtime_unavailable()

    async def _run_resync(self) -> None:
        while True:
            await asyncio.sleep(self._resync_interval)
            try:
                await self.refresh_all()
            except AppError as exc:
                logger.warning("Periodic resync failed: %s", exc.message)

    def _mark_realtime_unavailable(self) -> None:
        self.realtime_available = False
        logger.warning(
            "Real-time updates unavailable for %s; relying on periodic resync", self.actor_id
        )
