"""Tests for the dashboard read model, event mapping and event-id memory."""

from src.cc_common.enums import EventType, Role
from src.cc_sync.read_model import (
    RESOURCES_BY_EVENT,
    DashboardReadModel,
    RecentEventIds,
    Resource,
    resources_for_role,
)


def test_every_event_type_maps_to_resources() -> None:
    assert set(RESOURCES_BY_EVENT) == {e.value for e in EventType}
    assert RESOURCES_BY_EVENT["credit:status-changed"] == (
        Resource.BALANCE,
        Resource.CREDIT_REQUESTS,
        Resource.DISBURSEMENTS,
        Resource.CREDIT_ACCOUNTS,
    )


def test_resources_by_role() -> None:
    assert Resource.BALANCE in resources_for_role(Role.PLAYER)
    assert Resource.WAITLIST in resources_for_role(Role.PLAYER)
    assert Resource.DISBURSEMENTS not in resources_for_role(Role.PLAYER)
    assert resources_for_role(Role.CASHIER) == (
        Resource.CREDIT_REQUESTS,
        Resource.DISBURSEMENTS,
        Resource.CREDIT_ACCOUNTS,
        Resource.TABLES,
    )


class TestReadModel:
    def test_apply_replaces_state(self) -> None:
        model = DashboardReadModel()
        model.apply(Resource.TABLES, {"items": [{"id": "t1"}]})
        model.apply(Resource.TABLES, {"items": [{"id": "t2"}]})
        assert model.tables == [{"id": "t2"}]
        assert model.fetch_counts[Resource.TABLES] == 2
        assert model.fetch_counts[Resource.BALANCE] == 0

    def test_empty_payloads(self) -> None:
        model = DashboardReadModel()
        model.apply(Resource.CREDIT_REQUESTS, None)
        model.apply(Resource.WAITLIST, {"on_waitlist": False})
        assert model.credit_requests == []
        assert model.waitlist == {"on_waitlist": False}

    def test_staff_lists(self) -> None:
        model = DashboardReadModel()
        model.apply(Resource.DISBURSEMENTS, {"items": [{"id": "dsb_1", "status": "PENDING"}]})
        model.apply(Resource.CREDIT_ACCOUNTS, {"items": [{"player_id": "p1"}]})
        assert model.disbursements == [{"id": "dsb_1", "status": "PENDING"}]
        assert model.credit_accounts == [{"player_id": "p1"}]


class TestRecentEventIds:
    def test_second_sighting_is_seen(self) -> None:
        ids = RecentEventIds()
        assert not ids.seen("evt_1")
        assert ids.seen("evt_1")

    def test_oldest_forgotten(self) -> None:
        ids = RecentEventIds(max_size=2)
        for event_id in ("a", "b", "c"):
            ids.seen(event_id)
        assert len(ids) == 2
        assert not ids.seen("a")
