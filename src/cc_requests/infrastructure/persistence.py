"""CreditRequestRepository: limit and feature requests.

Decisions are conditional UPDATEs guarded by status = 'PENDING'; a result of
0 rows means the request had already been decided by someone else.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.datetime_utils import utc_now
from src.cc_common.enums import RequestStatus
from src.cc_requests.domain.models import CreditFeatureRequest, CreditLimitRequest
from src.cc_requests.infrastructure.db_models import (
    CreditFeatureRequestORM,
    CreditLimitRequestORM,
)

_requests = CreditLimitRequestORM.__table__
_features = CreditFeatureRequestORM.__table__


def _row_to_request(row: Any) -> CreditLimitRequest:
    return CreditLimitRequest(
        id=row.id,
        club_id=row.club_id,
        player_id=row.player_id,
        amount=row.amount,
        requested_limit=row.requested_limit,
        status=row.status,
        reason=row.reason,
        visible_to_player=bool(row.visible_to_player),
        requested_at=row.requested_at,
        decided_at=row.decided_at,
        decided_by=row.decided_by,
        decision_notes=row.decision_notes,
    )


def _row_to_feature(row: Any) -> CreditFeatureRequest:
    return CreditFeatureRequest(
        id=row.id,
        club_id=row.club_id,
        player_id=row.player_id,
        kyc_status=row.kyc_status,
        account_status=row.account_status,
        status=row.status,
        rejection_reason=row.rejection_reason,
        requested_by=row.requested_by,
        requested_at=row.requested_at,
        decided_at=row.decided_at,
        decided_by=row.decided_by,
    )


class CreditRequestRepository:
    # --- limit requests ---

    async def add_request(self, db: AsyncSession, req: CreditLimitRequest) -> None:
        req.requested_at = req.requested_at or utc_now()
        await db.execute(
            insert(_requests).values(
                id=req.id,
                club_id=req.club_id,
                player_id=req.player_id,
                amount=req.amount,
                requested_limit=req.requested_limit,
                status=req.status,
                reason=req.reason,
                visible_to_player=req.visible_to_player,
                requested_at=req.requested_at,
            )
        )

    async def get_request(self, db: AsyncSession, request_id: str) -> CreditLimitRequest | None:
        result = await db.execute(select(_requests).where(_requests.c.id == request_id))
        row = result.fetchone()
        return _row_to_request(row) if row is not None else None

    async def list_requests(
        self,
        db: AsyncSession,
        club_id: str | None,
        status: str | None = None,
        player_id: str | None = None,
        visible_only: bool = False,
    ) -> list[CreditLimitRequest]:
        stmt = select(_requests).order_by(_requests.c.requested_at.desc(), _requests.c.id.desc())
        if club_id is not None:
            stmt = stmt.where(_requests.c.club_id == club_id)
        if status is not None:
            stmt = stmt.where(_requests.c.status == status)
        if player_id is not None:
            stmt = stmt.where(_requests.c.player_id == player_id)
        if visible_only:
            stmt = stmt.where(_requests.c.visible_to_player.is_(True))
        result = await db.execute(stmt)
        return [_row_to_request(r) for r in result.fetchall()]

    async def decide_request(
        self,
        db: AsyncSession,
        request_id: str,
        status: str,
        decided_by: str,
        notes: str | None,
    ) -> bool:
        result = await db.execute(
            update(_requests)
            .where(
                _requests.c.id == request_id,
                _requests.c.status == RequestStatus.PENDING.value,
            )
            .values(
                status=status,
                decided_by=decided_by,
                decided_at=utc_now(),
                decision_notes=notes,
            )
        )
        return result.rowcount == 1

    async def set_visibility(self, db: AsyncSession, request_id: str, visible: bool) -> None:
        await db.execute(
            update(_requests)
            .where(_requests.c.id == request_id)
            .values(visible_to_player=visible)
        )

    # --- feature requests ---

    async def add_feature_request(self, db: AsyncSession, req: CreditFeatureRequest) -> None:
        req.requested_at = req.requested_at or utc_now()
        await db.execute(
            insert(_features).values(
                id=req.id,
                club_id=req.club_id,
                player_id=req.player_id,
                kyc_status=req.kyc_status,
                account_status=req.account_status,
                status=req.status,
                requested_by=req.requested_by,
                requested_at=req.requested_at,
            )
        )

    async def get_feature_request(
        self, db: AsyncSession, request_id: str
    ) -> CreditFeatureRequest | None:
        result = await db.execute(select(_features).where(_features.c.id == request_id))
        row = result.fetchone()
        return _row_to_feature(row) if row is not None else None

    async def list_feature_requests(
        self, db: AsyncSession, club_id: str | None, status: str | None = None
    ) -> list[CreditFeatureRequest]:
        stmt = select(_features).order_by(_features.c.requested_at.desc(), _features.c.id.desc())
        if club_id is not None:
            stmt = stmt.where(_features.c.club_id == club_id)
        if status is not None:
            stmt = stmt.where(_features.c.status == status)
        result = await db.execute(stmt)
        return [_row_to_feature(r) for r in result.fetchall()]

    async def decide_feature_request(
        self,
        db: AsyncSession,
        request_id: str,
        status: str,
        decided_by: str,
        rejection_reason: str | None,
    ) -> bool:
        result = await db.execute(
            update(_features)
            .where(
                _features.c.id == request_id,
                _features.c.status == RequestStatus.PENDING.value,
            )
            .values(
                status=status,
                decided_by=decided_by,
                decided_at=utc_now(),
                rejection_reason=rejection_reason,
            )
        )
        return result.rowcount == 1
