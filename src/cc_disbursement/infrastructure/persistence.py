"""DisbursementRepository.

Decisions are conditional UPDATEs guarded by status = 'PENDING'.
Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.datetime_utils import utc_now
from src.cc_common.enums import RequestStatus
from src.cc_disbursement.domain.models import DisbursementRequest
from src.cc_disbursement.infrastructure.db_models import DisbursementRequestORM

_disbursements = DisbursementRequestORM.__table__


def _row_to_disbursement(row: Any) -> DisbursementRequest:
    return DisbursementRequest(
        id=row.id,
        club_id=row.club_id,
        player_id=row.player_id,
        credit_request_id=row.credit_request_id,
        approved_limit=row.approved_limit,
        current_balance_snapshot=row.current_balance_snapshot,
        requested_amount=row.requested_amount,
        status=row.status,
        rejection_reason=row.rejection_reason,
        created_at=row.created_at,
        decided_at=row.decided_at,
        decided_by=row.decided_by,
    )


class DisbursementRepository:
    async def add(self, db: AsyncSession, disbursement: DisbursementRequest) -> None:
        disbursement.created_at = disbursement.created_at or utc_now()
        await db.execute(
            insert(_disbursements).values(
                id=disbursement.id,
                club_id=disbursement.club_id,
                player_id=disbursement.player_id,
                credit_request_id=disbursement.credit_request_id,
                approved_limit=disbursement.approved_limit,
                current_balance_snapshot=disbursement.current_balance_snapshot,
                requested_amount=disbursement.requested_amount,
                status=disbursement.status,
                created_at=disbursement.created_at,
            )
        )

    async def get(self, db: AsyncSession, disbursement_id: str) -> DisbursementRequest | None:
        result = await db.execute(
            select(_disbursements).where(_disbursements.c.id == disbursement_id)
        )
        row = result.fetchone()
        return _row_to_disbursement(row) if row is not None else None

    async def get_by_credit_request(
        self, db: AsyncSession, credit_request_id: str
    ) -> DisbursementRequest | None:
        result = await db.execute(
            select(_disbursements).where(
                _disbursements.c.credit_request_id == credit_request_id
            )
        )
        row = result.fetchone()
        return _row_to_disbursement(row) if row is not None else None

    async def list_disbursements(
        self,
        db: AsyncSession,
        club_id: str | None,
        status: str | None = None,
        player_id: str | None = None,
    ) -> list[DisbursementRequest]:
        stmt = select(_disbursements).order_by(
            _disbursements.c.created_at.desc(), _disbursements.c.id.desc()
        )
        if club_id is not None:
            stmt = stmt.where(_disbursements.c.club_id == club_id)
        if status is not None:
            stmt = stmt.where(_disbursements.c.status == status)
        if player_id is not None:
            stmt = stmt.where(_disbursements.c.player_id == player_id)
        result = await db.execute(stmt)
        return [_row_to_disbursement(r) for r in result.fetchall()]

    async def decide(
        self,
        db: AsyncSession,
        disbursement_id: str,
        status: str,
        decided_by: str,
        rejection_reason: str | None = None,
    ) -> bool:
        result = await db.execute(
            update(_disbursements)
            .where(
                _disbursements.c.id == disbursement_id,
                _disbursements.c.status == RequestStatus.PENDING.value,
            )
            .values(
                status=status,
                decided_by=decided_by,
                decided_at=utc_now(),
                rejection_reason=rejection_reason,
            )
        )
        return result.rowcount == 1
