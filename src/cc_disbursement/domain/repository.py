from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_disbursement.domain.models import DisbursementRequest


class DisbursementRepositoryProtocol(Protocol):
    async def add(self, db: AsyncSession, disbursement: DisbursementRequest) -> None: ...

    async def get(self, db: AsyncSession, disbursement_id: str) -> DisbursementRequest | None: ...

    async def get_by_credit_request(
        self, db: AsyncSession, credit_request_id: str
    ) -> DisbursementRequest | None: ...

    async def list_disbursements(
        self,
        db: AsyncSession,
        club_id: str | None,
        status: str | None = None,
        player_id: str | None = None,
    ) -> list[DisbursementRequest]: ...

    async def decide(
        self,
        db: AsyncSession,
        disbursement_id: str,
        status: str,
        decided_by: str,
        rejection_reason: str | None = None,
    ) -> bool: ...
