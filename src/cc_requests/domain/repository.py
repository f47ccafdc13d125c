from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_requests.domain.models import CreditFeatureRequest, CreditLimitRequest


class CreditRequestRepositoryProtocol(Protocol):
    async def add_request(self, db: AsyncSession, req: CreditLimitRequest) -> None: ...

    async def get_request(self, db: AsyncSession, request_id: str) -> CreditLimitRequest | None: ...

    async def list_requests(
        self,
        db: AsyncSession,
        club_id: str | None,
        status: str | None = None,
        player_id: str | None = None,
        visible_only: bool = False,
    ) -> list[CreditLimitRequest]: ...

    async def decide_request(
        self,
        db: AsyncSession,
        request_id: str,
        status: str,
        decided_by: str,
        notes: str | None,
    ) -> bool: ...

    async def set_visibility(self, db: AsyncSession, request_id: str, visible: bool) -> None: ...

    async def add_feature_request(self, db: AsyncSession, req: CreditFeatureRequest) -> None: ...

    async def get_feature_request(
        self, db: AsyncSession, request_id: str
    ) -> CreditFeatureRequest | None: ...

    async def list_feature_requests(
        self, db: AsyncSession, club_id: str | None, status: str | None = None
    ) -> list[CreditFeatureRequest]: ...

    async def decide_feature_request(
        self,
        db: AsyncSession,
        request_id: str,
        status: str,
        decided_by: str,
        rejection_reason: str | None,
    ) -> bool: ...
