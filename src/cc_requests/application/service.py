"""RequestRegistryService: lifecycle of credit limit and credit feature requests.

PENDING → APPROVED | REJECTED, both terminal. Approving a limit request only
authorises a later disbursement; it never touches the ledger.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.datetime_utils import utc_now
from src.cc_common.enums import DecisionOutcome, RequestStatus
from src.cc_common.errors import AlreadyDecidedError, IneligibleError, NotFoundError
from src.cc_common.id_generator import generate_id
from src.cc_common.money import require_positive
from src.cc_realtime.application.notifier import Notifier
from src.cc_requests.application.schemas import (
    CreditRequestListResponse,
    CreditRequestResponse,
    FeatureRequestListResponse,
    FeatureRequestResponse,
)
from src.cc_requests.domain.models import CreditFeatureRequest, CreditLimitRequest
from src.cc_requests.domain.repository import CreditRequestRepositoryProtocol
from src.cc_requests.infrastructure.persistence import CreditRequestRepository

logger = logging.getLogger(__name__)


class RequestRegistryService:
    def __init__(
        self,
        repo: CreditRequestRepositoryProtocol | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._repo: CreditRequestRepositoryProtocol = repo or CreditRequestRepository()
        self._notifier = notifier or Notifier()

    @property
    def repo(self) -> CreditRequestRepositoryProtocol:
        return self._repo

    # --- credit limit requests ---

    async def submit(
        self,
        db: AsyncSession,
        player_id: str,
        club_id: str,
        amount: int,
        requested_limit: int | None = None,
        reason: str | None = None,
    ) -> CreditRequestResponse:
        if requested_limit is None:
            requested_limit = amount
        require_positive(amount, "amount")
        require_positive(requested_limit, "requested_limit")
        req = CreditLimitRequest(
            id=generate_id("crq"),
            club_id=club_id,
            player_id=player_id,
            amount=amount,
            requested_limit=requested_limit,
            status=RequestStatus.PENDING.value,
            reason=reason,
        )
        try:
            await self._repo.add_request(db, req)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Credit request %s submitted by %s for %d", req.id, player_id, amount)
        await self._notify_request(req)
        return CreditRequestResponse.from_domain(req)

    async def decide(
        self,
        db: AsyncSession,
        request_id: str,
        outcome: DecisionOutcome,
        decided_by: str,
        notes: str | None = None,
        club_id: str | None = None,
    ) -> CreditRequestResponse:
        req = await self._load_request(db, request_id, club_id)
        if not req.is_pending:
            raise AlreadyDecidedError(request_id, req.status)
        try:
            if not await self._repo.decide_request(
                db, request_id, outcome.value, decided_by, notes
            ):
                current = await self._repo.get_request(db, request_id)
                raise AlreadyDecidedError(request_id, current.status if current else req.status)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        req.status = outcome.value
        req.decided_by = decided_by
        req.decided_at = utc_now()
        req.decision_notes = notes
        logger.info("Credit request %s %s by %s", request_id, outcome.value, decided_by)
        await self._notify_request(req)
        return CreditRequestResponse.from_domain(req)

    async def get_request(
        self, db: AsyncSession, request_id: str, club_id: str | None = None
    ) -> CreditRequestResponse:
        return CreditRequestResponse.from_domain(await self._load_request(db, request_id, club_id))

    async def list_requests(
        self, db: AsyncSession, club_id: str | None, status: str | None = None
    ) -> CreditRequestListResponse:
        items = await self._repo.list_requests(db, club_id, status)
        return CreditRequestListResponse(items=[CreditRequestResponse.from_domain(r) for r in items])

    async def list_for_player(
        self, db: AsyncSession, player_id: str, status: str | None = None
    ) -> CreditRequestListResponse:
        """A player's own requests, hidden ones excluded."""
        items = await self._repo.list_requests(
            db, None, status, player_id=player_id, visible_only=True
        )
        return CreditRequestListResponse(items=[CreditRequestResponse.from_domain(r) for r in items])

    async def set_visibility(
        self, db: AsyncSession, request_id: str, visible: bool, club_id: str | None = None
    ) -> CreditRequestResponse:
        """Show or hide a request on the player's dashboard. Not a decision; any status."""
        req = await self._load_request(db, request_id, club_id)
        try:
            await self._repo.set_visibility(db, request_id, visible)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        req.visible_to_player = visible
        await self._notify_request(req, visible_to_player=visible)
        return CreditRequestResponse.from_domain(req)

    # --- credit feature requests ---

    async def submit_feature(
        self,
        db: AsyncSession,
        player_id: str,
        club_id: str,
        kyc_status: str,
        account_status: str,
        requested_by: str | None = None,
    ) -> FeatureRequestResponse:
        req = CreditFeatureRequest(
            id=generate_id("cfr"),
            club_id=club_id,
            player_id=player_id,
            kyc_status=kyc_status,
            account_status=account_status,
            status=RequestStatus.PENDING.value,
            requested_by=requested_by,
        )
        try:
            await self._repo.add_feature_request(db, req)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        await self._notify_feature(req)
        return FeatureRequestResponse.from_domain(req)

    async def decide_feature(
        self,
        db: AsyncSession,
        request_id: str,
        outcome: DecisionOutcome,
        decided_by: str,
        reason: str | None = None,
        club_id: str | None = None,
    ) -> FeatureRequestResponse:
        """Approve or reject first-time credit access. Approval needs KYC APPROVED and an ACTIVE account."""
        req = await self._repo.get_feature_request(db, request_id)
        if req is None or (club_id is not None and req.club_id != club_id):
            raise NotFoundError("Credit feature request", request_id)
        if not req.is_pending:
            raise AlreadyDecidedError(request_id, req.status)
        if outcome == DecisionOutcome.APPROVED:
            problem = req.ineligibility()
            if problem is not None:
                raise IneligibleError(req.player_id, problem)
        try:
            if not await self._repo.decide_feature_request(
                db, request_id, outcome.value, decided_by, reason
            ):
                current = await self._repo.get_feature_request(db, request_id)
                raise AlreadyDecidedError(request_id, current.status if current else req.status)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        req.status = outcome.value
        req.decided_by = decided_by
        req.decided_at = utc_now()
        req.rejection_reason = reason
        await self._notify_feature(req)
        return FeatureRequestResponse.from_domain(req)

    async def list_feature_requests(
        self, db: AsyncSession, club_id: str | None, status: str | None = None
    ) -> FeatureRequestListResponse:
        items = await self._repo.list_feature_requests(db, club_id, status)
        return FeatureRequestListResponse(
            items=[FeatureRequestResponse.from_domain(r) for r in items]
        )

    # --- helpers ---

    async def _load_request(
        self, db: AsyncSession, request_id: str, club_id: str | None
    ) -> CreditLimitRequest:
        req = await self._repo.get_request(db, request_id)
        if req is None or (club_id is not None and req.club_id != club_id):
            raise NotFoundError("Credit request", request_id)
        return req

    async def _notify_request(self, req: CreditLimitRequest, **extra: object) -> None:
        await self._notifier.credit_changed(
            player_id=req.player_id,
            club_id=req.club_id,
            kind="credit_request",
            entity_id=req.id,
            status=req.status,
            **extra,
        )

    async def _notify_feature(self, req: CreditFeatureRequest) -> None:
        await self._notifier.credit_changed(
            player_id=req.player_id,
            club_id=req.club_id,
            kind="credit_feature",
            entity_id=req.id,
            status=req.status,
        )
