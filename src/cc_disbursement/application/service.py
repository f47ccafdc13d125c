"""DisbursementProcessor: moves approved credit into the player's balance.

approve_and_disburse() holds the player's ledger lock for the whole
check-then-act: re-read the live account, compare against available credit,
mark the disbursement APPROVED and credit the ledger, then commit once. A
failure anywhere rolls both back, so the disbursement stays PENDING and the
balance is untouched.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.datetime_utils import utc_now
from src.cc_common.enums import AdjustDirection, MovementType, RequestStatus
from src.cc_common.errors import (
    AlreadyProcessedError,
    InsufficientCreditError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from src.cc_common.id_generator import generate_id
from src.cc_common.locks import PlayerLockRegistry, player_locks
from src.cc_disbursement.application.schemas import DisbursementListResponse, DisbursementResponse
from src.cc_disbursement.domain.models import DisbursementRequest
from src.cc_disbursement.domain.repository import DisbursementRepositoryProtocol
from src.cc_disbursement.infrastructure.persistence import DisbursementRepository
from src.cc_ledger.application.service import LedgerApplicationService
from src.cc_ledger.domain.models import CreditAccount
from src.cc_realtime.application.notifier import Notifier
from src.cc_requests.domain.repository import CreditRequestRepositoryProtocol
from src.cc_requests.infrastructure.persistence import CreditRequestRepository

logger = logging.getLogger(__name__)


class DisbursementProcessor:
    def __init__(
        self,
        repo: DisbursementRepositoryProtocol | None = None,
        requests: CreditRequestRepositoryProtocol | None = None,
        ledger: LedgerApplicationService | None = None,
        notifier: Notifier | None = None,
        locks: PlayerLockRegistry | None = None,
    ) -> None:
        self._notifier = notifier or Notifier()
        self._locks = locks or player_locks
        self._repo: DisbursementRepositoryProtocol = repo or DisbursementRepository()
        self._requests: CreditRequestRepositoryProtocol = requests or CreditRequestRepository()
        self._ledger = ledger or LedgerApplicationService(
            notifier=self._notifier, locks=self._locks
        )

    async def open(
        self, db: AsyncSession, credit_request_id: str, club_id: str | None = None
    ) -> DisbursementResponse:
        """Create the PENDING disbursement for an APPROVED credit request.

        Opening the same request again returns the disbursement already open.
        """
        req = await self._requests.get_request(db, credit_request_id)
        if req is None or (club_id is not None and req.club_id != club_id):
            raise NotFoundError("Credit request", credit_request_id)
        if req.status != RequestStatus.APPROVED.value:
            raise ValidationError(
                f"credit request {credit_request_id} is {req.status}, not APPROVED"
            )
        existing = await self._repo.get_by_credit_request(db, credit_request_id)
        if existing is not None:
            return DisbursementResponse.from_domain(existing)

        account = await self._ledger.repo.get_account(db, req.player_id)
        if account is None or not account.is_eligible:
            raise NotEligibleError(req.player_id)

        disbursement = DisbursementRequest(
            id=generate_id("dsb"),
            club_id=req.club_id,
            player_id=req.player_id,
            credit_request_id=req.id,
            approved_limit=account.credit_limit,
            current_balance_snapshot=account.current_balance,
            requested_amount=req.amount,
            status=RequestStatus.PENDING.value,
        )
        try:
            await self._repo.add(db, disbursement)
            await db.commit()
        except IntegrityError:
            # Lost a race with another open() for the same request
            await db.rollback()
            existing = await self._repo.get_by_credit_request(db, credit_request_id)
            if existing is None:
                raise
            return DisbursementResponse.from_domain(existing)
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Disbursement %s opened for %s (%d)",
            disbursement.id,
            disbursement.player_id,
            disbursement.requested_amount,
        )
        await self._notify_disbursement(disbursement)
        return DisbursementResponse.from_domain(disbursement)

    async def approve_and_disburse(
        self,
        db: AsyncSession,
        disbursement_id: str,
        decided_by: str,
        club_id: str | None = None,
    ) -> DisbursementResponse:
        disbursement = await self._load(db, disbursement_id, club_id)
        async with self._locks.for_player(disbursement.player_id):
            try:
                disbursement = await self._load(db, disbursement_id)
                if not disbursement.is_pending:
                    raise AlreadyProcessedError(disbursement_id, disbursement.status)

                account = await self._ledger.repo.get_account(db, disbursement.player_id)
                if account is None or not account.is_eligible:
                    raise NotEligibleError(disbursement.player_id)
                if disbursement.requested_amount > account.available_credit:
                    raise InsufficientCreditError(
                        disbursement.requested_amount, account.available_credit
                    )

                if not await self._repo.decide(
                    db, disbursement_id, RequestStatus.APPROVED.value, decided_by
                ):
                    current = await self._repo.get(db, disbursement_id)
                    raise AlreadyProcessedError(
                        disbursement_id, current.status if current else disbursement.status
                    )
                account = await self._ledger.apply_adjustment(
                    db,
                    disbursement.player_id,
                    disbursement.requested_amount,
                    AdjustDirection.CREDIT,
                    movement_type=MovementType.DISBURSEMENT,
                    reference_type="DISBURSEMENT",
                    reference_id=disbursement_id,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        disbursement.status = RequestStatus.APPROVED.value
        disbursement.decided_by = decided_by
        disbursement.decided_at = utc_now()
        logger.info(
            "Disbursed %d to %s via %s; balance now %d",
            disbursement.requested_amount,
            disbursement.player_id,
            disbursement_id,
            account.current_balance,
        )
        await self._notify_disbursement(disbursement)
        await self._notify_ledger(account)
        return DisbursementResponse.from_domain(disbursement)

    async def reject(
        self,
        db: AsyncSession,
        disbursement_id: str,
        decided_by: str,
        reason: str,
        club_id: str | None = None,
    ) -> DisbursementResponse:
        """REJECTED with a reason; the ledger is not touched."""
        disbursement = await self._load(db, disbursement_id, club_id)
        if not disbursement.is_pending:
            raise AlreadyProcessedError(disbursement_id, disbursement.status)
        try:
            if not await self._repo.decide(
                db, disbursement_id, RequestStatus.REJECTED.value, decided_by, reason
            ):
                current = await self._repo.get(db, disbursement_id)
                raise AlreadyProcessedError(
                    disbursement_id, current.status if current else disbursement.status
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        disbursement.status = RequestStatus.REJECTED.value
        disbursement.decided_by = decided_by
        disbursement.decided_at = utc_now()
        disbursement.rejection_reason = reason
        await self._notify_disbursement(disbursement)
        return DisbursementResponse.from_domain(disbursement)

    async def get(
        self, db: AsyncSession, disbursement_id: str, club_id: str | None = None
    ) -> DisbursementResponse:
        return DisbursementResponse.from_domain(await self._load(db, disbursement_id, club_id))

    async def list_disbursements(
        self,
        db: AsyncSession,
        club_id: str | None,
        status: str | None = None,
        player_id: str | None = None,
    ) -> DisbursementListResponse:
        items = await self._repo.list_disbursements(db, club_id, status, player_id)
        return DisbursementListResponse(items=[DisbursementResponse.from_domain(d) for d in items])

    # --- helpers ---

    async def _load(
        self, db: AsyncSession, disbursement_id: str, club_id: str | None = None
    ) -> DisbursementRequest:
        disbursement = await self._repo.get(db, disbursement_id)
        if disbursement is None or (club_id is not None and disbursement.club_id != club_id):
            raise NotFoundError("Disbursement", disbursement_id)
        return disbursement

    async def _notify_disbursement(self, disbursement: DisbursementRequest) -> None:
        await self._notifier.credit_changed(
            player_id=disbursement.player_id,
            club_id=disbursement.club_id,
            kind="disbursement",
            entity_id=disbursement.id,
            status=disbursement.status,
        )

    async def _notify_ledger(self, account: CreditAccount) -> None:
        await self._notifier.credit_changed(
            player_id=account.player_id,
            club_id=account.club_id,
            kind="ledger",
            entity_id=account.player_id,
            status=account.eligibility,
            version=account.version,
        )
