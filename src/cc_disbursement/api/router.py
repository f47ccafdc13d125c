"""cc_disbursement REST endpoints.

POST /disbursements                    open a disbursement for an approved credit request
GET  /disbursements                    staff: club disbursements; player: own
GET  /disbursements/{id}               one disbursement (staff)
POST /disbursements/{id}/approve       approve and move credit into the balance
POST /disbursements/{id}/reject        reject with a reason
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.database import get_db_session
from src.cc_common.enums import RequestStatus
from src.cc_common.response import ApiResponse, respond
from src.cc_disbursement.application.schemas import (
    OpenDisbursementRequest,
    RejectDisbursementRequest,
)
from src.cc_disbursement.application.service import DisbursementProcessor
from src.cc_gateway.auth.actor import DISBURSERS, Actor
from src.cc_gateway.auth.dependencies import get_current_actor, require_roles, require_staff

router = APIRouter(prefix="/disbursements", tags=["disbursements"])

_service = DisbursementProcessor()


@router.post("", status_code=201)
async def open_disbursement(
    body: OpenDisbursementRequest,
    actor: Annotated[Actor, Depends(require_roles(*DISBURSERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.open(db, body.credit_request_id, actor.scope_club_id)
    return respond(request, data)


@router.get("")
async def list_disbursements(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: RequestStatus | None = Query(None),
) -> ApiResponse:
    status_value = status.value if status else None
    if actor.is_player:
        data = await _service.list_disbursements(db, None, status_value, player_id=actor.id)
    else:
        data = await _service.list_disbursements(db, actor.scope_club_id, status_value)
    return respond(request, data)


@router.get("/{disbursement_id}")
async def get_disbursement(
    disbursement_id: str,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get(db, disbursement_id, actor.scope_club_id)
    return respond(request, data)


@router.post("/{disbursement_id}/approve")
async def approve_and_disburse(
    disbursement_id: str,
    actor: Annotated[Actor, Depends(require_roles(*DISBURSERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.approve_and_disburse(
        db, disbursement_id, actor.id, actor.scope_club_id
    )
    return respond(request, data)


@router.post("/{disbursement_id}/reject")
async def reject_disbursement(
    disbursement_id: str,
    body: RejectDisbursementRequest,
    actor: Annotated[Actor, Depends(require_roles(*DISBURSERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.reject(
        db, disbursement_id, actor.id, body.reason, actor.scope_club_id
    )
    return respond(request, data)
