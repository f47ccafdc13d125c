"""cc_requests REST endpoints.

POST  /credit-requests                           player asks for credit
GET   /credit-requests                           staff: club requests; player: own visible ones
GET   /credit-requests/{id}                      one request (staff)
POST  /credit-requests/{id}/approve              decide APPROVED
POST  /credit-requests/{id}/reject               decide REJECTED
PATCH /credit-requests/{id}/visibility           show/hide on the player dashboard
POST  /credit-feature-requests                   open a first-time credit access request
GET   /credit-feature-requests                   club feature requests
POST  /credit-feature-requests/{id}/approve      KYC/account gated approval
POST  /credit-feature-requests/{id}/reject
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.database import get_db_session
from src.cc_common.enums import DecisionOutcome, RequestStatus
from src.cc_common.response import ApiResponse, respond
from src.cc_gateway.auth.actor import CREDIT_DECIDERS, Actor
from src.cc_gateway.auth.dependencies import (
    get_current_actor,
    require_player,
    require_roles,
    require_staff,
)
from src.cc_requests.application.schemas import (
    DecisionRequest,
    FeatureDecisionRequest,
    SubmitCreditRequest,
    SubmitFeatureRequest,
    VisibilityRequest,
)
from src.cc_requests.application.service import RequestRegistryService

router = APIRouter(prefix="/credit-requests", tags=["credit-requests"])
feature_router = APIRouter(prefix="/credit-feature-requests", tags=["credit-requests"])

_service = RequestRegistryService()


@router.post("", status_code=201)
async def request_credit(
    body: SubmitCreditRequest,
    actor: Annotated[Actor, Depends(require_player)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.submit(
        db, actor.id, actor.club_id, body.amount, body.requested_limit, body.reason
    )
    return respond(request, data)


@router.get("")
async def list_credit_requests(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: RequestStatus | None = Query(None, description="PENDING, APPROVED or REJECTED"),
) -> ApiResponse:
    status_value = status.value if status else None
    if actor.is_player:
        data = await _service.list_for_player(db, actor.id, status_value)
    else:
        data = await _service.list_requests(db, actor.scope_club_id, status_value)
    return respond(request, data)


@router.get("/{request_id}")
async def get_credit_request(
    request_id: str,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_request(db, request_id, actor.scope_club_id)
    return respond(request, data)


@router.post("/{request_id}/approve")
async def approve_credit_request(
    request_id: str,
    actor: Annotated[Actor, Depends(require_roles(*CREDIT_DECIDERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    body: DecisionRequest | None = None,
) -> ApiResponse:
    data = await _service.decide(
        db,
        request_id,
        DecisionOutcome.APPROVED,
        actor.id,
        body.notes if body else None,
        actor.scope_club_id,
    )
    return respond(request, data)


@router.post("/{request_id}/reject")
async def reject_credit_request(
    request_id: str,
    actor: Annotated[Actor, Depends(require_roles(*CREDIT_DECIDERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    body: DecisionRequest | None = None,
) -> ApiResponse:
    data = await _service.decide(
        db,
        request_id,
        DecisionOutcome.REJECTED,
        actor.id,
        body.notes if body else None,
        actor.scope_club_id,
    )
    return respond(request, data)


@router.patch("/{request_id}/visibility")
async def set_visibility(
    request_id: str,
    body: VisibilityRequest,
    actor: Annotated[Actor, Depends(require_roles(*CREDIT_DECIDERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.set_visibility(db, request_id, body.visible, actor.scope_club_id)
    return respond(request, data)


@feature_router.post("", status_code=201)
async def submit_feature_request(
    body: SubmitFeatureRequest,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.submit_feature(
        db,
        body.player_id,
        actor.club_id,
        body.kyc_status.value,
        body.account_status.value,
        requested_by=actor.id,
    )
    return respond(request, data)


@feature_router.get("")
async def list_feature_requests(
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: RequestStatus | None = Query(None),
) -> ApiResponse:
    data = await _service.list_feature_requests(
        db, actor.scope_club_id, status.value if status else None
    )
    return respond(request, data)


@feature_router.post("/{request_id}/approve")
async def approve_feature_request(
    request_id: str,
    actor: Annotated[Actor, Depends(require_roles(*CREDIT_DECIDERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.decide_feature(
        db, request_id, DecisionOutcome.APPROVED, actor.id, None, actor.scope_club_id
    )
    return respond(request, data)


@feature_router.post("/{request_id}/reject")
async def reject_feature_request(
    request_id: str,
    actor: Annotated[Actor, Depends(require_roles(*CREDIT_DECIDERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    body: FeatureDecisionRequest | None = None,
) -> ApiResponse:
    data = await _service.decide_feature(
        db,
        request_id,
        DecisionOutcome.REJECTED,
        actor.id,
        body.reason if body else None,
        actor.scope_club_id,
    )
    return respond(request, data)
