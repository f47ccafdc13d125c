"""cc_ledger REST endpoints.

GET    /players/me/balance                player's own balance
GET    /players/{player_id}/balance       staff view of a player's balance
GET    /ledger                            credit accounts of the caller's club
GET    /ledger/{player_id}                one credit account
GET    /ledger/{player_id}/movements      movement history, cursor paginated
PUT    /ledger/{player_id}/limit          set the credit limit (creates the account if absent)
POST   /ledger/{player_id}/adjust         manual CREDIT/DEBIT
DELETE /ledger/{player_id}                remove from the credit-eligible set
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.database import get_db_session
from src.cc_common.enums import Eligibility
from src.cc_common.response import ApiResponse, respond
from src.cc_gateway.auth.actor import CREDIT_DECIDERS, DISBURSERS, Actor
from src.cc_gateway.auth.dependencies import (
    get_current_actor,
    require_player,
    require_roles,
    require_staff,
)
from src.cc_ledger.application.schemas import AdjustRequest, SetLimitRequest
from src.cc_ledger.application.service import LedgerApplicationService

players_router = APIRouter(prefix="/players", tags=["balance"])
router = APIRouter(prefix="/ledger", tags=["ledger"])

_service = LedgerApplicationService()


@players_router.get("/me/balance")
async def get_my_balance(
    actor: Annotated[Actor, Depends(require_player)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_player_balance(db, actor.id)
    return respond(request, data)


@players_router.get("/{player_id}/balance")
async def get_player_balance(
    player_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    actor.require_player_access(player_id)
    data = await _service.get_player_balance(db, player_id)
    return respond(request, data)


@router.get("")
async def list_accounts(
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    eligibility: Eligibility | None = Query(None, description="ACTIVE or REMOVED"),
) -> ApiResponse:
    data = await _service.list_accounts(
        db, actor.scope_club_id, eligibility.value if eligibility else None
    )
    return respond(request, data)


@router.get("/{player_id}")
async def get_account(
    player_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    actor.require_player_access(player_id)
    data = await _service.get_account(db, player_id, actor.scope_club_id)
    return respond(request, data)


@router.get("/{player_id}/movements")
async def list_movements(
    player_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    actor.require_player_access(player_id)
    data = await _service.list_movements(db, player_id, cursor, limit, actor.scope_club_id)
    return respond(request, data)


@router.put("/{player_id}/limit")
async def set_limit(
    player_id: str,
    body: SetLimitRequest,
    actor: Annotated[Actor, Depends(require_roles(*CREDIT_DECIDERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    club_id = body.club_id if body.club_id and actor.can_access_club(body.club_id) else actor.club_id
    data = await _service.set_limit(
        db, player_id, club_id, body.credit_limit, actor.id, actor.scope_club_id
    )
    return respond(request, data)


@router.post("/{player_id}/adjust")
async def adjust(
    player_id: str,
    body: AdjustRequest,
    actor: Annotated[Actor, Depends(require_roles(*DISBURSERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.adjust(
        db, player_id, body.delta, body.direction, body.description, actor.scope_club_id
    )
    return respond(request, data)


@router.delete("/{player_id}")
async def remove(
    player_id: str,
    actor: Annotated[Actor, Depends(require_roles(*CREDIT_DECIDERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.remove(db, player_id, actor.scope_club_id)
    return respond(request, data)
