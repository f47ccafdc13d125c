"""cc_floor REST endpoints.

GET    /waitlist/me                        caller's waitlist entry and position
POST   /waitlist                           join the club waitlist
DELETE /waitlist/{entry_id}                cancel an entry (owner or club staff)
POST   /waitlist/{entry_id}/seat           seat a waiting player at a table
GET    /tables                             table board of the caller's club
POST   /tables                             open a new table
PATCH  /tables/{table_id}/status           open/close a table
DELETE /tables/{table_id}/seats/{player_id}   player leaves the table
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.database import get_db_session
from src.cc_common.response import ApiResponse, respond
from src.cc_floor.application.schemas import (
    CreateTableRequest,
    JoinWaitlistRequest,
    SeatRequest,
    TableStatusRequest,
)
from src.cc_floor.application.service import FloorService
from src.cc_gateway.auth.actor import FLOOR_MANAGERS, Actor
from src.cc_gateway.auth.dependencies import get_current_actor, require_player, require_roles

waitlist_router = APIRouter(prefix="/waitlist", tags=["waitlist"])
tables_router = APIRouter(prefix="/tables", tags=["tables"])

_service = FloorService()


@waitlist_router.get("/me")
async def get_my_waitlist_status(
    actor: Annotated[Actor, Depends(require_player)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_waitlist_status(db, actor.id, actor.club_id)
    return respond(request, data)


@waitlist_router.post("", status_code=201)
async def join_waitlist(
    body: JoinWaitlistRequest,
    actor: Annotated[Actor, Depends(require_player)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.join_waitlist(
        db, actor.id, actor.club_id, body.table_type, body.party_size
    )
    return respond(request, data)


@waitlist_router.delete("/{entry_id}")
async def cancel_waitlist(
    entry_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    owner = actor.id if actor.is_player else None
    data = await _service.cancel_waitlist(db, entry_id, owner, actor.scope_club_id)
    return respond(request, data)


@waitlist_router.post("/{entry_id}/seat")
async def seat_from_waitlist(
    entry_id: str,
    body: SeatRequest,
    actor: Annotated[Actor, Depends(require_roles(*FLOOR_MANAGERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.seat_from_waitlist(
        db, entry_id, body.table_id, body.buy_in, actor.scope_club_id
    )
    return respond(request, data)


@tables_router.get("")
async def list_tables(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_tables(db, actor.scope_club_id)
    return respond(request, data)


@tables_router.post("", status_code=201)
async def create_table(
    body: CreateTableRequest,
    actor: Annotated[Actor, Depends(require_roles(*FLOOR_MANAGERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_table(
        db, actor.club_id, body.name, body.table_type, body.max_seats
    )
    return respond(request, data)


@tables_router.patch("/{table_id}/status")
async def set_table_status(
    table_id: str,
    body: TableStatusRequest,
    actor: Annotated[Actor, Depends(require_roles(*FLOOR_MANAGERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.set_table_status(db, table_id, body.status, actor.scope_club_id)
    return respond(request, data)


@tables_router.delete("/{table_id}/seats/{player_id}")
async def leave_table(
    table_id: str,
    player_id: str,
    actor: Annotated[Actor, Depends(require_roles(*FLOOR_MANAGERS))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.leave_table(db, table_id, player_id, actor.scope_club_id)
    return respond(request, data)
