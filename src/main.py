"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.cc_common.database import create_schema, engine
from src.cc_common.errors import AppError
from src.cc_common.redis_client import close_redis, get_redis
from src.cc_common.response import error_response
from src.cc_disbursement.api.router import router as disbursement_router
from src.cc_floor.api.router import tables_router, waitlist_router
from src.cc_gateway.middleware.request_log import RequestLogMiddleware
from src.cc_ledger.api.router import players_router
from src.cc_ledger.api.router import router as ledger_router
from src.cc_realtime.api.gateway import router as realtime_router
from src.cc_realtime.bus.event_bus import get_event_bus
from src.cc_realtime.bus.redis_relay import RedisRelay
from src.cc_requests.api.router import feature_router
from src.cc_requests.api.router import router as requests_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, create the SQLite schema, start the relay. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    if engine.dialect.name == "sqlite":
        await create_schema(engine)

    relay: RedisRelay | None = None
    bus = get_event_bus()
    if settings.REALTIME_BACKEND == "redis":
        relay = RedisRelay(await get_redis(), settings.REALTIME_CHANNEL)
        bus.set_relay(relay)
        await relay.start(bus.deliver, on_recovered=bus.drop_all)
    logger.info("%s started (realtime backend: %s)", settings.APP_NAME, settings.REALTIME_BACKEND)
    yield
    if relay is not None:
        await relay.stop()
        bus.set_relay(None)
        await close_redis()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()))
    resp = error_response(1001, f"Validation failed: {where} {first.get('msg', 'invalid input')}")
    return JSONResponse(status_code=422, content=resp.model_dump())


app.include_router(players_router, prefix="/api/v1")
app.include_router(ledger_router, prefix="/api/v1")
app.include_router(requests_router, prefix="/api/v1")
app.include_router(feature_router, prefix="/api/v1")
app.include_router(disbursement_router, prefix="/api/v1")
app.include_router(waitlist_router, prefix="/api/v1")
app.include_router(tables_router, prefix="/api/v1")
app.include_router(realtime_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
