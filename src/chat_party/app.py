from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_party.api.deps import uow_scope
from chat_party.api.middleware.correlation_id import CorrelationIdMiddleware
from chat_party.api.middleware.timing import RequestTimingMiddleware
from chat_party.api.v1.routers import conversations, health, messages, ws
from chat_party.application.exceptions import (
    AppError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from chat_party.config import settings
from chat_party.infrastructure.bus.redis_pubsub import (
    RedisFanoutPublisher,
    RedisPubSubSubscriber,
    make_router_dispatcher,
)
from chat_party.infrastructure.db import models  # noqa: F401  (register tables)
from chat_party.infrastructure.db.base import Base
from chat_party.infrastructure.db.session import dispose_engine, engine
from chat_party.infrastructure.ws.presence import PresenceRouter
from chat_party.services.gateway import MessageGateway

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    router: PresenceRouter = app.state.router
    router.init()

    if settings.DB_CREATE_TABLES:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    subscriber: RedisPubSubSubscriber | None = None
    if settings.FANOUT_BACKEND == "redis":
        app.state.redis = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        logger.info("Redis connection pool created")

        app.state.gateway = MessageGateway(
            router,
            RedisFanoutPublisher(app.state.redis, settings.REDIS_PUBSUB_CHANNEL),
        )
        subscriber = RedisPubSubSubscriber(
            app.state.redis,
            settings.REDIS_PUBSUB_CHANNEL,
            make_router_dispatcher(router),
        )
        await subscriber.start()
        app.state.pubsub_subscriber = subscriber

    yield

    if subscriber is not None:
        await subscriber.stop()
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")
    router.shutdown()
    await dispose_engine()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Party",
        version="0.1.0",
        lifespan=lifespan,
    )

    router = PresenceRouter(send_timeout=settings.WS_SEND_TIMEOUT_SECONDS)
    app.state.router = router
    app.state.gateway = MessageGateway(router)
    app.state.uow_factory = uow_scope
    app.state.redis = None

    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _error_body(exc: AppError) -> dict[str, str]:
    return {"detail": exc.detail, "code": exc.code}


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content=_error_body(exc))

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content=_error_body(exc))

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content=_error_body(exc))

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content=_error_body(exc))
