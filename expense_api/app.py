"""
FastAPI application factory.

``create_app()`` wires configuration, the database engine, the key
expiry sweeper and the expense service into one application.  Engine and
sweeper live for the duration of the lifespan: started on startup,
stopped and disposed on shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from expense_api.errors import register_exception_handlers
from expense_api.router import KEY_HEADER, REPLAYED_HEADER, router
from expense_api.schemas import HealthResponse
from expense_config import ExpenseTrackerConfig, get_active_config
from expense_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from expense_kernel.domain.clock import Clock, SystemClock
from expense_kernel.logging_config import LogContext, configure_logging, get_logger
from expense_kernel.services.expense_service import ExpenseService
from expense_kernel.services.key_sweeper import KeyExpirySweeper

logger = get_logger("api.app")

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: ExpenseTrackerConfig = app.state.config
    clock: Clock = app.state.clock

    configure_logging(level=config.logging.level)
    db = config.database
    init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout_seconds,
        statement_timeout_ms=db.statement_timeout_ms,
    )
    create_tables()

    session_factory = get_session_factory()
    sweeper = KeyExpirySweeper(
        session_factory,
        clock=clock,
        retention=config.idempotency.retention,
        tick_interval_seconds=config.idempotency.sweep_interval_seconds,
    )
    app.state.expense_service = ExpenseService(
        session_factory,
        sweeper,
        clock=clock,
        require_idempotency_key=config.idempotency.require_key,
        idempotency_header=config.idempotency.header,
    )
    sweeper.start()
    logger.info(
        "api_started",
        extra={
            "app_version": config.app.version,
            "environment": config.app.environment,
            "config_checksum": config.checksum,
        },
    )

    try:
        yield
    finally:
        sweeper.stop()
        reset_engine()
        logger.info("api_stopped")


def create_app(
    config: ExpenseTrackerConfig | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Settings to use; defaults to ``get_active_config()``.
        clock: Time source for timestamps and key expiry.
    """
    config = config or get_active_config()

    app = FastAPI(
        title=config.app.name,
        version=config.app.version,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.clock = clock or SystemClock()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors.allowed_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", config.idempotency.header, REQUEST_ID_HEADER],
        expose_headers=[KEY_HEADER, REPLAYED_HEADER, REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        with LogContext.bind(correlation_id=correlation_id):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response

    register_exception_handlers(app)
    app.include_router(router)

    @app.get("/health", response_model=HealthResponse)
    def health_check(request: Request):
        return HealthResponse(timestamp=request.app.state.clock.now())

    return app
