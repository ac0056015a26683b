# fulfil/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fulfil.api.deps import reset_order_service
from fulfil.api.routers.orders import router as orders_router
from fulfil.core.config import get_settings
from fulfil.core.logging import setup_logging
from fulfil.db.base import init_db
from fulfil.db.engine import is_sqlite
from fulfil.db.session import close_engines, get_async_engine
from fulfil.http_problem_handlers import register_exception_handlers
from fulfil.metrics import PrometheusMiddleware
from fulfil.metrics import router as metrics_router

logger = logging.getLogger("fulfil")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, sql_echo=settings.SQL_ECHO)
    # SQLite（本地 / demo）直接建表；PG 走 Alembic
    if is_sqlite(settings.DATABASE_URL):
        await init_db(get_async_engine())
    logger.info("fulfil started env=%s db=%s", settings.ENV, get_async_engine().url.render_as_string())
    try:
        yield
    finally:
        reset_order_service()
        await close_engines()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Fulfil Order Management API",
        version="1.0.0",
        description="Multi-warehouse allocation, pricing and order submission for fixed-weight devices.",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(PrometheusMiddleware)

    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {
            "status": "ok",
            "device": get_settings().DEVICE_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    app.include_router(orders_router)
    app.include_router(metrics_router)
    return app


app = create_app()
