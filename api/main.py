"""FastAPI application for the Fairway Strategy API."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import get_settings
from database.connection import db
from database.db_manager import DatabaseManager
from integrations.ghin import GhinClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize DB pool and the GHIN client on startup, close on shutdown."""
    settings = get_settings()
    await db.initialize(dsn=settings.database_url)
    app.state.db_manager = DatabaseManager(db.pool)
    await app.state.db_manager.initialize_schema()
    app.state.ghin = GhinClient(
        settings.ghin_email,
        settings.ghin_password,
        base_url=settings.ghin_base_url,
    )
    if not app.state.ghin.configured:
        logger.warning("GHIN credentials not set; GHIN lookups will fail")
    yield
    await app.state.ghin.aclose()
    await db.close()


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed input is a 400, not FastAPI's default 422."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Fairway Strategy API",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    from api.routers import analyses, auth, course_strategy, ghin, payments, rounds, stats
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(analyses.router, prefix="/api", tags=["analyses"])
    app.include_router(rounds.router, prefix="/api/rounds", tags=["rounds"])
    app.include_router(stats.router, prefix="/api/stats", tags=["stats"])
    app.include_router(ghin.router, prefix="/api", tags=["ghin"])
    app.include_router(course_strategy.router, prefix="/api", tags=["course-strategy"])
    app.include_router(payments.router, prefix="/api/payments", tags=["payments"])

    @app.get("/api/health")
    async def health():
        healthy = await db.health_check()
        return {
            "status": "ok" if healthy else "degraded",
            "database": healthy,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()
