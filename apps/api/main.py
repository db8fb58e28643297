"""Statement Ledger API — FastAPI entry point.

Serves statement ingestion and health routes under /api/v1 with RFC 7807
error bodies and CORS origins taken from config.
"""

import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apps.api.core.config import settings
from apps.api.core.errors import register_error_handlers
from apps.api.core.logging import setup_logging
from apps.api.domains.ingestion.router import router as ingestion_router
from apps.api.routers import health

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup/shutdown hooks."""
    setup_logging(
        log_level=settings.log_level,
        json_output=settings.is_production,
    )
    logger.info(
        "app_starting",
        version=settings.APP_VERSION,
        max_upload_bytes=settings.MAX_UPLOAD_BYTES,
    )
    yield
    logger.info("app_stopping")


app = FastAPI(
    title="Statement Ledger API",
    description="Parses bank statements into a transaction ledger.",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ingestion_router, prefix="/api/v1")
app.include_router(health.router, prefix="/api/v1")
