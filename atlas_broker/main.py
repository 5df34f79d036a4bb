"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from atlas_broker.api.v1 import router as v1_router
from atlas_broker.core.config import settings
from atlas_broker.core.errors import setup_error_handlers
from atlas_broker.core.middleware import MetricsMiddleware, RequestIDMiddleware
from atlas_broker.services.database import MongoDBAtlas

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Atlas credential broker...")
    yield
    await app.state.database.close()
    logger.info("Shutting down Atlas credential broker...")


def create_app(database: Optional[MongoDBAtlas] = None) -> FastAPI:
    """Create and configure FastAPI application."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title="Atlas Credential Broker",
        description="""
Dynamic MongoDB Atlas database users for a secrets-management host.

## Operations
- **Initialize**: store the Atlas API key pair and project
- **Users**: issue, change password, revoke
- **Root rotation**: always refused

## Error Codes
- `CONFIG_INVALID`, `NOT_INITIALIZED`, `TRANSPORT_FAILED`: Session
- `STATEMENT_EMPTY`, `STATEMENT_MISSING_ROLES`, `STATEMENT_INVALID`: Creation statements
- `REMOTE_API_ERROR`: Atlas rejected or failed the call
        """.strip(),
        version=settings.plugin_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.environment == "development" else None,
        redoc_url="/api/redoc" if settings.environment == "development" else None,
        openapi_tags=[
            {"name": "health", "description": "Health checks and metrics"},
            {"name": "database", "description": "Database user lifecycle"},
        ],
    )

    app.state.database = database or MongoDBAtlas()

    # Metrics middleware (collect metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    # Request ID middleware (added last so it runs first on requests)
    app.add_middleware(RequestIDMiddleware)

    # Error handlers
    setup_error_handlers(app)

    # API routes
    app.include_router(v1_router, prefix="/api/v1")

    return app


app = create_app()
