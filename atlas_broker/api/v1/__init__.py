"""API v1 routes."""

from fastapi import APIRouter

from atlas_broker.api.v1 import database, health

router = APIRouter()

# Health checks (no prefix, no auth required)
router.include_router(health.router, tags=["health"])

# Plugin lifecycle (plugin token required when configured)
router.include_router(database.router, prefix="/database", tags=["database"])
