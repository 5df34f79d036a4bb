"""Shared FastAPI dependency functions."""

import secrets

from fastapi import Depends, Request

from atlas_broker.core.config import settings
from atlas_broker.core.errors import PluginAuthError
from atlas_broker.services.database import MongoDBAtlas


def require_plugin_token(request: Request) -> None:
    """Reject requests whose ``X-Plugin-Token`` does not match the configured token.

    With no token configured (development only) every request is accepted.
    """
    if not settings.plugin_token:
        return
    token = request.headers.get("X-Plugin-Token", "")
    if not secrets.compare_digest(token.encode(), settings.plugin_token.encode()):
        raise PluginAuthError()


def get_database(
    request: Request, _: None = Depends(require_plugin_token)
) -> MongoDBAtlas:
    """Return the :class:`MongoDBAtlas` instance owned by the application."""
    return request.app.state.database
