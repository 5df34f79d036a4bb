"""Database plugin lifecycle endpoints."""

import logging

from fastapi import APIRouter, Depends, status

from atlas_broker.core.deps import get_database
from atlas_broker.models.database import (
    DeleteUserRequest,
    EmptyResponse,
    InitializeRequest,
    InitializeResponse,
    NewUserRequest,
    NewUserResponse,
    RotateRootRequest,
    TypeResponse,
    UpdateUserBody,
    UpdateUserRequest,
)
from atlas_broker.services.database import MongoDBAtlas

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/initialize", response_model=InitializeResponse)
async def initialize(
    request: InitializeRequest,
    database: MongoDBAtlas = Depends(get_database),
) -> InitializeResponse:
    """
    Configure the Atlas API key pair and project.

    The config document is echoed back unchanged. No Atlas call is made unless
    ``verify_connection`` is set.
    """
    return await database.initialize(request)


@router.post("/users", response_model=NewUserResponse, status_code=status.HTTP_201_CREATED)
async def new_user(
    request: NewUserRequest,
    database: MongoDBAtlas = Depends(get_database),
) -> NewUserResponse:
    """Issue a database user from the first creation statement."""
    return await database.new_user(request)


@router.patch("/users/{username}", response_model=EmptyResponse)
async def update_user(
    username: str,
    body: UpdateUserBody,
    database: MongoDBAtlas = Depends(get_database),
) -> EmptyResponse:
    """Change a user's password. Renewal-only updates succeed without an Atlas call."""
    return await database.update_user(
        UpdateUserRequest(username=username, password=body.password, expiration=body.expiration)
    )


@router.delete("/users/{username}", response_model=EmptyResponse)
async def delete_user(
    username: str,
    database: MongoDBAtlas = Depends(get_database),
) -> EmptyResponse:
    """Revoke a database user."""
    return await database.delete_user(DeleteUserRequest(username=username))


@router.post("/rotate-root", status_code=status.HTTP_501_NOT_IMPLEMENTED)
async def rotate_root_credentials(
    request: RotateRootRequest,
    database: MongoDBAtlas = Depends(get_database),
):
    """Always refused: the Atlas API key pair is never rotated by this plugin."""
    return await database.rotate_root_credentials(request.statements)


@router.get("/type", response_model=TypeResponse)
async def plugin_type(database: MongoDBAtlas = Depends(get_database)) -> TypeResponse:
    """Plugin type name."""
    return TypeResponse(type=database.type())


@router.post("/close", response_model=EmptyResponse)
async def close(database: MongoDBAtlas = Depends(get_database)) -> EmptyResponse:
    """Drop the cached Atlas client; the stored config is kept."""
    await database.close()
    return EmptyResponse()
