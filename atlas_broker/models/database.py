"""Models for the database plugin lifecycle operations."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from atlas_broker.models.atlas import Role, Scope


class SessionConfig(BaseModel):
    """Connection settings decoded from the host-supplied config document.

    Unknown keys are ignored and numbers and booleans are coerced to
    strings, so a document that carries extra host fields still decodes.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, frozen=True)

    public_key: str = ""
    private_key: str = ""
    project_id: str = ""
    username_template: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def bool_to_str(cls, value: Any) -> Any:
        # Booleans decode to "1" and "0"
        if isinstance(value, bool):
            return "1" if value else "0"
        return value


class InitializeRequest(BaseModel):
    """Request to (re)initialize the plugin."""
    config: Dict[str, Any] = Field(default_factory=dict, description="Raw config document")
    verify_connection: bool = Field(False, description="Build the API client immediately")


class InitializeResponse(BaseModel):
    """Initialize response echoing the config document."""
    config: Dict[str, Any]


class UsernameMetadata(BaseModel):
    """Metadata the host provides for username generation."""
    display_name: str = ""
    role_name: str = ""


class Statements(BaseModel):
    """Creation/revocation statements as raw JSON documents."""
    commands: List[str] = Field(default_factory=list)


class NewUserRequest(BaseModel):
    """Request to issue a new database user."""
    username_config: UsernameMetadata = Field(default_factory=UsernameMetadata)
    statements: Statements = Field(default_factory=Statements)
    password: str = Field(..., min_length=1, description="Password chosen by the host")
    expiration: Optional[datetime] = None


class NewUserResponse(BaseModel):
    """Username of the issued user."""
    username: str


class ChangePassword(BaseModel):
    """Password change directive."""
    new_password: str = Field(..., min_length=1)
    statements: Statements = Field(default_factory=Statements)


class ChangeExpiration(BaseModel):
    """Lease renewal notification; needs no remote action."""
    new_expiration: datetime
    statements: Statements = Field(default_factory=Statements)


class UpdateUserRequest(BaseModel):
    """Request to update an existing database user."""
    username: str = Field(..., min_length=1)
    password: Optional[ChangePassword] = None
    expiration: Optional[ChangeExpiration] = None


class UpdateUserBody(BaseModel):
    """HTTP body for user updates; the username comes from the path."""
    password: Optional[ChangePassword] = None
    expiration: Optional[ChangeExpiration] = None


class DeleteUserRequest(BaseModel):
    """Request to revoke a database user."""
    username: str = Field(..., min_length=1)
    statements: Statements = Field(default_factory=Statements)


class RotateRootRequest(BaseModel):
    """Root rotation request; accepted only to be refused."""
    statements: List[str] = Field(default_factory=list)


class EmptyResponse(BaseModel):
    """Response body of operations with no result."""


class TypeResponse(BaseModel):
    """Plugin type name."""
    type: str


class CreationStatement(BaseModel):
    """Decoded creation statement.

    Only ``database_name``, ``roles`` and ``scopes`` are read; other keys are
    ignored. Without ``scopes`` the user can reach every cluster in the project.
    """

    model_config = ConfigDict(extra="ignore")

    database_name: Optional[str] = None
    roles: List[Role] = Field(default_factory=list)
    scopes: Optional[List[Scope]] = None
