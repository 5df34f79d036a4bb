"""Atlas Admin API wire models."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(BaseModel):
    """A role granted to a database user, passed through to Atlas as-is."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    database_name: str = Field("", alias="databaseName")
    role_name: str = Field("", alias="roleName")
    collection_name: Optional[str] = Field(None, alias="collectionName")


class Scope(BaseModel):
    """A cluster or data lake the user is limited to, passed through to Atlas as-is."""

    model_config = ConfigDict(extra="allow")

    name: str
    type: str


class DatabaseUser(BaseModel):
    """Request/response body of the ``databaseUsers`` endpoints."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    username: Optional[str] = None
    password: Optional[str] = None
    database_name: Optional[str] = Field(None, alias="databaseName")
    group_id: Optional[str] = Field(None, alias="groupId")
    roles: Optional[List[Role]] = None
    scopes: Optional[List[Scope]] = None

    def to_payload(self) -> dict:
        """Serialize with Atlas field names, leaving unset fields out."""
        return self.model_dump(by_alias=True, exclude_none=True)
