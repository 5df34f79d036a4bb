"""Input validation utilities."""

import json
import re

from pydantic import ValidationError

from atlas_broker.core.errors import (
    InvalidStatementError,
    InvalidUsernameError,
    MissingRolesError,
)
from atlas_broker.models.database import CreationStatement

# Atlas accepts letters, digits and a few separators in database usernames
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9._@-]+$")
USERNAME_DISALLOWED = re.compile(r"[^A-Za-z0-9._@-]")

MAX_USERNAME_LENGTH = 1024

DEFAULT_DATABASE_NAME = "admin"


def sanitize_username_fragment(fragment: str) -> str:
    """Drop every character Atlas would reject from a username fragment."""
    return USERNAME_DISALLOWED.sub("", fragment)


def validate_username(username: str) -> str:
    """
    Validate a generated username before it is sent to Atlas.

    Args:
        username: Username to validate

    Returns:
        Validated username

    Raises:
        InvalidUsernameError: If the username is empty, too long or has
            characters Atlas does not accept
    """
    if not username:
        raise InvalidUsernameError(username, "username cannot be empty")

    if len(username) > MAX_USERNAME_LENGTH:
        raise InvalidUsernameError(
            username[:64],
            f"username exceeds maximum length of {MAX_USERNAME_LENGTH}",
        )

    if not USERNAME_PATTERN.match(username):
        raise InvalidUsernameError(
            username,
            "username must contain only letters, numbers, and the characters . _ @ -",
        )

    return username


def parse_creation_statement(document: str) -> CreationStatement:
    """
    Decode a creation statement and apply its defaults.

    Args:
        document: JSON document, e.g.
            ``{"database_name": "admin", "roles": [{"databaseName": "admin", "roleName": "read"}]}``

    Returns:
        Statement with ``database_name`` defaulted to ``admin``

    Raises:
        InvalidStatementError: If the document is not a JSON object of the expected shape
        MissingRolesError: If the roles array is empty
    """
    try:
        statement = CreationStatement.model_validate(json.loads(document))
    except json.JSONDecodeError as e:
        raise InvalidStatementError(str(e)) from e
    except ValidationError as e:
        raise InvalidStatementError(
            "; ".join(err["msg"] for err in e.errors())
        ) from e

    if not statement.database_name:
        statement.database_name = DEFAULT_DATABASE_NAME

    if not statement.roles:
        raise MissingRolesError()

    return statement
