"""Credential lifecycle for MongoDB Atlas database users."""

import functools
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from atlas_broker.core.errors import (
    APIException,
    ConfigurationError,
    EmptyStatementError,
    RootRotationNotSupportedError,
    sanitize_exception,
)
from atlas_broker.core.metrics import metrics
from atlas_broker.core.session import AtlasSession
from atlas_broker.core.validation import parse_creation_statement, validate_username
from atlas_broker.models.atlas import DatabaseUser
from atlas_broker.models.database import (
    DeleteUserRequest,
    EmptyResponse,
    InitializeRequest,
    InitializeResponse,
    NewUserRequest,
    NewUserResponse,
    SessionConfig,
    UpdateUserRequest,
    UsernameMetadata,
)
from atlas_broker.services.usernames import (
    TemplateError,
    UsernameTemplate,
    generate_default_username,
)

logger = logging.getLogger(__name__)

MONGODB_ATLAS_TYPE_NAME = "mongodbatlas"


def lifecycle_operation(operation: str):
    """
    Record the outcome of a lifecycle operation and scrub secrets from its errors.

    Any APIException leaving the operation has every configured secret value
    replaced by its placeholder before the host or the logs see it.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                result = await func(self, *args, **kwargs)
            except APIException as e:
                metrics.record_lifecycle_operation(operation, "failure")
                raise sanitize_exception(e, self.secret_values())
            except Exception:
                metrics.record_lifecycle_operation(operation, "failure")
                raise
            metrics.record_lifecycle_operation(operation, "success")
            return result

        return wrapper

    return decorator


class MongoDBAtlas:
    """Issues, rotates and revokes Atlas database users.

    All remote work goes through one :class:`AtlasSession`; every operation
    that touches the session holds its lock for the whole call, so no two
    lifecycle operations ever overlap against the same project.
    """

    def __init__(self, session: Optional[AtlasSession] = None):
        self.session = session or AtlasSession()
        # Guarded by the session lock, like the session's own fields
        self.raw_config: Dict[str, Any] = {}
        self._username_template: Optional[UsernameTemplate] = None

    def type(self) -> str:
        return MONGODB_ATLAS_TYPE_NAME

    def secret_values(self) -> Dict[str, str]:
        """Sensitive config values mapped to the placeholder that replaces them."""
        config = self.session.config
        if config is None or not config.private_key:
            return {}
        return {config.private_key: "[private_key]"}

    @staticmethod
    def _decode_config(document: Dict[str, Any]) -> SessionConfig:
        try:
            return SessionConfig.model_validate(document)
        except ValidationError as e:
            fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
            raise ConfigurationError(
                f"invalid configuration fields: {', '.join(fields)}",
                details={"fields": fields},
            ) from e

    @staticmethod
    def _parse_username_template(template: str) -> Optional[UsernameTemplate]:
        if not template:
            return None
        try:
            return UsernameTemplate(template)
        except TemplateError as e:
            raise ConfigurationError(f"unable to initialize username template: {e}") from e

    @lifecycle_operation("initialize")
    async def initialize(self, request: InitializeRequest) -> InitializeResponse:
        """
        Validate and store the connection config.

        The Atlas client is built lazily on first use unless
        ``verify_connection`` asks for it now. Calling this again replaces the
        config but keeps any client already built.
        """
        async with self.session.locked():
            config = self._decode_config(request.config)
            template = self._parse_username_template(config.username_template)

            self.session.configure(config)
            self.raw_config = request.config
            self._username_template = template

            if request.verify_connection:
                self.session.connection()

        logger.info(
            "Initialized Atlas plugin",
            extra={
                "event": "plugin_initialized",
                "project_id": config.project_id,
                "verify_connection": request.verify_connection,
            },
        )
        return InitializeResponse(config=request.config)

    def _generate_username(self, metadata: UsernameMetadata) -> str:
        if self._username_template is not None:
            username = self._username_template.render(metadata)
        else:
            username = generate_default_username(metadata)
        return validate_username(username)

    @lifecycle_operation("new_user")
    async def new_user(self, request: NewUserRequest) -> NewUserResponse:
        """
        Create a database user from the first creation statement.

        The password is the one the host supplied; it is never echoed back.
        The create call is not retried: a transport error on the response
        cannot tell whether Atlas created the user.
        """
        async with self.session.locked():
            if not request.statements.commands:
                raise EmptyStatementError()

            client = self.session.connection()

            username = self._generate_username(request.username_config)

            # Only the first statement is consulted
            statement = parse_creation_statement(request.statements.commands[0])

            project_id = self.session.config.project_id
            database_user = DatabaseUser(
                username=username,
                password=request.password,
                database_name=statement.database_name,
                group_id=project_id or None,
                roles=statement.roles,
                scopes=statement.scopes,
            )
            await client.create_database_user(project_id, database_user)

        logger.info(
            f"Created database user {username}",
            extra={
                "event": "user_created",
                "username": username,
                "project_id": project_id,
                "database_name": statement.database_name,
                "role_name": request.username_config.role_name,
            },
        )
        return NewUserResponse(username=username)

    @lifecycle_operation("update_user")
    async def update_user(self, request: UpdateUserRequest) -> EmptyResponse:
        """Change a user's password; anything else (e.g. lease renewal) is a no-op."""
        if request.password is not None:
            await self._change_password(request.username, request.password.new_password)
            return EmptyResponse()

        logger.debug(f"No password change for {request.username}, nothing to update")
        return EmptyResponse()

    async def _change_password(self, username: str, password: str) -> None:
        async with self.session.locked():
            client = self.session.connection()
            project_id = self.session.config.project_id

            # Only the password is sent; roles and database scope stay as they are
            await client.update_database_user(
                project_id, username, DatabaseUser(password=password)
            )

        logger.info(
            f"Changed password for database user {username}",
            extra={"event": "user_password_changed", "username": username},
        )

    @lifecycle_operation("delete_user")
    async def delete_user(self, request: DeleteUserRequest) -> EmptyResponse:
        """Delete a user. Whatever Atlas reports, including not-found, is passed on."""
        async with self.session.locked():
            client = self.session.connection()
            project_id = self.session.config.project_id
            await client.delete_database_user(project_id, request.username)

        logger.info(
            f"Deleted database user {request.username}",
            extra={"event": "user_deleted", "username": request.username},
        )
        return EmptyResponse()

    @lifecycle_operation("rotate_root_credentials")
    async def rotate_root_credentials(self, statements: Optional[List[str]] = None):
        """Root credential rotation is not supported; the API key pair is left alone."""
        raise RootRotationNotSupportedError()

    async def close(self) -> None:
        await self.session.close()
