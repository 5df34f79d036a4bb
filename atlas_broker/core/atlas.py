"""MongoDB Atlas Admin API client."""

import logging
import time
from typing import Optional
from urllib.parse import quote

import httpx

from atlas_broker.core.config import settings
from atlas_broker.core.errors import ConfigurationError, RemoteAPIError
from atlas_broker.core.metrics import metrics
from atlas_broker.models.atlas import DatabaseUser

logger = logging.getLogger(__name__)

# SCRAM users are always authenticated against the admin database
ADMIN_DATABASE = "admin"


class AtlasClient:
    """Talks to the Atlas Admin API with a programmatic API key pair.

    The Admin API authenticates with HTTP Digest, so the key pair is handed to
    ``httpx.DigestAuth`` rather than sent as a bearer token.
    """

    def __init__(
        self,
        public_key: str,
        private_key: str,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.atlas_base_url).rstrip("/")
        self.user_agent = user_agent or settings.user_agent
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            auth=httpx.DigestAuth(public_key, private_key),
            headers={
                "User-Agent": self.user_agent,
                "Accept": "application/json",
            },
            timeout=timeout if timeout is not None else settings.atlas_request_timeout,
            transport=transport,
        )

    @staticmethod
    def _users_path(project_id: str) -> str:
        if not project_id:
            raise ConfigurationError("project_id is not set")
        return f"/groups/{quote(project_id, safe='')}/databaseUsers"

    def _user_path(self, project_id: str, database_name: str, username: str) -> str:
        return (
            f"{self._users_path(project_id)}/"
            f"{quote(database_name, safe='')}/{quote(username, safe='')}"
        )

    async def _request(
        self, method: str, path: str, payload: Optional[dict] = None
    ) -> httpx.Response:
        """
        Send a single request to the Admin API.

        Every call is attempted exactly once; failures are reported as
        RemoteAPIError with the Atlas error body attached.
        """
        start_time = time.time()
        try:
            response = await self._http.request(method, path, json=payload)
        except httpx.HTTPError as e:
            metrics.record_atlas_call(method, "error", time.time() - start_time)
            logger.warning(f"Atlas API {method} {path} failed: {type(e).__name__}")
            raise RemoteAPIError(f"Atlas API request failed: {e}") from e

        duration = time.time() - start_time
        if response.is_error:
            metrics.record_atlas_call(method, "error", duration)
            raise self._error_from_response(method, path, response)

        metrics.record_atlas_call(method, "success", duration)
        return response

    @staticmethod
    def _error_from_response(
        method: str, path: str, response: httpx.Response
    ) -> RemoteAPIError:
        """Build a RemoteAPIError from an Atlas error response body."""
        error_code = None
        detail = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error_code = body.get("errorCode")
            detail = body.get("detail") or body.get("reason")
        if detail is None and response.text:
            detail = response.text[:500]

        message = f"{method} {path}: {response.status_code}"
        if error_code:
            message += f" ({error_code})"
        if detail:
            message += f" {detail}"
        return RemoteAPIError(
            message,
            http_status=response.status_code,
            error_code=error_code,
            detail=detail,
        )

    async def create_database_user(
        self, project_id: str, user: DatabaseUser
    ) -> None:
        """
        Create a database user in the given project.

        The response body is not read: once Atlas answers with a success status
        the user exists, whatever the body looks like.
        """
        await self._request("POST", self._users_path(project_id), user.to_payload())

    async def update_database_user(
        self,
        project_id: str,
        username: str,
        user: DatabaseUser,
        database_name: str = ADMIN_DATABASE,
    ) -> None:
        """Update only the fields set on ``user`` for an existing database user."""
        await self._request(
            "PATCH",
            self._user_path(project_id, database_name, username),
            user.to_payload(),
        )

    async def delete_database_user(
        self,
        project_id: str,
        username: str,
        database_name: str = ADMIN_DATABASE,
    ) -> None:
        """Delete a database user."""
        await self._request("DELETE", self._user_path(project_id, database_name, username))

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._http.aclose()
