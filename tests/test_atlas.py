"""Tests for the Atlas Admin API client."""

import json

import httpx
import pytest

from atlas_broker.core.atlas import AtlasClient
from atlas_broker.core.errors import ConfigurationError, RemoteAPIError
from atlas_broker.models.atlas import DatabaseUser, Role

BASE_URL = "https://cloud.mongodb.com/api/atlas/v1.0"


def make_client(handler) -> AtlasClient:
    return AtlasClient(
        public_key="pub",
        private_key="priv",
        base_url=BASE_URL,
        user_agent="atlas-broker/test",
        transport=httpx.MockTransport(handler),
    )


class TestDatabaseUsers:
    """Tests for the databaseUsers endpoints."""

    @pytest.mark.asyncio
    async def test_create_database_user(self):
        """Create posts the user to the project's databaseUsers collection."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json=json.loads(request.content))

        client = make_client(handler)
        user = DatabaseUser(
            username="v-test-abc",
            password="secret",
            database_name="admin",
            roles=[Role(database_name="admin", role_name="readWriteAnyDatabase")],
        )
        await client.create_database_user("proj-1", user)
        await client.aclose()

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/api/atlas/v1.0/groups/proj-1/databaseUsers"
        assert request.headers["User-Agent"] == "atlas-broker/test"
        assert json.loads(request.content) == {
            "username": "v-test-abc",
            "password": "secret",
            "databaseName": "admin",
            "roles": [{"databaseName": "admin", "roleName": "readWriteAnyDatabase"}],
        }

    @pytest.mark.asyncio
    async def test_update_database_user(self):
        """Update patches the admin-scoped user with only the given fields."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"username": "testmongouser"})

        client = make_client(handler)
        await client.update_database_user(
            "proj-1", "testmongouser", DatabaseUser(password="new")
        )
        await client.aclose()

        assert seen[0].method == "PATCH"
        assert seen[0].url.path == "/api/atlas/v1.0/groups/proj-1/databaseUsers/admin/testmongouser"
        assert json.loads(seen[0].content) == {"password": "new"}

    @pytest.mark.asyncio
    async def test_delete_database_user(self):
        """Delete addresses the user under the admin database."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        client = make_client(handler)
        await client.delete_database_user("proj-1", "v-test-abc")
        await client.aclose()

        assert len(seen) == 1
        assert seen[0].method == "DELETE"
        assert seen[0].url.path == "/api/atlas/v1.0/groups/proj-1/databaseUsers/admin/v-test-abc"

    @pytest.mark.asyncio
    async def test_empty_response_body(self):
        """A success without a body is still a success."""
        client = make_client(lambda request: httpx.Response(202))
        await client.update_database_user("proj-1", "u", DatabaseUser(password="new"))
        await client.aclose()

    @pytest.mark.asyncio
    async def test_non_json_success_body(self):
        """A created user is reported as created even if the body is not JSON."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, text="<html>created</html>")

        client = make_client(handler)
        await client.create_database_user("proj-1", DatabaseUser(username="u", password="p"))
        await client.aclose()
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_unexpected_success_body(self):
        """A JSON body that does not look like a user is not validated."""
        client = make_client(lambda request: httpx.Response(201, json=["unexpected"]))
        await client.create_database_user("proj-1", DatabaseUser(username="u", password="p"))
        await client.aclose()

    @pytest.mark.asyncio
    async def test_missing_project_id(self):
        """User management calls need a project id and make no request without one."""
        seen = []
        client = make_client(lambda request: seen.append(request) or httpx.Response(204))
        with pytest.raises(ConfigurationError):
            await client.delete_database_user("", "v-test-abc")
        await client.aclose()
        assert seen == []


class TestErrors:
    """Tests for error reporting."""

    @pytest.mark.asyncio
    async def test_atlas_error_body(self):
        """Atlas error code and detail are carried on RemoteAPIError."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                409,
                json={
                    "detail": "The specified database user already exists.",
                    "errorCode": "USER_ALREADY_EXISTS",
                    "error": 409,
                    "reason": "Conflict",
                },
            )

        client = make_client(handler)
        with pytest.raises(RemoteAPIError) as exc_info:
            await client.create_database_user("proj-1", DatabaseUser(username="u"))
        await client.aclose()

        error = exc_info.value
        assert error.http_status == 409
        assert error.error_code == "USER_ALREADY_EXISTS"
        assert error.details["detail"] == "The specified database user already exists."
        assert "USER_ALREADY_EXISTS" in error.message

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        client = make_client(lambda request: httpx.Response(500, text="upstream exploded"))
        with pytest.raises(RemoteAPIError) as exc_info:
            await client.delete_database_user("proj-1", "u")
        await client.aclose()
        assert exc_info.value.http_status == 500
        assert exc_info.value.details["detail"] == "upstream exploded"

    @pytest.mark.asyncio
    async def test_transport_failure_is_attempted_once(self):
        """Network errors surface as RemoteAPIError after a single attempt."""
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(RemoteAPIError) as exc_info:
            await client.delete_database_user("proj-1", "u")
        await client.aclose()

        assert len(attempts) == 1
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestDigestAuth:
    """Tests for HTTP Digest authentication."""

    @pytest.mark.asyncio
    async def test_answers_digest_challenge(self):
        """A 401 digest challenge is answered with a Digest Authorization header."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if "Authorization" not in request.headers:
                return httpx.Response(
                    401,
                    headers={
                        "WWW-Authenticate": 'Digest realm="MMS Public API", '
                        'nonce="abc123", qop="auth"'
                    },
                )
            return httpx.Response(204)

        client = make_client(handler)
        await client.delete_database_user("proj-1", "u")
        await client.aclose()

        assert len(seen) == 2
        authorization = seen[1].headers["Authorization"]
        assert authorization.startswith("Digest ")
        assert 'username="pub"' in authorization
        assert "priv" not in authorization
