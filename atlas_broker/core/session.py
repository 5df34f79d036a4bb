"""Atlas API session management."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

import httpx

from atlas_broker.core.atlas import AtlasClient
from atlas_broker.core.errors import (
    ConfigurationError,
    NotInitializedError,
    TransportError,
)
from atlas_broker.core.metrics import metrics
from atlas_broker.models.database import SessionConfig

logger = logging.getLogger(__name__)

ClientFactory = Callable[[SessionConfig], AtlasClient]


def build_atlas_client(config: SessionConfig) -> AtlasClient:
    """Default factory: a digest-authenticated client for the configured key pair."""
    return AtlasClient(public_key=config.public_key, private_key=config.private_key)


class AtlasSession:
    """Owns the one shared Atlas API client and the lock that guards it.

    Every field below except ``_lock`` and ``_client_factory`` is protected by
    ``_lock``: the config, the initialized flag and the cached client. The
    lock and the factory never change after construction.

    The client is built lazily on first use and cached until :meth:`close`.
    It is either absent or valid; a failed construction leaves it absent so
    the next call starts over.
    """

    def __init__(self, client_factory: Optional[ClientFactory] = None):
        self._lock = asyncio.Lock()
        self._client_factory = client_factory or build_atlas_client
        self._config: Optional[SessionConfig] = None
        self._initialized = False
        self._client: Optional[AtlasClient] = None

    @property
    def config(self) -> Optional[SessionConfig]:
        return self._config

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def has_client(self) -> bool:
        return self._client is not None

    @asynccontextmanager
    async def locked(self) -> AsyncIterator["AtlasSession"]:
        """Hold the session lock for the duration of a lifecycle operation."""
        async with self._lock:
            yield self

    def configure(self, config: SessionConfig) -> None:
        """
        Store a validated config. Caller must hold the lock.

        An already cached client is kept; call :meth:`close` first for a hard
        reset.
        """
        if not config.public_key:
            raise ConfigurationError("public key is not set")
        if not config.private_key:
            raise ConfigurationError("private key is not set")
        self._config = config
        # Connection is established lazily on first use
        self._initialized = True

    async def initialize(self, config: SessionConfig) -> None:
        """Store config under the lock."""
        async with self._lock:
            self.configure(config)

    def connection(self) -> AtlasClient:
        """
        Return the cached client, building it if needed. Caller must hold the lock.

        Raises:
            NotInitializedError: If no config has been stored yet
            TransportError: If the client could not be constructed
        """
        if not self._initialized or self._config is None:
            raise NotInitializedError()

        if self._client is not None:
            return self._client

        try:
            client = self._client_factory(self._config)
        except (httpx.InvalidURL, httpx.HTTPError, ValueError, TypeError, OSError) as e:
            metrics.record_client_construction("failure")
            logger.error(f"Failed to construct Atlas API client: {type(e).__name__}")
            raise TransportError(f"failed to construct Atlas API client: {e}") from e

        metrics.record_client_construction("success")
        logger.info(f"Constructed Atlas API client for {client.base_url}")
        self._client = client
        return self._client

    async def get_client(self) -> AtlasClient:
        """Return the shared client, acquiring the lock."""
        async with self._lock:
            return self.connection()

    async def close(self) -> None:
        """Drop the cached client. Safe to call when no client exists."""
        async with self._lock:
            client, self._client = self._client, None
            if client is not None:
                await client.aclose()
                logger.info("Atlas API client closed")
