"""Application configuration."""

import warnings

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = "development"
    debug: bool = False

    # Plugin identity
    plugin_name: str = "atlas-broker"
    plugin_version: str = "0.1.0"

    # Host authentication
    plugin_token: str = ""  # Shared secret the host sends as X-Plugin-Token

    # Atlas Admin API
    atlas_base_url: str = "https://cloud.mongodb.com/api/atlas/v1.0"
    atlas_request_timeout: float = 30.0  # seconds

    # Logging
    log_level: str = "INFO"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.plugin_token:
            if self.environment == "production":
                raise ValueError(
                    "PLUGIN_TOKEN must be set in production environment"
                )
            warnings.warn(
                "PLUGIN_TOKEN not set, database endpoints are unauthenticated. "
                "Set PLUGIN_TOKEN in production!",
                UserWarning,
            )

    @property
    def user_agent(self) -> str:
        """Product user agent sent with every Atlas API call."""
        return f"{self.plugin_name}/{self.plugin_version} (+python-httpx)"


settings = Settings()
