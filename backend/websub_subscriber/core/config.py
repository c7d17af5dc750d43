"""Application configuration loaded from environment variables.

Settings for the database, the public callback host, hub requests and
rate limiting. Uses pydantic-settings for validation and .env file support.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "websub_dev_password"  # nosec B105

_DEFAULT_WEBSUB_HOST = "http://localhost:8000"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "websub_subscriber"
    database_user: str = "websub_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD
    database_create_schema: bool = True

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # WebSub
    # Public scheme://host[:port] prefixed onto callback paths. Hubs call back
    # on this address, so it must be reachable from the outside in production.
    websub_host: str = _DEFAULT_WEBSUB_HOST
    websub_base_path: str = "/websub"
    default_lease_seconds: int | None = None
    hub_request_timeout_seconds: float = 10.0
    hub_user_agent: str = "websub-subscriber/1.0"

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Rate Limiting (Security)
    # Subscribing triggers outbound requests to arbitrary hubs.
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_subscribe: str = "10/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants.

        Checks:
        - WEBSUB_HOST must not end with a slash (callbacks are host + path)
        - WEBSUB_BASE_PATH must start with a slash and not end with one
        - Lease and timeout values must be positive
        - Database password must not be the default in production
        - WEBSUB_HOST must be set explicitly in production
        """
        if self.websub_host.endswith("/"):
            msg = (
                "WEBSUB_HOST must not end with '/'. "
                f"Got: {self.websub_host}"
            )
            raise ValueError(msg)

        if not self.websub_base_path.startswith("/") or (
            self.websub_base_path.endswith("/")
        ):
            msg = (
                "WEBSUB_BASE_PATH must start with '/' and must not end with '/'. "
                f"Got: {self.websub_base_path}"
            )
            raise ValueError(msg)

        if self.default_lease_seconds is not None and self.default_lease_seconds <= 0:
            msg = (
                "DEFAULT_LEASE_SECONDS must be positive. "
                f"Got: {self.default_lease_seconds}"
            )
            raise ValueError(msg)

        if self.hub_request_timeout_seconds <= 0:
            msg = (
                "HUB_REQUEST_TIMEOUT_SECONDS must be positive. "
                f"Got: {self.hub_request_timeout_seconds}"
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            if self.websub_host == _DEFAULT_WEBSUB_HOST:
                msg = (
                    "WEBSUB_HOST must be set in production. "
                    "Hubs cannot reach callbacks on the default localhost address."
                )
                raise ValueError(msg)

        return self


settings = Settings()
