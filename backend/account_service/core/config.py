"""Application configuration loaded from environment variables.

Settings for database, API, authentication, email delivery, and rate
limiting. Uses pydantic-settings for validation and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "account_service_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32

# bcrypt accepts cost factors 4..31
_MIN_BCRYPT_ROUNDS = 4
_MAX_BCRYPT_ROUNDS = 31


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
    database_name: str = "account_service"
    database_user: str = "account_service_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 5050

    # CORS (Security)
    # Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:8080"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Authentication
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "account-service"
    auth_audience: str = "account-service"
    session_token_ttl_seconds: int = 3600
    bcrypt_rounds: int = 12

    # One-time tokens (milliseconds)
    reset_password_token_ttl_ms: int = 60 * 60 * 1000
    email_verification_token_ttl_ms: int = 24 * 60 * 60 * 1000

    # Email
    # "resend" posts to the Resend API; "log" only logs (local development)
    email_backend: Literal["resend", "log"] = "log"
    email_from: str = "noreply@app.com"
    resend_api_key: SecretStr = SecretStr("")

    # Frontend URL (reset and verification links point here)
    frontend_url: str = "http://localhost:8080"

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "3/15minute")
    rate_limit_login: str = "5/15minute"
    rate_limit_register: str = "3/hour"
    rate_limit_forgot_password: str = "3/15minute"
    rate_limit_resend_verification: str = "3/15minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants and production security.

        Checks:
        - Token TTLs must be positive (all environments)
        - bcrypt cost factor must be within bcrypt's accepted range
        - CORS must not use wildcard origin (incompatible with credentials)
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        """
        for name in (
            "session_token_ttl_seconds",
            "reset_password_token_ttl_ms",
            "email_verification_token_ttl_ms",
        ):
            if getattr(self, name) <= 0:
                msg = f"{name.upper()} must be positive. Got: {getattr(self, name)}"
                raise ValueError(msg)

        if not _MIN_BCRYPT_ROUNDS <= self.bcrypt_rounds <= _MAX_BCRYPT_ROUNDS:
            msg = (
                f"BCRYPT_ROUNDS must be between {_MIN_BCRYPT_ROUNDS} and "
                f"{_MAX_BCRYPT_ROUNDS}. Got: {self.bcrypt_rounds}"
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "Credentialed CORS requests are incompatible with wildcard origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if not secret_value:
                msg = (
                    "AUTH_SECRET must be set in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters for adequate security."
                )
                raise ValueError(msg)

        return self


settings = Settings()
