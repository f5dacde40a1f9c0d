"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with TOKENGATE_ prefix.
Loaded once at startup; the secret key and token lifetime are read-only
for the lifetime of the process.
"""

from datetime import timedelta

from pydantic import model_validator
from pydantic_settings import BaseSettings

DEV_SECRET = "change-me-in-production-this-is-not-a-secret"


class Settings(BaseSettings):
    """All app configuration. Set via TOKENGATE_* env vars."""

    # Database (user-record store)
    database_url: str = "sqlite+aiosqlite:///./tokengate.db"
    auto_create_schema: bool = True

    # Auth
    jwt_secret: str = DEV_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    bcrypt_rounds: int = 12
    token_debug_headers: bool = False  # X-Token-* headers on every response
    hsts_max_age: int = 31536000  # seconds; sent on HTTPS only

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    model_config = {"env_prefix": "TOKENGATE_"}

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.access_token_expire_minutes)

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure the signing secret is changed in non-development environments."""
        if self.environment != "development" and self.jwt_secret == DEV_SECRET:
            raise ValueError(
                "TOKENGATE_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        if self.access_token_expire_minutes < 0:
            raise ValueError("TOKENGATE_ACCESS_TOKEN_EXPIRE_MINUTES must not be negative")
        return self


# Singleton — import this everywhere
settings = Settings()
