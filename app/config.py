from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - PostgreSQL (Supabase) for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./salon.db",
        alias="DATABASE_URL"
    )

    # CORS - Admin dashboard URLs (comma-separated)
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        alias="ALLOWED_ORIGINS"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # ==============================================
    # Wix Webhook Settings
    # ==============================================
    # HMAC secret for x-wix-signature. Empty disables the check.
    wix_webhook_secret: str = Field(default="", alias="WIX_WEBHOOK_SECRET")

    # PEM public key for JWT-wrapped webhook envelopes. Empty = decode unverified.
    wix_public_key: str = Field(default="", alias="WIX_PUBLIC_KEY")

    # Max raw body size accepted by the webhook endpoints
    max_payload_bytes: int = Field(default=1024 * 1024, alias="MAX_PAYLOAD_BYTES")

    # Per-IP limit for webhook endpoints
    webhook_rate_limit: str = Field(default="100/minute", alias="WEBHOOK_RATE_LIMIT")

    # Shared rate-limit storage (multiple instances). Empty = in-memory.
    redis_url: str = Field(default="", alias="REDIS_URL")

    # ==============================================
    # Wix REST API (bulk sync)
    # ==============================================
    wix_api_base_url: str = Field(default="https://www.wixapis.com", alias="WIX_API_BASE_URL")
    wix_access_token: str = Field(default="", alias="WIX_ACCESS_TOKEN")
    wix_timeout_seconds: int = Field(default=30, alias="WIX_TIMEOUT_SECONDS")

    sync_batch_size: int = Field(default=100, alias="SYNC_BATCH_SIZE")
    sync_start_date: str = Field(default="2020-01-01", alias="SYNC_START_DATE")

    @field_validator('database_url')
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgres:// but SQLAlchemy needs postgresql://"""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator('sync_batch_size')
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("SYNC_BATCH_SIZE must be at least 1")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def signature_required(self) -> bool:
        """Webhook HMAC is enforced only when a secret is configured"""
        return bool(self.wix_webhook_secret)

    @property
    def rate_limit_storage_uri(self) -> str:
        return self.redis_url or "memory://"

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        if not self.allowed_origins:
            return ["http://localhost:5173"]

        origins = []
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)

        return origins or ["http://localhost:5173"]

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Initialize settings on module load
settings = get_settings()
