"""Application configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed settings exposed via dependency injection throughout the app."""

    # Read .env with BOM tolerance; case-sensitive keys
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=True,
    )

    APP_NAME: str = "Retailer Desk API"
    ENV: str = "dev"  # dev | staging | prod
    DEBUG: bool = False

    # JWT
    SECRET_KEY: str  # set via env/.env
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    JWT_ISSUER: str = "retailer-desk-api"
    JWT_AUDIENCE: str = "retailer-desk-clients"

    # CORS
    CORS_ALLOWED_ORIGINS: list[str] = Field(default_factory=list)

    # DB
    DB_HOST: str = "127.0.0.1"
    DB_PORT: int = 3306
    DB_USER: str = "appadmin"
    DB_PASSWORD: str = ""  # set via env/.env
    DB_NAME: str = "retailer_desk"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_RETRY_ATTEMPTS: int = 4
    DB_RETRY_BASE_DELAY: float = 0.05
    DB_RETRY_JITTER: float = 0.025
    # Full SQLAlchemy async URL; takes precedence over the DB_* parts when set.
    DATABASE_URL_OVERRIDE: str | None = None

    # Redis cache (the API keeps working on the in-memory fallback without it)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str | None = None
    REDIS_ENABLED: bool = True
    REDIS_SOCKET_TIMEOUT: float = 0.5
    CACHE_MEMORY_MAX_ENTRIES: int = 1000

    # Single records and reference data change rarely; scoped lists change
    # with every assignment.
    CACHE_TTL_RECORD: int = 3600
    CACHE_TTL_REFERENCE: int = 3600
    CACHE_TTL_LIST: int = 300

    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # CSV import
    IMPORT_BATCH_SIZE: int = 100
    IMPORT_MAX_ERRORS: int = 50
    CSV_MAX_CONCURRENCY: int = 2
    IMPORT_RATE: str = "5/minute"
    LOGIN_RATE: str = "10/minute"
    SECURITY_MAX_CONCURRENCY: int = 4
    # Maximum allowed upload size for user-supplied files.
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024  # 5 MB

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"mysql+aiomysql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?charset=utf8mb4"
        )


settings = Settings()
