import secrets
from typing import Annotated, Optional

from pydantic import (
    AnyUrl,
    BeforeValidator,
    computed_field,
)
from pydantic_core import MultiHostUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # API Configuration
    API_PREFIX: str = "/api"
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8  # 8 days
    JWT_ALGORITHM: str = "HS256"

    # Server Configuration
    SERVER_HOST: str = "http://localhost"
    SERVER_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS Configuration
    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str,
        BeforeValidator(lambda x: x.split(",") if isinstance(x, str) else x),
    ] = []

    # Project Configuration
    PROJECT_NAME: str = "Work Time Hero API"
    PROJECT_VERSION: str = "1.0.0"

    # Database Configuration
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "worktimehero"
    DATABASE_URL: Optional[str] = None
    DB_AUTO_CREATE: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Redis Configuration
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # Dashboard cache (seconds)
    DASHBOARD_CACHE_ENABLED: bool = True
    DASHBOARD_CACHE_PREFIX: str = "dashboard"
    DASHBOARD_TTL_LANDING: int = 180
    DASHBOARD_TTL_WORKSPACE: int = 300
    DASHBOARD_TTL_PROJECT: int = 300
    DASHBOARD_TTL_PROFILE: int = 180
    DASHBOARD_ANALYTICS_TTL_MULTIPLIER: int = 2
    DASHBOARD_TTL_SEARCH: int = 120
    DASHBOARD_TTL_HISTORICAL: int = 3600
    DASHBOARD_TTL_MAX: int = 3600

    # Dashboard date ranges
    DASHBOARD_MAX_RANGE_DAYS: int = 1830  # ~5 years

    # Throttling Configuration
    THROTTLING_ENABLED: bool = True
    THROTTLING_WINDOW_SECONDS: int = 60
    THROTTLING_MAX_REQUESTS_DASHBOARD: int = 120
    THROTTLING_MAX_REQUESTS_SEARCH: int = 240
    THROTTLING_MAX_REQUESTS_HEALTH: int = 30
    THROTTLING_REDIS_KEY_PREFIX: str = "throttle"
    THROTTLING_CLEANUP_INTERVAL: int = 300

    @computed_field  # type: ignore[prop-decorator]
    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return str(
            MultiHostUrl.build(
                scheme="postgresql+psycopg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                host=self.POSTGRES_SERVER,
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,
            )
        )


settings = Settings()
