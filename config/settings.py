from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database (sqlite for local dev; postgresql+asyncpg://... in production)
    DATABASE_URL: str = "sqlite+aiosqlite:///./club_credit.db"

    # Redis: only used when REALTIME_BACKEND=redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # JWT: override in .env for anything but local dev
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60

    # Realtime event bus
    REALTIME_BACKEND: str = "memory"  # "memory" | "redis"
    REALTIME_CHANNEL: str = "club-credit:events"
    REALTIME_QUEUE_SIZE: int = 256
    REALTIME_RELAY_BACKOFF_MAX: float = 30.0

    # Dashboard sync client
    SYNC_RESYNC_SECONDS: float = 30.0
    SYNC_MAX_RECONNECT_ATTEMPTS: int = 8

    # App
    APP_NAME: str = "Club Credit Sync"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"


settings = Settings()
