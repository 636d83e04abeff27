# backend/backoffice/core/config.py

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings, SettingsConfigDict


def _strip_asyncpg_unsupported_params(url: str) -> str:
    """
    asyncpg does NOT accept sslmode or channel_binding as connect kwargs.
    If these appear in the URL query, SQLAlchemy can end up passing them to
    asyncpg.connect(), causing:
      TypeError: connect() got an unexpected keyword argument 'sslmode'
    """
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = parse_qsl(parts.query, keep_blank_values=True)
    filtered = [(k, v) for (k, v) in params if k not in {"sslmode", "channel_binding"}]
    new_query = urlencode(filtered, doseq=True)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, new_query, parts.fragment))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -----------------------------
    # Environment
    # -----------------------------
    # Use: development | staging | production
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # -----------------------------
    # DB
    # -----------------------------
    # SQLite is fine for local work; deployments point these at PostgreSQL.
    DATABASE_URL_ASYNC: str = "sqlite+aiosqlite:///./backoffice.db"
    DATABASE_URL_SYNC: str = "sqlite:///./backoffice.db"

    # -----------------------------
    # Payroll
    # -----------------------------
    # Month boundaries are computed in this timezone.
    PAYROLL_TIMEZONE: str = "UTC"
    PAYROLL_CURRENCY: str = "IDR"
    # Employees processed in parallel, each in its own transaction.
    PAYROLL_CONCURRENCY: int = 4
    PAYROLL_COMMIT_RETRIES: int = 3
    PAYROLL_RETRY_BACKOFF_SECONDS: float = 0.2

    # -----------------------------
    # Notifications
    # -----------------------------
    NOTIFICATION_QUEUE_MAXSIZE: int = 1000
    NOTIFICATION_MAX_ATTEMPTS: int = 5

    @property
    def DATABASE_URL_ASYNC_CLEAN(self) -> str:
        return _strip_asyncpg_unsupported_params(self.DATABASE_URL_ASYNC)

    @property
    def payroll_zone(self) -> ZoneInfo:
        return ZoneInfo(self.PAYROLL_TIMEZONE)

    def model_post_init(self, __context) -> None:  # pydantic v2 hook
        env = (self.ENVIRONMENT or "").strip().lower()

        # Never run staging/production on the local SQLite file.
        if env in {"staging", "production"} and self.DATABASE_URL_ASYNC.startswith("sqlite"):
            raise ValueError("DATABASE_URL_ASYNC must point at PostgreSQL in staging/production.")

        try:
            ZoneInfo(self.PAYROLL_TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown PAYROLL_TIMEZONE={self.PAYROLL_TIMEZONE!r}")

        if self.PAYROLL_CONCURRENCY < 1:
            raise ValueError("PAYROLL_CONCURRENCY must be at least 1.")
        if self.PAYROLL_COMMIT_RETRIES < 1:
            raise ValueError("PAYROLL_COMMIT_RETRIES must be at least 1.")
        if self.NOTIFICATION_MAX_ATTEMPTS < 1:
            raise ValueError("NOTIFICATION_MAX_ATTEMPTS must be at least 1.")


# this must exist for: `from backoffice.core.config import settings`
settings = Settings()
