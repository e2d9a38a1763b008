"""
Database connection settings.

The URL comes from DATABASE_URL (or POSTGRES_URL) when set, otherwise it is
assembled from the POSTGRES_* parts. PostgreSQL URLs are normalised to the
asyncpg driver for the application and to the plain driver for Alembic's
offline mode; other async dialects (e.g. sqlite+aiosqlite) pass through.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

_ASYNC_DRIVERS = {"postgresql": "asyncpg", "sqlite": "aiosqlite"}


class Settings(BaseSettings):
    """Database settings; see the module docstring for URL resolution."""

    DATABASE_URL: Optional[str] = Field(default=None, description="Full SQLAlchemy URL")
    POSTGRES_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: Optional[str] = Field(default=None)
    POSTGRES_PASSWORD: Optional[str] = Field(default=None)
    POSTGRES_DB: Optional[str] = Field(default=None)
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)

    SQL_ECHO: bool = Field(default=False, description="Log every SQL statement")
    DB_POOL_SIZE: int = Field(default=5, ge=1)
    DB_MAX_OVERFLOW: int = Field(default=10, ge=0)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def _base_url(self) -> URL:
        raw = self.DATABASE_URL or self.POSTGRES_URL
        if raw:
            return make_url(raw)
        if not (self.POSTGRES_USER and self.POSTGRES_PASSWORD and self.POSTGRES_DB):
            raise ValueError(
                "Database configuration missing: set DATABASE_URL, POSTGRES_URL or "
                "POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB."
            )
        return URL.create(
            "postgresql",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            database=self.POSTGRES_DB,
        )

    @property
    def is_sqlite(self) -> bool:
        return self._base_url().get_backend_name() == "sqlite"

    @property
    def async_database_url(self) -> str:
        """URL for the AsyncEngine (asyncpg / aiosqlite driver)."""
        url = self._base_url()
        driver = _ASYNC_DRIVERS.get(url.get_backend_name())
        if driver is not None:
            url = url.set(drivername=f"{url.get_backend_name()}+{driver}")
        return url.render_as_string(hide_password=False)

    @property
    def sync_database_url(self) -> str:
        """URL without an async driver, for Alembic offline mode."""
        url = self._base_url()
        return url.set(drivername=url.get_backend_name()).render_as_string(hide_password=False)

    def engine_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"echo": self.SQL_ECHO, "pool_pre_ping": True}
        if not self.is_sqlite:
            options.update(pool_size=self.DB_POOL_SIZE, max_overflow=self.DB_MAX_OVERFLOW)
        return options


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    return Settings()
