from __future__ import annotations

import json
from typing import List, Optional, Set

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_list(raw: str) -> List[str]:
    """Parse a JSON array or a comma-separated string into a list of strings."""
    raw = (raw or "").strip()
    if raw.startswith("["):
        return [str(v).strip() for v in json.loads(raw) if str(v).strip()]
    return [part.strip() for part in raw.split(",") if part.strip()]


class AppSettings(BaseSettings):
    """
    Service settings read from the environment (and .env).

    Database connection settings live in joinery.db.config.Settings.
    List-valued options are plain strings (JSON array or comma-separated) and
    are exposed parsed through the lower-case properties.
    """

    APP_NAME: str = Field(default="Joinery Stock API")
    APP_DESCRIPTION: str = Field(
        default="Inventory, materials-to-order and purchase-order reconciliation for a kitchen and cabinet workshop."
    )
    APP_VERSION: str = Field(default="0.1.0")
    ENVIRONMENT: Optional[str] = Field(default=None, description="dev / test / prod")
    LOG_LEVEL: str = Field(default="INFO")

    CORS_ORIGINS: str = Field(default="*", description="Allowed origins")
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)

    RUN_MIGRATIONS_ON_STARTUP: bool = Field(default=True, description="Run 'alembic upgrade head' at startup")

    # Tokens are issued by the sign-in service; this service only verifies them.
    JWT_SECRET_KEY: str = Field(default="change-me")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 12)
    STAFF_USER_TYPES: str = Field(
        default="admin,master-admin,manager,employee",
        description="user_type claims allowed to use the stock endpoints",
    )

    NOTIFICATIONS_ENABLED: bool = Field(default=True, description="Drop notification events when false")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> List[str]:
        return _split_list(self.CORS_ORIGINS) or ["*"]

    @property
    def staff_user_types(self) -> Set[str]:
        return {v.lower() for v in _split_list(self.STAFF_USER_TYPES)}


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """Build settings from the current environment."""
    return AppSettings()
