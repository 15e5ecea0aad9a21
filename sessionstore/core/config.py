"""
Session store configuration using Pydantic Settings.

Configuration values can be set via environment variables (prefixed with
``SESSION_STORE_``) or a .env file.
"""

import json
from typing import Annotated, List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from sessionstore.db.models.session_store import is_valid_identifier


class Settings(BaseSettings):
    """Session store settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="SESSION_STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database connection
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/sessions.db"
    SCHEMA_NAME: str = "session_store"
    TABLE_NAME: str = "session"

    # Connection pool
    POOL_SIZE: int = Field(default=5, ge=1)
    MAX_OVERFLOW: int = Field(default=10, ge=0)
    POOL_TIMEOUT: float = Field(default=30.0, gt=0)
    POOL_PRE_PING: bool = True
    ECHO_SQL: bool = False

    # Session identifiers
    SESSION_ID_BYTES: int = Field(default=16, ge=16)
    CREATE_MAX_ATTEMPTS: int = Field(default=10, ge=1)

    # Payload encryption at rest (disabled when neither keys nor secret are set)
    ENCRYPTION_KEYS: Annotated[List[str], NoDecode] = Field(default_factory=list)
    ENCRYPTION_SECRET: Optional[str] = None
    ENCRYPTION_SALT: Optional[str] = None
    ENCRYPTION_KDF_ITERATIONS: int = 300_000

    # Expiry sweep
    PURGE_INTERVAL_SECONDS: float = Field(default=60.0, gt=0)

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    DEV_MODE: bool = False

    @field_validator("SCHEMA_NAME", "TABLE_NAME")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        if not is_valid_identifier(v):
            raise ValueError(
                f"Invalid identifier '{v}'. Names must start with a letter or underscore; "
                "subsequent characters can be letters, underscores, digits or dollar signs."
            )
        return v

    @field_validator("ENCRYPTION_KEYS", mode="before")
    @classmethod
    def parse_encryption_keys(cls, v):
        """Parse encryption keys from a JSON list or a comma-separated string."""
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return []
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(key).strip() for key in parsed if str(key).strip()]
            except json.JSONDecodeError:
                pass
            return [key.strip() for key in v.split(",") if key.strip()]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def check_encryption_secret(self) -> "Settings":
        if self.ENCRYPTION_SECRET and not self.ENCRYPTION_SALT:
            raise ValueError("ENCRYPTION_SALT is required when ENCRYPTION_SECRET is set")
        return self

    @property
    def encryption_enabled(self) -> bool:
        return bool(self.ENCRYPTION_KEYS or self.ENCRYPTION_SECRET)


# Global settings instance
settings = Settings()
