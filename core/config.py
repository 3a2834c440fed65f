"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for CollabCal happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, session_ttl_seconds -> SESSION_TTL_SECONDS).

  @model_validator(mode="after"): Cross-field validation once every field is
      resolved. Dev mode generates a SECRET_KEY with a warning, production mode
      refuses to start without one.

Security notes:
  SECRET_KEY keys the HMAC that session tokens are stored under. A key shorter
  than 32 characters is rejected outright.

  In production mode (DEBUG not set or false), a missing SECRET_KEY is a hard
  startup failure: a random key would silently invalidate every stored session
  hash on restart.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or calendars/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("collabcal.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Sessions and credentials
    # ------------------------------------------------------------------

    session_ttl_seconds: int = Field(default=3600, gt=0)
    session_purge_interval_seconds: int = Field(default=3600, gt=0)
    # bcrypt work factor. Tests lower this through BCRYPT_ROUNDS=4.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    # Empty string means "SQLite file next to the store module".
    auth_db_url: str = ""
    calendar_db_url: str = ""
    # Upper bound on how long a store call may wait for a lock or a pooled
    # connection before surfacing StoreTimeoutError.
    store_timeout_seconds: float = Field(default=5.0, gt=0)

    # ------------------------------------------------------------------
    # HTTP boundary
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Stored session hashes will not match after a restart.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
