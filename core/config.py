"""
Job configuration using Pydantic Settings
"""

from typing import Literal, Optional

from pydantic import ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.exceptions import ConfigError


class Settings(BaseSettings):
    """
    Immutable job settings read from the environment (and ``.env``).

    Built once per invocation by ``load_settings`` and passed explicitly
    to every component; nothing reads the environment after that.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Storage
    STORE_BACKEND: Literal["postgrest", "postgres"] = "postgrest"
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    DATABASE_URL: Optional[str] = None

    # Sources
    CSV_URL_BUILDINGS: str
    CSV_URL_LISTINGS: Optional[str] = None
    CSV_URL_INTEL: Optional[str] = None
    PLUTO_URL: Optional[str] = None
    PLUTO_WHERE: Optional[str] = None
    DOB_PERMITS_URL: Optional[str] = None
    DOB_PERMITS_WHERE: Optional[str] = None
    SOCRATA_APP_TOKEN: Optional[str] = None

    # On-demand trigger
    INGEST_TRIGGER_TOKEN: Optional[str] = None

    # Pagination
    PAGE_SIZE: int = 5000
    MAX_PAGES_PER_RUN: int = 5

    # HTTP
    HTTP_TIMEOUT: float = 30.0
    USER_AGENT: str = "stoopr-ingest/1.0"

    # Scheduler
    SCHEDULER_ENABLED: bool = False
    SCHEDULE_INTERVAL_MINUTES: int = 60

    @field_validator("*", mode="before")
    @classmethod
    def blank_is_unset(cls, v):
        """Treat empty or whitespace-only values as not set"""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("SUPABASE_URL", "PLUTO_URL", "DOB_PERMITS_URL")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/") if v else v

    @field_validator("PAGE_SIZE", "MAX_PAGES_PER_RUN", "SCHEDULE_INTERVAL_MINUTES")
    @classmethod
    def positive(cls, v):
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @model_validator(mode="after")
    def check_store_backend(self):
        """The selected backend must have its connection settings"""
        if self.STORE_BACKEND == "postgrest":
            missing = [
                name for name in ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY")
                if not getattr(self, name)
            ]
        else:
            missing = [] if self.DATABASE_URL else ["DATABASE_URL"]

        if missing:
            raise ValueError(
                f"STORE_BACKEND={self.STORE_BACKEND} requires {', '.join(missing)}"
            )
        return self


def load_settings(**overrides) -> Settings:
    """
    Build and validate settings, failing fast with ConfigError.

    Keyword overrides take precedence over the environment; tests pass
    ``_env_file=None`` to ignore a local ``.env``.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        variables = [".".join(str(p) for p in err["loc"]) or "settings" for err in e.errors()]
        details = "; ".join(
            f"{var}: {err['msg']}" for var, err in zip(variables, e.errors())
        )
        raise ConfigError(
            f"Invalid configuration: {details}",
            context={"variables": variables},
        ) from e
