"""Runtime configuration, read from environment variables."""

import os
from dataclasses import dataclass
from functools import lru_cache

ENV_PREFIX = "BANCHESS_"


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./banchess.db"
    db_echo: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            database_url=os.environ.get(
                ENV_PREFIX + "DATABASE_URL", defaults.database_url
            ),
            db_echo=_env_flag("DB_ECHO", defaults.db_echo),
            log_level=os.environ.get(ENV_PREFIX + "LOG_LEVEL", defaults.log_level).upper(),
        )


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process. Call get_settings.cache_clear() to re-read the environment."""
    return Settings.from_env()
