from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BUNDLED_TABLES = Path(__file__).parent / "tables"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FIELDCHECK_", env_file=".env", extra="ignore")

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)

    # Announce check() start/stop to the profiler collaborator
    PROFILING: bool = False

    # Directory holding YAML domain tables (credit_cards.yaml, ...)
    CONFIG_DIR: Path | None = None

    # Locale
    LOCALE: str = "en"
    DECIMAL_SEPARATOR: str | None = None  # None: ask the process locale

    @property
    def tables_dir(self) -> Path:
        return self.CONFIG_DIR or BUNDLED_TABLES


@lru_cache
def get_settings() -> Settings:
    return Settings()
