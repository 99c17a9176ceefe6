from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from axis.constants import CHAT_DELAY_MS, REQUEST_TIMEOUT, STEP_INTERVAL_MS, VITALS_INTERVAL_MS

AXIS_DIR = Path.home() / ".axis"


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AXIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
    )

    # Remote backend; the local SQLite backend is used when unset
    backend_url: str | None = None
    request_timeout: float = REQUEST_TIMEOUT

    data_dir: Path = AXIS_DIR

    # Timings (milliseconds)
    step_interval_ms: int = STEP_INTERVAL_MS
    chat_delay_ms: int = CHAT_DELAY_MS
    vitals_interval_ms: int = VITALS_INTERVAL_MS

    log_level: str = "INFO"

    @field_validator("step_interval_ms", "chat_delay_ms", "vitals_interval_ms")
    @classmethod
    def _validate_interval(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"interval must be positive, got {v}")
        return v

    @field_validator("request_timeout")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"request_timeout must be positive, got {v}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        level = str(v).upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("backend_url", mode="before")
    @classmethod
    def _normalize_url(cls, v: str | None) -> str | None:
        if v in ("", "none", "local"):
            return None
        return v

    @property
    def history_db_path(self) -> Path:
        return self.data_dir / "history.db"


def get_config() -> Config:
    return Config()
