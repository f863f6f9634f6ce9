import logging
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

# Get the directory where this config file is located.
_BACKEND_DIR = Path(__file__).parent.resolve()


def _detect_project_root(backend_dir: Path) -> Path:
    """Resolve project root from the backend directory in the repo layout."""
    return backend_dir.parent.resolve()


_PROJECT_ROOT = _detect_project_root(_BACKEND_DIR)
_DEFAULT_MOCK_DATA_PATH = (_BACKEND_DIR / "data" / "account_updates.json").resolve()
_LOGGER = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    LOG_FILE: Optional[str] = None

    # API Settings
    API_PREFIX: str = "/api/v1"
    CORS_ORIGINS: list[str] = ["*"]

    # Token Leaderboard
    LEADERBOARD_LIST_SIZE: int = 3  # Leaders reported per account type
    LEADERBOARD_SIZE_BUFFER: int = 2  # Extra entries kept to absorb churn near the bottom
    TOP_OWNERS_HISTORY_MAX_SIZE: int = 200  # Leadership changes kept per account type

    # Mock event source
    MOCK_DATA_SOURCE: str = str(_DEFAULT_MOCK_DATA_PATH)  # File path or http(s) URL
    MOCK_AUTOSTART: bool = True
    MOCK_FETCH_TIMEOUT_SECONDS: float = 10.0
    EVENT_CASTING_MAX_INTERVAL_MS: int = 1000  # Max delay between 2 cast events

    # Shutdown
    EXIT_ON_STOP: bool = False  # Shut the services down once the mock source has cast every event
    EXIT_MAX_WAIT_SECONDS: float = 10.0  # Max wait for pending callbacks on shutdown
    EXIT_POLL_INTERVAL_SECONDS: float = 0.5

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = str(v or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            _LOGGER.warning("Unknown LOG_LEVEL, falling back to INFO", extra={"value": v})
            return "INFO"
        return level

    @field_validator("LEADERBOARD_LIST_SIZE", "TOP_OWNERS_HISTORY_MAX_SIZE", "EVENT_CASTING_MAX_INTERVAL_MS")
    @classmethod
    def require_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("LEADERBOARD_SIZE_BUFFER")
    @classmethod
    def require_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("MOCK_DATA_SOURCE")
    @classmethod
    def resolve_mock_data_source(cls, v: str) -> str:
        """Relative file paths are resolved against the project root."""
        text = str(v or "").strip()
        if not text or text.startswith(("http://", "https://")):
            return text
        path = Path(text)
        if not path.is_absolute():
            path = (_PROJECT_ROOT / path).resolve()
        return str(path)

    class Config:
        # Load project-root .env first (common workflow), then backend/.env
        # as an override if present.
        env_file = (
            str(_PROJECT_ROOT / ".env"),
            str(_BACKEND_DIR / ".env"),
        )
        env_file_encoding = "utf-8"


settings = Settings()
