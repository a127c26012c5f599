"""Configuration module for notemerge."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from notemerge import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, shared by every checkout
_USER_ENV = Path.home() / ".notemerge" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

# Largest body (in characters) a single text note may hold before it is split
DEFAULT_MAX_BODY_LENGTH = 100_000


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class NoteMergeConfig(BaseModel):
    """Configuration for the note store and the import pipeline."""

    # Base directory for the project
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTEMERGE_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTEMERGE_DATABASE_PATH", "data/db/notemerge.db")
        )
    )
    # When True, the store lives in an in-memory SQLite database
    in_memory_db: bool = Field(
        default_factory=lambda: _env_flag("NOTEMERGE_IN_MEMORY_DB", "false")
    )
    # Text notes with a longer body are split into linked fragments on import
    max_body_length: int = Field(
        default_factory=lambda: int(
            os.getenv("NOTEMERGE_MAX_BODY_LENGTH", str(DEFAULT_MAX_BODY_LENGTH))
        )
    )
    # Appended to the title of every fragment after the first
    split_title_suffix: str = Field(
        default_factory=lambda: os.getenv(
            "NOTEMERGE_SPLIT_TITLE_SUFFIX", " ({index}/{total})"
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("NOTEMERGE_LOG_LEVEL", "INFO")
    )
    version: str = Field(default=__version__)

    @model_validator(mode="after")
    def _validate_limits(self) -> "NoteMergeConfig":
        """Reject limits that would make splitting impossible."""
        if self.max_body_length < 1:
            raise ValueError("max_body_length must be >= 1")
        if self.max_body_length < 1000:
            logger.warning(
                "max_body_length=%d is very small; large notes will be split "
                "into many fragments.",
                self.max_body_length,
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        if self.in_memory_db:
            return "sqlite://"
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"


# Create a global config instance
config = NoteMergeConfig()
