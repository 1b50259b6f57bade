"""Configuration module for the Keeper note store."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from keeper_store import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, lives alongside the default data directory
_USER_ENV = Path.home() / ".keeper" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

BACKENDS = ("sqlalchemy", "sqlite", "memory")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class KeeperConfig(BaseModel):
    """Configuration for the note store."""

    # Base directory that relative paths resolve against
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("KEEPER_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("KEEPER_DATABASE_PATH", "data/keeper.sqlite3")
        )
    )
    # Directory used by the filesystem blob store for media bytes
    media_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("KEEPER_MEDIA_DIR", "data/media"))
    )
    # Which adapter open_adapter() builds:
    #   sqlalchemy - file-backed database through a SQLAlchemy engine
    #   sqlite     - embedded stdlib sqlite3 connection on the same file
    #   memory     - private in-memory database (tests, scratch sessions)
    backend: str = Field(
        default_factory=lambda: os.getenv("KEEPER_BACKEND", "sqlalchemy").lower()
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("KEEPER_LOG_LEVEL", "INFO"),
        validate_default=True,
    )
    # Rotating file logs are written here when set; console only otherwise
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("KEEPER_LOG_DIR")) if os.getenv("KEEPER_LOG_DIR") else None
        )
    )
    version: str = Field(default=__version__)

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Reject backend names open_adapter() cannot build."""
        if v not in BACKENDS:
            raise ValueError(
                f"backend must be one of {', '.join(BACKENDS)}, got '{v}'"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept standard logging level names in any case."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got '{v}'"
            )
        return level

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_path(self) -> Path:
        """Get the absolute database file path, creating its directory."""
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return db_path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        return f"sqlite:///{self.get_db_path()}"

    def get_media_dir(self) -> Path:
        """Get the absolute media directory, creating it if needed."""
        media_dir = self.get_absolute_path(self.media_dir)
        media_dir.mkdir(parents=True, exist_ok=True)
        return media_dir


# Create a global config instance
config = KeeperConfig()
