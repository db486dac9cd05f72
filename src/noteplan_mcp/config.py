"""Configuration module for the NotePlan MCP server."""

import logging
import os
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from noteplan_mcp import __version__
from noteplan_mcp.models.schema import Category

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config: survives reinstalls
_USER_ENV = Path.home() / ".noteplan-mcp" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

# Where NotePlan 3 keeps its data on macOS
DEFAULT_NOTEPLAN_BASE_DIR = (
    Path.home()
    / "Library"
    / "Containers"
    / "co.noteplan.NotePlan3"
    / "Data"
    / "Library"
    / "Application Support"
    / "co.noteplan.NotePlan3"
)

ACCEPTED_EXTENSIONS: Tuple[str, ...] = (".md", ".txt")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class NotePlanConfig(BaseModel):
    """Configuration for the NotePlan server."""

    # Root of the NotePlan data directory
    base_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTEPLAN_BASE_DIR", str(DEFAULT_NOTEPLAN_BASE_DIR))
        ).expanduser()
    )
    # Category roots, relative to base_dir unless absolute
    calendar_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTEPLAN_CALENDAR_DIR", "Calendar"))
    )
    notes_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTEPLAN_NOTES_DIR", "Notes"))
    )
    # Seconds a scanned snapshot of the note tree stays valid
    cache_ttl: float = Field(
        default_factory=lambda: float(os.getenv("NOTEPLAN_CACHE_TTL", "5.0"))
    )
    # Extension used for files this server creates
    note_extension: str = Field(
        default_factory=lambda: os.getenv("NOTEPLAN_NOTE_EXTENSION", ".txt")
    )
    # When the NotePlan directories are missing, serve placeholder notes from
    # memory instead of refusing to start
    allow_fallback: bool = Field(
        default_factory=lambda: _env_flag("NOTEPLAN_ALLOW_FALLBACK", "true")
    )
    # Server configuration
    server_name: str = Field(default=os.getenv("NOTEPLAN_SERVER_NAME", "noteplan-mcp"))
    server_version: str = Field(default=__version__)
    # Logging / metrics locations (None means the observability defaults)
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTEPLAN_LOG_DIR")).expanduser()
            if os.getenv("NOTEPLAN_LOG_DIR")
            else None
        )
    )

    @model_validator(mode="after")
    def _validate_settings(self) -> "NotePlanConfig":
        """Validate numeric bounds and the extension for new notes."""
        if self.cache_ttl < 0:
            raise ValueError("cache_ttl must be >= 0")
        if not self.note_extension.startswith("."):
            self.note_extension = f".{self.note_extension}"
        if self.note_extension not in ACCEPTED_EXTENSIONS:
            raise ValueError(
                f"note_extension must be one of {', '.join(ACCEPTED_EXTENSIONS)}"
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_calendar_path(self) -> Path:
        """Absolute path of the calendar (daily notes) root."""
        return self.get_absolute_path(self.calendar_dir)

    def get_notes_path(self) -> Path:
        """Absolute path of the regular notes root."""
        return self.get_absolute_path(self.notes_dir)

    def get_category_roots(self) -> Dict[Category, Path]:
        """Map each category to its root directory."""
        return {
            Category.CALENDAR: self.get_calendar_path(),
            Category.NOTE: self.get_notes_path(),
        }

    def is_noteplan_available(self) -> bool:
        """Check whether the base directory and both category roots exist."""
        try:
            return (
                self.base_dir.is_dir()
                and self.get_calendar_path().is_dir()
                and self.get_notes_path().is_dir()
            )
        except OSError as e:
            logger.debug(f"Could not check NotePlan directories: {e}")
            return False


# Create a global config instance
config = NotePlanConfig()
