"""Data models for the NotePlan MCP server."""

import datetime
from dataclasses import dataclass
from datetime import timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, computed_field, model_validator

from noteplan_mcp.exceptions import ErrorCode, InvalidLocationError

# Path value that denotes the root of a category
ROOT_PATH = "/"

# Display string used for every calendar note in place of a folder
CALENDAR_DISPLAY_FOLDER = "[daily-note]"

# Folder name NotePlan reserves for daily notes
RESERVED_CALENDAR_NAME = "Calendar"

CALENDAR_ID_PREFIX = "calendar-"
NOTE_ID_PREFIX = "note-"

# Directory name prefixes that the scanner never descends into
HIDDEN_PREFIXES = (".", "@")


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current time with UTC timezone info attached.
    """
    return datetime.datetime.now(timezone.utc)


class Category(str, Enum):
    """The two kinds of notes NotePlan keeps."""

    CALENDAR = "calendar"  # Date-indexed daily notes
    NOTE = "note"  # Freely organised notes in folders


def note_id_for(category: Category, stem: str) -> str:
    """Derive the note ID from its category and filename stem."""
    prefix = CALENDAR_ID_PREFIX if category == Category.CALENDAR else NOTE_ID_PREFIX
    return f"{prefix}{stem}"


def _split_folder(folder: str) -> List[str]:
    return [segment for segment in folder.split("/") if segment]


def is_calendar_folder(folder: Optional[str]) -> bool:
    """Check whether a user folder string tries to address the calendar."""
    if not folder:
        return False
    normalized = "/".join(_split_folder(folder.strip()))
    return (
        normalized == RESERVED_CALENDAR_NAME
        or normalized.startswith(f"{RESERVED_CALENDAR_NAME}/")
        or normalized == CALENDAR_DISPLAY_FOLDER
    )


class Location(BaseModel):
    """Where a note logically lives: a category plus a folder path.

    ``path`` is either ``"/"`` for the category root or a slash-separated
    relative path without leading or trailing slashes. Calendar locations
    are always the root; daily notes have no folders.
    """

    model_config = ConfigDict(frozen=True)

    category: Category
    path: str = ROOT_PATH

    @model_validator(mode="after")
    def _validate_path(self) -> "Location":
        if self.category == Category.CALENDAR and self.path != ROOT_PATH:
            raise ValueError("Calendar locations are always the category root")
        if self.path != ROOT_PATH:
            if self.path.startswith("/") or self.path.endswith("/"):
                raise ValueError(f"Location path must be relative: {self.path!r}")
            if "" in self.path.split("/"):
                raise ValueError(f"Location path has empty segments: {self.path!r}")
        return self

    @classmethod
    def root(cls, category: Category) -> "Location":
        return cls(category=category, path=ROOT_PATH)

    @classmethod
    def calendar(cls) -> "Location":
        return cls.root(Category.CALENDAR)

    def is_root(self) -> bool:
        return self.path == ROOT_PATH

    @property
    def segments(self) -> List[str]:
        return [] if self.is_root() else self.path.split("/")

    @property
    def name(self) -> str:
        """Final path segment (empty for the root)."""
        segments = self.segments
        return segments[-1] if segments else ""

    @property
    def parent(self) -> "Location":
        segments = self.segments
        if len(segments) <= 1:
            return Location.root(self.category)
        return Location(category=self.category, path="/".join(segments[:-1]))

    def child(self, name: str) -> "Location":
        """Location of a subfolder called ``name``."""
        path = name if self.is_root() else f"{self.path}/{name}"
        return Location(category=self.category, path=path)

    def with_name(self, name: str) -> "Location":
        """Same parent, final segment replaced by ``name``."""
        return self.parent.child(name)

    def contains(self, other: "Location") -> bool:
        """True if ``other`` is this location or lies beneath it."""
        if other.category != self.category:
            return False
        if self.is_root():
            return True
        return other.path == self.path or other.path.startswith(f"{self.path}/")

    def to_display_string(self) -> str:
        """User-facing folder string; calendar notes share one sentinel."""
        if self.category == Category.CALENDAR:
            return CALENDAR_DISPLAY_FOLDER
        return self.path

    def to_filesystem_path(self, roots: Dict[Category, Path]) -> Path:
        """Join the category root with this location's path."""
        root = Path(roots[self.category])
        if self.is_root():
            return root
        return root.joinpath(*self.segments)

    def __str__(self) -> str:
        return f"{self.category.value}:{self.path}"


def parse_user_folder(folder: Optional[str]) -> Location:
    """Turn a user-supplied folder string into a regular-note Location.

    ``None``, empty strings and ``"/"`` mean the notes root. Surrounding
    slashes and empty segments are dropped.

    Raises:
        InvalidLocationError: If the string addresses the calendar, or a
            segment is ``.``/``..``, contains a backslash, or names a hidden
            (``.``/``@``-prefixed) folder.
    """
    if folder is None or not folder.strip() or folder.strip() == ROOT_PATH:
        return Location.root(Category.NOTE)

    if is_calendar_folder(folder):
        raise InvalidLocationError(
            folder,
            "Calendar notes cannot be addressed by folder; "
            "use the daily note operations instead",
        )

    segments = _split_folder(folder)
    for segment in segments:
        if segment in (".", ".."):
            raise InvalidLocationError(
                folder,
                "Folder cannot contain '.' or '..' segments",
                code=ErrorCode.PATH_TRAVERSAL_DETECTED,
            )
        if "\\" in segment:
            raise InvalidLocationError(folder, "Folder cannot contain backslashes")
        if segment.startswith(HIDDEN_PREFIXES):
            raise InvalidLocationError(
                folder,
                f"Folder segment '{segment}' is hidden or reserved",
            )

    if not segments:
        return Location.root(Category.NOTE)
    return Location(category=Category.NOTE, path="/".join(segments))


class Note(BaseModel):
    """A note as read from disk (or from the in-memory fallback).

    The file is authoritative: ``id`` is recomputed from ``source_stem`` and
    the category every time the file is parsed.
    """

    id: str
    title: str
    content: str = ""
    created: datetime.datetime
    modified: datetime.datetime
    location: Location
    source_path: Optional[Path] = None
    source_stem: Optional[str] = None

    @computed_field  # type: ignore[misc]
    @property
    def display_folder(self) -> str:
        return self.location.to_display_string()

    @property
    def category(self) -> Category:
        return self.location.category

    @property
    def is_calendar(self) -> bool:
        return self.location.category == Category.CALENDAR

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation (absolute paths are not exposed)."""
        data = self.model_dump(mode="json", exclude={"source_path"})
        data["filename"] = self.source_path.name if self.source_path else None
        return data


@dataclass
class FolderRenameResult:
    """Outcome of renaming a folder of regular notes."""

    old_folder: str
    new_folder: str
    affected_count: int

    @property
    def summary(self) -> str:
        noun = "note" if self.affected_count == 1 else "notes"
        return (
            f"Renamed folder '{self.old_folder}' to '{self.new_folder}' "
            f"({self.affected_count} {noun} moved)"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "old_folder": self.old_folder,
            "new_folder": self.new_folder,
            "affected_count": self.affected_count,
            "summary": self.summary,
        }
