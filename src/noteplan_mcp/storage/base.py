"""Base repository interface for note storage backends."""
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from noteplan_mcp.models.schema import Location, Note
from noteplan_mcp.storage.markdown_parser import MarkdownParser
from noteplan_mcp.storage.note_cache import DEFAULT_TTL_SECONDS, NoteCache


class Repository(ABC):
    """Storage capabilities the note store is built on.

    Implementations own the physical layout (files on disk, or a list in
    memory) and report collisions as ``AlreadyExistsError``. Category rules
    and ID resolution live in the service layer. Reads go through a
    ``NoteCache``; the service calls ``invalidate()`` after every mutation.
    """

    #: Short name reported by status tooling
    kind: str = "abstract"

    def __init__(
        self,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        parser: Optional[MarkdownParser] = None,
    ):
        self.parser = parser or MarkdownParser()
        self.cache = NoteCache(self._load_all_notes, ttl=cache_ttl, clock=clock)

    def get_all(self) -> List[Note]:
        """All notes across both categories, newest modification first."""
        return self.cache.get_snapshot()

    def invalidate(self) -> None:
        """Force the next read to rebuild from the backing store."""
        self.cache.invalidate()

    @abstractmethod
    def _load_all_notes(self) -> List[Note]:
        """Read every note from the backing store, uncached."""

    @abstractmethod
    def create(self, location: Location, stem: str, content: str) -> Note:
        """Create a new note called ``stem`` in ``location``."""

    @abstractmethod
    def write(self, note: Note, content: str) -> Note:
        """Replace the content of an existing note in place."""

    @abstractmethod
    def rename(self, note: Note, new_stem: str, content: str) -> Note:
        """Write ``content`` to the note and give it a new filename stem."""

    @abstractmethod
    def move(self, note: Note, destination: Location) -> Note:
        """Relocate the note to ``destination`` keeping its filename."""

    @abstractmethod
    def folder_exists(self, location: Location) -> bool:
        """Check whether a folder is present."""

    @abstractmethod
    def create_folder(self, location: Location) -> None:
        """Create a folder (and any missing parents)."""

    @abstractmethod
    def rename_folder(self, source: Location, destination: Location) -> None:
        """Rename a folder; everything beneath it moves along."""

    @abstractmethod
    def list_folders(self) -> List[Location]:
        """Every regular-note folder, sorted by path."""
