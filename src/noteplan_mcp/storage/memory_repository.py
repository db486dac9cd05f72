"""In-memory repository used when the NotePlan directories are unavailable.

Serves a handful of placeholder notes so the server is usable on a machine
without NotePlan installed (first run, local testing). Mutations change the
in-memory list only and are lost when the process exits.
"""
import datetime
import logging
import time
from typing import Callable, List, Optional, Set

from noteplan_mcp.exceptions import (
    AlreadyExistsError,
    ErrorCode,
    FolderNotFoundError,
    NoteNotFoundError,
)
from noteplan_mcp.models.schema import Category, Location, Note, utc_now
from noteplan_mcp.storage.base import Repository
from noteplan_mcp.storage.markdown_parser import MarkdownParser
from noteplan_mcp.storage.note_cache import DEFAULT_TTL_SECONDS

logger = logging.getLogger(__name__)


def _ts(value: str) -> datetime.datetime:
    return datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))


def placeholder_notes(parser: Optional[MarkdownParser] = None) -> List[Note]:
    """Fresh copies of the sample notes served in fallback mode."""
    parser = parser or MarkdownParser()
    root = Location.root(Category.NOTE)
    return [
        parser.build_note(
            stem="Sample-Note-1",
            location=root,
            content="# Sample Note 1\n\nThis is a sample note",
            created=_ts("2023-01-01T12:00:00Z"),
            modified=_ts("2023-01-02T14:30:00Z"),
        ),
        parser.build_note(
            stem="Sample-Note-2",
            location=root,
            content="# Sample Note 2\n\nThis is another sample note",
            created=_ts("2023-02-15T09:45:00Z"),
            modified=_ts("2023-02-16T11:20:00Z"),
        ),
        parser.build_note(
            stem="Project-Ideas",
            location=root.child("Projects"),
            content=(
                "# Project Ideas\n\n"
                "- Build a note-taking app\n"
                "- Learn a new language\n"
                "- Write a book"
            ),
            created=_ts("2023-03-10T16:15:00Z"),
            modified=_ts("2023-03-12T08:00:00Z"),
        ),
    ]


class InMemoryNoteRepository(Repository):
    """Notes held in a list, with the same collision rules as the filesystem."""

    kind = "memory"

    def __init__(
        self,
        notes: Optional[List[Note]] = None,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        parser: Optional[MarkdownParser] = None,
    ):
        """Initialize the repository.

        Args:
            notes: Initial notes. If None, the placeholder notes are used.
            cache_ttl: Seconds a snapshot stays valid.
            clock: Monotonic time source for the cache.
            parser: Parser used to derive titles and IDs.
        """
        super().__init__(cache_ttl=cache_ttl, clock=clock, parser=parser)
        self._notes: List[Note] = (
            list(notes) if notes is not None else placeholder_notes(self.parser)
        )
        self._folders: Set[str] = set()
        logger.info(f"InMemoryNoteRepository initialized with {len(self._notes)} notes")

    def _load_all_notes(self) -> List[Note]:
        return list(self._notes)

    def _index_of(self, note: Note) -> int:
        for i, existing in enumerate(self._notes):
            if existing.id == note.id and existing.location == note.location:
                return i
        raise NoteNotFoundError(note.id)

    def _occupant(self, location: Location, stem: str) -> Optional[Note]:
        for existing in self._notes:
            if existing.location == location and existing.source_stem == stem:
                return existing
        return None

    def _rebuild(self, note: Note, stem: str, location: Location, content: str) -> Note:
        return self.parser.build_note(
            stem=stem,
            location=location,
            content=content,
            created=note.created,
            modified=utc_now(),
        )

    def create(self, location: Location, stem: str, content: str) -> Note:
        if self._occupant(location, stem) is not None:
            raise AlreadyExistsError(
                f"A note named '{stem}' already exists in "
                f"'{location.to_display_string()}'",
                target=stem,
            )
        now = utc_now()
        note = self.parser.build_note(
            stem=stem, location=location, content=content, created=now, modified=now
        )
        self._notes.append(note)
        return note

    def write(self, note: Note, content: str) -> Note:
        index = self._index_of(note)
        updated = self._rebuild(note, note.source_stem or "", note.location, content)
        self._notes[index] = updated
        return updated

    def rename(self, note: Note, new_stem: str, content: str) -> Note:
        index = self._index_of(note)
        occupant = self._occupant(note.location, new_stem)
        if occupant is not None and occupant.id != note.id:
            raise AlreadyExistsError(
                f"A note named '{new_stem}' already exists in "
                f"'{note.location.to_display_string()}'",
                target=new_stem,
            )
        renamed = self._rebuild(note, new_stem, note.location, content)
        self._notes[index] = renamed
        return renamed

    def move(self, note: Note, destination: Location) -> Note:
        index = self._index_of(note)
        if destination == note.location:
            return note
        stem = note.source_stem or ""
        if self._occupant(destination, stem) is not None:
            raise AlreadyExistsError(
                f"A note named '{stem}' already exists in "
                f"'{destination.to_display_string()}'",
                target=stem,
            )
        moved = self._rebuild(note, stem, destination, note.content)
        self._notes[index] = moved
        if not destination.is_root():
            self._folders.add(destination.path)
        return moved

    def _known_folders(self) -> Set[str]:
        """Explicit folders plus every folder implied by a note location."""
        known: Set[str] = set()
        paths = set(self._folders)
        paths.update(
            n.location.path
            for n in self._notes
            if n.category == Category.NOTE and not n.location.is_root()
        )
        for path in paths:
            segments = path.split("/")
            for depth in range(1, len(segments) + 1):
                known.add("/".join(segments[:depth]))
        return known

    def folder_exists(self, location: Location) -> bool:
        if location.is_root():
            return True
        return location.path in self._known_folders()

    def create_folder(self, location: Location) -> None:
        if self.folder_exists(location):
            raise AlreadyExistsError(
                f"Folder '{location.to_display_string()}' already exists",
                target=location.path,
                code=ErrorCode.FOLDER_ALREADY_EXISTS,
            )
        self._folders.add(location.path)

    def rename_folder(self, source: Location, destination: Location) -> None:
        if not self.folder_exists(source):
            raise FolderNotFoundError(source.to_display_string())
        if self.folder_exists(destination):
            raise AlreadyExistsError(
                f"Folder '{destination.to_display_string()}' already exists",
                target=destination.path,
                code=ErrorCode.FOLDER_ALREADY_EXISTS,
            )

        def relocate(path: str) -> str:
            return destination.path + path[len(source.path):]

        for i, note in enumerate(self._notes):
            if note.category == Category.NOTE and not note.location.is_root():
                if source.contains(note.location):
                    new_location = Location(
                        category=Category.NOTE, path=relocate(note.location.path)
                    )
                    self._notes[i] = note.model_copy(update={"location": new_location})

        self._folders = {
            relocate(path)
            if path == source.path or path.startswith(f"{source.path}/")
            else path
            for path in self._folders
        }

    def list_folders(self) -> List[Location]:
        return [
            Location(category=Category.NOTE, path=path)
            for path in sorted(self._known_folders())
        ]
