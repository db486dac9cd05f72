"""Filesystem-backed repository for NotePlan notes."""
import logging
import os
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from noteplan_mcp.config import ACCEPTED_EXTENSIONS, config
from noteplan_mcp.exceptions import (
    AlreadyExistsError,
    ErrorCode,
    FolderNotFoundError,
    NotAFolderError,
    NoteNotFoundError,
    StorageError,
)
from noteplan_mcp.models.schema import Category, Location, Note
from noteplan_mcp.storage.base import Repository
from noteplan_mcp.storage.markdown_parser import MarkdownParser
from noteplan_mcp.storage.note_cache import DEFAULT_TTL_SECONDS
from noteplan_mcp.storage.scanner import TreeScanner, is_visible_dir

logger = logging.getLogger(__name__)


def _is_same_file(a: Path, b: Path) -> bool:
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


class NoteRepository(Repository):
    """Notes stored as plain-text files under the two category roots.

    A note's identity is its (category, folder, filename stem); nothing is
    stored besides the files themselves. Every relocation is a single
    ``rename`` call and collisions are checked before anything is written.
    """

    kind = "filesystem"

    def __init__(
        self,
        calendar_dir: Optional[Path] = None,
        notes_dir: Optional[Path] = None,
        note_extension: Optional[str] = None,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        parser: Optional[MarkdownParser] = None,
        extensions: Iterable[str] = ACCEPTED_EXTENSIONS,
    ):
        """Initialize the repository.

        Args:
            calendar_dir: Root of daily notes. If None, uses config.
            notes_dir: Root of regular notes. If None, uses config.
            note_extension: Extension for newly created files. If None, uses config.
            cache_ttl: Seconds a scanned snapshot stays valid.
            clock: Monotonic time source for the cache.
            parser: Parser used for note files.
            extensions: File extensions recognised as notes.
        """
        super().__init__(cache_ttl=cache_ttl, clock=clock, parser=parser)
        self.roots: Dict[Category, Path] = {
            Category.CALENDAR: Path(calendar_dir or config.get_calendar_path()),
            Category.NOTE: Path(notes_dir or config.get_notes_path()),
        }
        self.extension = note_extension or config.note_extension
        self.extensions = tuple(extensions)
        self.scanner = TreeScanner(self.parser, self.extensions)

        logger.info(
            f"NoteRepository initialized: calendar_dir={self.roots[Category.CALENDAR]}, "
            f"notes_dir={self.roots[Category.NOTE]}, extension={self.extension}"
        )

    def _load_all_notes(self) -> List[Note]:
        notes: List[Note] = []
        for category in (Category.CALENDAR, Category.NOTE):
            notes.extend(
                self.scanner.scan(self.roots[category], Location.root(category))
            )
        return notes

    def _reparse(self, file_path: Path, location: Location, operation: str) -> Note:
        note = self.parser.parse_file(file_path, location)
        if note is None:
            raise StorageError(
                f"Failed to read note after {operation}",
                operation=operation,
                path=str(file_path),
                code=ErrorCode.STORAGE_READ_FAILED,
            )
        return note

    def _source_path(self, note: Note) -> Path:
        if note.source_path is None or not note.source_path.is_file():
            raise NoteNotFoundError(note.id, f"Note '{note.id}' has no backing file")
        return note.source_path

    def _find_occupant(self, directory: Path, stem: str) -> Optional[Path]:
        """Existing note file in ``directory`` with this stem, any extension."""
        for ext in self.extensions:
            candidate = directory / f"{stem}{ext}"
            if candidate.exists():
                return candidate
        return None

    def create(self, location: Location, stem: str, content: str) -> Note:
        """Create a new note file, refusing to overwrite anything."""
        directory = location.to_filesystem_path(self.roots)
        file_path = directory / f"{stem}{self.extension}"

        occupant = self._find_occupant(directory, stem)
        if occupant is not None:
            raise AlreadyExistsError(
                f"A note named '{stem}' already exists in "
                f"'{location.to_display_string()}'",
                target=occupant.name,
            )

        try:
            directory.mkdir(parents=True, exist_ok=True)
            with open(file_path, "x", encoding="utf-8") as f:
                f.write(content)
        except FileExistsError as e:
            raise AlreadyExistsError(
                f"A note named '{stem}' already exists", target=file_path.name
            ) from e
        except OSError as e:
            raise StorageError(
                f"Failed to create note: {e}",
                operation="create",
                path=str(file_path),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

        logger.info(f"Created note file {file_path.name} in {location}")
        return self._reparse(file_path, location, "create")

    def write(self, note: Note, content: str) -> Note:
        """Overwrite the note's file with ``content``."""
        file_path = self._source_path(note)
        try:
            with open(file_path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise StorageError(
                f"Failed to update note: {e}",
                operation="update",
                path=str(file_path),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e
        return self._reparse(file_path, note.location, "update")

    def rename(self, note: Note, new_stem: str, content: str) -> Note:
        """Write new content, then rename the file within its folder."""
        file_path = self._source_path(note)
        target = file_path.with_name(f"{new_stem}{file_path.suffix}")

        occupant = self._find_occupant(file_path.parent, new_stem)
        if occupant is not None and not _is_same_file(occupant, file_path):
            raise AlreadyExistsError(
                f"A note named '{new_stem}' already exists in "
                f"'{note.location.to_display_string()}'",
                target=occupant.name,
            )

        self.write(note, content)
        try:
            file_path.rename(target)
        except OSError as e:
            raise StorageError(
                f"Failed to rename note: {e}",
                operation="rename",
                path=str(file_path),
                code=ErrorCode.STORAGE_RENAME_FAILED,
                original_error=e,
            ) from e

        logger.info(f"Renamed note file {file_path.name} -> {target.name}")
        return self._reparse(target, note.location, "rename")

    def move(self, note: Note, destination: Location) -> Note:
        """Move the note's file into another folder."""
        file_path = self._source_path(note)
        target_dir = destination.to_filesystem_path(self.roots)
        target = target_dir / file_path.name

        occupant = self._find_occupant(target_dir, file_path.stem)
        if occupant is not None:
            if _is_same_file(occupant, file_path):
                return self._reparse(file_path, destination, "move")
            raise AlreadyExistsError(
                f"A note named '{file_path.stem}' already exists in "
                f"'{destination.to_display_string()}'",
                target=occupant.name,
            )

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            file_path.rename(target)
        except OSError as e:
            raise StorageError(
                f"Failed to move note: {e}",
                operation="move",
                path=str(file_path),
                code=ErrorCode.STORAGE_RENAME_FAILED,
                original_error=e,
            ) from e

        logger.info(f"Moved note file {file_path.name} to {destination}")
        return self._reparse(target, destination, "move")

    def folder_exists(self, location: Location) -> bool:
        return location.to_filesystem_path(self.roots).is_dir()

    def create_folder(self, location: Location) -> None:
        folder_path = location.to_filesystem_path(self.roots)
        if folder_path.exists():
            raise AlreadyExistsError(
                f"Folder '{location.to_display_string()}' already exists",
                target=location.path,
                code=ErrorCode.FOLDER_ALREADY_EXISTS,
            )
        try:
            folder_path.mkdir(parents=True)
        except FileExistsError as e:
            raise AlreadyExistsError(
                f"Folder '{location.to_display_string()}' already exists",
                target=location.path,
                code=ErrorCode.FOLDER_ALREADY_EXISTS,
            ) from e
        except OSError as e:
            raise StorageError(
                f"Failed to create folder: {e}",
                operation="create_folder",
                path=str(folder_path),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e
        logger.info(f"Created folder {location}")

    def rename_folder(self, source: Location, destination: Location) -> None:
        """Rename a directory in one call; its whole subtree follows."""
        source_path = source.to_filesystem_path(self.roots)
        destination_path = destination.to_filesystem_path(self.roots)

        if not source_path.exists():
            raise FolderNotFoundError(source.to_display_string())
        if not source_path.is_dir():
            raise NotAFolderError(source.to_display_string())
        if destination_path.exists():
            raise AlreadyExistsError(
                f"Folder '{destination.to_display_string()}' already exists",
                target=destination.path,
                code=ErrorCode.FOLDER_ALREADY_EXISTS,
            )

        try:
            source_path.rename(destination_path)
        except OSError as e:
            raise StorageError(
                f"Failed to rename folder: {e}",
                operation="rename_folder",
                path=str(source_path),
                code=ErrorCode.STORAGE_RENAME_FAILED,
                original_error=e,
            ) from e
        logger.info(f"Renamed folder {source} -> {destination}")

    def list_folders(self) -> List[Location]:
        folders: List[Location] = []

        def walk(directory: Path, location: Location) -> None:
            try:
                entries = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError as e:
                logger.warning(f"Error listing folders in {directory}: {e}")
                return
            for entry in entries:
                if entry.is_dir() and is_visible_dir(entry.name):
                    child = location.child(entry.name)
                    folders.append(child)
                    walk(entry, child)

        notes_root = self.roots[Category.NOTE]
        if notes_root.is_dir():
            walk(notes_root, Location.root(Category.NOTE))
        return sorted(folders, key=lambda loc: loc.path)
