"""Service layer for NotePlan note operations.

``NoteService`` is the note store: it resolves IDs and titles over the
cached snapshot, enforces the category rules (calendar notes have no
folders and cannot be renamed or moved), and delegates physical changes to
a ``Repository`` backend. Every mutation invalidates the backend's cache.
"""

import datetime
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from noteplan_mcp.config import NotePlanConfig, config
from noteplan_mcp.exceptions import (
    AlreadyExistsError,
    AmbiguousMatchError,
    ConfigurationError,
    ErrorCode,
    ForbiddenError,
    InvalidNameError,
    MissingFieldError,
    NoteNotFoundError,
    TextNotFoundError,
    ValidationError,
)
from noteplan_mcp.models.schema import (
    CALENDAR_ID_PREFIX,
    HIDDEN_PREFIXES,
    RESERVED_CALENDAR_NAME,
    Category,
    FolderRenameResult,
    Location,
    Note,
    is_calendar_folder,
    note_id_for,
    parse_user_folder,
    utc_now,
)
from noteplan_mcp.observability import metrics, traced
from noteplan_mcp.storage.base import Repository
from noteplan_mcp.storage.markdown_parser import first_heading, replace_heading
from noteplan_mcp.storage.memory_repository import InMemoryNoteRepository
from noteplan_mcp.storage.note_repository import NoteRepository
from noteplan_mcp.utils import normalize_date_key, sanitize_filename_stem

logger = logging.getLogger(__name__)

# [[Target title]] wiki links
WIKI_LINK_PATTERN = re.compile(r"\[\[([^\[\]]+?)\]\]")

_COMPACT_DATE = re.compile(r"^\d{8}$")
_DASHED_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DAILY_NOTE_TEMPLATE = """# {date}

## Today's Plan
- [ ]

## Notes


## Reflection


---
Created: {created}"""


def create_repository(
    settings: Optional[NotePlanConfig] = None,
    clock: Callable[[], float] = time.monotonic,
) -> Repository:
    """Pick the storage backend for the current machine.

    The filesystem backend is used when the NotePlan base directory and both
    category roots exist. Otherwise the in-memory backend with placeholder
    notes is used, unless fallback is disabled.

    Args:
        settings: Configuration to read paths from. Defaults to the global config.
        clock: Monotonic time source for the repository cache.

    Returns:
        The selected repository.

    Raises:
        ConfigurationError: If the directories are missing and
            ``allow_fallback`` is off.
    """
    settings = settings or config
    if settings.is_noteplan_available():
        return NoteRepository(
            calendar_dir=settings.get_calendar_path(),
            notes_dir=settings.get_notes_path(),
            note_extension=settings.note_extension,
            cache_ttl=settings.cache_ttl,
            clock=clock,
        )

    if not settings.allow_fallback:
        raise ConfigurationError(
            f"NotePlan directories not found under {settings.base_dir}",
            config_key="base_dir",
            code=ErrorCode.CONFIG_MISSING,
        )

    logger.warning(
        f"NotePlan directories not found under {settings.base_dir}; "
        "serving placeholder notes from memory"
    )
    return InMemoryNoteRepository(cache_ttl=settings.cache_ttl, clock=clock)


def _parse_date_key(value: str) -> str:
    """Validate a ``YYYY-MM-DD`` or ``YYYYMMDD`` date and return ``YYYYMMDD``."""
    key = normalize_date_key(value) or ""
    if not _COMPACT_DATE.match(key):
        raise ValidationError(
            f"Invalid date '{value}'. Use YYYY-MM-DD or YYYYMMDD",
            field="date",
            value=value,
            code=ErrorCode.INVALID_DATE,
        )
    try:
        datetime.datetime.strptime(key, "%Y%m%d")
    except ValueError as e:
        raise ValidationError(
            f"Invalid date '{value}': {e}",
            field="date",
            value=value,
            code=ErrorCode.INVALID_DATE,
        ) from e
    return key


def _is_structured(content: str, title: str) -> bool:
    """Content that opens with frontmatter or with the ``# title`` heading."""
    return content.startswith("---") or first_heading(content) == title.strip()


class NoteService:
    """Service for reading and organising NotePlan notes."""

    def __init__(
        self,
        repository: Optional[Repository] = None,
        today: Callable[[], datetime.date] = datetime.date.today,
        timestamp_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ):
        """Initialize the service.

        Args:
            repository: Storage backend. Selected with ``create_repository``
                if None.
            today: Source of the current date for daily notes.
            timestamp_ms: Source of the millisecond suffix for new filenames.
        """
        self.repository = repository or create_repository()
        self._today = today
        self._timestamp_ms = timestamp_ms
        logger.info(f"NoteService using {self.repository.kind} backend")

    def _invalidate(self) -> None:
        self.repository.invalidate()

    def _require_note(self, note_id: str) -> Note:
        note = self.get_note_by_id(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        return note

    # =========================================================================
    # Reads
    # =========================================================================

    @traced("get_all_notes")
    def get_all_notes(self) -> List[Note]:
        """All notes, newest modification first."""
        return self.repository.get_all()

    @traced("get_note_by_id")
    def get_note_by_id(self, note_id: str) -> Optional[Note]:
        """Resolve a note ID.

        Besides exact IDs, bare dates (``20250929`` or ``2025-09-29``) resolve
        to the matching daily note.

        Returns:
            The note, or None if nothing matches.
        """
        if not note_id:
            return None
        notes = self.repository.get_all()

        candidates = [note_id]
        if _COMPACT_DATE.match(note_id):
            candidates.append(f"{CALENDAR_ID_PREFIX}{note_id}")
        elif _DASHED_DATE.match(note_id):
            candidates.append(f"{CALENDAR_ID_PREFIX}{note_id.replace('-', '')}")

        for candidate in candidates:
            for note in notes:
                if note.id == candidate:
                    return note
        return None

    @traced("get_note_by_title")
    def get_note_by_title(self, title: str) -> Optional[Note]:
        """First note whose title matches exactly (case-sensitive)."""
        for note in self.repository.get_all():
            if note.title == title:
                return note
        return None

    @traced("search_notes")
    def search_notes(self, query: str) -> List[Note]:
        """Case-insensitive substring search over titles and content."""
        needle = query.lower()
        return [
            note
            for note in self.repository.get_all()
            if needle in note.title.lower() or needle in note.content.lower()
        ]

    @traced("get_notes_by_folder")
    def get_notes_by_folder(self, folder: Optional[str]) -> List[Note]:
        """Regular notes in a folder or any of its subfolders.

        ``"/"`` (or an empty string) returns every regular note.

        Raises:
            InvalidLocationError: If the folder string is invalid or names
                the calendar.
        """
        target = parse_user_folder(folder)
        return [
            note
            for note in self.repository.get_all()
            if note.category == Category.NOTE and target.contains(note.location)
        ]

    @traced("get_linked_notes")
    def get_linked_notes(self, note_id: str) -> List[Tuple[str, Optional[Note]]]:
        """Resolve the ``[[wiki links]]`` in a note's content.

        Returns:
            ``(link_text, note_or_none)`` pairs in order of appearance,
            duplicates included.
        """
        note = self._require_note(note_id)
        return [
            (text, self.get_note_by_title(text))
            for text in WIKI_LINK_PATTERN.findall(note.content)
        ]

    @traced("get_daily_notes")
    def get_daily_notes(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Note]:
        """Daily notes between two dates, newest date first.

        Args:
            start: Inclusive lower bound (``YYYY-MM-DD`` or ``YYYYMMDD``).
            end: Inclusive upper bound, same formats.
            limit: Maximum number of notes; ignored unless positive.
        """
        start_key = normalize_date_key(start) if start else None
        end_key = normalize_date_key(end) if end else None

        daily = []
        for note in self.repository.get_all():
            if not note.is_calendar:
                continue
            stem = note.source_stem or ""
            if start_key and stem < start_key:
                continue
            if end_key and stem > end_key:
                continue
            daily.append(note)

        daily.sort(key=lambda n: n.source_stem or "", reverse=True)
        if limit is not None and limit > 0:
            daily = daily[:limit]
        return daily

    @traced("list_folders")
    def list_folders(self) -> List[str]:
        """Every regular-note folder path, sorted."""
        return [location.path for location in self.repository.list_folders()]

    def status(self) -> Dict[str, Any]:
        """Backend and cache information for diagnostics."""
        notes = self.repository.get_all()
        calendar_count = sum(1 for n in notes if n.is_calendar)
        return {
            "backend": self.repository.kind,
            "total_notes": len(notes),
            "calendar_notes": calendar_count,
            "regular_notes": len(notes) - calendar_count,
            "cache_ttl_seconds": self.repository.cache.ttl,
            "metrics": metrics.get_summary(),
        }

    # =========================================================================
    # Mutations
    # =========================================================================

    @traced("create_daily_note")
    def create_daily_note(
        self, date: Optional[str] = None, content: Optional[str] = None
    ) -> Note:
        """Create the daily note for a date (today by default).

        Args:
            date: ``YYYY-MM-DD`` or ``YYYYMMDD``.
            content: Note text. A plan/notes/reflection template is used if
                empty.

        Raises:
            ValidationError: If the date cannot be parsed.
            AlreadyExistsError: If the daily note already exists.
        """
        date_key = _parse_date_key(date) if date else self._today().strftime("%Y%m%d")
        note_id = note_id_for(Category.CALENDAR, date_key)
        if self.get_note_by_id(note_id) is not None:
            raise AlreadyExistsError(
                f"Daily note for {date_key} already exists", target=note_id
            )

        body = content or DAILY_NOTE_TEMPLATE.format(
            date=date_key, created=utc_now().isoformat()
        )
        created = self.repository.create(Location.calendar(), date_key, body)
        self._invalidate()
        logger.info(f"Created daily note {created.id}")
        return created

    @traced("create_note")
    def create_note(
        self, title: str, content: Optional[str] = None, folder: Optional[str] = None
    ) -> Note:
        """Create a regular note.

        The filename is the sanitized title plus a millisecond timestamp. A
        ``# title`` heading is prepended unless the content already has a
        heading or frontmatter.

        Args:
            title: Note title (required).
            content: Note body.
            folder: Target folder; created if missing. Defaults to the root.

        Raises:
            MissingFieldError: If the title is empty.
            InvalidLocationError: If the folder is invalid or names the calendar.
        """
        if not title or not title.strip():
            raise MissingFieldError(
                "title", "Note title is required", code=ErrorCode.NOTE_TITLE_REQUIRED
            )

        location = parse_user_folder(folder)

        stem = f"{sanitize_filename_stem(title)}-{self._timestamp_ms()}"
        body = content or ""
        if not _is_structured(body, title):
            body = f"# {title}\n\n{body}"

        created = self.repository.create(location, stem, body)
        self._invalidate()
        logger.info(f"Created note {created.id} in {location}")
        return created

    @traced("update_note")
    def update_note(
        self,
        note_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
        folder: Optional[str] = None,
    ) -> Note:
        """Update a note's content and/or heading in place.

        Args:
            note_id: ID of the note to update.
            title: New title; rewrites the first heading (or prepends one).
            content: Replacement content, written verbatim.
            folder: Accepted for compatibility but never relocates the file;
                use ``move_note`` for that.

        Returns:
            The reparsed note.
        """
        note = self._require_note(note_id)
        if folder is not None:
            logger.debug(
                f"update_note ignores folder '{folder}' for {note.id}; use move_note"
            )

        new_content = content if content is not None else note.content
        if title:
            new_content = replace_heading(new_content, title)

        updated = self.repository.write(note, new_content)
        self._invalidate()
        return updated

    @traced("edit_note")
    def edit_note(
        self,
        note_id: str,
        old_text: str,
        new_text: str,
        replace_all: bool = False,
    ) -> Note:
        """Replace literal text inside a note.

        Raises:
            MissingFieldError: If ``old_text`` is empty.
            NoteNotFoundError: If the note does not exist.
            TextNotFoundError: If ``old_text`` does not occur.
            AmbiguousMatchError: If it occurs more than once and
                ``replace_all`` is not set.
        """
        if not old_text:
            raise MissingFieldError("old_text")
        note = self._require_note(note_id)

        occurrences = note.content.count(old_text)
        if occurrences == 0:
            raise TextNotFoundError(note.id, old_text)
        if occurrences > 1 and not replace_all:
            raise AmbiguousMatchError(note.id, occurrences)

        if replace_all:
            new_content = note.content.replace(old_text, new_text)
        else:
            new_content = note.content.replace(old_text, new_text, 1)
        return self.update_note(note_id=note.id, content=new_content)

    @traced("rename_note")
    def rename_note(self, note_id: str, new_title: str) -> Note:
        """Retitle a regular note and rename its file to match.

        Raises:
            ForbiddenError: For daily notes, whose names are fixed.
            NoteNotFoundError: If the note does not exist.
            ValidationError: If the title leaves nothing usable as a filename.
            AlreadyExistsError: If another note already has that filename.
        """
        if note_id.startswith(CALENDAR_ID_PREFIX):
            raise ForbiddenError(
                "Daily notes cannot be renamed", operation="rename_note"
            )
        note = self._require_note(note_id)
        if note.is_calendar:
            raise ForbiddenError(
                "Daily notes cannot be renamed", operation="rename_note"
            )

        stem = sanitize_filename_stem(new_title or "")
        if not stem.strip("-"):
            raise ValidationError(
                f"Title '{new_title}' does not produce a usable filename",
                field="new_title",
                value=new_title,
            )

        content = replace_heading(note.content, new_title)
        renamed = self.repository.rename(note, stem, content)
        self._invalidate()
        logger.info(f"Renamed note {note.id} -> {renamed.id}")
        return renamed

    @traced("move_note")
    def move_note(self, note_id: str, target_folder: Optional[str]) -> Note:
        """Move a regular note to another folder, keeping its filename.

        Raises:
            ForbiddenError: For daily notes.
            InvalidLocationError: If the target folder is invalid or names the calendar.
            NoteNotFoundError: If the note does not exist.
            AlreadyExistsError: If the destination filename is taken.
        """
        if note_id.startswith(CALENDAR_ID_PREFIX):
            raise ForbiddenError("Daily notes cannot be moved", operation="move_note")
        destination = parse_user_folder(target_folder)

        note = self._require_note(note_id)
        if note.is_calendar:
            raise ForbiddenError("Daily notes cannot be moved", operation="move_note")

        moved = self.repository.move(note, destination)
        self._invalidate()
        logger.info(f"Moved note {note.id} from {note.location} to {destination}")
        return moved

    @traced("rename_folder")
    def rename_folder(self, old_folder: str, new_name: str) -> FolderRenameResult:
        """Rename the last segment of a folder; its subtree moves with it.

        Args:
            old_folder: Folder path, e.g. ``"02. Work"`` or ``"Projects/Old"``.
            new_name: New name for the final segment only.

        Returns:
            The old and new paths plus how many notes lived under the folder.

        Raises:
            ForbiddenError: If the folder is the calendar or the root.
            InvalidNameError: If the new name is empty, nested or reserved.
            FolderNotFoundError: If the folder does not exist.
            AlreadyExistsError: If the destination is taken.
        """
        if is_calendar_folder(old_folder):
            raise ForbiddenError(
                "The calendar folder cannot be renamed",
                operation="rename_folder",
                code=ErrorCode.FOLDER_OPERATION_FORBIDDEN,
            )
        source = parse_user_folder(old_folder)
        if source.is_root():
            raise ForbiddenError(
                "The notes root cannot be renamed",
                operation="rename_folder",
                code=ErrorCode.FOLDER_OPERATION_FORBIDDEN,
            )

        name = (new_name or "").strip()
        if (
            not name
            or "/" in name
            or "\\" in name
            or name in (".", "..", RESERVED_CALENDAR_NAME)
            or name.startswith(HIDDEN_PREFIXES)
        ):
            raise InvalidNameError(new_name or "")

        destination = source.with_name(name)
        affected = sum(
            1
            for note in self.repository.get_all()
            if note.category == Category.NOTE and source.contains(note.location)
        )

        self.repository.rename_folder(source, destination)
        self._invalidate()

        result = FolderRenameResult(
            old_folder=source.path,
            new_folder=destination.path,
            affected_count=affected,
        )
        logger.info(result.summary)
        return result

    @traced("create_folder")
    def create_folder(self, folder: str) -> Location:
        """Create a folder (and missing parents) for regular notes.

        Raises:
            ForbiddenError: If the folder is the calendar or the root.
            AlreadyExistsError: If the folder already exists.
        """
        if is_calendar_folder(folder):
            raise ForbiddenError(
                "Folders cannot be created in the calendar",
                operation="create_folder",
                code=ErrorCode.FOLDER_OPERATION_FORBIDDEN,
            )
        location = parse_user_folder(folder)
        if location.is_root():
            raise ForbiddenError(
                "The notes root already exists",
                operation="create_folder",
                code=ErrorCode.FOLDER_OPERATION_FORBIDDEN,
            )

        self.repository.create_folder(location)
        logger.info(f"Created folder {location}")
        return location
