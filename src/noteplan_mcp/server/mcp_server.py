"""MCP server implementation for NotePlan."""

import json
import logging
import uuid
from typing import Any, List, Optional

from mcp.server.fastmcp import FastMCP

from noteplan_mcp.config import config
from noteplan_mcp.exceptions import NoteNotFoundError, NotePlanError, ValidationError
from noteplan_mcp.models.schema import Note
from noteplan_mcp.services.note_service import NoteService

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 500
MAX_CONTENT_LENGTH = 1_000_000  # 1 MB

TRANSPORTS = ("stdio", "sse", "streamable-http")


def _validate_input_lengths(
    title: Optional[str] = None, content: Optional[str] = None
) -> None:
    """Validate input string lengths at the MCP boundary."""
    if title and len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title exceeds maximum length of {MAX_TITLE_LENGTH} characters",
            field="title",
        )
    if content and len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"Content exceeds maximum length of {MAX_CONTENT_LENGTH} characters",
            field="content",
        )


def _to_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _notes_json(notes: List[Note]) -> str:
    return _to_json([note.to_dict() for note in notes])


class NotePlanMcpServer:
    """MCP server exposing NotePlan notes as tools."""

    def __init__(self, service: Optional[NoteService] = None):
        """Initialize the MCP server.

        Args:
            service: Note service to dispatch to. Built from the global
                config (which also selects the storage backend) if None.
        """
        self.mcp = FastMCP(
            config.server_name,
            instructions=(
                "Read and organise NotePlan notes. Regular notes live in "
                "folders; daily notes are addressed by date (YYYYMMDD)."
            ),
        )
        self.note_service = service or NoteService()
        self.initialize()
        self._register_tools()

    def initialize(self) -> None:
        """Initialize services."""
        logger.info(
            f"NotePlan MCP server initialized "
            f"({self.note_service.repository.kind} backend)"
        )

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Args:
            error: The exception that occurred

        Returns:
            Formatted error message with appropriate level of detail
        """
        # Generate a unique error ID for traceability in logs
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, NotePlanError):
            # Structured domain errors - use the error code and message
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            # Log full detail but return generic ref to avoid leaking internals
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        elif isinstance(error, OSError):
            # File system errors - don't expose paths or detailed error messages
            logger.error(f"File system error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: A file system error occurred (ref: {error_id})"
        else:
            # Unexpected errors - log with full stack trace but return generic message
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="get_notes")
        def get_notes() -> str:
            """List every note (daily and regular), most recently modified first."""
            try:
                return _notes_json(self.note_service.get_all_notes())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="get_note_by_id")
        def get_note_by_id(note_id: str) -> str:
            """Get a single note by ID.
            Args:
                note_id: Note ID such as "note-Meeting-1700000000000" or
                    "calendar-20250929". Bare dates (20250929 or 2025-09-29)
                    resolve to the daily note for that date.
            """
            try:
                note = self.note_service.get_note_by_id(note_id)
                if note is None:
                    raise NoteNotFoundError(note_id)
                return _to_json(note.to_dict())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="get_note_by_title")
        def get_note_by_title(title: str) -> str:
            """Get the first note whose title matches exactly.
            Args:
                title: The note title (case-sensitive)
            """
            try:
                note = self.note_service.get_note_by_title(title)
                if note is None:
                    raise NoteNotFoundError(
                        title, f"Note with title '{title}' not found"
                    )
                return _to_json(note.to_dict())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="search_notes")
        def search_notes(query: str) -> str:
            """Search notes by title or content (case-insensitive).
            Args:
                query: Text to look for
            """
            try:
                return _notes_json(self.note_service.search_notes(query))
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="get_notes_by_folder")
        def get_notes_by_folder(folder: str) -> str:
            """List regular notes in a folder and its subfolders.
            Args:
                folder: Folder path such as "02. Work" or "Projects/Ideas";
                    "/" lists every regular note. Daily notes have no folder.
            """
            try:
                return _notes_json(self.note_service.get_notes_by_folder(folder))
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="get_linked_notes")
        def get_linked_notes(note_id: str) -> str:
            """Resolve the [[wiki links]] in a note to the notes they name.
            Args:
                note_id: ID of the note whose links to resolve
            """
            try:
                links = self.note_service.get_linked_notes(note_id)
                return _to_json(
                    [
                        {
                            "link_text": text,
                            "note": target.to_dict() if target else None,
                        }
                        for text, target in links
                    ]
                )
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="get_daily_notes")
        def get_daily_notes(
            start_date: Optional[str] = None,
            end_date: Optional[str] = None,
            limit: Optional[int] = None,
        ) -> str:
            """List daily notes in a date range, newest first.
            Args:
                start_date: Inclusive start date (YYYY-MM-DD or YYYYMMDD)
                end_date: Inclusive end date (YYYY-MM-DD or YYYYMMDD)
                limit: Maximum number of notes to return
            """
            try:
                return _notes_json(
                    self.note_service.get_daily_notes(
                        start=start_date, end=end_date, limit=limit
                    )
                )
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="create_note")
        def create_note(
            title: str, content: Optional[str] = None, folder: Optional[str] = None
        ) -> str:
            """Create a regular note.
            Args:
                title: The title of the note
                content: The body of the note (a "# title" heading is added
                    unless the content already has one)
                folder: Folder to create it in (created if missing)
            """
            try:
                _validate_input_lengths(title=title, content=content)
                note = self.note_service.create_note(
                    title=title, content=content, folder=folder
                )
                return _to_json(note.to_dict())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="create_daily_note")
        def create_daily_note(
            date: Optional[str] = None, content: Optional[str] = None
        ) -> str:
            """Create the daily note for a date.
            Args:
                date: YYYY-MM-DD or YYYYMMDD (defaults to today)
                content: Note content (defaults to a plan/notes/reflection template)
            """
            try:
                _validate_input_lengths(content=content)
                note = self.note_service.create_daily_note(date=date, content=content)
                return _to_json(note.to_dict())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="update_note")
        def update_note(
            note_id: str,
            title: Optional[str] = None,
            content: Optional[str] = None,
            folder: Optional[str] = None,
        ) -> str:
            """Update a note's content and/or heading.
            Args:
                note_id: ID of the note to update
                title: New title (rewrites the first "# " heading)
                content: Replacement content
                folder: Accepted but ignored; use move_note to relocate a note
            """
            try:
                _validate_input_lengths(title=title, content=content)
                note = self.note_service.update_note(
                    note_id=note_id, title=title, content=content, folder=folder
                )
                return _to_json(note.to_dict())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="edit_note")
        def edit_note(
            note_id: str, old_text: str, new_text: str, replace_all: bool = False
        ) -> str:
            """Replace exact text inside a note.
            Args:
                note_id: ID of the note to edit
                old_text: Text to find (must match exactly)
                new_text: Replacement text
                replace_all: Replace every occurrence instead of requiring a
                    unique match
            """
            try:
                _validate_input_lengths(content=new_text)
                note = self.note_service.edit_note(
                    note_id=note_id,
                    old_text=old_text,
                    new_text=new_text,
                    replace_all=replace_all,
                )
                return _to_json(note.to_dict())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="rename_note")
        def rename_note(note_id: str, new_title: str) -> str:
            """Rename a regular note (heading and filename). Daily notes cannot be renamed.
            Args:
                note_id: ID of the note to rename
                new_title: The new title
            """
            try:
                _validate_input_lengths(title=new_title)
                note = self.note_service.rename_note(
                    note_id=note_id, new_title=new_title
                )
                return _to_json(note.to_dict())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="move_note")
        def move_note(note_id: str, target_folder: str) -> str:
            """Move a regular note to another folder.
            Args:
                note_id: ID of the note to move
                target_folder: Destination folder ("/" for the root)
            """
            try:
                note = self.note_service.move_note(
                    note_id=note_id, target_folder=target_folder
                )
                return _to_json(note.to_dict())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="rename_folder")
        def rename_folder(old_folder: str, new_name: str) -> str:
            """Rename a folder; notes and subfolders inside it move along.
            Args:
                old_folder: Path of the folder to rename, e.g. "02. Work"
                new_name: New name for the last path segment, e.g. "03. Projects"
            """
            try:
                result = self.note_service.rename_folder(
                    old_folder=old_folder, new_name=new_name
                )
                return _to_json(result.to_dict())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="create_folder")
        def create_folder(folder: str) -> str:
            """Create a folder for regular notes (parents are created too).
            Args:
                folder: Folder path, e.g. "Projects/2025"
            """
            try:
                location = self.note_service.create_folder(folder)
                return _to_json({"folder": location.path, "created": True})
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="list_folders")
        def list_folders() -> str:
            """List every folder that holds regular notes."""
            try:
                return _to_json(self.note_service.list_folders())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="status")
        def status() -> str:
            """Show the storage backend, note counts and server metrics."""
            try:
                return _to_json(self.note_service.status())
            except Exception as e:
                return self.format_error_response(e)

    def run(self, transport: str = "stdio") -> None:
        """Run the MCP server.

        Args:
            transport: One of "stdio", "sse" or "streamable-http".
        """
        if transport not in TRANSPORTS:
            raise ValueError(f"Unknown transport '{transport}'")
        logger.info(f"Starting NotePlan MCP server on {transport}")
        self.mcp.run(transport=transport)
