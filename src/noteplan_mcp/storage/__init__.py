"""Storage layer for the NotePlan MCP server."""

from noteplan_mcp.storage.base import Repository
from noteplan_mcp.storage.memory_repository import InMemoryNoteRepository
from noteplan_mcp.storage.note_cache import NoteCache
from noteplan_mcp.storage.note_repository import NoteRepository

__all__ = [
    "Repository",
    "NoteRepository",
    "InMemoryNoteRepository",
    "NoteCache",
]
