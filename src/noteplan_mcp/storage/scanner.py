"""Recursive discovery of note files under a category root."""
import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional

from noteplan_mcp.config import ACCEPTED_EXTENSIONS
from noteplan_mcp.models.schema import HIDDEN_PREFIXES, Location, Note
from noteplan_mcp.storage.markdown_parser import MarkdownParser

logger = logging.getLogger(__name__)


def is_note_file(path: Path, extensions: Iterable[str] = ACCEPTED_EXTENSIONS) -> bool:
    return path.suffix in tuple(extensions)


def is_visible_dir(name: str) -> bool:
    """Hidden (``.``) and reserved (``@``) directories are never scanned."""
    return not name.startswith(HIDDEN_PREFIXES)


class TreeScanner:
    """Walks a category root lazily, yielding one Note per readable file.

    The walk is best-effort: a missing root yields nothing, and files or
    directories that cannot be read are logged and skipped rather than
    aborting the scan. Each call to ``scan`` starts a fresh walk.
    """

    def __init__(
        self,
        parser: Optional[MarkdownParser] = None,
        extensions: Iterable[str] = ACCEPTED_EXTENSIONS,
    ):
        self.parser = parser or MarkdownParser()
        self.extensions = tuple(extensions)

    def scan(self, directory: Path, location: Location) -> Iterator[Note]:
        """Yield every note beneath ``directory``.

        Args:
            directory: Filesystem directory to walk.
            location: Logical location that ``directory`` corresponds to.
                Subdirectories extend its path by their name.
        """
        if not directory.is_dir():
            return

        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.warning(f"Error scanning directory {directory}: {e}")
            return

        for entry in entries:
            try:
                if entry.is_file():
                    if not is_note_file(entry, self.extensions):
                        continue
                    note = self.parser.parse_file(entry, location)
                    if note is not None:
                        yield note
                elif entry.is_dir() and is_visible_dir(entry.name):
                    yield from self.scan(entry, location.child(entry.name))
            except OSError as e:
                logger.warning(f"Skipping {entry}: {e}")
