"""Parsing of NotePlan note files into Note records.

A note file is plain text (``.md`` or ``.txt``). Its title comes from a
``title:`` field in leading YAML frontmatter, else from the first ``# ``
heading, else from the filename stem. The note ID is derived from the stem
and the category, never stored in the file.
"""
import datetime
import logging
from datetime import timezone
from pathlib import Path
from typing import Optional

import frontmatter
import yaml

from noteplan_mcp.models.schema import Location, Note, note_id_for

logger = logging.getLogger(__name__)

HEADING_MARKER = "# "


def _heading_text(line: str) -> Optional[str]:
    """Title carried by a ``# `` heading line, or None if it is not one."""
    line = line.rstrip("\r")
    if line.startswith(HEADING_MARKER) and len(line) > len(HEADING_MARKER):
        text = line[len(HEADING_MARKER):].strip()
        return text or None
    return None


def first_heading(content: str) -> Optional[str]:
    """Text of the first ``# `` heading in ``content``, or None."""
    for line in content.split("\n"):
        heading = _heading_text(line)
        if heading is not None:
            return heading
    return None


def replace_heading(content: str, title: str) -> str:
    """Rewrite the first ``# `` heading line, or prepend one.

    Bare ``# `` lines without text are not headings and are left alone.
    When no heading exists a heading plus a blank line is inserted at the
    top of the content.
    """
    lines = content.split("\n")
    for i, line in enumerate(lines):
        if _heading_text(line) is not None:
            lines[i] = f"{HEADING_MARKER}{title}"
            return "\n".join(lines)
    return "\n".join([f"{HEADING_MARKER}{title}", ""] + lines)


class MarkdownParser:
    """Reads note files and derives their display metadata."""

    def extract_title(self, content: str, fallback: str) -> str:
        """Find the display title for a note.

        Args:
            content: Full text of the note.
            fallback: Title to use when neither frontmatter nor a heading
                provides one (normally the filename stem).

        Returns:
            The extracted title.
        """
        body = content
        if content.startswith("---"):
            try:
                post = frontmatter.loads(content)
            except (yaml.YAMLError, ValueError) as e:
                logger.warning(f"Ignoring malformed frontmatter: {e}")
            else:
                title = post.metadata.get("title")
                if title is not None and str(title).strip():
                    return str(title).strip()
                body = post.content

        heading = first_heading(body)
        return heading if heading is not None else fallback

    def build_note(
        self,
        stem: str,
        location: Location,
        content: str,
        created: datetime.datetime,
        modified: datetime.datetime,
        source_path: Optional[Path] = None,
    ) -> Note:
        """Assemble a Note from its parts, deriving ID and title."""
        return Note(
            id=note_id_for(location.category, stem),
            title=self.extract_title(content, stem),
            content=content,
            created=created,
            modified=modified,
            location=location,
            source_path=source_path,
            source_stem=stem,
        )

    def parse_file(self, file_path: Path, location: Location) -> Optional[Note]:
        """Parse a note file.

        Args:
            file_path: Path of the note file.
            location: Logical location of the directory holding the file.

        Returns:
            The parsed Note, or None if the file could not be read. A file
            that fails to parse contributes no note; the error is logged.
        """
        try:
            content = file_path.read_text(encoding="utf-8")
            stats = file_path.stat()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Error parsing file {file_path.name}: {e}")
            return None

        # st_birthtime exists on macOS/BSD; Linux only offers ctime
        created_ts = getattr(stats, "st_birthtime", stats.st_ctime)
        return self.build_note(
            stem=file_path.stem,
            location=location,
            content=content,
            created=datetime.datetime.fromtimestamp(created_ts, tz=timezone.utc),
            modified=datetime.datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
            source_path=file_path,
        )
