"""Common test fixtures for the NotePlan MCP server."""

import datetime
import itertools
from pathlib import Path

import pytest

from noteplan_mcp.config import config
from noteplan_mcp.observability import metrics
from noteplan_mcp.services.note_service import NoteService
from noteplan_mcp.storage.memory_repository import InMemoryNoteRepository
from noteplan_mcp.storage.note_repository import NoteRepository

TODAY = datetime.date(2025, 9, 29)


class FakeClock:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolated_metrics(tmp_path, monkeypatch):
    """Keep the global metrics collector away from the real home directory."""
    monkeypatch.setattr(metrics, "_metrics_file", tmp_path / "metrics.json")
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def noteplan_dir(tmp_path):
    """An empty NotePlan data directory with both category roots."""
    base = tmp_path / "NotePlan"
    (base / "Calendar").mkdir(parents=True)
    (base / "Notes").mkdir(parents=True)
    return base


@pytest.fixture
def test_config(noteplan_dir, monkeypatch):
    """Configure with test paths (auto-restored even on crash)."""
    monkeypatch.setattr(config, "base_dir", noteplan_dir)
    monkeypatch.setattr(config, "calendar_dir", Path("Calendar"))
    monkeypatch.setattr(config, "notes_dir", Path("Notes"))
    monkeypatch.setattr(config, "note_extension", ".txt")
    monkeypatch.setattr(config, "cache_ttl", 5.0)
    monkeypatch.setattr(config, "allow_fallback", True)
    yield config


@pytest.fixture
def write_file():
    """Write a file, creating parent directories as needed."""

    def _write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def fs_repository(test_config, fake_clock):
    """Filesystem repository over the temporary NotePlan tree."""
    return NoteRepository(
        calendar_dir=test_config.get_calendar_path(),
        notes_dir=test_config.get_notes_path(),
        note_extension=".txt",
        clock=fake_clock,
    )


@pytest.fixture
def memory_repository(fake_clock):
    """Empty in-memory repository."""
    return InMemoryNoteRepository(notes=[], clock=fake_clock)


@pytest.fixture(params=["filesystem", "memory"])
def repository(request):
    """Each storage backend in turn."""
    if request.param == "filesystem":
        return request.getfixturevalue("fs_repository")
    return request.getfixturevalue("memory_repository")


@pytest.fixture
def note_service(repository):
    """NoteService with a fixed date and deterministic filename suffixes."""
    counter = itertools.count(1700000000000)
    return NoteService(
        repository=repository,
        today=lambda: TODAY,
        timestamp_ms=lambda: next(counter),
    )


@pytest.fixture
def fs_service(fs_repository):
    """NoteService over the filesystem backend only."""
    counter = itertools.count(1700000000000)
    return NoteService(
        repository=fs_repository,
        today=lambda: TODAY,
        timestamp_ms=lambda: next(counter),
    )
