"""Tests for the recursive note tree scanner."""
import types

from noteplan_mcp.models.schema import Category, Location
from noteplan_mcp.storage.scanner import TreeScanner, is_note_file, is_visible_dir


def test_is_note_file(tmp_path):
    assert is_note_file(tmp_path / "a.md")
    assert is_note_file(tmp_path / "a.txt")
    assert not is_note_file(tmp_path / "a.pdf")
    assert not is_note_file(tmp_path / "a")


def test_is_visible_dir():
    assert is_visible_dir("Projects")
    assert not is_visible_dir(".git")
    assert not is_visible_dir("@Trash")


class TestTreeScanner:
    def test_scan_is_lazy(self, tmp_path):
        result = TreeScanner().scan(tmp_path, Location.root(Category.NOTE))
        assert isinstance(result, types.GeneratorType)

    def test_missing_directory_yields_nothing(self, tmp_path):
        scanner = TreeScanner()
        assert list(scanner.scan(tmp_path / "nope", Location.root(Category.NOTE))) == []

    def test_recurses_and_builds_locations(self, tmp_path, write_file):
        write_file(tmp_path / "Root.txt", "# Root")
        write_file(tmp_path / "02. Work" / "Work.md", "# Work")
        write_file(tmp_path / "02. Work" / "10. Tasks" / "Task.txt", "# Task")

        notes = list(TreeScanner().scan(tmp_path, Location.root(Category.NOTE)))
        by_title = {n.title: n for n in notes}

        assert set(by_title) == {"Root", "Work", "Task"}
        assert by_title["Root"].location.is_root()
        assert by_title["Work"].location.path == "02. Work"
        assert by_title["Task"].location.path == "02. Work/10. Tasks"

    def test_skips_hidden_reserved_and_foreign_files(self, tmp_path, write_file):
        write_file(tmp_path / "Keep.txt", "# Keep")
        write_file(tmp_path / "image.png", "not a note")
        write_file(tmp_path / ".git" / "Hidden.txt", "# Hidden")
        write_file(tmp_path / "@Trash" / "Deleted.md", "# Deleted")

        notes = list(TreeScanner().scan(tmp_path, Location.root(Category.NOTE)))

        assert [n.title for n in notes] == ["Keep"]

    def test_unreadable_file_is_skipped(self, tmp_path, write_file):
        write_file(tmp_path / "Good.txt", "# Good")
        (tmp_path / "Bad.txt").write_bytes(b"\xff\xfe\xfa")

        notes = list(TreeScanner().scan(tmp_path, Location.root(Category.NOTE)))

        assert [n.title for n in notes] == ["Good"]

    def test_scan_is_restartable(self, tmp_path, write_file):
        scanner = TreeScanner()
        write_file(tmp_path / "One.txt", "# One")
        assert len(list(scanner.scan(tmp_path, Location.root(Category.NOTE)))) == 1
        write_file(tmp_path / "Two.txt", "# Two")
        assert len(list(scanner.scan(tmp_path, Location.root(Category.NOTE)))) == 2
