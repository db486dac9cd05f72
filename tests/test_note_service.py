# tests/test_note_service.py
"""Tests for the NoteService class against both storage backends."""
import pytest

from noteplan_mcp.exceptions import (
    AlreadyExistsError,
    AmbiguousMatchError,
    ErrorCode,
    FolderNotFoundError,
    ForbiddenError,
    InvalidLocationError,
    InvalidNameError,
    MissingFieldError,
    NoteNotFoundError,
    TextNotFoundError,
    ValidationError,
)
from noteplan_mcp.models.schema import Category
from noteplan_mcp.services.note_service import NoteService
from noteplan_mcp.storage.memory_repository import InMemoryNoteRepository


class TestReads:
    def test_get_all_notes_empty(self, note_service):
        assert note_service.get_all_notes() == []

    def test_create_then_get_by_id(self, note_service):
        created = note_service.create_note(title="Test Note", content="Body text")

        found = note_service.get_note_by_id(created.id)

        assert found is not None
        assert found.title == created.title == "Test Note"
        assert found.content == created.content == "# Test Note\n\nBody text"

    def test_get_by_id_missing(self, note_service):
        assert note_service.get_note_by_id("note-missing") is None
        assert note_service.get_note_by_id("") is None

    def test_get_by_id_date_forms(self, note_service):
        daily = note_service.create_daily_note(date="2025-09-29")

        assert daily.id == "calendar-20250929"
        assert note_service.get_note_by_id("20250929").id == daily.id
        assert note_service.get_note_by_id("2025-09-29").id == daily.id
        assert note_service.get_note_by_id("calendar-20250929").id == daily.id

    def test_get_by_title_exact_match(self, note_service):
        note_service.create_note(title="Alpha")
        assert note_service.get_note_by_title("Alpha").title == "Alpha"
        assert note_service.get_note_by_title("alpha") is None

    def test_search_title_or_content(self, note_service):
        note_service.create_note(title="Groceries", content="milk and EGGS")
        note_service.create_note(title="Eggs benedict recipe")
        note_service.create_note(title="Unrelated")

        titles = {n.title for n in note_service.search_notes("eggs")}
        assert titles == {"Groceries", "Eggs benedict recipe"}

    def test_get_notes_by_folder(self, note_service):
        note_service.create_note(title="Root")
        note_service.create_note(title="Work", folder="Work")
        note_service.create_note(title="Deep", folder="Work/Tasks")
        note_service.create_note(title="Workshop", folder="Workshop")
        note_service.create_daily_note(date="20250929")

        everything = {n.title for n in note_service.get_notes_by_folder("/")}
        assert everything == {"Root", "Work", "Deep", "Workshop"}

        work = {n.title for n in note_service.get_notes_by_folder("Work")}
        assert work == {"Work", "Deep"}

    def test_get_notes_by_folder_rejects_calendar(self, note_service):
        with pytest.raises(InvalidLocationError):
            note_service.get_notes_by_folder("Calendar")
        with pytest.raises(InvalidLocationError):
            note_service.get_notes_by_folder("[daily-note]")

    def test_get_linked_notes(self, note_service):
        note_service.create_note(title="Beta")
        source = note_service.create_note(
            title="Alpha", content="See [[Beta]], [[Missing]] and [[Beta]] again"
        )

        links = note_service.get_linked_notes(source.id)

        assert [text for text, _ in links] == ["Beta", "Missing", "Beta"]
        assert links[0][1].title == "Beta"
        assert links[1][1] is None
        assert links[2][1].title == "Beta"

    def test_get_linked_notes_unknown_id(self, note_service):
        with pytest.raises(NoteNotFoundError):
            note_service.get_linked_notes("note-nope")

    def test_get_daily_notes_range(self, note_service):
        for day in ("2025-09-27", "2025-09-28", "2025-09-29", "2025-10-01"):
            note_service.create_daily_note(date=day)
        note_service.create_note(title="Not daily")

        in_range = note_service.get_daily_notes(start="2025-09-28", end="20250930")
        assert [n.source_stem for n in in_range] == ["20250929", "20250928"]

        limited = note_service.get_daily_notes(limit=2)
        assert [n.source_stem for n in limited] == ["20251001", "20250929"]

        assert len(note_service.get_daily_notes(limit=0)) == 4


class TestCache:
    def test_reads_within_ttl_share_snapshot(self, note_service, fake_clock):
        first = note_service.get_all_notes()
        fake_clock.advance(1)
        assert note_service.get_all_notes() is first

    def test_mutation_refreshes_snapshot(self, note_service):
        first = note_service.get_all_notes()
        note_service.create_note(title="New")
        second = note_service.get_all_notes()
        assert second is not first
        assert [n.title for n in second] == ["New"]


class TestCreate:
    def test_create_note_filename(self, note_service):
        note = note_service.create_note(title="Meeting: Q3/Q4 plan!")
        assert note.id == "note-Meeting-Q3Q4-plan-1700000000000"
        assert note.location.is_root()
        assert note.category == Category.NOTE

    def test_create_note_keeps_matching_heading(self, note_service):
        note = note_service.create_note(title="Custom", content="# Custom\n\nbody")
        assert note.content == "# Custom\n\nbody"
        assert note.title == "Custom"

    def test_create_note_body_heading_keeps_title(self, note_service):
        note = note_service.create_note(title="Plan", content="intro\n# Other")

        assert note.content == "# Plan\n\nintro\n# Other"
        fetched = note_service.get_note_by_id(note.id)
        assert fetched.title == "Plan"

    def test_create_note_different_heading_is_prefixed(self, note_service):
        note = note_service.create_note(title="Plan", content="# Other\n\nbody")
        assert note.content == "# Plan\n\n# Other\n\nbody"
        assert note_service.get_note_by_id(note.id).title == "Plan"

    def test_create_note_with_frontmatter_untouched(self, note_service):
        content = "---\ntitle: Plan\n---\nbody"
        note = note_service.create_note(title="Plan", content=content)
        assert note.content == content
        assert note_service.get_note_by_id(note.id).title == "Plan"

    def test_create_note_without_content(self, note_service):
        note = note_service.create_note(title="Empty")
        assert note.content == "# Empty\n\n"

    def test_create_note_in_new_folder(self, note_service):
        note = note_service.create_note(title="Deep", folder="A/B/C")
        assert note.location.path == "A/B/C"
        assert "A/B/C" in note_service.list_folders()

    def test_create_note_requires_title(self, note_service):
        with pytest.raises(MissingFieldError) as exc_info:
            note_service.create_note(title="")
        assert exc_info.value.code == ErrorCode.NOTE_TITLE_REQUIRED

    @pytest.mark.parametrize("folder", ["Calendar", "Calendar/2025", "../escape"])
    def test_create_note_rejects_bad_folders(self, note_service, folder):
        with pytest.raises(InvalidLocationError):
            note_service.create_note(title="X", folder=folder)

    def test_create_daily_note_template(self, note_service):
        note = note_service.create_daily_note()

        assert note.id == "calendar-20250929"
        assert note.title == "20250929"
        assert "## Today's Plan" in note.content
        assert "## Reflection" in note.content
        assert note.display_folder == "[daily-note]"

    def test_create_daily_note_custom_content(self, note_service):
        note = note_service.create_daily_note(date="20251224", content="# Eve")
        assert note.content == "# Eve"
        assert note.id == "calendar-20251224"

    def test_create_daily_note_twice(self, note_service):
        note_service.create_daily_note(date="2025-09-29")
        with pytest.raises(AlreadyExistsError):
            note_service.create_daily_note(date="2025-09-29")

    @pytest.mark.parametrize("date", ["2025-13-45", "tomorrow", "2025/09/29"])
    def test_create_daily_note_bad_date(self, note_service, date):
        with pytest.raises(ValidationError) as exc_info:
            note_service.create_daily_note(date=date)
        assert exc_info.value.code == ErrorCode.INVALID_DATE


class TestUpdateAndEdit:
    def test_update_content(self, note_service):
        note = note_service.create_note(title="Doc", content="v1")
        updated = note_service.update_note(note.id, content="# Doc\n\nv2")
        assert updated.content == "# Doc\n\nv2"
        assert note_service.get_note_by_id(note.id).content == "# Doc\n\nv2"

    def test_update_title_rewrites_heading(self, note_service):
        note = note_service.create_note(title="Doc", content="body")
        updated = note_service.update_note(note.id, title="Renamed Doc")
        assert updated.content == "# Renamed Doc\n\nbody"
        assert updated.title == "Renamed Doc"
        # Filename is untouched by update
        assert updated.id == note.id

    def test_update_title_prepends_heading(self, note_service):
        note = note_service.create_note(title="Doc")
        updated = note_service.update_note(note.id, title="Titled", content="plain")
        assert updated.content == "# Titled\n\nplain"

    def test_update_title_skips_bare_marker_line(self, note_service):
        note = note_service.create_note(title="Doc")
        updated = note_service.update_note(
            note.id, title="Titled", content="# \nintro\n# Doc\nbody"
        )
        assert updated.content == "# \nintro\n# Titled\nbody"
        assert updated.title == "Titled"

    def test_update_ignores_folder(self, note_service):
        note = note_service.create_note(title="Stay", folder="Here")
        updated = note_service.update_note(note.id, content="x", folder="Elsewhere")
        assert updated.location.path == "Here"
        assert note_service.get_notes_by_folder("Elsewhere") == []

    def test_update_missing(self, note_service):
        with pytest.raises(NoteNotFoundError):
            note_service.update_note("note-nope", content="x")

    def test_edit_single_occurrence(self, note_service):
        note = note_service.create_note(title="T", content="hello world")
        edited = note_service.edit_note(note.id, old_text="world", new_text="there")
        assert edited.content == "# T\n\nhello there"

    def test_edit_ambiguous(self, note_service):
        note = note_service.create_note(title="T", content="foo bar foo")
        with pytest.raises(AmbiguousMatchError) as exc_info:
            note_service.edit_note(note.id, old_text="foo", new_text="baz")
        assert exc_info.value.occurrences == 2

    def test_edit_replace_all(self, note_service):
        note = note_service.create_note(title="T", content="foo bar foo")
        edited = note_service.edit_note(
            note.id, old_text="foo", new_text="baz", replace_all=True
        )
        assert "foo" not in edited.content
        assert edited.content.count("baz") == 2

    def test_edit_text_not_found(self, note_service):
        note = note_service.create_note(title="T", content="abc")
        with pytest.raises(TextNotFoundError):
            note_service.edit_note(note.id, old_text="xyz", new_text="q")

    def test_edit_requires_old_text(self, note_service):
        note = note_service.create_note(title="T", content="abc")
        with pytest.raises(MissingFieldError):
            note_service.edit_note(note.id, old_text="", new_text="q")

    def test_edit_daily_note(self, note_service):
        daily = note_service.create_daily_note(date="20250929", content="- [ ] task")
        edited = note_service.edit_note("20250929", old_text="[ ]", new_text="[x]")
        assert edited.id == daily.id
        assert edited.content == "- [x] task"


class TestRenameAndMove:
    def test_rename_note(self, note_service):
        note = note_service.create_note(title="Old Name", content="body", folder="W")

        renamed = note_service.rename_note(note.id, "New Name")

        assert renamed.id == "note-New-Name"
        assert renamed.title == "New Name"
        assert renamed.content == "# New Name\n\nbody"
        assert renamed.location.path == "W"
        assert note_service.get_note_by_id(note.id) is None

    def test_rename_collision(self, note_service):
        note_service.rename_note(note_service.create_note(title="A").id, "Taken")
        other = note_service.create_note(title="B")
        with pytest.raises(AlreadyExistsError):
            note_service.rename_note(other.id, "Taken")

    @pytest.mark.parametrize("title", ["Valid Title", "", "!!!"])
    def test_rename_calendar_id_always_forbidden(self, note_service, title):
        with pytest.raises(ForbiddenError):
            note_service.rename_note("calendar-20250929", title)

    def test_rename_daily_note_by_date_forbidden(self, note_service):
        note_service.create_daily_note(date="20250929")
        with pytest.raises(ForbiddenError):
            note_service.rename_note("20250929", "Something")

    def test_rename_missing(self, note_service):
        with pytest.raises(NoteNotFoundError):
            note_service.rename_note("note-nope", "X")

    def test_rename_unusable_title(self, note_service):
        note = note_service.create_note(title="Fine")
        with pytest.raises(ValidationError):
            note_service.rename_note(note.id, "???")

    def test_move_note(self, note_service):
        note = note_service.create_note(title="Mover", content="stay same")

        moved = note_service.move_note(note.id, "Archive/2025")

        assert moved.id == note.id
        assert moved.location.path == "Archive/2025"
        assert moved.content == note.content
        assert [n.id for n in note_service.get_notes_by_folder("Archive")] == [note.id]

    def test_move_back_to_root(self, note_service):
        note = note_service.create_note(title="Mover", folder="Sub")
        moved = note_service.move_note(note.id, "/")
        assert moved.location.is_root()

        folders = note_service.list_folders()
        assert "/" not in folders
        assert "" not in folders

    def test_placeholder_store_move_to_root(self):
        service = NoteService(repository=InMemoryNoteRepository())
        service.move_note("note-Project-Ideas", "/")
        assert service.list_folders() == []
        assert service.get_note_by_id("note-Project-Ideas").location.is_root()

    def test_move_daily_note_forbidden(self, note_service):
        note_service.create_daily_note(date="20250929")
        with pytest.raises(ForbiddenError):
            note_service.move_note("calendar-20250929", "Somewhere")
        with pytest.raises(ForbiddenError):
            note_service.move_note("2025-09-29", "Somewhere")

    def test_move_into_calendar_rejected(self, note_service):
        note = note_service.create_note(title="X")
        with pytest.raises(InvalidLocationError):
            note_service.move_note(note.id, "Calendar")

    def test_move_missing(self, note_service):
        with pytest.raises(NoteNotFoundError):
            note_service.move_note("note-nope", "Somewhere")


class TestFolders:
    def test_rename_folder(self, note_service):
        note_service.create_note(title="Work item", folder="02. Work")
        note_service.create_note(title="Task item", folder="02. Work/10. Tasks")
        note_service.create_note(title="Elsewhere", folder="01. Home")

        result = note_service.rename_folder("02. Work", "03. Projects")

        assert result.affected_count == 2
        assert result.old_folder == "02. Work"
        assert result.new_folder == "03. Projects"
        assert "2 notes moved" in result.summary

        assert note_service.get_notes_by_folder("02. Work") == []
        by_path = {
            n.title: n.location.path
            for n in note_service.get_notes_by_folder("03. Projects")
        }
        assert by_path == {
            "Work item": "03. Projects",
            "Task item": "03. Projects/10. Tasks",
        }

    def test_rename_nested_folder(self, note_service):
        note_service.create_note(title="N", folder="Projects/Old")
        result = note_service.rename_folder("Projects/Old", "New")
        assert result.new_folder == "Projects/New"
        assert result.affected_count == 1

    @pytest.mark.parametrize("folder", ["Calendar", "[daily-note]", "/", ""])
    def test_rename_folder_forbidden(self, note_service, folder):
        with pytest.raises(ForbiddenError) as exc_info:
            note_service.rename_folder(folder, "Anything")
        assert exc_info.value.code == ErrorCode.FOLDER_OPERATION_FORBIDDEN

    @pytest.mark.parametrize("name", ["", "  ", "a/b", "a\\b", "Calendar", "..", ".x"])
    def test_rename_folder_invalid_name(self, note_service, name):
        note_service.create_folder("Work")
        with pytest.raises(InvalidNameError):
            note_service.rename_folder("Work", name)

    def test_rename_missing_folder(self, note_service):
        with pytest.raises(FolderNotFoundError):
            note_service.rename_folder("Ghost", "Other")

    def test_rename_folder_destination_taken(self, note_service):
        note_service.create_folder("A")
        note_service.create_folder("B")
        with pytest.raises(AlreadyExistsError):
            note_service.rename_folder("A", "B")

    def test_create_folder(self, note_service):
        location = note_service.create_folder("/Projects/2025/")
        assert location.path == "Projects/2025"
        assert note_service.list_folders() == ["Projects", "Projects/2025"]

    @pytest.mark.parametrize("folder", ["Calendar", "/", ""])
    def test_create_folder_forbidden(self, note_service, folder):
        with pytest.raises(ForbiddenError):
            note_service.create_folder(folder)

    def test_create_existing_folder(self, note_service):
        note_service.create_folder("Dup")
        with pytest.raises(AlreadyExistsError):
            note_service.create_folder("Dup")


class TestStatus:
    def test_status(self, note_service, repository):
        note_service.create_note(title="One")
        note_service.create_daily_note(date="20250929")

        status = note_service.status()

        assert status["backend"] == repository.kind
        assert status["total_notes"] == 2
        assert status["calendar_notes"] == 1
        assert status["regular_notes"] == 1
        assert status["cache_ttl_seconds"] == 5.0
        assert "total_operations" in status["metrics"]
