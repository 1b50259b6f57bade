"""Tests for tagging, renaming with merge, deletion and icons."""
import pytest

from keeper_store.exceptions import ErrorCode, NoteNotFoundError, ValidationError


def _tag_by_name(service, name):
    return next(t for t in service.get_all_tags() if t.name == name)


class TestAddTag:
    """Tests for add_tag()."""

    def test_add_tag_creates_and_attaches(self, service):
        note = service.create_note("body")

        updated = service.add_tag(note.id, "work")

        assert updated.tag_names == ["work"]
        assert [t.name for t in service.get_all_tags()] == ["work"]

    def test_add_tag_is_idempotent(self, service):
        note = service.create_note("body")
        once = service.add_tag(note.id, "work")
        twice = service.add_tag(note.id, "work")

        assert once.tags == twice.tags
        assert len(service.get_all_tags()) == 1

    def test_readding_does_not_reorder(self, service):
        note = service.create_note("body")
        service.add_tag(note.id, "first")
        service.add_tag(note.id, "second")

        updated = service.add_tag(note.id, "first")

        assert updated.tag_names == ["first", "second"]

    def test_existing_tag_is_reused(self, service):
        a = service.create_note("a")
        b = service.create_note("b")
        tag_a = service.add_tag(a.id, "shared").tags[0]
        tag_b = service.add_tag(b.id, "shared").tags[0]

        assert tag_a.id == tag_b.id

    def test_name_is_stripped(self, service):
        note = service.create_note("body")
        assert service.add_tag(note.id, "  padded  ").tag_names == ["padded"]

    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    def test_empty_name_rejected(self, service, name):
        note = service.create_note("body")

        with pytest.raises(ValidationError) as exc_info:
            service.add_tag(note.id, name)

        assert exc_info.value.code == ErrorCode.TAG_INVALID
        assert service.get_all_tags() == []

    def test_add_tag_to_missing_note_raises(self, service):
        with pytest.raises(NoteNotFoundError):
            service.add_tag("missing", "work")
        # The tag must not be created for a note that does not exist
        assert service.get_all_tags() == []


class TestRemoveTag:
    """Tests for remove_tag()."""

    def test_remove_detaches_but_keeps_tag(self, service):
        a = service.create_note("a")
        b = service.create_note("b")
        service.add_tag(a.id, "shared")
        service.add_tag(b.id, "shared")

        updated = service.remove_tag(a.id, "shared")

        assert updated.tags == []
        assert service.get_note(b.id).tag_names == ["shared"]
        assert [t.name for t in service.get_all_tags()] == ["shared"]

    def test_remove_absent_tag_is_noop(self, service):
        note = service.create_note("body")
        service.add_tag(note.id, "keep")
        service.create_note("other")

        assert service.remove_tag(note.id, "not-on-note").tag_names == ["keep"]
        assert service.remove_tag(note.id, "never-created").tag_names == ["keep"]

    def test_remove_from_missing_note_raises(self, service):
        with pytest.raises(NoteNotFoundError):
            service.remove_tag("missing", "work")


class TestRenameTag:
    """Tests for rename_tag() including merge-on-rename."""

    def test_rename_in_place_keeps_id_icon_and_notes(self, service):
        note = service.create_note("body")
        tag = service.add_tag(note.id, "old").tags[0]
        service.update_tag_icon(tag.id, "star")

        renamed = service.rename_tag("old", "new")

        assert renamed.id == tag.id
        assert renamed.name == "new"
        assert renamed.icon == "star"
        assert service.get_note(note.id).tag_names == ["new"]
        assert [t.name for t in service.get_all_tags()] == ["new"]

    def test_rename_onto_existing_merges(self, service):
        only_old = service.create_note("only old")
        both = service.create_note("both")
        only_existing = service.create_note("only existing")
        service.add_tag(only_old.id, "old")
        service.add_tag(both.id, "old")
        service.add_tag(both.id, "existing")
        service.add_tag(only_existing.id, "existing")
        existing_id = _tag_by_name(service, "existing").id

        merged = service.rename_tag("old", "existing")

        assert merged.id == existing_id
        assert [t.name for t in service.get_all_tags()] == ["existing"]
        for note_id in (only_old.id, both.id, only_existing.id):
            assert service.get_note(note_id).tag_names == ["existing"]
        assert {n.id for n in service.get_notes_for_tag(existing_id)} == {
            only_old.id,
            both.id,
            only_existing.id,
        }

    def test_merge_adopts_icon_only_when_target_has_none(self, service):
        note = service.create_note("body")
        old = service.add_tag(note.id, "old").tags[0]
        service.add_tag(note.id, "plain")
        service.update_tag_icon(old.id, "flag")

        merged = service.rename_tag("old", "plain")
        assert merged.icon == "flag"

        other = service.create_note("other")
        again = service.add_tag(other.id, "again").tags[0]
        service.update_tag_icon(again.id, "bolt")

        kept = service.rename_tag("again", "plain")
        assert kept.icon == "flag"

    def test_rename_missing_tag_is_noop(self, service):
        note = service.create_note("body")
        service.add_tag(note.id, "stay")

        assert service.rename_tag("ghost", "whatever") is None
        assert [t.name for t in service.get_all_tags()] == ["stay"]

    def test_rename_to_same_name_is_noop(self, service):
        note = service.create_note("body")
        tag = service.add_tag(note.id, "same").tags[0]

        assert service.rename_tag("same", "same") is None
        assert service.get_all_tags() == [tag]

    def test_rename_to_empty_name_rejected(self, service):
        note = service.create_note("body")
        service.add_tag(note.id, "old")

        with pytest.raises(ValidationError):
            service.rename_tag("old", "  ")
        assert [t.name for t in service.get_all_tags()] == ["old"]


class TestDeleteTag:
    """Tests for delete_tag()."""

    def test_delete_removes_from_every_note(self, service):
        a = service.create_note("a")
        b = service.create_note("b")
        service.add_tag(a.id, "doomed")
        service.add_tag(b.id, "doomed")
        service.add_tag(b.id, "kept")
        tag = _tag_by_name(service, "doomed")

        service.delete_tag(tag.id)

        assert [t.name for t in service.get_all_tags()] == ["kept"]
        assert service.get_note(a.id).tags == []
        assert service.get_note(b.id).tag_names == ["kept"]
        assert service.get_notes_for_tag(tag.id) == []

    def test_delete_missing_tag_is_noop(self, service):
        note = service.create_note("a")
        service.add_tag(note.id, "kept")
        service.delete_tag(999)
        assert [t.name for t in service.get_all_tags()] == ["kept"]


class TestTagQueries:
    """Tests for get_all_tags(), get_tag() and update_tag_icon()."""

    def test_all_tags_sorted_and_unique(self, service):
        for body in ("a", "b", "c"):
            note = service.create_note(body)
            service.add_tag(note.id, "zeta")
            service.add_tag(note.id, "alpha")
        note = service.create_note("d")
        service.add_tag(note.id, "mid")

        assert [t.name for t in service.get_all_tags()] == ["alpha", "mid", "zeta"]

    def test_get_tag(self, service):
        note = service.create_note("a")
        tag = service.add_tag(note.id, "x").tags[0]

        assert service.get_tag(tag.id) == tag
        assert service.get_tag(12345) is None

    def test_update_icon_set_and_clear(self, service):
        note = service.create_note("a")
        tag = service.add_tag(note.id, "x").tags[0]

        service.update_tag_icon(tag.id, "rocket")
        assert service.get_tag(tag.id).icon == "rocket"

        service.update_tag_icon(tag.id, None)
        assert service.get_tag(tag.id).icon is None

    def test_update_icon_missing_tag_leaves_others_alone(self, service):
        note = service.create_note("a")
        tag = service.add_tag(note.id, "x").tags[0]
        service.update_tag_icon(tag.id, "rocket")

        service.update_tag_icon(tag.id + 100, "ghost")

        assert service.get_all_tags() == [tag.model_copy(update={"icon": "rocket"})]

    def test_tag_ids_are_not_reused(self, service):
        note = service.create_note("a")
        first = service.add_tag(note.id, "first").tags[0]
        service.delete_tag(first.id)

        second = service.add_tag(note.id, "second").tags[0]

        assert second.id != first.id
