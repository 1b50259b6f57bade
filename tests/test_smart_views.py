"""Tests for the default listing and the smart views."""
from keeper_store.services.keeper_service import KeeperService


def _ids(notes):
    return [n.id for n in notes]


class TestAllNotesOrdering:
    """Tests for get_all_notes() ordering."""

    def test_most_recently_updated_first(self, service):
        a = service.create_note("a")
        b = service.create_note("b")
        c = service.create_note("c")

        assert _ids(service.get_all_notes()) == [c.id, b.id, a.id]

        service.update_note(a.id, body="touched")

        assert _ids(service.get_all_notes()) == [a.id, c.id, b.id]

    def test_pinned_group_ordered_by_updated_at(self, service):
        a = service.create_note("a")
        b = service.create_note("b")
        c = service.create_note("c")
        service.toggle_pin_note(a.id)
        service.toggle_pin_note(b.id)

        assert _ids(service.get_all_notes()) == [b.id, a.id, c.id]

    def test_same_timestamp_falls_back_to_insertion(self, adapter):
        service = KeeperService(adapter, now=lambda: "2024-01-01 00:00:00.000000")
        first = service.create_note("first")
        second = service.create_note("second")

        assert _ids(service.get_all_notes()) == [second.id, first.id]


class TestUntaggedNotes:
    """Tests for get_untagged_notes()."""

    def test_only_notes_without_tags(self, service):
        tagged = service.create_note("tagged")
        plain = service.create_note("plain")
        service.add_tag(tagged.id, "x")

        assert _ids(service.get_untagged_notes()) == [plain.id]

    def test_removing_last_tag_makes_untagged(self, service):
        note = service.create_note("note")
        service.add_tag(note.id, "x")
        assert service.get_untagged_notes() == []

        service.remove_tag(note.id, "x")

        assert _ids(service.get_untagged_notes()) == [note.id]

    def test_excludes_archived_and_pins_first(self, service):
        a = service.create_note("a")
        b = service.create_note("b")
        archived = service.create_note("archived")
        service.toggle_archive_note(archived.id)
        service.toggle_pin_note(a.id)

        assert _ids(service.get_untagged_notes()) == [a.id, b.id]


class TestLinkedNotes:
    """Tests for get_linked_notes()."""

    def test_only_notes_with_links(self, service):
        linked = service.create_note("see https://example.com/page")
        service.create_note("no link here, just http:// alone")

        assert _ids(service.get_linked_notes()) == [linked.id]

    def test_follows_body_updates(self, service):
        note = service.create_note("plain")
        assert service.get_linked_notes() == []

        service.update_note(note.id, body="now with http://example.org")
        assert _ids(service.get_linked_notes()) == [note.id]

        service.update_note(note.id, body="and gone again")
        assert service.get_linked_notes() == []

    def test_title_links_do_not_count(self, service):
        service.create_note("plain body", title="https://example.com")
        assert service.get_linked_notes() == []

    def test_excludes_archived(self, service):
        note = service.create_note("https://example.com")
        service.toggle_archive_note(note.id)
        assert service.get_linked_notes() == []


class TestNotesForTag:
    """Tests for get_notes_for_tag()."""

    def test_only_notes_with_that_tag(self, service):
        a = service.create_note("a")
        b = service.create_note("b")
        service.create_note("c")
        tag = service.add_tag(a.id, "x").tags[0]
        service.add_tag(b.id, "x")
        service.add_tag(b.id, "y")

        assert _ids(service.get_notes_for_tag(tag.id)) == [b.id, a.id]

    def test_pinned_first_and_archived_excluded(self, service):
        a = service.create_note("a")
        b = service.create_note("b")
        archived = service.create_note("archived")
        tag = service.add_tag(a.id, "x").tags[0]
        service.add_tag(b.id, "x")
        service.add_tag(archived.id, "x")
        service.toggle_archive_note(archived.id)
        service.toggle_pin_note(a.id)

        assert _ids(service.get_notes_for_tag(tag.id)) == [a.id, b.id]

    def test_unknown_tag_is_empty(self, service):
        service.create_note("a")
        assert service.get_notes_for_tag(424242) == []


class TestArchivedNotes:
    """Tests for get_archived_notes()."""

    def test_newest_updated_first(self, service):
        a = service.create_note("a")
        b = service.create_note("b")
        service.toggle_archive_note(a.id)
        service.toggle_archive_note(b.id)

        assert _ids(service.get_archived_notes()) == [b.id, a.id]

        service.update_note(a.id, body="edited while archived")

        assert _ids(service.get_archived_notes()) == [a.id, b.id]

    def test_pinned_does_not_float_in_archive(self, service):
        a = service.create_note("a")
        b = service.create_note("b")
        service.toggle_pin_note(a.id)
        service.toggle_archive_note(a.id)
        service.toggle_archive_note(b.id)

        assert _ids(service.get_archived_notes()) == [b.id, a.id]
