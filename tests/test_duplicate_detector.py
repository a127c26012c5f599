"""Tests for duplicate detection against the store."""

from notemerge.models.schema import ListItem, Note, NoteType, Span
from notemerge.services.duplicate_detector import find_duplicate


class TestFindDuplicate:
    """Tests for find_duplicate."""

    def test_no_title_match(self, store):
        store.insert(Note(title="Other", body="hello"))
        assert find_duplicate(Note(title="T1", body="hello"), store) is None

    def test_same_title_and_content(self, store):
        existing = store.insert(Note(title="T1", body="hello"))
        assert find_duplicate(Note(title="T1", body="hello"), store) == existing

    def test_different_titles_never_duplicate(self, store):
        """Identical content under another title is not a duplicate."""
        store.insert(Note(title="Notes", body="same text"))
        assert find_duplicate(Note(title="notes", body="same text"), store) is None

    def test_same_title_different_content(self, store):
        store.insert(Note(title="T1", body="hello"))
        assert find_duplicate(Note(title="T1", body="goodbye"), store) is None

    def test_formatting_noise_is_duplicate(self, store):
        existing = store.insert(Note(title="T1", body="line one\nline two"))
        candidate = Note(title="T1", body="  line one\r\n\r\n\r\nline two \r\n")
        assert find_duplicate(candidate, store) == existing

    def test_type_must_match(self, store):
        """A list note never duplicates a text note with the same flattened text."""
        store.insert(Note(title="L", body="[ ] eggs"))
        candidate = Note(
            title="L", note_type=NoteType.LIST, items=[ListItem(body="eggs")]
        )
        assert find_duplicate(candidate, store) is None

    def test_list_notes_compared_by_items(self, store):
        items = [ListItem(body="eggs"), ListItem(body="ham", checked=True, depth=1)]
        existing = store.insert(Note(title="L", note_type=NoteType.LIST, items=items))
        candidate = Note(title="L", note_type=NoteType.LIST, items=list(items))
        assert find_duplicate(candidate, store) == existing

    def test_first_match_wins(self, store):
        first = store.insert(Note(title="T", body="x"))
        store.insert(Note(title="T", body="x"))
        assert find_duplicate(Note(title="T", body="x"), store) == first

    def test_skips_non_matching_title_entries(self, store):
        store.insert(Note(title="T", body="a"))
        second = store.insert(Note(title="T", body="b"))
        assert find_duplicate(Note(title="T", body="b"), store) == second

    def test_labels_and_spans_ignored(self, store):
        existing = store.insert(Note(title="T", body="text", labels={"a"}))
        candidate = Note(
            title="T", body="text", labels={"b"}, spans=[Span(start=0, end=4, bold=True)]
        )
        assert find_duplicate(candidate, store) == existing

    def test_split_note_matches_whole_export(self, store):
        """A note stored as fragments still matches its unsplit export."""
        head = store.insert(Note(title="Long", body="first half, "))
        store.insert(Note(title="Long (2/2)", body="second half"), continues_from_id=head)
        candidate = Note(title="Long", body="first half, second half")
        assert find_duplicate(candidate, store) == head

    def test_does_not_write(self, store):
        store.insert(Note(title="T", body="x"))
        find_duplicate(Note(title="T", body="y"), store)
        assert store.count_notes() == 1
        assert not store.session.new
        assert not store.session.dirty
