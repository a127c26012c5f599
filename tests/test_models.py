"""Tests for the pydantic models and link URLs."""

import pytest
from pydantic import ValidationError

from notemerge.models.schema import (
    ImportResult,
    Label,
    ListItem,
    Note,
    NoteReference,
    NoteType,
    Span,
    create_note_url,
    parse_note_url,
)


class TestSpan:
    """Tests for Span validation and arithmetic."""

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            Span(start=5, end=2)

    def test_negative_offset_rejected(self):
        with pytest.raises(ValidationError):
            Span(start=-1, end=2)

    def test_empty_span_allowed(self):
        assert Span(start=3, end=3).end == 3

    def test_shifted(self):
        span = Span(start=1, end=4, bold=True, link=True, link_data="x")
        assert span.shifted(10) == Span(
            start=11, end=14, bold=True, link=True, link_data="x"
        )

    def test_clipped(self):
        span = Span(start=5, end=15, italic=True)
        assert span.clipped(10, 20) == Span(start=0, end=5, italic=True)
        assert span.clipped(0, 5) is None
        assert span.clipped(15, 30) is None


class TestNoteUrls:
    """Tests for note:// link text."""

    def test_create(self):
        assert create_note_url(12, NoteType.LIST) == "note://12/list"

    def test_parse(self):
        assert parse_note_url("note://12/text") == NoteReference(12, NoteType.TEXT)

    def test_parse_type_case_insensitive(self):
        assert parse_note_url("note://3/LIST") == NoteReference(3, NoteType.LIST)

    @pytest.mark.parametrize(
        "url",
        ["note://x/text", "note://1/", "note://1/poem", "http://1/text", "note://1/text/extra"],
    )
    def test_parse_malformed(self, url):
        assert parse_note_url(url) is None


class TestNote:
    """Tests for Note validation."""

    def test_defaults(self):
        note = Note()
        assert note.id == 0
        assert note.note_type == NoteType.TEXT
        assert note.items == [] and note.spans == [] and note.labels == set()

    def test_blank_labels_dropped(self):
        assert Note(labels={"a", "", "  "}).labels == {"a"}

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            Note(color="red")

    def test_negative_id_rejected(self):
        with pytest.raises(ValidationError):
            Note(id=-1)

    def test_list_item_depth_non_negative(self):
        with pytest.raises(ValidationError):
            ListItem(body="x", depth=-1)


class TestLabel:
    """Tests for Label validation."""

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            Label(name="   ")

    def test_str(self):
        assert str(Label(name="work")) == "work"


def test_import_result_to_dict():
    assert ImportResult(inserted=2, duplicates=1).to_dict() == {
        "inserted": 2,
        "duplicates": 1,
    }
