"""Tests for link decoding and identifier remapping."""

from unittest.mock import MagicMock

from notemerge.models.schema import (
    ExternalLink,
    Note,
    NoteReference,
    NoteType,
    Span,
    create_note_url,
    decode_link_target,
)
from notemerge.services.link_remapper import (
    IdentifierMap,
    PendingSpans,
    pending_from_parts,
    remap_links,
    rewrite_spans,
)


def note_link(start, end, note_id, note_type=NoteType.TEXT):
    return Span(
        start=start, end=end, link=True, link_data=create_note_url(note_id, note_type)
    )


class TestDecodeLinkTarget:
    """Tests for decode_link_target."""

    def test_not_a_link(self):
        assert decode_link_target(Span(start=0, end=1, bold=True)) is None

    def test_link_without_data(self):
        assert decode_link_target(Span(start=0, end=1, link=True)) is None

    def test_note_reference(self):
        span = note_link(0, 3, 42, NoteType.LIST)
        assert decode_link_target(span) == NoteReference(42, NoteType.LIST)

    def test_external(self):
        span = Span(start=0, end=3, link=True, link_data="https://example.com")
        assert decode_link_target(span) == ExternalLink("https://example.com")

    def test_malformed_note_url_is_external(self):
        """Unparseable note URLs are kept as plain external links."""
        for data in ("note://abc/text", "note://12/poem", "note://12", "note:///text"):
            span = Span(start=0, end=1, link=True, link_data=data)
            assert decode_link_target(span) == ExternalLink(data)

    def test_link_flag_required(self):
        """link_data alone does not make a span a link."""
        span = Span(start=0, end=1, link=False, link_data="note://1/text")
        assert decode_link_target(span) is None


class TestIdentifierMap:
    """Tests for IdentifierMap."""

    def test_record_and_resolve(self):
        id_map = IdentifierMap()
        id_map.record(10, 1)
        assert id_map.resolve(10) == 1
        assert 10 in id_map
        assert id_map.resolve(11) is None

    def test_missing_old_id_ignored(self):
        id_map = IdentifierMap()
        id_map.record(None, 5)
        assert len(id_map) == 0

    def test_as_dict_is_a_copy(self):
        id_map = IdentifierMap()
        id_map.record(1, 2)
        snapshot = id_map.as_dict()
        snapshot[3] = 4
        assert id_map.as_dict() == {1: 2}


class TestRewriteSpans:
    """Tests for rewrite_spans."""

    def test_rewrites_mapped_target_keeping_type(self):
        id_map = IdentifierMap()
        id_map.record(10, 501)
        pending = PendingSpans.from_part(7, [note_link(0, 4, 10, NoteType.LIST)])
        assert rewrite_spans(pending, id_map) == [note_link(0, 4, 501, NoteType.LIST)]

    def test_unmapped_target_unchanged(self):
        id_map = IdentifierMap()
        id_map.record(10, 501)
        pending = PendingSpans.from_part(7, [note_link(0, 4, 99)])
        assert rewrite_spans(pending, id_map) is None

    def test_only_changed_spans_differ(self):
        id_map = IdentifierMap()
        id_map.record(10, 501)
        spans = [
            Span(start=0, end=2, bold=True),
            note_link(3, 5, 10),
            note_link(6, 8, 99),
            Span(start=9, end=12, link=True, link_data="https://example.com"),
        ]
        updated = rewrite_spans(PendingSpans.from_part(1, spans), id_map)
        assert updated == [spans[0], note_link(3, 5, 501), spans[2], spans[3]]


class TestRemapLinks:
    """Tests for remap_links."""

    def test_writes_only_changed_records(self):
        id_map = IdentifierMap()
        id_map.record(10, 501)
        store = MagicMock()
        pending = pending_from_parts(
            [
                (1, [note_link(0, 4, 10)]),
                (2, [note_link(0, 4, 99)]),
                (3, [Span(start=0, end=1, bold=True)]),
                (4, []),
            ]
        )
        assert remap_links(pending, id_map, store) == 1
        store.update_spans.assert_called_once_with(1, [note_link(0, 4, 501)])

    def test_one_write_per_record(self):
        id_map = IdentifierMap()
        id_map.record(10, 501)
        id_map.record(20, 502)
        store = MagicMock()
        pending = pending_from_parts([(1, [note_link(0, 1, 10), note_link(2, 3, 20)])])
        remap_links(pending, id_map, store)
        store.update_spans.assert_called_once_with(
            1, [note_link(0, 1, 501), note_link(2, 3, 502)]
        )

    def test_persists_through_store(self, store):
        target = store.insert(Note(title="Target"))
        source = store.insert(Note(title="Source", body="see", spans=[note_link(0, 3, 10)]))
        id_map = IdentifierMap()
        id_map.record(10, target)
        remap_links(pending_from_parts([(source, [note_link(0, 3, 10)])]), id_map, store)
        assert store.get(source).spans == [note_link(0, 3, target)]
