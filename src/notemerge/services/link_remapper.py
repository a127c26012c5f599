"""Rewriting of note-to-note links after a batch of notes got new IDs.

Links inside an exported note point at the IDs the notes had before the
export. Restoring assigns new IDs, so once every note of the batch is
stored the links are rewritten through an :class:`IdentifierMap`. This has
to wait until the whole batch is stored because a note may link to one
that comes later in the batch.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from notemerge.models.schema import (
    LinkTarget,
    NoteReference,
    Span,
    create_note_url,
    decode_link_target,
)
from notemerge.storage.note_store import NoteStore

logger = logging.getLogger(__name__)


class IdentifierMap:
    """Old note ID to new note ID, for one import call."""

    def __init__(self) -> None:
        self._mapping: Dict[int, int] = {}

    def record(self, old_id: Optional[int], new_id: int) -> None:
        """Map ``old_id`` to ``new_id``. A missing old ID is ignored."""
        if old_id is None:
            return
        self._mapping[old_id] = new_id

    def resolve(self, old_id: int) -> Optional[int]:
        return self._mapping.get(old_id)

    def as_dict(self) -> Dict[int, int]:
        return dict(self._mapping)

    def __contains__(self, old_id: object) -> bool:
        return old_id in self._mapping

    def __len__(self) -> int:
        return len(self._mapping)

    def __iter__(self) -> Iterator[int]:
        return iter(self._mapping)


@dataclass
class PendingSpans:
    """Spans of one stored row, with their link targets decoded up front."""

    note_id: int
    spans: List[Span]
    targets: List[Optional[LinkTarget]] = field(default_factory=list)

    @classmethod
    def from_part(cls, note_id: int, spans: Iterable[Span]) -> "PendingSpans":
        spans = list(spans)
        return cls(
            note_id=note_id,
            spans=spans,
            targets=[decode_link_target(span) for span in spans],
        )

    @property
    def has_note_links(self) -> bool:
        return any(isinstance(target, NoteReference) for target in self.targets)


def rewrite_spans(pending: PendingSpans, id_map: IdentifierMap) -> Optional[List[Span]]:
    """Point the note links of ``pending`` at their new IDs.

    Links to notes outside the map (not part of the batch, or dangling)
    and external links are kept as they are.

    Returns:
        The full rewritten span list, or None if no span changed.
    """
    changed = False
    updated: List[Span] = []
    for span, target in zip(pending.spans, pending.targets):
        if isinstance(target, NoteReference):
            new_target_id = id_map.resolve(target.note_id)
            if new_target_id is not None and new_target_id != target.note_id:
                changed = True
                span = span.model_copy(
                    update={"link_data": create_note_url(new_target_id, target.note_type)}
                )
        updated.append(span)
    return updated if changed else None


def remap_links(
    pending: Iterable[PendingSpans], id_map: IdentifierMap, store: NoteStore
) -> int:
    """Rewrite and store the links of every pending row.

    A row is written once if at least one of its spans changed and not
    at all otherwise.

    Returns:
        Number of rows whose spans were written.
    """
    rewritten = 0
    for record in pending:
        if not record.has_note_links:
            continue
        updated = rewrite_spans(record, id_map)
        if updated is None:
            continue
        store.update_spans(record.note_id, updated)
        rewritten += 1
    logger.debug(f"Rewrote note links in {rewritten} notes")
    return rewritten


def pending_from_parts(parts: Iterable[Tuple[int, List[Span]]]) -> List[PendingSpans]:
    """Decode the ``(id, spans)`` parts collected while inserting."""
    return [PendingSpans.from_part(note_id, spans) for note_id, spans in parts]
