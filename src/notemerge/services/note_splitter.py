"""Splitting of oversized text notes into linked fragments.

The body is cut into slices no longer than the configured maximum,
preferring the last paragraph break before the limit, then the last line
break, then the last sentence end, then the last whitespace. Slices are
taken verbatim, so joining the fragments in order gives back the original
body exactly.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import List, Optional, Tuple

from notemerge.config import config
from notemerge.exceptions import ValidationError
from notemerge.models.schema import Note, Span
from notemerge.storage.note_store import NoteStore

logger = logging.getLogger(__name__)

# (stored id, spans of that row)
NotePart = Tuple[int, List[Span]]

# Sentence end: period/question/exclamation followed by whitespace.
_SENTENCE_END = re.compile(r"[.!?]\s")
_WHITESPACE = re.compile(r"\s")

_ZERO_WIDTH_JOINER = "\u200d"


@dataclass(frozen=True)
class BodyChunk:
    """A slice of a note body.

    Attributes:
        text: The slice content.
        index: 0-based position of the slice.
        start_char: Offset of the slice start in the original body.
        end_char: Offset of the slice end (exclusive) in the original body.
    """

    text: str
    index: int
    start_char: int
    end_char: int


def _joins_previous(char: str) -> bool:
    """True if ``char`` cannot start a slice because it belongs to the one before."""
    return (
        unicodedata.combining(char) != 0
        or "\udc00" <= char <= "\udfff"  # low surrogate
        or "\ufe00" <= char <= "\ufe0f"  # variation selectors
    )


def _safe_cut(body: str, cut: int, lower: int) -> int:
    """Move ``cut`` left until it does not split a character cluster."""
    candidate = cut
    while candidate > lower + 1 and (
        _joins_previous(body[candidate])
        or body[candidate - 1] == _ZERO_WIDTH_JOINER
    ):
        candidate -= 1
    if candidate <= lower + 1 and _joins_previous(body[candidate]):
        # Nothing but one cluster in the window; a hard cut is all that is left
        return cut
    return candidate


def _find_cut(body: str, start: int, limit: int) -> int:
    """Pick where the slice starting at ``start`` ends, at most at ``limit``."""
    window = body[start:limit]

    paragraph = window.rfind("\n\n")
    if paragraph > 0:
        return start + paragraph + 2

    line = window.rfind("\n")
    if line > 0:
        return start + line + 1

    sentence_end = None
    for match in _SENTENCE_END.finditer(window):
        sentence_end = match.end()
    if sentence_end:
        return _safe_cut(body, start + sentence_end, start)

    space = None
    for match in _WHITESPACE.finditer(window):
        space = match.end()
    if space:
        return _safe_cut(body, start + space, start)

    return _safe_cut(body, limit, start)


def chunk_body(body: str, max_length: int) -> List[BodyChunk]:
    """Split ``body`` into consecutive slices of at most ``max_length`` characters.

    An empty body yields no slices.

    Raises:
        ValidationError: If max_length is not positive.
    """
    if max_length < 1:
        raise ValidationError(
            "max_length must be positive", field="max_length", value=max_length
        )

    chunks: List[BodyChunk] = []
    pos = 0
    total = len(body)
    while pos < total:
        if total - pos <= max_length:
            end = total
        else:
            end = _find_cut(body, pos, pos + max_length)
        chunks.append(
            BodyChunk(text=body[pos:end], index=len(chunks), start_char=pos, end_char=end)
        )
        pos = end
    return chunks


def spans_for_chunk(spans: List[Span], chunk: BodyChunk) -> List[Span]:
    """Spans overlapping ``chunk``, clipped to it and made chunk-relative."""
    result = []
    for span in spans:
        clipped = span.clipped(chunk.start_char, chunk.end_char)
        if clipped is not None:
            result.append(clipped)
    return result


def split_and_insert(
    note: Note,
    store: NoteStore,
    max_length: Optional[int] = None,
    title_suffix: Optional[str] = None,
) -> Tuple[int, List[NotePart]]:
    """Store an oversized text note as a chain of fragments.

    Each fragment keeps the note's type and labels; the first keeps the
    title and the rest get ``title_suffix`` appended. Fragments are
    inserted one at a time, each pointing at the previous one.

    Args:
        note: The note to store.
        store: Store of the running import.
        max_length: Largest body per fragment. Defaults to config.max_body_length.
        title_suffix: Format string with ``{index}`` and ``{total}`` fields.
            Defaults to config.split_title_suffix.

    Returns:
        The first fragment's ID, which stands for the whole note when
        links are remapped, and the ``(id, spans)`` of every fragment in
        creation order.
    """
    if max_length is None:
        max_length = config.max_body_length
    if title_suffix is None:
        title_suffix = config.split_title_suffix

    chunks = chunk_body(note.body, max_length)
    if not chunks:
        logger.warning(
            f"Note '{note.title}' produced no fragments, storing it unsplit"
        )
        new_id = store.insert(note)
        return new_id, [(new_id, list(note.spans))]

    total = len(chunks)
    parts: List[NotePart] = []
    previous_id: Optional[int] = None
    for chunk in chunks:
        spans = spans_for_chunk(note.spans, chunk)
        title = note.title
        if chunk.index > 0:
            title += title_suffix.format(index=chunk.index + 1, total=total)
        fragment = note.model_copy(
            update={"id": 0, "title": title, "body": chunk.text, "spans": spans}
        )
        new_id = store.insert(fragment, continues_from_id=previous_id)
        parts.append((new_id, spans))
        previous_id = new_id

    logger.debug(
        f"Split '{note.title}' ({len(note.body)} chars) into {total} fragments"
    )
    return parts[0][0], parts
