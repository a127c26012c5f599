"""Canonical text form of a note, used to compare notes for equality."""

import re
from typing import Iterable

from notemerge.models.schema import ListItem, Note, NoteType

_LINE_BREAKS = re.compile(r"\n+")
_HORIZONTAL_SPACE = re.compile(r"[\t ]+")


def items_to_text(items: Iterable[ListItem]) -> str:
    """Flatten list entries, one per line, keeping ticks and nesting.

    Example:
        [ ] milk
          [x] oat milk
    """
    lines = []
    for item in items:
        marker = "[x]" if item.checked else "[ ]"
        lines.append(f"{'  ' * item.depth}{marker} {item.body}")
    return "\n".join(lines)


def normalize_text(raw: str) -> str:
    """Remove the formatting noise an export/import round-trip adds."""
    text = raw.replace("\r\n", "\n").replace("\r", "\n").strip()
    text = _LINE_BREAKS.sub("\n", text)
    return _HORIZONTAL_SPACE.sub(" ", text)


def normalize_content(note: Note) -> str:
    """Return the text two notes are compared by.

    Text notes contribute their body, list notes their flattened items.
    """
    if note.note_type == NoteType.TEXT:
        return normalize_text(note.body)
    return normalize_text(items_to_text(note.items))
