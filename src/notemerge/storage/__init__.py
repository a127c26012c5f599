"""Storage layer for notemerge."""

from notemerge.storage.label_repository import LabelRepository
from notemerge.storage.note_store import NoteStore

__all__ = [
    "NoteStore",
    "LabelRepository",
]
