"""Lookup of stored notes that an imported note would duplicate."""

import logging
from typing import Optional

from notemerge.models.schema import Note
from notemerge.services.normalizer import normalize_content
from notemerge.storage.note_store import NoteStore

logger = logging.getLogger(__name__)


def find_duplicate(candidate: Note, store: NoteStore) -> Optional[int]:
    """Find a stored note equal to ``candidate``.

    Only notes with exactly the same title are considered, so two notes
    with different titles are never duplicates even if their content
    matches. Among those, the first one (oldest) with the same type and the
    same normalized content wins. Labels and spans are not compared.

    Args:
        candidate: The note about to be imported.
        store: Store of the running import; it is only read.

    Returns:
        ID of the matching note, or None.
    """
    title_matches = store.get_by_title(candidate.title)
    if not title_matches:
        return None

    target_content = normalize_content(candidate)
    for existing in title_matches:
        if (
            existing.note_type == candidate.note_type
            and normalize_content(existing) == target_content
        ):
            logger.debug(
                f"'{candidate.title}' duplicates stored note {existing.id}"
            )
            return existing.id
    return None
