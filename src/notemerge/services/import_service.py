"""Service layer for restoring backups into the note store."""

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

from notemerge.config import config
from notemerge.exceptions import ImportFailedError, LabelError, ValidationError
from notemerge.models.db_models import get_session_factory, init_db
from notemerge.models.schema import ImportResult, Label, Note, NoteType
from notemerge.observability import traced
from notemerge.services.duplicate_detector import find_duplicate
from notemerge.services.link_remapper import (
    IdentifierMap,
    PendingSpans,
    pending_from_parts,
    remap_links,
)
from notemerge.services.note_splitter import NotePart, split_and_insert
from notemerge.storage.note_store import NoteStore

logger = logging.getLogger(__name__)


class ImportService:
    """Restores exported notes and labels into the store.

    Every public operation runs in a single transaction. Operations issued
    through the same service instance are serialized.
    """

    def __init__(
        self,
        session_factory: Optional[Any] = None,
        engine: Optional[Any] = None,
        max_body_length: Optional[int] = None,
        split_title_suffix: Optional[str] = None,
    ):
        """Initialize the service.

        Args:
            session_factory: SQLAlchemy session factory. Built from
                ``engine`` when None.
            engine: Pre-configured SQLAlchemy engine. Only used when
                session_factory is None; init_db() is called when both are None.
            max_body_length: Text notes with a longer body are split.
                Defaults to config.max_body_length.
            split_title_suffix: Title suffix for fragments after the first.
                Defaults to config.split_title_suffix.
        """
        if session_factory is None:
            session_factory = get_session_factory(engine if engine is not None else init_db())
        self.session_factory = session_factory
        self.max_body_length = (
            max_body_length if max_body_length is not None else config.max_body_length
        )
        if self.max_body_length < 1:
            raise ValidationError(
                "max_body_length must be positive",
                field="max_body_length",
                value=self.max_body_length,
            )
        self.split_title_suffix = (
            split_title_suffix
            if split_title_suffix is not None
            else config.split_title_suffix
        )
        self._lock = threading.Lock()

    # =========================================================================
    # Import
    # =========================================================================

    @traced("import_backup")
    def import_backup(
        self,
        notes: Sequence[Note],
        labels: Sequence[Label] = (),
        original_ids: Optional[Sequence[Optional[int]]] = None,
    ) -> ImportResult:
        """Import a backup, skipping notes that are already stored.

        Args:
            notes: Exported notes. Their ``id`` is ignored; new IDs are
                assigned by the store.
            labels: Exported labels. Names that already exist are kept.
            original_ids: IDs the notes had when they were exported, in
                the same order as ``notes``. When given, links between notes
                of the batch are rewritten to the new IDs. Without it links
                are stored exactly as exported.

        Returns:
            How many notes were inserted and how many were duplicates.

        Raises:
            ImportFailedError: If any store operation fails. Nothing the
                call wrote is kept.
        """
        result, _ = self.import_with_id_map(notes, labels, original_ids)
        return result

    def import_with_id_map(
        self,
        notes: Sequence[Note],
        labels: Sequence[Label] = (),
        original_ids: Optional[Sequence[Optional[int]]] = None,
    ) -> Tuple[ImportResult, Dict[int, int]]:
        """Same as :meth:`import_backup`, also returning old ID to new ID.

        Only entries with an original ID appear in the mapping. A duplicate
        maps to the stored note it duplicates, a split note to its first
        fragment.
        """
        remap = original_ids is not None
        with self._lock:
            index: Optional[int] = None
            try:
                with NoteStore.open(self.session_factory) as store:
                    id_map = IdentifierMap()
                    pending: List[PendingSpans] = []
                    inserted = 0
                    duplicates = 0

                    # Pass 1: store or skip every note, remembering new IDs
                    for index, note in enumerate(notes):
                        old_id = self._original_id(original_ids, index)
                        duplicate_id = find_duplicate(note, store)
                        if duplicate_id is not None:
                            id_map.record(old_id, duplicate_id)
                            duplicates += 1
                            continue

                        first_id, parts = self._insert(note, store)
                        id_map.record(old_id, first_id)
                        if remap:
                            pending.extend(pending_from_parts(parts))
                        inserted += 1
                    index = None

                    # Pass 2: every new ID is known, point links at them
                    if remap:
                        remap_links(pending, id_map, store)

                    store.insert_labels(labels)
            except Exception as e:
                logger.error(
                    f"Import of {len(notes)} notes failed, rolled back: {e}"
                )
                raise ImportFailedError(
                    f"Import failed: {e}",
                    total_count=len(notes),
                    failed_index=index,
                    original_error=e,
                ) from e

        result = ImportResult(inserted=inserted, duplicates=duplicates)
        logger.info(
            f"Imported backup: {result.inserted} inserted, "
            f"{result.duplicates} duplicates, {len(labels)} labels"
        )
        return result, id_map.as_dict()

    @staticmethod
    def _original_id(
        original_ids: Optional[Sequence[Optional[int]]], index: int
    ) -> Optional[int]:
        if original_ids is None or index >= len(original_ids):
            return None
        return original_ids[index]

    def _insert(self, note: Note, store: NoteStore) -> Tuple[int, List[NotePart]]:
        """Store a note that is not a duplicate, splitting it if it is too long."""
        if note.note_type == NoteType.TEXT and len(note.body) > self.max_body_length:
            return split_and_insert(
                note,
                store,
                max_length=self.max_body_length,
                title_suffix=self.split_title_suffix,
            )
        new_id = store.insert(note)
        return new_id, [(new_id, list(note.spans))]

    # =========================================================================
    # Labels
    # =========================================================================

    @staticmethod
    def _check_label_name(name: str, field: str) -> str:
        if not name or not name.strip():
            raise LabelError(f"Label name cannot be empty ({field})", label_name=name)
        return name

    @traced("rename_label")
    def rename_label(self, old_name: str, new_name: str) -> int:
        """Rename a label on every note carrying it and in the label table.

        Returns:
            Number of stored notes whose labels changed.
        """
        self._check_label_name(old_name, "old_name")
        self._check_label_name(new_name, "new_name")
        if old_name == new_name:
            return 0
        with self._lock:
            with NoteStore.open(self.session_factory) as store:
                labels_by_note = {}
                for note in store.get_notes_by_label(old_name):
                    labels = set(note.labels)
                    labels.discard(old_name)
                    labels.add(new_name)
                    labels_by_note[note.id] = labels
                store.update_labels(labels_by_note)
                store.rename_label(old_name, new_name)
        logger.info(
            f"Renamed label '{old_name}' to '{new_name}' on {len(labels_by_note)} notes"
        )
        return len(labels_by_note)

    @traced("delete_label")
    def delete_label(self, name: str) -> int:
        """Remove a label from every note carrying it and delete it.

        Returns:
            Number of stored notes whose labels changed.
        """
        self._check_label_name(name, "name")
        with self._lock:
            with NoteStore.open(self.session_factory) as store:
                labels_by_note = {
                    note.id: note.labels - {name}
                    for note in store.get_notes_by_label(name)
                }
                store.update_labels(labels_by_note)
                store.delete_label(name)
        logger.info(f"Deleted label '{name}' from {len(labels_by_note)} notes")
        return len(labels_by_note)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_note(self, note_id: int) -> Optional[Note]:
        """Get a note with its fragments joined back together."""
        with NoteStore.open(self.session_factory) as store:
            return store.get_full(note_id)

    def get_notes_by_title(self, title: str) -> List[Note]:
        with NoteStore.open(self.session_factory) as store:
            return store.get_by_title(title)

    def get_all_labels(self) -> List[Label]:
        with NoteStore.open(self.session_factory) as store:
            return store.get_all_labels()
