"""Transaction-scoped access to the note store."""

import datetime
import functools
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, TypeVar

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notemerge.exceptions import ErrorCode, NoteNotFoundError, StorageError
from notemerge.models.db_models import DBNote
from notemerge.models.schema import Label, ListItem, Note, NoteType, Span
from notemerge.storage.label_repository import LabelRepository

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _store_operation(operation: str, code: ErrorCode) -> Callable[[F], F]:
    """Re-raise SQLAlchemy failures of a store method as StorageError."""
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except SQLAlchemyError as e:
                raise StorageError(
                    f"Store operation '{operation}' failed",
                    operation=operation,
                    code=code,
                    original_error=e,
                ) from e

        return wrapper  # type: ignore
    return decorator


class NoteStore:
    """The note store as seen from inside one transaction.

    Every method works on the session handed to the constructor and only
    flushes, so identifiers assigned by the database are known right after
    ``insert`` returns while nothing becomes durable until the transaction
    opened by :meth:`open` commits.

    Split notes are stored as a chain of rows: each fragment after the
    first points at its predecessor through ``continues_from_id``. Title
    lookups only return chain heads, reassembled into the full note.
    """

    def __init__(self, session: Session):
        self.session = session
        self.labels = LabelRepository(session)

    @classmethod
    @contextmanager
    def open(cls, session_factory) -> Iterator["NoteStore"]:
        """Open a transaction and yield a store bound to it.

        Commits when the block exits normally and rolls back when it
        raises, so either every write made through the store is applied or
        none is.
        """
        session = session_factory()
        try:
            yield cls(session)
            try:
                session.commit()
            except SQLAlchemyError as e:
                raise StorageError(
                    "Failed to commit transaction",
                    operation="commit",
                    code=ErrorCode.STORAGE_WRITE_FAILED,
                    original_error=e,
                ) from e
        except BaseException:
            session.rollback()
            logger.debug("Transaction rolled back")
            raise
        finally:
            session.close()

    # =========================================================================
    # Conversion
    # =========================================================================

    @staticmethod
    def _spans_to_json(spans: Iterable[Span]) -> List[Dict[str, Any]]:
        return [span.model_dump(mode="json") for span in spans]

    @staticmethod
    def _db_note_to_model(db_note: DBNote) -> Note:
        """Convert a single row to a Note without following the chain."""
        return Note(
            id=db_note.id,
            title=db_note.title,
            note_type=NoteType(db_note.note_type),
            body=db_note.body or "",
            items=[ListItem(**item) for item in (db_note.items or [])],
            labels=set(db_note.labels or []),
            spans=[Span(**span) for span in (db_note.spans or [])],
            created_at=db_note.created_at,
            updated_at=db_note.updated_at,
        )

    # =========================================================================
    # Notes
    # =========================================================================

    @_store_operation("insert", ErrorCode.STORAGE_WRITE_FAILED)
    def insert(self, note: Note, continues_from_id: Optional[int] = None) -> int:
        """Insert a note and return the identifier the database assigned.

        The ``id`` carried by ``note`` is ignored.

        Args:
            note: The note to store.
            continues_from_id: Previous fragment when ``note`` is part of a
                split note.
        """
        db_note = DBNote(
            title=note.title,
            note_type=note.note_type.value,
            body=note.body,
            items=[item.model_dump(mode="json") for item in note.items],
            labels=sorted(note.labels),
            spans=self._spans_to_json(note.spans),
            continues_from_id=continues_from_id,
            created_at=note.created_at,
            updated_at=note.updated_at,
        )
        self.session.add(db_note)
        self.session.flush()
        return db_note.id

    @_store_operation("get", ErrorCode.STORAGE_READ_FAILED)
    def get(self, note_id: int) -> Optional[Note]:
        """Get one stored row by ID, without reassembling split notes."""
        db_note = self.session.get(DBNote, note_id)
        if db_note is None:
            return None
        return self._db_note_to_model(db_note)

    def _chain(self, head: DBNote) -> List[DBNote]:
        chain = [head]
        seen = {head.id}
        while True:
            successor = self.session.scalar(
                select(DBNote)
                .where(DBNote.continues_from_id == chain[-1].id)
                .order_by(DBNote.id)
                .limit(1)
            )
            if successor is None or successor.id in seen:
                return chain
            seen.add(successor.id)
            chain.append(successor)

    @_store_operation("get_fragments", ErrorCode.STORAGE_READ_FAILED)
    def get_fragments(self, note_id: int) -> List[Note]:
        """Get every fragment of the note starting at ``note_id``, in order.

        A note that was never split yields a single-element list.
        """
        head = self.session.get(DBNote, note_id)
        if head is None:
            raise NoteNotFoundError(note_id)
        return [self._db_note_to_model(row) for row in self._chain(head)]

    def _reassemble(self, head: DBNote) -> Note:
        """Join a chain of fragments back into the note it was split from."""
        chain = self._chain(head)
        note = self._db_note_to_model(head)
        if len(chain) == 1:
            return note

        body_parts: List[str] = []
        spans: List[Span] = []
        offset = 0
        for row in chain:
            fragment = self._db_note_to_model(row)
            body_parts.append(fragment.body)
            spans.extend(span.shifted(offset) for span in fragment.spans)
            offset += len(fragment.body)
        return note.model_copy(update={"body": "".join(body_parts), "spans": spans})

    @_store_operation("get_full", ErrorCode.STORAGE_READ_FAILED)
    def get_full(self, note_id: int) -> Optional[Note]:
        """Get a note with all of its fragments joined, for display."""
        head = self.session.get(DBNote, note_id)
        if head is None:
            return None
        return self._reassemble(head)

    @_store_operation("get_by_title", ErrorCode.STORAGE_READ_FAILED)
    def get_by_title(self, title: str) -> List[Note]:
        """Get all notes with exactly this title, oldest first.

        Split notes are returned once, reassembled, under their first
        fragment's ID.
        """
        heads = self.session.scalars(
            select(DBNote)
            .where(DBNote.title == title)
            .where(DBNote.continues_from_id.is_(None))
            .order_by(DBNote.id)
        ).all()
        return [self._reassemble(head) for head in heads]

    @_store_operation("update_spans", ErrorCode.STORAGE_WRITE_FAILED)
    def update_spans(self, note_id: int, spans: Iterable[Span]) -> None:
        """Replace the spans of one stored row."""
        db_note = self.session.get(DBNote, note_id)
        if db_note is None:
            raise NoteNotFoundError(note_id)
        db_note.spans = self._spans_to_json(spans)
        db_note.updated_at = datetime.datetime.now()
        self.session.flush()

    @_store_operation("count_notes", ErrorCode.STORAGE_READ_FAILED)
    def count_notes(self) -> int:
        """Count stored rows, fragments included."""
        return self.session.scalar(text("SELECT COUNT(*) FROM notes")) or 0

    # =========================================================================
    # Labels
    # =========================================================================

    @_store_operation("insert_labels", ErrorCode.STORAGE_WRITE_FAILED)
    def insert_labels(self, labels: Iterable[Label]) -> int:
        """Insert labels; names that already exist are left alone."""
        return self.labels.insert(labels)

    @_store_operation("get_notes_by_label", ErrorCode.STORAGE_READ_FAILED)
    def get_notes_by_label(self, name: str) -> List[Note]:
        """Get every stored row carrying the label, fragments included."""
        rows = self.session.scalars(
            select(DBNote)
            .where(
                text(
                    "EXISTS (SELECT 1 FROM json_each(notes.labels) "
                    "WHERE json_each.value = :label)"
                ).bindparams(label=name)
            )
            .order_by(DBNote.id)
        ).all()
        return [self._db_note_to_model(row) for row in rows]

    @_store_operation("update_labels", ErrorCode.STORAGE_WRITE_FAILED)
    def update_labels(self, labels_by_note: Dict[int, Iterable[str]]) -> None:
        """Replace the label sets of several notes at once."""
        for note_id, names in labels_by_note.items():
            db_note = self.session.get(DBNote, note_id)
            if db_note is None:
                raise NoteNotFoundError(note_id)
            db_note.labels = sorted(set(names))
        self.session.flush()

    @_store_operation("rename_label", ErrorCode.STORAGE_WRITE_FAILED)
    def rename_label(self, old_name: str, new_name: str) -> bool:
        return self.labels.rename(old_name, new_name)

    @_store_operation("delete_label", ErrorCode.STORAGE_WRITE_FAILED)
    def delete_label(self, name: str) -> bool:
        return self.labels.delete(name)

    @_store_operation("get_all_labels", ErrorCode.STORAGE_READ_FAILED)
    def get_all_labels(self) -> List[Label]:
        return self.labels.get_all()
