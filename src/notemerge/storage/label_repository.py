"""Repository for label storage and retrieval."""
import logging
from typing import Iterable, List, Union

from sqlalchemy import select, text
from sqlalchemy.orm import Session

from notemerge.models.db_models import DBLabel
from notemerge.models.schema import Label

logger = logging.getLogger(__name__)


class LabelRepository:
    """Repository for the label table.

    Works inside the session it is given and never commits; the owner of
    the session decides when the transaction ends. Label membership of
    individual notes lives on the notes themselves (see NoteStore).
    """

    def __init__(self, session: Session):
        """Initialize the label repository.

        Args:
            session: SQLAlchemy session of the enclosing transaction.
        """
        self.session = session

    def insert(self, labels: Iterable[Union[Label, str]]) -> int:
        """Insert labels, ignoring names that already exist.

        Args:
            labels: Labels or label names.

        Returns:
            Number of labels that were actually created.
        """
        created = 0
        for label in labels:
            name = label.name if isinstance(label, Label) else Label(name=label).name
            # INSERT OR IGNORE leaves an existing label of the same name alone
            result = self.session.execute(
                text("INSERT OR IGNORE INTO labels (name) VALUES (:name)"),
                {"name": name}
            )
            created += result.rowcount or 0
        return created

    def get_all(self) -> List[Label]:
        """Get all labels, ordered by name."""
        db_labels = self.session.scalars(
            select(DBLabel).order_by(DBLabel.name)
        ).all()
        return [Label(name=label.name) for label in db_labels]

    def rename(self, old_name: str, new_name: str) -> bool:
        """Rename a label row.

        If ``new_name`` already exists the two labels are merged.

        Returns:
            True if a label named ``old_name`` existed.
        """
        db_label = self.session.get(DBLabel, old_name)
        if db_label is None:
            return False
        if self.session.get(DBLabel, new_name) is not None:
            logger.debug(f"Label '{new_name}' exists, merging '{old_name}' into it")
            self.session.delete(db_label)
        else:
            db_label.name = new_name
        self.session.flush()
        return True

    def delete(self, name: str) -> bool:
        """Delete a label row. Returns False if it did not exist."""
        db_label = self.session.get(DBLabel, name)
        if db_label is None:
            return False
        self.session.delete(db_label)
        self.session.flush()
        return True
