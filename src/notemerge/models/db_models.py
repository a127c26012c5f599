"""SQLAlchemy database models for the note store."""
import datetime
from typing import Optional

from sqlalchemy import (JSON, Column, DateTime, ForeignKey, Integer, String,
                        Text, create_engine, event)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from notemerge.config import config
from notemerge.models.schema import NoteType

# Create base class for SQLAlchemy models
Base = declarative_base()


class DBNote(Base):
    """Database model for a note or one fragment of a split note."""
    __tablename__ = "notes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, default="", index=True)
    note_type = Column(String(20), default=NoteType.TEXT.value, nullable=False)
    body = Column(Text, nullable=False, default="")
    items = Column(JSON, nullable=False, default=list)
    labels = Column(JSON, nullable=False, default=list)
    spans = Column(JSON, nullable=False, default=list)
    # Previous fragment of a split note; NULL for whole notes and chain heads
    continues_from_id = Column(
        Integer, ForeignKey("notes.id"), nullable=True, index=True
    )
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id={self.id}, title='{self.title}')>"


class DBLabel(Base):
    """Database model for a label."""
    __tablename__ = "labels"
    name = Column(String(255), primary_key=True)

    def __repr__(self) -> str:
        """Return string representation of label."""
        return f"<Label(name='{self.name}')>"


def init_db(in_memory: Optional[bool] = None, url: Optional[str] = None) -> Engine:
    """Create the engine and the schema.

    File databases get WAL journaling and NORMAL synchronous mode so a
    crash in the middle of an import leaves the last committed state
    intact. Their transactions start with BEGIN IMMEDIATE, so two imports
    into the same file run one after the other even across processes.
    In-memory databases share one connection through StaticPool,
    otherwise every session would see its own empty database.

    Args:
        in_memory: Use an in-memory database. Defaults to config.in_memory_db.
        url: Explicit database URL, overrides both in_memory and config.

    Returns:
        The configured engine.
    """
    if in_memory is None:
        in_memory = config.in_memory_db

    if url is None:
        url = "sqlite://" if in_memory else config.get_db_url()

    if url in ("sqlite://", "sqlite:///:memory:"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            url,
            pool_pre_ping=True,
            connect_args={"timeout": 30},
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            # pysqlite must not open transactions itself, see begin_immediate
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

        @event.listens_for(engine, "begin")
        def begin_immediate(conn):
            # Take the writer lock before the first read, so the duplicate
            # lookups of an import see no commits from other connections
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Optional[Engine] = None):
    """Get a session factory for the database."""
    if engine is None:
        engine = init_db()
    return sessionmaker(bind=engine, expire_on_commit=False)
