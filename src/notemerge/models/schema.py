"""Data models for notemerge."""

import datetime
import re
from dataclasses import dataclass
from datetime import timezone
from enum import Enum
from typing import List, Optional, Set, Union

from pydantic import BaseModel, Field, field_validator, model_validator

# Prefix of a link that points at another note in the same store
NOTE_URL_PREFIX = "note://"

# note://<id>/<type>
NOTE_URL_PATTERN = re.compile(r"^note://(\d+)/([A-Za-z]+)$")


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


class NoteType(str, Enum):
    """Kinds of notes held by the store."""

    TEXT = "text"  # Free text, content lives in body
    LIST = "list"  # Checklist, content lives in items


class ListItem(BaseModel):
    """One entry of a list note."""

    body: str = Field(default="", description="Text of the entry")
    checked: bool = Field(default=False, description="Whether the entry is ticked")
    depth: int = Field(default=0, ge=0, description="Nesting depth, 0 for top level")

    model_config = {"frozen": True, "extra": "forbid"}


class Span(BaseModel):
    """A formatted range of a note's flattened text."""

    start: int = Field(..., ge=0, description="Start offset (inclusive)")
    end: int = Field(..., ge=0, description="End offset (exclusive)")
    bold: bool = False
    italic: bool = False
    monospace: bool = False
    strikethrough: bool = False
    link: bool = Field(default=False, description="Whether the span is a hyperlink")
    link_data: Optional[str] = Field(
        default=None, description="Link target, note://<id>/<type> for note links"
    )

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="after")
    def _check_range(self) -> "Span":
        if self.end < self.start:
            raise ValueError(f"Span end ({self.end}) precedes start ({self.start})")
        return self

    def shifted(self, offset: int) -> "Span":
        """Return a copy moved by ``offset`` characters."""
        return self.model_copy(
            update={"start": self.start + offset, "end": self.end + offset}
        )

    def clipped(self, lower: int, upper: int) -> Optional["Span"]:
        """Return the part of this span inside ``[lower, upper)``, rebased to ``lower``.

        Returns None when the span does not overlap the range.
        """
        start = max(self.start, lower)
        end = min(self.end, upper)
        if end <= start:
            return None
        return self.model_copy(update={"start": start - lower, "end": end - lower})


@dataclass(frozen=True)
class NoteReference:
    """A link to another note in the store."""

    note_id: int
    note_type: NoteType


@dataclass(frozen=True)
class ExternalLink:
    """A link to anything that is not a note in the store."""

    text: str


LinkTarget = Union[NoteReference, ExternalLink]


def create_note_url(note_id: int, note_type: NoteType) -> str:
    """Build the link text that points at ``note_id``."""
    return f"{NOTE_URL_PREFIX}{note_id}/{note_type.value}"


def parse_note_url(url: str) -> Optional[NoteReference]:
    """Parse a ``note://`` URL, returning None if it is malformed."""
    match = NOTE_URL_PATTERN.match(url.strip())
    if not match:
        return None
    try:
        note_type = NoteType(match.group(2).lower())
    except ValueError:
        return None
    return NoteReference(note_id=int(match.group(1)), note_type=note_type)


def decode_link_target(span: Span) -> Optional[LinkTarget]:
    """Classify what a span links to.

    Returns None for spans that are not links, a NoteReference for
    well-formed note URLs and an ExternalLink for everything else,
    including note URLs whose id or type cannot be parsed.
    """
    if not span.link or span.link_data is None:
        return None
    reference = parse_note_url(span.link_data)
    if reference is not None:
        return reference
    return ExternalLink(text=span.link_data)


class Note(BaseModel):
    """A note as exported by a backup or held by the store."""

    id: int = Field(default=0, ge=0, description="Store-assigned ID, 0 before insertion")
    title: str = Field(default="", description="Title of the note")
    note_type: NoteType = Field(default=NoteType.TEXT, description="Type of note")
    body: str = Field(default="", description="Content of a text note")
    items: List[ListItem] = Field(
        default_factory=list, description="Entries of a list note"
    )
    labels: Set[str] = Field(default_factory=set, description="Label names")
    spans: List[Span] = Field(default_factory=list, description="Formatted ranges")
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was created (UTC)"
    )
    updated_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was last updated (UTC)"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @field_validator("labels")
    @classmethod
    def validate_labels(cls, v: Set[str]) -> Set[str]:
        """Drop blank label names."""
        return {name for name in v if name and name.strip()}


class Label(BaseModel):
    """A label that can be attached to notes."""

    name: str = Field(..., description="Label name")

    model_config = {"validate_assignment": True, "frozen": True}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate that the name is not empty."""
        if not v.strip():
            raise ValueError("Label name cannot be empty")
        return v

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ImportResult:
    """Outcome of a backup import.

    Attributes:
        inserted: Number of batch entries stored as new notes. A note that
            was split into fragments counts once.
        duplicates: Number of batch entries skipped because an equal note
            already existed.
    """

    inserted: int = 0
    duplicates: int = 0

    def to_dict(self) -> dict:
        return {"inserted": self.inserted, "duplicates": self.duplicates}
