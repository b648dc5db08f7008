"""Source-of-truth storage for sessions and notes."""

from .base import NoteStorage, SessionStorage
from .notes import MarkdownNoteStorage, format_note, parse_note
from .sessions import JSONLSessionStorage, chunk_count, reported_chunks

__all__ = [
    "SessionStorage",
    "NoteStorage",
    "JSONLSessionStorage",
    "MarkdownNoteStorage",
    "chunk_count",
    "reported_chunks",
    "format_note",
    "parse_note",
]
