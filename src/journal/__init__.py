"""Event journal: append-only JSONL sink for emitted trigger events."""

from journal.writer import EventJournal

__all__ = ["EventJournal"]
