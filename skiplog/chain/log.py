"""Append-only entry logs usable as key and sequence resolvers."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator, Protocol

from .entry import Entry
from .errors import SequenceViolation

logger = logging.getLogger(__name__)


class EntryLog(Protocol):
    """Append-only log interface for one author's entries."""

    def append(self, entry: Entry) -> None:  # pragma: no cover - interface
        ...

    def __iter__(self) -> Iterator[Entry]:  # pragma: no cover - interface
        ...


def _check_continuation(tip: Entry | None, entry: Entry) -> None:
    if tip is None:
        if entry.sequence != 1:
            raise SequenceViolation(f"Log must start at sequence 1, got {entry.sequence}")
        return
    if entry.sequence != tip.sequence + 1:
        raise SequenceViolation(f"Unexpected sequence number: {entry.sequence}, expected {tip.sequence + 1}")
    if entry.metadata.previous_key != tip.key:
        raise SequenceViolation("Hash chain continuity violation")
    if entry.author_id != tip.author_id:
        raise SequenceViolation("Entry belongs to a different author")


class MemoryEntryLog:
    """In-memory log useful for testing."""

    def __init__(self) -> None:
        self._entries: list[Entry] = []
        self._by_key: dict[str, Entry] = {}

    def append(self, entry: Entry) -> None:
        _check_continuation(self.tip(), entry)
        self._entries.append(entry)
        self._by_key[entry.key] = entry

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def tip(self) -> Entry | None:
        return self._entries[-1] if self._entries else None

    async def resolve_by_key(self, key: str) -> Entry | None:
        return self._by_key.get(key)

    async def resolve_by_sequence(self, sequence: int) -> Entry | None:
        if 1 <= sequence <= len(self._entries):
            return self._entries[sequence - 1]
        return None


class FileEntryLog:
    """File-backed append-only log using JSON lines."""

    def __init__(self, path: Path):
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)

    def append(self, entry: Entry) -> None:
        _check_continuation(self.tip(), entry)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")
        logger.debug("Appended entry %s to %s", entry.sequence, self.path)

    def records(self) -> Iterator[dict]:
        """Yield the raw JSON records without decoding them into entries."""
        with self.path.open("r", encoding="utf-8") as handle:
            for line in handle:
                if not line.strip():
                    continue
                yield json.loads(line)

    def __iter__(self) -> Iterator[Entry]:
        for record in self.records():
            yield Entry.from_dict(record)

    def tip(self) -> Entry | None:
        last: Entry | None = None
        for entry in self:
            last = entry
        return last

    async def resolve_by_key(self, key: str) -> Entry | None:
        for entry in self:
            if entry.key == key:
                return entry
        return None

    async def resolve_by_sequence(self, sequence: int) -> Entry | None:
        for entry in self:
            if entry.sequence == sequence:
                return entry
        return None


__all__ = ["EntryLog", "FileEntryLog", "MemoryEntryLog"]
