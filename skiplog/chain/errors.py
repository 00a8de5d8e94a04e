"""Exceptions raised while building entries."""

from __future__ import annotations


class SkipLogError(Exception):
    """Base class for skiplog build-time failures."""


class SequenceViolation(SkipLogError, ValueError):
    """An entry's sequence is inconsistent with its predecessor or skip target."""


class UnresolvedLink(SkipLogError, LookupError):
    """A resolver had no entry for a position or key the log requires."""

    def __init__(self, message: str, *, sequence: int | None = None, key: str | None = None):
        super().__init__(message)
        self.sequence = sequence
        self.key = key


__all__ = ["SequenceViolation", "SkipLogError", "UnresolvedLink"]
