"""Skip-linked entry construction, addressing and log storage."""

from .address import path_to_root, skip_target
from .builder import Author, PendingEntry, Signer, append, build_chain, create, resolve_from_batch
from .entry import ROOT, Content, Entry, Linked, Metadata, Root
from .errors import SequenceViolation, SkipLogError, UnresolvedLink
from .log import EntryLog, FileEntryLog, MemoryEntryLog

__all__ = [
    "Author",
    "Content",
    "Entry",
    "EntryLog",
    "FileEntryLog",
    "Linked",
    "MemoryEntryLog",
    "Metadata",
    "PendingEntry",
    "ROOT",
    "Root",
    "SequenceViolation",
    "Signer",
    "SkipLogError",
    "UnresolvedLink",
    "append",
    "build_chain",
    "create",
    "path_to_root",
    "resolve_from_batch",
    "skip_target",
]
