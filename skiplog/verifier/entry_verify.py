"""Integrity and authenticity checks for a single entry."""

from __future__ import annotations

import binascii
from enum import Enum
from typing import Protocol

from ..chain.canonical import b64url_decode
from ..chain.entry import Entry, Root


class Verifier(Protocol):
    """Verification capability held by relying parties."""

    def verify(self, message: bytes, signature: bytes, author_id: str) -> bool:  # pragma: no cover - interface
        ...


class Failure(str, Enum):
    """Reasons an entry or chain fails verification."""

    HASH_MISMATCH = "hash_mismatch"
    INVALID_SIGNATURE = "invalid_signature"
    CONTENT_MISMATCH = "content_mismatch"
    UNRESOLVED_LINK = "unresolved_link"
    LINK_MISMATCH = "link_mismatch"
    AUTHOR_MISMATCH = "author_mismatch"
    SEQUENCE_VIOLATION = "sequence_violation"


def _signature_valid(entry: Entry, verifier: Verifier) -> bool:
    metadata = entry.metadata
    try:
        signature = b64url_decode(metadata.signature)
    except (ValueError, binascii.Error):
        return False
    return verifier.verify(metadata.signing_bytes(), signature, metadata.author_id)


def _links_well_formed(entry: Entry) -> bool:
    metadata = entry.metadata
    if metadata.sequence < 1:
        return False
    is_first = metadata.sequence == 1
    return isinstance(metadata.previous, Root) == is_first and isinstance(metadata.skip, Root) == is_first


def check_entry(entry: Entry, verifier: Verifier) -> Failure | None:
    """Return the first reason ``entry`` is invalid, or ``None`` if it holds up.

    The stated key must equal the hash of the metadata, the signature must
    verify against the author's identity, the content must match its proof,
    and only the first entry may lack backward links.
    """

    try:
        recomputed_key = entry.metadata.compute_key()
    except UnicodeEncodeError:
        return Failure.HASH_MISMATCH
    if recomputed_key != entry.metadata.key:
        return Failure.HASH_MISMATCH
    if not _signature_valid(entry, verifier):
        return Failure.INVALID_SIGNATURE
    try:
        recomputed_proof = entry.content.proof()
    except UnicodeEncodeError:
        return Failure.CONTENT_MISMATCH
    if recomputed_proof != entry.metadata.content_proof:
        return Failure.CONTENT_MISMATCH
    if not _links_well_formed(entry):
        return Failure.SEQUENCE_VIOLATION
    return None


def is_valid(entry: Entry, verifier: Verifier) -> bool:
    return check_entry(entry, verifier) is None


__all__ = ["Failure", "Verifier", "check_entry", "is_valid"]
