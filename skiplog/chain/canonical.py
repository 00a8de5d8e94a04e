"""Canonical serialization, hashing and base64url helpers for log entries."""

from __future__ import annotations

import base64
import json
from typing import Any

from blake3 import blake3


def canonicalize(document: Any) -> bytes:
    """Produce deterministic JSON bytes for ``document``.

    Keys are sorted and separators are compact, so two structures with the
    same fields and values always encode identically regardless of the order
    they were built in.
    """

    serialized = json.dumps(
        document,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return serialized.encode("utf-8")


def b64url_encode(data: bytes) -> str:
    """Encode bytes using RFC 4648 base64url without padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(value: str) -> bytes:
    """Decode an RFC 4648 base64url string without requiring padding."""
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def digest(data: bytes) -> str:
    """BLAKE3 digest of ``data`` in the log's text encoding."""
    return b64url_encode(blake3(data).digest())


def canonical_digest(document: Any) -> str:
    return digest(canonicalize(document))


__all__ = [
    "b64url_decode",
    "b64url_encode",
    "canonical_digest",
    "canonicalize",
    "digest",
]
