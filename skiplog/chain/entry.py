"""Immutable log entries and their wire representation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .canonical import canonical_digest, canonicalize


@dataclass(frozen=True, slots=True)
class Root:
    """Marker for an absent backward link; only the first entry carries it."""

    def __repr__(self) -> str:
        return "ROOT"


ROOT = Root()


@dataclass(frozen=True, slots=True)
class Linked:
    """Backward link to an earlier entry, addressed by its key."""

    key: str


Link = Union[Root, Linked]


def link_key(link: Link) -> str | None:
    if isinstance(link, Linked):
        return link.key
    return None


def link_from_key(key: str | None) -> Link:
    if key is None:
        return ROOT
    return Linked(key)


@dataclass(frozen=True, slots=True)
class Content:
    """Author-supplied payload.

    ``alt`` holds the alt text of each item in ``mentions``, in the same order.
    """

    text: str
    alt: tuple[str, ...] | None = None
    mentions: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"text": self.text}
        if self.alt is not None:
            data["alt"] = list(self.alt)
        if self.mentions is not None:
            data["mentions"] = list(self.mentions)
        return data

    def proof(self) -> str:
        """Hash of the canonical encoding of this content."""
        return canonical_digest(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> "Content":
        if not isinstance(data, dict):
            raise ValueError("Content must be an object")
        text = data.get("text")
        if not isinstance(text, str):
            raise ValueError("Content text must be a string")
        return cls(
            text=_require_utf8(text, "Content text"),
            alt=_optional_strings(data, "alt"),
            mentions=_optional_strings(data, "mentions"),
        )


def _optional_strings(data: dict[str, Any], field_name: str) -> tuple[str, ...] | None:
    value = data.get(field_name)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"Content {field_name} must be a list of strings")
    return tuple(_require_utf8(item, f"Content {field_name}") for item in value)


def _require_utf8(value: str, label: str) -> str:
    # lone surrogates survive json.loads but cannot be canonicalized
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ValueError(f"{label} is not valid UTF-8 text") from exc
    return value


@dataclass(frozen=True, slots=True)
class Metadata:
    timestamp: int
    content_proof: str
    sequence: int
    previous: Link
    skip: Link
    author_id: str
    author_label: str
    signature: str
    key: str

    @property
    def previous_key(self) -> str | None:
        return link_key(self.previous)

    @property
    def skip_key(self) -> str | None:
        return link_key(self.skip)

    def signing_fields(self) -> dict[str, Any]:
        """Fields covered by the author's signature."""
        return unsigned_fields(
            timestamp=self.timestamp,
            content_proof=self.content_proof,
            sequence=self.sequence,
            previous=self.previous,
            skip=self.skip,
            author_id=self.author_id,
            author_label=self.author_label,
        )

    def hashed_fields(self) -> dict[str, Any]:
        """Fields covered by the entry key: everything except the key itself."""
        fields = self.signing_fields()
        fields["signature"] = self.signature
        return fields

    def signing_bytes(self) -> bytes:
        return canonicalize(self.signing_fields())

    def compute_key(self) -> str:
        return canonical_digest(self.hashed_fields())

    def to_dict(self) -> dict[str, Any]:
        data = self.hashed_fields()
        data["key"] = self.key
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Metadata":
        if not isinstance(data, dict):
            raise ValueError("Metadata must be an object")

        sequence = data.get("sequence")
        timestamp = data.get("timestamp")
        if not isinstance(sequence, int) or isinstance(sequence, bool):
            raise ValueError("Metadata sequence must be an integer")
        if not isinstance(timestamp, int) or isinstance(timestamp, bool):
            raise ValueError("Metadata timestamp must be an integer")

        strings = {}
        for field_name in ("content_proof", "author_id", "author_label", "signature", "key"):
            value = data.get(field_name)
            if not isinstance(value, str):
                raise ValueError(f"Metadata {field_name} must be a string")
            strings[field_name] = _require_utf8(value, f"Metadata {field_name}")

        links = {}
        for field_name in ("previous_key", "skip_key"):
            value = data.get(field_name)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Metadata {field_name} must be a string or null")
            if value is not None:
                _require_utf8(value, f"Metadata {field_name}")
            links[field_name] = link_from_key(value)

        return cls(
            timestamp=timestamp,
            sequence=sequence,
            previous=links["previous_key"],
            skip=links["skip_key"],
            **strings,
        )


def unsigned_fields(
    *,
    timestamp: int,
    content_proof: str,
    sequence: int,
    previous: Link,
    skip: Link,
    author_id: str,
    author_label: str,
) -> dict[str, Any]:
    return {
        "timestamp": timestamp,
        "content_proof": content_proof,
        "sequence": sequence,
        "skip_key": link_key(skip),
        "previous_key": link_key(previous),
        "author_label": author_label,
        "author_id": author_id,
    }


@dataclass(frozen=True, slots=True)
class Entry:
    """One signed, hash-addressed record in an author's log."""

    metadata: Metadata
    content: Content

    @property
    def key(self) -> str:
        return self.metadata.key

    @property
    def sequence(self) -> int:
        return self.metadata.sequence

    @property
    def author_id(self) -> str:
        return self.metadata.author_id

    def to_dict(self) -> dict[str, Any]:
        return {"metadata": self.metadata.to_dict(), "content": self.content.to_dict()}

    @classmethod
    def from_dict(cls, data: Any) -> "Entry":
        if not isinstance(data, dict):
            raise ValueError("Entry record must be an object")
        return cls(
            metadata=Metadata.from_dict(data.get("metadata")),
            content=Content.from_dict(data.get("content")),
        )


__all__ = [
    "Content",
    "Entry",
    "Link",
    "Linked",
    "Metadata",
    "ROOT",
    "Root",
    "link_from_key",
    "link_key",
    "unsigned_fields",
]
