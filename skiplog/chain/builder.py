"""Construction of signed, linked log entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, Sequence

from .address import skip_target
from .canonical import b64url_encode, canonical_digest, canonicalize
from .clock import monotonic_timestamp
from .entry import ROOT, Content, Entry, Linked, Metadata, link_from_key, unsigned_fields
from .errors import SequenceViolation, UnresolvedLink

logger = logging.getLogger(__name__)


class Signer(Protocol):
    """Signing capability for one author key."""

    async def sign(self, message: bytes) -> bytes:  # pragma: no cover - interface
        ...


SequenceResolver = Callable[[int], Awaitable[Entry | None]]
IndexKeyResolver = Callable[[int, Sequence[Entry]], Awaitable[str | None]]
Clock = Callable[[], int]


@dataclass(frozen=True)
class Author:
    """Public identity stamped on every entry an author writes."""

    author_id: str
    label: str


@dataclass(frozen=True)
class PendingEntry:
    """Content queued for :func:`build_chain`, optionally pinned to a sequence."""

    content: Content
    sequence: int | None = None


def _check_preconditions(
    author: Author, sequence: int, previous: Entry | None, skip_key: str | None
) -> None:
    if sequence < 1:
        raise SequenceViolation(f"Sequence numbers start at 1, got {sequence}")

    if previous is None:
        if sequence != 1:
            raise SequenceViolation(f"Entry {sequence} requires a predecessor")
    else:
        if previous.sequence + 1 != sequence:
            raise SequenceViolation(
                f"Entry {sequence} cannot follow entry {previous.sequence}"
            )
        if previous.author_id != author.author_id:
            raise SequenceViolation("Predecessor belongs to a different author")

    if sequence == 1 and skip_key is not None:
        raise SequenceViolation("The first entry cannot carry a skip link")
    if sequence > 1 and skip_key is None:
        raise SequenceViolation(
            f"Entry {sequence} must skip-link to entry {skip_target(sequence)}"
        )


async def create(
    author: Author,
    signer: Signer,
    *,
    content: Content,
    sequence: int,
    previous: Entry | None,
    skip_key: str | None,
    clock: Clock = monotonic_timestamp,
) -> Entry:
    """Sign and hash a new entry.

    ``skip_key`` must already be resolved by the caller; this function does no
    lookups. Preconditions are checked before the signer is invoked, so an
    entry that could never validate is never signed.
    """

    _check_preconditions(author, sequence, previous, skip_key)

    previous_link = ROOT if previous is None else Linked(previous.key)
    skip_link = link_from_key(skip_key)
    fields = unsigned_fields(
        timestamp=clock(),
        content_proof=content.proof(),
        sequence=sequence,
        previous=previous_link,
        skip=skip_link,
        author_id=author.author_id,
        author_label=author.label,
    )

    signature = b64url_encode(await signer.sign(canonicalize(fields)))
    key = canonical_digest({**fields, "signature": signature})

    metadata = Metadata(
        timestamp=fields["timestamp"],
        content_proof=fields["content_proof"],
        sequence=sequence,
        previous=previous_link,
        skip=skip_link,
        author_id=author.author_id,
        author_label=author.label,
        signature=signature,
        key=key,
    )
    return Entry(metadata=metadata, content=content)


async def append(
    author: Author,
    signer: Signer,
    *,
    content: Content,
    previous_entry: Entry | None,
    resolve_by_sequence: SequenceResolver,
    clock: Clock = monotonic_timestamp,
) -> Entry:
    """Create the entry that follows ``previous_entry`` in the author's log."""

    sequence = 1 if previous_entry is None else previous_entry.sequence + 1
    target = skip_target(sequence)
    logger.debug("Entry %s skip-links to entry %s", sequence, target)

    skip_key: str | None = None
    if target >= 1:
        linked = await resolve_by_sequence(target)
        if linked is None:
            raise UnresolvedLink(f"No entry found at sequence {target}", sequence=target)
        if linked.sequence != target:
            raise SequenceViolation(
                f"Resolver returned entry {linked.sequence} for sequence {target}"
            )
        skip_key = linked.key

    return await create(
        author,
        signer,
        content=content,
        sequence=sequence,
        previous=previous_entry,
        skip_key=skip_key,
        clock=clock,
    )


async def resolve_from_batch(index: int, built: Sequence[Entry]) -> str | None:
    """Find the key for sequence ``index`` among entries built so far."""
    for entry in built:
        if entry.sequence == index:
            return entry.key
    return None


async def build_chain(
    author: Author,
    signer: Signer,
    *,
    pending: Sequence[PendingEntry],
    resolve_key_for_index: IndexKeyResolver = resolve_from_batch,
    previous: Entry | None = None,
    clock: Clock = monotonic_timestamp,
) -> list[Entry]:
    """Fold ``pending`` contents into a chain of linked entries.

    ``previous`` continues an existing log; without it the chain starts at
    sequence 1. The resolver receives the skip target and the entries built so
    far in this batch, and may consult external storage for older entries.
    """

    built: list[Entry] = []
    tip = previous

    for position in range(len(pending)):
        item = pending[position]
        sequence = 1 if tip is None else tip.sequence + 1
        if item.sequence is not None and item.sequence != sequence:
            raise SequenceViolation(
                f"Pending item {position} asks for sequence {item.sequence}, next is {sequence}"
            )

        target = skip_target(sequence)
        skip_key: str | None = None
        if target >= 1:
            skip_key = await resolve_key_for_index(target, built)
            if skip_key is None:
                raise UnresolvedLink(f"No key found for sequence {target}", sequence=target)
        logger.debug("Building entry %s with skip target %s", sequence, target)

        tip = await create(
            author,
            signer,
            content=item.content,
            sequence=sequence,
            previous=tip,
            skip_key=skip_key,
            clock=clock,
        )
        built.append(tip)

    return built


__all__ = [
    "Author",
    "Clock",
    "IndexKeyResolver",
    "PendingEntry",
    "SequenceResolver",
    "Signer",
    "append",
    "build_chain",
    "create",
    "resolve_from_batch",
]
