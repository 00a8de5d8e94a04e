"""Skip-link chain verification."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from ..chain.address import skip_target
from ..chain.entry import Entry, Root
from .entry_verify import Failure, Verifier, check_entry

logger = logging.getLogger(__name__)

KeyResolver = Callable[[str], Awaitable[Entry | None]]


@dataclass
class ChainReport:
    """Outcome of walking skip links from an entry back to the root.

    ``visited`` lists the sequence numbers in the order they were walked,
    including the entry where a failure was found.
    """

    valid: bool
    visited: list[int] = field(default_factory=list)
    failure: Failure | None = None
    failed_sequence: int | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.valid,
            "visited": list(self.visited),
            "failure": self.failure.value if self.failure else None,
            "failed_sequence": self.failed_sequence,
        }


def _fail(report: ChainReport, failure: Failure, sequence: int) -> ChainReport:
    logger.warning("Chain verification failed at entry %s: %s", sequence, failure.value)
    report.valid = False
    report.failure = failure
    report.failed_sequence = sequence
    return report


async def verify_chain(entry: Entry, resolve_by_key: KeyResolver, verifier: Verifier) -> ChainReport:
    """Verify ``entry`` and every ancestor on its skip path down to the root.

    Each hop checks the entry itself, then resolves its skip link and requires
    the resolved entry to carry the requested key, the same author, and the
    sequence number the addressing rule assigns to the link.
    """

    report = ChainReport(valid=True)
    current = entry

    while True:
        sequence = current.sequence
        report.visited.append(sequence)

        failure = check_entry(current, verifier)
        if failure is not None:
            return _fail(report, failure, sequence)

        skip = current.metadata.skip
        if isinstance(skip, Root):
            if sequence > 1:
                return _fail(report, Failure.SEQUENCE_VIOLATION, sequence)
            logger.debug("Reached root after %s hops", len(report.visited))
            return report

        linked = await resolve_by_key(skip.key)
        if linked is None:
            return _fail(report, Failure.UNRESOLVED_LINK, sequence)
        if linked.key != skip.key:
            return _fail(report, Failure.LINK_MISMATCH, sequence)
        if linked.author_id != current.author_id:
            return _fail(report, Failure.AUTHOR_MISMATCH, sequence)
        if linked.sequence != skip_target(sequence):
            return _fail(report, Failure.SEQUENCE_VIOLATION, sequence)

        logger.debug("Entry %s skip-links to entry %s", sequence, linked.sequence)
        current = linked


__all__ = ["ChainReport", "KeyResolver", "verify_chain"]
