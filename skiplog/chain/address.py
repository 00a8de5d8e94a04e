"""Lipmaa skip-link addressing.

Every entry links to its immediate predecessor and to one older entry chosen
by :func:`skip_target`. The targets are arranged in nested blocks whose sizes
are ``(3**k - 1) / 2``, which keeps the path between any two entries of a log
logarithmic in the log length.

Sequence numbers are 1-indexed. A target of ``0`` means the position has no
earlier entry to link to, which only happens for the root (sequence ``1``).
"""

from __future__ import annotations


def skip_target(n: int) -> int:
    """Return the sequence number the entry at ``n`` skip-links to.

    >>> [skip_target(n) for n in range(1, 14)]
    [0, 1, 2, 1, 4, 5, 6, 4, 8, 9, 10, 8, 4]
    """

    if n < 0:
        raise ValueError(f"Sequence numbers must be non-negative, got {n}")

    m = 1
    po3 = 3
    x = n

    # smallest k with (3**k - 1) / 2 >= n
    while m < n:
        po3 *= 3
        m = (po3 - 1) // 2

    po3 //= 3

    if m != n:
        # longest backjump that does not overshoot
        while x != 0:
            m = (po3 - 1) // 2
            po3 //= 3
            x %= m

        if m != po3:
            po3 = m

    return max(n - po3, 0)


def path_to_root(index: int) -> list[int]:
    """Return the skip hops from ``index`` back to the root, root first.

    ``index`` itself is not part of the result, so the root's own path is
    empty.
    """

    if index < 0:
        raise ValueError(f"Sequence numbers must be non-negative, got {index}")

    path: list[int] = []
    current = index
    while current > 1:
        current = skip_target(current)
        if current < 1:
            break
        path.append(current)

    path.reverse()
    return path


__all__ = ["path_to_root", "skip_target"]
