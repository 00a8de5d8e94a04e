import itertools

import pytest

from skiplog.agent.signing import Ed25519Signer, Ed25519Verifier
from skiplog.chain import Author, Content, PendingEntry, build_chain


@pytest.fixture
def signer():
    return Ed25519Signer.from_seed(b"\x07" * 32)


@pytest.fixture
def author(signer):
    return Author(author_id=signer.author_id, label="alice")


@pytest.fixture
def verifier():
    return Ed25519Verifier()


@pytest.fixture
def clock():
    counter = itertools.count(1_700_000_000_000_000)
    return lambda: next(counter)


@pytest.fixture
def make_chain(author, signer, clock):
    async def _make_chain(length: int):
        pending = [PendingEntry(Content(text=f"message {i}")) for i in range(1, length + 1)]
        return await build_chain(author, signer, pending=pending, clock=clock)

    return _make_chain
