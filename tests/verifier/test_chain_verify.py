import dataclasses

import pytest

from skiplog.agent.signing import Ed25519Signer
from skiplog.chain import Author, Content, PendingEntry, build_chain, path_to_root
from skiplog.chain.canonical import b64url_decode, b64url_encode
from skiplog.verifier import Failure, verify_chain


def _resolver(entries):
    by_key = {entry.key: entry for entry in entries}

    async def resolve(key):
        return by_key.get(key)

    return resolve


@pytest.mark.asyncio
@pytest.mark.parametrize("length", [1, 2, 5, 13, 28, 40])
async def test_valid_chain_visits_skip_path(make_chain, verifier, length):
    chain = await make_chain(length)

    report = await verify_chain(chain[-1], _resolver(chain), verifier)

    assert report.valid
    assert report.failure is None
    assert report.visited == [length] + list(reversed(path_to_root(length)))


@pytest.mark.asyncio
async def test_corrupted_ancestor_stops_the_walk(make_chain, verifier):
    chain = await make_chain(5)
    fourth, first = chain[3], chain[0]
    assert fourth.metadata.skip_key == first.key

    signature = bytearray(b64url_decode(first.metadata.signature))
    signature[0] ^= 0xFF
    corrupted = dataclasses.replace(
        first, metadata=dataclasses.replace(first.metadata, signature=b64url_encode(bytes(signature)))
    )
    entries = {entry.key: entry for entry in chain}
    entries[first.key] = corrupted

    async def resolve(key):
        return entries.get(key)

    report = await verify_chain(fourth, resolve, verifier)

    assert not report.valid
    assert report.visited == [4, 1]
    assert report.failed_sequence == 1
    assert report.failure is Failure.HASH_MISMATCH


@pytest.mark.asyncio
async def test_missing_ancestor_is_unresolved(make_chain, verifier):
    chain = await make_chain(13)

    report = await verify_chain(chain[-1], _resolver(chain[5:]), verifier)

    assert not report.valid
    assert report.failure is Failure.UNRESOLVED_LINK
    assert report.visited == [13]


@pytest.mark.asyncio
async def test_resolver_returning_wrong_key(make_chain, verifier):
    chain = await make_chain(5)

    async def resolve(key):
        return chain[1]

    report = await verify_chain(chain[-1], resolve, verifier)

    assert report.failure is Failure.LINK_MISMATCH
    assert report.visited == [5]


@pytest.mark.asyncio
async def test_skip_link_to_wrong_position(author, signer, verifier, clock):
    # sequence 5 must link to 4; link it to 3 instead with a valid signature
    chain = await build_chain(
        author, signer, pending=[PendingEntry(Content(text=str(i))) for i in range(4)], clock=clock
    )

    async def misdirect(index, built):
        return chain[2].key

    rogue = await build_chain(
        author,
        signer,
        pending=[PendingEntry(Content(text="rogue"))],
        resolve_key_for_index=misdirect,
        previous=chain[-1],
        clock=clock,
    )
    entries = chain + rogue

    report = await verify_chain(rogue[0], _resolver(entries), verifier)

    assert rogue[0].metadata.skip_key == chain[2].key
    assert report.failure is Failure.SEQUENCE_VIOLATION
    assert report.visited == [5]


@pytest.mark.asyncio
async def test_skip_link_to_other_author(make_chain, verifier, clock):
    chain = await make_chain(2)
    bob_signer = Ed25519Signer.from_seed(b"\x0b" * 32)
    bob = Author(author_id=bob_signer.author_id, label="bob")
    bobs = await build_chain(bob, bob_signer, pending=[PendingEntry(Content(text="bob"))], clock=clock)

    entries = {entry.key: entry for entry in chain}
    entries[chain[1].metadata.skip_key] = bobs[0]

    async def resolve(key):
        found = entries.get(key)
        # claim the requested key so only the author check can object
        return dataclasses.replace(found, metadata=dataclasses.replace(found.metadata, key=key))

    report = await verify_chain(chain[1], resolve, verifier)

    assert report.failure is Failure.AUTHOR_MISMATCH
    assert report.visited == [2]


@pytest.mark.asyncio
async def test_report_serializes(make_chain, verifier):
    chain = await make_chain(4)

    report = await verify_chain(chain[-1], _resolver(chain), verifier)

    assert report.to_dict() == {"valid": True, "visited": [4, 1], "failure": None, "failed_sequence": None}


@pytest.mark.asyncio
async def test_unencodable_ancestor_is_reported_not_raised(make_chain, verifier):
    chain = await make_chain(5)
    entries = {entry.key: entry for entry in chain}
    fourth = chain[3]
    entries[fourth.key] = dataclasses.replace(
        fourth, metadata=dataclasses.replace(fourth.metadata, author_label="\udcff")
    )

    async def resolve(key):
        return entries.get(key)

    report = await verify_chain(chain[-1], resolve, verifier)

    assert not report.valid
    assert report.failure is Failure.HASH_MISMATCH
    assert report.visited == [5, 4]
