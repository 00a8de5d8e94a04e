import pytest

from skiplog.chain import (
    ROOT,
    Author,
    Content,
    Linked,
    MemoryEntryLog,
    PendingEntry,
    SequenceViolation,
    UnresolvedLink,
    append,
    build_chain,
    create,
    skip_target,
)


class RecordingSigner:
    """Wraps a signer and counts how often it is asked to sign."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = 0

    async def sign(self, message: bytes) -> bytes:
        self.calls += 1
        return await self.inner.sign(message)


@pytest.mark.asyncio
async def test_create_first_entry(author, signer, clock):
    entry = await create(
        author, signer, content=Content(text="hello"), sequence=1, previous=None, skip_key=None, clock=clock
    )

    assert entry.sequence == 1
    assert entry.metadata.previous == ROOT
    assert entry.metadata.skip == ROOT
    assert entry.metadata.author_id == author.author_id
    assert entry.metadata.author_label == "alice"
    assert entry.metadata.content_proof == Content(text="hello").proof()
    assert entry.key == entry.metadata.compute_key()


@pytest.mark.asyncio
async def test_build_chain_links_to_skip_targets(make_chain):
    chain = await make_chain(40)
    by_sequence = {entry.sequence: entry for entry in chain}

    assert [entry.sequence for entry in chain] == list(range(1, 41))
    for entry in chain[1:]:
        assert entry.metadata.previous == Linked(by_sequence[entry.sequence - 1].key)
        assert entry.metadata.skip_key == by_sequence[skip_target(entry.sequence)].key


@pytest.mark.asyncio
async def test_build_chain_leaves_pending_untouched(author, signer, clock):
    pending = [PendingEntry(Content(text="a")), PendingEntry(Content(text="b"), sequence=2)]
    snapshot = list(pending)

    chain = await build_chain(author, signer, pending=pending, clock=clock)

    assert pending == snapshot
    assert [entry.content.text for entry in chain] == ["a", "b"]


@pytest.mark.asyncio
async def test_build_chain_rejects_wrong_explicit_sequence(author, signer, clock):
    pending = [PendingEntry(Content(text="a")), PendingEntry(Content(text="b"), sequence=5)]

    with pytest.raises(SequenceViolation, match="asks for sequence 5"):
        await build_chain(author, signer, pending=pending, clock=clock)


@pytest.mark.asyncio
async def test_build_chain_continues_from_external_storage(author, signer, clock, make_chain):
    existing = await make_chain(12)
    log = MemoryEntryLog()
    for entry in existing:
        log.append(entry)

    async def resolve(index, built):
        for entry in built:
            if entry.sequence == index:
                return entry.key
        stored = await log.resolve_by_sequence(index)
        return stored.key if stored else None

    pending = [PendingEntry(Content(text=f"more {i}")) for i in range(3)]
    chain = await build_chain(
        author, signer, pending=pending, resolve_key_for_index=resolve, previous=log.tip(), clock=clock
    )

    assert [entry.sequence for entry in chain] == [13, 14, 15]
    assert chain[0].metadata.skip_key == existing[3].key
    assert chain[0].metadata.previous_key == existing[-1].key
    assert chain[1].metadata.skip_key == chain[0].key


@pytest.mark.asyncio
async def test_build_chain_unresolved_skip_target(author, signer, clock, make_chain):
    existing = await make_chain(3)

    with pytest.raises(UnresolvedLink) as excinfo:
        await build_chain(
            author, signer, pending=[PendingEntry(Content(text="x"))], previous=existing[-1], clock=clock
        )

    assert excinfo.value.sequence == 1


@pytest.mark.asyncio
async def test_append_resolves_skip_link(author, signer, clock):
    log = MemoryEntryLog()
    previous = None
    for i in range(5):
        previous = await append(
            author,
            signer,
            content=Content(text=f"post {i}"),
            previous_entry=previous,
            resolve_by_sequence=log.resolve_by_sequence,
            clock=clock,
        )
        log.append(previous)

    fifth = log.tip()
    fourth = await log.resolve_by_sequence(4)
    assert fifth.sequence == 5
    assert fifth.metadata.skip_key == fourth.key


@pytest.mark.asyncio
async def test_append_rejects_missing_skip_entry(author, signer, clock, make_chain):
    chain = await make_chain(4)

    async def resolve_nothing(sequence):
        return None

    with pytest.raises(UnresolvedLink):
        await append(
            author,
            signer,
            content=Content(text="x"),
            previous_entry=chain[-1],
            resolve_by_sequence=resolve_nothing,
            clock=clock,
        )


@pytest.mark.asyncio
async def test_append_rejects_misplaced_skip_entry(author, signer, clock, make_chain):
    chain = await make_chain(4)

    async def resolve_wrong(sequence):
        return chain[0]

    with pytest.raises(SequenceViolation, match="Resolver returned entry 1"):
        await append(
            author,
            signer,
            content=Content(text="x"),
            previous_entry=chain[-1],
            resolve_by_sequence=resolve_wrong,
            clock=clock,
        )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "sequence, use_previous, skip_key, message",
    [
        (0, False, None, "start at 1"),
        (3, False, "k", "requires a predecessor"),
        (4, True, "k", "cannot follow"),
        (1, False, "k", "cannot carry a skip link"),
        (2, True, None, "must skip-link"),
    ],
)
async def test_create_preconditions_fail_before_signing(
    author, signer, clock, sequence, use_previous, skip_key, message
):
    first = await create(
        author, signer, content=Content(text="root"), sequence=1, previous=None, skip_key=None, clock=clock
    )
    recording = RecordingSigner(signer)

    with pytest.raises(SequenceViolation, match=message):
        await create(
            author,
            recording,
            content=Content(text="x"),
            sequence=sequence,
            previous=first if use_previous else None,
            skip_key=skip_key,
            clock=clock,
        )

    assert recording.calls == 0


@pytest.mark.asyncio
async def test_create_rejects_predecessor_from_other_author(author, signer, clock):
    first = await create(
        author, signer, content=Content(text="root"), sequence=1, previous=None, skip_key=None, clock=clock
    )
    mallory = Author(author_id="did:key:zOther", label="mallory")

    with pytest.raises(SequenceViolation, match="different author"):
        await create(
            mallory, signer, content=Content(text="x"), sequence=2, previous=first, skip_key=first.key, clock=clock
        )


@pytest.mark.asyncio
async def test_same_content_different_timestamps_give_different_keys(author, signer):
    content = Content(text="same", mentions=("a",), alt=("alt a",))
    timestamps = iter([1, 2])

    first = await create(
        author, signer, content=content, sequence=1, previous=None, skip_key=None, clock=lambda: next(timestamps)
    )
    second = await create(
        author, signer, content=content, sequence=1, previous=None, skip_key=None, clock=lambda: next(timestamps)
    )

    assert first.metadata.content_proof == second.metadata.content_proof
    assert first.key != second.key


@pytest.mark.asyncio
async def test_default_clock_is_strictly_increasing(author, signer):
    entries = [
        await create(author, signer, content=Content(text="t"), sequence=1, previous=None, skip_key=None)
        for _ in range(20)
    ]
    stamps = [entry.metadata.timestamp for entry in entries]
    assert stamps == sorted(set(stamps))
