"""Command-line verification of an entry stored in a JSON-lines log."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Sequence

from dateutil import parser as date_parser
from jsonschema import Draft202012Validator

from ..agent.signing import Ed25519Verifier
from ..chain.address import path_to_root
from ..chain.entry import Entry
from ..chain.log import FileEntryLog
from .chain_verify import verify_chain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifyConfig:
    log: Path
    sequence: int | None
    key: str | None
    schema: Path
    not_before: datetime | None
    verbose: bool


def _default_schema_path() -> Path:
    return Path(__file__).resolve().parents[1] / "schema" / "entry.schema.json"


def _load_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _validate_schema(records: Iterable[dict[str, Any]], schema_path: Path) -> list[str]:
    validator = Draft202012Validator(_load_json(schema_path))
    messages: list[str] = []
    for line, record in enumerate(records, start=1):
        errors = sorted(validator.iter_errors(record), key=lambda err: [str(part) for part in err.path])
        messages.extend(f"line {line} {list(error.path)}: {error.message}" for error in errors)
    return messages


def _parse_not_before(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _entry_time(entry: Entry) -> datetime:
    return datetime.fromtimestamp(entry.metadata.timestamp / 1_000_000, tz=timezone.utc)


def _verify_temporal_sanity(entry: Entry, not_before: datetime | None) -> None:
    if not_before is not None and _entry_time(entry) < not_before:
        raise ValueError(
            f"Entry {entry.sequence} was written at {_entry_time(entry).isoformat()}, "
            f"before {not_before.isoformat()}"
        )


async def _select_entry(log: FileEntryLog, config: VerifyConfig) -> Entry | None:
    if config.key is not None:
        return await log.resolve_by_key(config.key)
    if config.sequence is not None:
        return await log.resolve_by_sequence(config.sequence)
    return log.tip()


def _parse_args(argv: Sequence[str] | None) -> VerifyConfig:
    parser = argparse.ArgumentParser(description="Verify an entry of a skip-linked log")
    parser.add_argument("--log", type=Path, required=True, help="JSON-lines log file")
    selector = parser.add_mutually_exclusive_group()
    selector.add_argument("--sequence", type=int, help="Sequence number of the entry to verify")
    selector.add_argument("--key", help="Key of the entry to verify")
    parser.add_argument("--schema", type=Path, default=_default_schema_path())
    parser.add_argument("--not-before", help="Reject entries written before this ISO-8601 time")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    try:
        not_before = _parse_not_before(args.not_before)
    except ValueError:
        parser.error(f"invalid --not-before timestamp: {args.not_before}")

    return VerifyConfig(
        log=args.log,
        sequence=args.sequence,
        key=args.key,
        schema=args.schema,
        not_before=not_before,
        verbose=args.verbose,
    )


def main(argv: Sequence[str] | None = None) -> None:
    config = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if config.verbose else logging.INFO)

    if not config.log.is_file():
        raise SystemExit(f"Log file not found: {config.log}")
    log = FileEntryLog(config.log)

    try:
        schema_errors = _validate_schema(log.records(), config.schema)
        if schema_errors:
            raise SystemExit("; ".join(schema_errors))

        entry = asyncio.run(_select_entry(log, config))
        if entry is None:
            raise SystemExit("No matching entry in log")

        report = asyncio.run(verify_chain(entry, log.resolve_by_key, Ed25519Verifier()))
    except ValueError as exc:
        raise SystemExit(f"Malformed record in {config.log}: {exc}") from exc
    if not report.valid:
        raise SystemExit(
            "Chain verification failed at entry {sequence}: {failure} (visited {visited})".format(
                sequence=report.failed_sequence,
                failure=report.failure.value if report.failure else "unknown",
                visited=report.visited,
            )
        )

    try:
        _verify_temporal_sanity(entry, config.not_before)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    logger.info("Verified entry %s of %s", entry.sequence, entry.author_id)
    print(
        json.dumps(
            {
                "status": "ok",
                "key": entry.key,
                "sequence": entry.sequence,
                "author_id": entry.author_id,
                "path_to_root": path_to_root(entry.sequence),
                "report": report.to_dict(),
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    main()
