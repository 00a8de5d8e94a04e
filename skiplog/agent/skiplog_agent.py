"""Entrypoint for appending authored messages to a skip-linked log."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from ..chain.address import path_to_root, skip_target
from ..chain.builder import Author, append
from ..chain.entry import Content
from ..chain.errors import SkipLogError
from ..chain.log import FileEntryLog
from .signing import load_or_generate_signer

logger = logging.getLogger(__name__)

KEY_ENV_VAR = "SKIPLOG_KEY"


@dataclass(frozen=True)
class AgentConfig:
    log: Path
    key: Path
    label: str
    text: str
    mentions: tuple[str, ...]
    alt: tuple[str, ...]
    verbose: bool


def _default_state_dir() -> Path:
    return Path(__file__).resolve().parents[1] / "state"


def _default_key_path() -> Path:
    configured = os.environ.get(KEY_ENV_VAR)
    if configured:
        return Path(configured)
    return _default_state_dir() / "author.key"


def _parse_args(argv: Sequence[str] | None) -> AgentConfig:
    parser = argparse.ArgumentParser(description="Append a signed message to a skip-linked log")
    parser.add_argument("--log", type=Path, required=True, help="JSON-lines log file")
    parser.add_argument(
        "--key",
        type=Path,
        default=None,
        help=f"Ed25519 seed file, created on first use (default: ${KEY_ENV_VAR} or state/author.key)",
    )
    parser.add_argument("--label", required=True, help="Human readable author name")
    parser.add_argument("--text", required=True, help="Message text")
    parser.add_argument("--mention", action="append", default=[], help="Mentioned resource, repeatable")
    parser.add_argument("--alt", action="append", default=[], help="Alt text for each --mention, in order")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    if args.alt and len(args.alt) != len(args.mention):
        parser.error("--alt must be given once per --mention")
    for value in (args.label, args.text, *args.mention, *args.alt):
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            parser.error(f"argument is not valid UTF-8 text: {value!r}")

    return AgentConfig(
        log=args.log,
        key=args.key or _default_key_path(),
        label=args.label,
        text=args.text,
        mentions=tuple(args.mention),
        alt=tuple(args.alt),
        verbose=args.verbose,
    )


def _build_content(config: AgentConfig) -> Content:
    return Content(
        text=config.text,
        alt=config.alt or None,
        mentions=config.mentions or None,
    )


def main(argv: Sequence[str] | None = None) -> None:
    config = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if config.verbose else logging.INFO)

    signer = load_or_generate_signer(config.key)
    author = Author(author_id=signer.author_id, label=config.label)
    log = FileEntryLog(config.log)

    tip = log.tip()
    if tip is not None and tip.author_id != author.author_id:
        raise SystemExit(f"Log {config.log} belongs to {tip.author_id}, not {author.author_id}")

    try:
        entry = asyncio.run(
            append(
                author,
                signer,
                content=_build_content(config),
                previous_entry=tip,
                resolve_by_sequence=log.resolve_by_sequence,
            )
        )
        log.append(entry)
    except SkipLogError as exc:
        raise SystemExit(str(exc)) from exc

    logger.info("Appended entry %s to %s", entry.sequence, config.log)
    summary: dict[str, Any] = {
        "key": entry.key,
        "sequence": entry.sequence,
        "author_id": entry.author_id,
        "skip_target": skip_target(entry.sequence),
        "path_to_root": path_to_root(entry.sequence),
        "log": str(config.log),
    }
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
