"""Verifier package for skip-linked logs."""

from .chain_verify import ChainReport, KeyResolver, verify_chain  # noqa: F401
from .entry_verify import Failure, Verifier, check_entry, is_valid  # noqa: F401
