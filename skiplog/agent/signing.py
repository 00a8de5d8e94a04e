"""Ed25519 signing helpers and ``did:key`` author identifiers.

Authors are identified by ``did:key`` strings that embed the raw Ed25519
public key (multicodec ``0xed01``, multibase base58btc), so a relying party
can verify an entry from its ``author_id`` alone.
"""

from __future__ import annotations

import secrets
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
B58_MAP = {c: i for i, c in enumerate(B58_ALPHABET)}
ED25519_MULTICODEC = bytes([0xED, 0x01])
SEED_SIZE = 32


def b58encode(data: bytes) -> str:
    n_pad = len(data) - len(data.lstrip(b"\x00"))
    num = int.from_bytes(data, "big")
    out = bytearray()
    while num > 0:
        num, rem = divmod(num, 58)
        out.append(B58_ALPHABET[rem])
    out.extend(B58_ALPHABET[0] for _ in range(n_pad))
    out.reverse()
    return out.decode("ascii")


def b58decode(value: str) -> bytes:
    raw = value.encode("ascii")
    num = 0
    for c in raw:
        if c not in B58_MAP:
            raise ValueError("Invalid base58 character")
        num = num * 58 + B58_MAP[c]
    n_pad = len(raw) - len(raw.lstrip(B58_ALPHABET[:1]))
    full = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""
    return b"\x00" * n_pad + full


def did_key_from_public_key(public_key: bytes) -> str:
    return "did:key:z" + b58encode(ED25519_MULTICODEC + public_key)


def public_key_from_did_key(did: str) -> Ed25519PublicKey:
    """Parse an Ed25519 ``did:key`` and return a cryptography public key."""

    if not did.startswith("did:key:z"):
        raise ValueError("Only did:key:z... identifiers are supported")
    decoded = b58decode(did[len("did:key:z") :])
    if not decoded.startswith(ED25519_MULTICODEC):
        raise ValueError("did:key multicodec prefix not recognized for Ed25519")
    raw = decoded[len(ED25519_MULTICODEC) :]
    if len(raw) != 32:
        raise ValueError(f"Ed25519 public key must be 32 bytes, got {len(raw)}")
    return Ed25519PublicKey.from_public_bytes(raw)


class Ed25519Signer:
    """Signing capability backed by an in-process Ed25519 private key."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        public_bytes = private_key.public_key().public_bytes(
            serialization.Encoding.Raw, serialization.PublicFormat.Raw
        )
        self.author_id = did_key_from_public_key(public_bytes)

    @classmethod
    def from_seed(cls, seed: bytes) -> "Ed25519Signer":
        if len(seed) != SEED_SIZE:
            raise ValueError(f"Ed25519 seeds must be {SEED_SIZE} bytes, got {len(seed)}")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def generate(cls) -> "Ed25519Signer":
        return cls(Ed25519PrivateKey.generate())

    def seed(self) -> bytes:
        return self._private_key.private_bytes(
            serialization.Encoding.Raw,
            serialization.PrivateFormat.Raw,
            serialization.NoEncryption(),
        )

    async def sign(self, message: bytes) -> bytes:
        if not isinstance(message, (bytes, bytearray)):
            raise TypeError("Messages must be provided as bytes")
        return self._private_key.sign(bytes(message))


class Ed25519Verifier:
    """Verification capability for entries signed by :class:`Ed25519Signer`."""

    def verify(self, message: bytes, signature: bytes, author_id: str) -> bool:
        try:
            public_key = public_key_from_did_key(author_id)
        except ValueError:
            return False
        try:
            public_key.verify(signature, message)
        except InvalidSignature:
            return False
        return True


def load_or_generate_signer(path: Path) -> Ed25519Signer:
    """Load the Ed25519 seed stored at ``path``, creating one on first use."""

    if path.exists():
        return Ed25519Signer.from_seed(path.read_bytes())
    path.parent.mkdir(parents=True, exist_ok=True)
    seed = secrets.token_bytes(SEED_SIZE)
    path.write_bytes(seed)
    return Ed25519Signer.from_seed(seed)


__all__ = [
    "Ed25519Signer",
    "Ed25519Verifier",
    "b58decode",
    "b58encode",
    "did_key_from_public_key",
    "load_or_generate_signer",
    "public_key_from_did_key",
]
