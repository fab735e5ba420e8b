"""Ed25519 key handling in the ``ed25519:<base58>`` text format.

Key material is handled through :mod:`cryptography`; this module only deals
with the textual encoding used by NEAR tooling and with the legacy keychain
files stored under ``~/.near-credentials/<network>/<account>.json``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

import base58
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

logger = logging.getLogger(__name__)

ED25519_PREFIX = "ed25519:"
ED25519_KEY_TYPE = 0


class KeyFormatError(ValueError):
    """Raised when a key string cannot be decoded."""


def _decode_prefixed(raw: str, expected_lengths: tuple[int, ...], kind: str) -> bytes:
    text = raw.strip()
    if text.startswith(ED25519_PREFIX):
        text = text[len(ED25519_PREFIX):]
    elif ":" in text:
        raise KeyFormatError(f"Unsupported key type in {kind} '{raw}'; only ed25519 keys are supported")
    try:
        data = base58.b58decode(text)
    except ValueError as exc:
        raise KeyFormatError(f"{kind} '{raw}' is not valid base58") from exc
    if len(data) not in expected_lengths:
        raise KeyFormatError(f"{kind} must decode to {' or '.join(map(str, expected_lengths))} bytes")
    return data


@dataclass(frozen=True)
class PublicKey:
    data: bytes

    @classmethod
    def from_str(cls, raw: str) -> "PublicKey":
        return cls(_decode_prefixed(raw, (32,), "Public key"))

    def to_borsh(self) -> bytes:
        return bytes([ED25519_KEY_TYPE]) + self.data

    def __str__(self) -> str:
        return ED25519_PREFIX + base58.b58encode(self.data).decode("ascii")


class KeyPair:
    """An ed25519 signing key together with its public half."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        raw_public = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        self.public_key = PublicKey(raw_public)

    @classmethod
    def from_str(cls, raw: str) -> "KeyPair":
        """Accept the 64-byte ``secret||public`` form as well as a bare 32-byte seed."""

        data = _decode_prefixed(raw, (32, 64), "Private key")
        key_pair = cls(Ed25519PrivateKey.from_private_bytes(data[:32]))
        if len(data) == 64 and data[32:] != key_pair.public_key.data:
            raise KeyFormatError("Private key does not match its embedded public key")
        return key_pair

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    def secret_key_str(self) -> str:
        seed = self._private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return ED25519_PREFIX + base58.b58encode(seed + self.public_key.data).decode("ascii")

    def verify(self, signature: bytes, message: bytes) -> None:
        Ed25519PublicKey.from_public_bytes(self.public_key.data).verify(signature, message)


def generate_keypair() -> KeyPair:
    return KeyPair(Ed25519PrivateKey.generate())


def keychain_path(credentials_home: Path, network_name: str, account_id: str) -> Path:
    return Path(credentials_home) / network_name / f"{account_id}.json"


def load_keychain_key(credentials_home: Path, network_name: str, account_id: str) -> KeyPair:
    """Load the signer's key pair from a legacy keychain file."""

    path = keychain_path(credentials_home, network_name, account_id)
    if not path.exists():
        raise FileNotFoundError(
            f"No access key for <{account_id}> found in the keychain at {path}"
        )
    try:
        document = json.loads(path.read_text())
    except ValueError as exc:
        raise KeyFormatError(f"Keychain file {path} is not valid JSON") from exc
    secret = document.get("private_key") or document.get("secret_key")
    if not secret:
        raise KeyFormatError(f"Keychain file {path} has no private_key")
    key_pair = KeyPair.from_str(secret)
    stored_public = document.get("public_key")
    if stored_public and PublicKey.from_str(stored_public) != key_pair.public_key:
        raise KeyFormatError(f"Keychain file {path} has a public_key that does not match its private_key")
    logger.debug("Loaded %s from %s", key_pair.public_key, path)
    return key_pair
