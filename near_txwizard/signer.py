"""Signing methods selected at the end of every transaction wizard."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from cryptography.exceptions import InvalidSignature

from .keys import KeyFormatError, KeyPair, PublicKey, load_keychain_key
from .transaction import SignedTransaction, Transaction

logger = logging.getLogger(__name__)


class SigningError(RuntimeError):
    """Raised when a transaction cannot be signed."""


def sign_transaction(transaction: Transaction, key_pair: KeyPair) -> SignedTransaction:
    """Sign the SHA-256 hash of the Borsh-encoded transaction."""

    if transaction.public_key != key_pair.public_key:
        raise SigningError(
            f"Transaction names {transaction.public_key} but the signing key is {key_pair.public_key}"
        )
    message = transaction.get_hash()
    signature = key_pair.sign(message)
    try:
        key_pair.verify(signature, message)
    except InvalidSignature as exc:  # pragma: no cover - depends on the crypto backend
        raise SigningError("Produced signature does not verify") from exc
    return SignedTransaction(transaction=transaction, signature=signature)


@dataclass(frozen=True)
class SignWithPlaintextPrivateKey:
    key_pair: KeyPair

    def public_key(self, signer_id: str, network_config: Any) -> PublicKey:
        return self.key_pair.public_key

    def sign(self, transaction: Transaction, network_config: Any) -> Optional[SignedTransaction]:
        return sign_transaction(transaction, self.key_pair)

    def __str__(self) -> str:
        return "plaintext private key"


@dataclass(frozen=True)
class SignWithKeychain:
    """Use ``<credentials_home>/<network>/<signer>.json`` for the selected network."""

    credentials_home: Path

    def _key_pair(self, signer_id: str, network_config: Any) -> KeyPair:
        try:
            return load_keychain_key(self.credentials_home, network_config.network_name, signer_id)
        except (FileNotFoundError, KeyFormatError) as exc:
            raise SigningError(str(exc)) from exc

    def public_key(self, signer_id: str, network_config: Any) -> PublicKey:
        return self._key_pair(signer_id, network_config).public_key

    def sign(self, transaction: Transaction, network_config: Any) -> Optional[SignedTransaction]:
        return sign_transaction(transaction, self._key_pair(transaction.signer_id, network_config))

    def __str__(self) -> str:
        return f"legacy keychain ({self.credentials_home})"


@dataclass(frozen=True)
class SignLater:
    """Produce the unsigned transaction so it can be signed elsewhere."""

    signer_public_key: PublicKey

    def public_key(self, signer_id: str, network_config: Any) -> PublicKey:
        return self.signer_public_key

    def sign(self, transaction: Transaction, network_config: Any) -> Optional[SignedTransaction]:
        return None

    def __str__(self) -> str:
        return "sign later"
