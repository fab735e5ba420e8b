import json

import base58
import pytest

from near_txwizard.keys import KeyFormatError, KeyPair, PublicKey, generate_keypair, load_keychain_key
from near_txwizard.signer import SigningError, SignWithKeychain, sign_transaction
from near_txwizard.transaction import Transaction, TransferAction
from near_txwizard.units import NearToken


def _transaction(public_key: PublicKey) -> Transaction:
    return Transaction(
        signer_id="alice.near",
        public_key=public_key,
        nonce=7,
        receiver_id="bob.near",
        block_hash=bytes(32),
        actions=(TransferAction(deposit=NearToken(1)),),
    )


def test_secret_key_text_round_trips_to_same_public_key(key_pair):
    restored = KeyPair.from_str(key_pair.secret_key_str())

    assert restored.public_key == key_pair.public_key
    assert str(key_pair.public_key).startswith("ed25519:")


def test_bare_seed_is_accepted(key_pair):
    seed = base58.b58encode(bytes(range(1, 33))).decode("ascii")

    assert KeyPair.from_str(f"ed25519:{seed}").public_key == key_pair.public_key


@pytest.mark.parametrize(
    "raw",
    ["secp256k1:abc", "ed25519:0OIl", "ed25519:" + base58.b58encode(bytes(5)).decode("ascii")],
)
def test_malformed_public_keys_are_rejected(raw):
    with pytest.raises(KeyFormatError):
        PublicKey.from_str(raw)


def test_signature_covers_transaction_hash(key_pair):
    transaction = _transaction(key_pair.public_key)

    signed = sign_transaction(transaction, key_pair)

    key_pair.verify(signed.signature, transaction.get_hash())
    assert signed.to_borsh() == transaction.to_borsh() + b"\x00" + signed.signature
    assert base58.b58decode(signed.hash) == transaction.get_hash()


def test_signing_with_wrong_key_is_refused(key_pair):
    transaction = _transaction(generate_keypair().public_key)

    with pytest.raises(SigningError, match="signing key"):
        sign_transaction(transaction, key_pair)


def test_keychain_signer_reads_network_scoped_file(tmp_path, network_config, key_pair):
    account_file = tmp_path / "testnet" / "alice.near.json"
    account_file.parent.mkdir(parents=True)
    account_file.write_text(
        json.dumps(
            {
                "account_id": "alice.near",
                "public_key": str(key_pair.public_key),
                "private_key": key_pair.secret_key_str(),
            }
        )
    )
    signer = SignWithKeychain(tmp_path)

    assert signer.public_key("alice.near", network_config) == key_pair.public_key
    signed = signer.sign(_transaction(key_pair.public_key), network_config)
    assert signed is not None


def test_keychain_signer_reports_missing_key(tmp_path, network_config):
    with pytest.raises(SigningError, match="No access key"):
        SignWithKeychain(tmp_path).public_key("alice.near", network_config)


def test_keychain_rejects_mismatched_public_key(tmp_path, key_pair):
    account_file = tmp_path / "testnet" / "alice.near.json"
    account_file.parent.mkdir(parents=True)
    account_file.write_text(
        json.dumps({"public_key": str(generate_keypair().public_key), "private_key": key_pair.secret_key_str()})
    )

    with pytest.raises(KeyFormatError, match="does not match"):
        load_keychain_key(tmp_path, "testnet", "alice.near")
