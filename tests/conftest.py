from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any, Callable, Iterable

import base58
import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from near_txwizard.config import GlobalContext, NetworkConfig
from near_txwizard.keys import KeyPair
from near_txwizard.prompts import ConsolePrompter
from near_txwizard.rpc_client import CallResult

BLOCK_HASH = bytes(range(32))


class StubRPC:
    """Records every call the way NearRPCClient would receive it."""

    def __init__(self) -> None:
        self.views: dict[str, Any] = {}
        self.view_calls: list[tuple[str, str, Any]] = []
        self.access_key_calls: list[tuple[str, str]] = []
        self.access_key: dict[str, Any] | Exception = {
            "nonce": 41,
            "block_hash": base58.b58encode(BLOCK_HASH).decode("ascii"),
            "permission": "FullAccess",
        }
        self.broadcasts: list[str] = []
        self.outcome: dict[str, Any] | Exception = self.success_outcome()

    @staticmethod
    def success_outcome(value: bytes = b"", logs: Iterable[str] = (), kind: str = "SuccessValue") -> dict[str, Any]:
        status_value: Any = base64.b64encode(value).decode("ascii") if kind == "SuccessValue" else "receipt-id"
        return {
            "status": {kind: status_value},
            "transaction": {"hash": "9rHash", "signer_id": "alice.near", "receiver_id": "usdc.near"},
            "transaction_outcome": {"outcome": {"logs": []}},
            "receipts_outcome": [{"outcome": {"logs": list(logs)}}],
        }

    @staticmethod
    def failure_outcome() -> dict[str, Any]:
        return {
            "status": {"Failure": {"ActionError": {"index": 0, "kind": {"FunctionCallError": "panicked"}}}},
            "transaction": {"hash": "9rHash", "signer_id": "alice.near", "receiver_id": "usdc.near"},
            "transaction_outcome": {"outcome": {"logs": []}},
            "receipts_outcome": [],
        }

    def view_count(self, method_name: str) -> int:
        return sum(1 for name, _, _ in self.view_calls if name == method_name)

    def call_view_function(self, contract_id: str, method_name: str, args: bytes, finality: str = "final") -> CallResult:
        self.view_calls.append((method_name, contract_id, json.loads(args.decode("utf-8"))))
        value = self.views[method_name]
        if isinstance(value, Exception):
            raise value
        raw = value if isinstance(value, bytes) else json.dumps(value).encode("utf-8")
        return CallResult(result=raw, logs=[])

    def view_access_key(self, account_id: str, public_key: str, finality: str = "final") -> dict[str, Any]:
        self.access_key_calls.append((account_id, public_key))
        if isinstance(self.access_key, Exception):
            raise self.access_key
        return self.access_key

    def broadcast_tx_commit(self, signed_transaction_b64: str) -> dict[str, Any]:
        self.broadcasts.append(signed_transaction_b64)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


USDC_METADATA = {"spec": "ft-1.0.0", "name": "USD Coin", "symbol": "USDC", "decimals": 6}


@pytest.fixture
def rpc() -> StubRPC:
    return StubRPC()


@pytest.fixture
def network_config(rpc: StubRPC) -> NetworkConfig:
    return NetworkConfig(
        network_name="testnet",
        rpc_url="https://rpc.testnet.example",
        explorer_transaction_url="https://explorer.testnet.example/transactions/",
        client=rpc,
    )


@pytest.fixture
def global_context(network_config: NetworkConfig, tmp_path: Path) -> GlobalContext:
    return GlobalContext(networks={"testnet": network_config}, credentials_home=tmp_path / "credentials")


@pytest.fixture
def key_pair() -> KeyPair:
    return KeyPair(Ed25519PrivateKey.from_private_bytes(bytes(range(1, 33))))


@pytest.fixture
def usdc_metadata() -> dict[str, Any]:
    return dict(USDC_METADATA)


@pytest.fixture
def scripted_prompter() -> Callable[[Iterable[str]], tuple[ConsolePrompter, list[str]]]:
    """Build a ConsolePrompter that answers from a list and records its output."""

    def factory(answers: Iterable[str]) -> tuple[ConsolePrompter, list[str]]:
        remaining = iter(answers)
        output: list[str] = []
        prompter = ConsolePrompter(input_func=lambda _prompt: next(remaining), output=output.append)
        return prompter, output

    return factory
