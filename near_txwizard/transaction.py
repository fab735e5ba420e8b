"""Transaction skeletons, signed envelopes, actions and their Borsh encoding.

A :class:`PrepopulatedTransaction` is what command families produce before a
network and key are known. The lifecycle driver completes it into a
:class:`Transaction` (public key, nonce and recent block hash) which is then
signed into a :class:`SignedTransaction`. The binary layout follows the NEAR
Borsh schema so that envelopes can be broadcast or printed for manual relay.
"""

from __future__ import annotations

import base64
import hashlib
import json
import struct
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import base58

from .keys import PublicKey
from .units import NearGas, NearToken

COMPACT_JSON_SEPARATORS = (",", ":")


class BorshWriter:
    """Minimal little-endian Borsh writer for the transaction schema."""

    def __init__(self) -> None:
        self._parts: list[bytes] = []

    def u8(self, value: int) -> "BorshWriter":
        self._parts.append(struct.pack("<B", value))
        return self

    def u32(self, value: int) -> "BorshWriter":
        self._parts.append(struct.pack("<I", value))
        return self

    def u64(self, value: int) -> "BorshWriter":
        self._parts.append(struct.pack("<Q", value))
        return self

    def u128(self, value: int) -> "BorshWriter":
        self._parts.append(value.to_bytes(16, "little"))
        return self

    def raw(self, value: bytes) -> "BorshWriter":
        self._parts.append(value)
        return self

    def bytes_vec(self, value: bytes) -> "BorshWriter":
        return self.u32(len(value)).raw(value)

    def string(self, value: str) -> "BorshWriter":
        return self.bytes_vec(value.encode("utf-8"))

    def getvalue(self) -> bytes:
        return b"".join(self._parts)


# Typed function-call payloads ------------------------------------------------


def encode_args(payload: dict[str, Any]) -> bytes:
    """Canonical JSON encoding shared by every function-call payload."""

    return json.dumps(payload, separators=COMPACT_JSON_SEPARATORS, sort_keys=True).encode("utf-8")


@dataclass(frozen=True)
class FtTransferArgs:
    receiver_id: str
    amount: int
    memo: Optional[str] = None

    def to_json_bytes(self) -> bytes:
        payload: dict[str, Any] = {"receiver_id": self.receiver_id, "amount": str(self.amount)}
        if self.memo is not None:
            payload["memo"] = self.memo
        return encode_args(payload)


@dataclass(frozen=True)
class StorageDepositArgs:
    account_id: str

    def to_json_bytes(self) -> bytes:
        return encode_args({"account_id": self.account_id})


# Actions ---------------------------------------------------------------------


@dataclass(frozen=True)
class CreateAccountAction:
    def to_borsh(self) -> bytes:
        return BorshWriter().u8(0).getvalue()

    def describe(self) -> str:
        return "create account"


@dataclass(frozen=True)
class FunctionCallAction:
    method_name: str
    args: bytes
    gas: NearGas
    deposit: NearToken

    def to_borsh(self) -> bytes:
        return (
            BorshWriter()
            .u8(2)
            .string(self.method_name)
            .bytes_vec(self.args)
            .u64(self.gas.as_gas())
            .u128(self.deposit.as_yoctonear())
            .getvalue()
        )

    def json_args(self) -> Any:
        return json.loads(self.args.decode("utf-8"))

    def describe(self) -> str:
        return (
            f"function call '{self.method_name}' args={self.args.decode('utf-8', 'replace')} "
            f"gas={self.gas} deposit={self.deposit}"
        )


@dataclass(frozen=True)
class TransferAction:
    deposit: NearToken

    def to_borsh(self) -> bytes:
        return BorshWriter().u8(3).u128(self.deposit.as_yoctonear()).getvalue()

    def describe(self) -> str:
        return f"transfer {self.deposit}"


@dataclass(frozen=True)
class FunctionCallPermission:
    receiver_id: str
    method_names: tuple[str, ...] = ()
    allowance: Optional[NearToken] = None

    def to_borsh(self) -> bytes:
        writer = BorshWriter().u8(0)
        if self.allowance is None:
            writer.u8(0)
        else:
            writer.u8(1).u128(self.allowance.as_yoctonear())
        writer.string(self.receiver_id).u32(len(self.method_names))
        for name in self.method_names:
            writer.string(name)
        return writer.getvalue()

    def __str__(self) -> str:
        methods = ", ".join(self.method_names) or "any method"
        allowance = self.allowance if self.allowance is not None else "unlimited"
        return f"function-call access to <{self.receiver_id}> ({methods}; allowance {allowance})"


@dataclass(frozen=True)
class FullAccessPermission:
    def to_borsh(self) -> bytes:
        return BorshWriter().u8(1).getvalue()

    def __str__(self) -> str:
        return "full access"


AccessKeyPermission = Union[FunctionCallPermission, FullAccessPermission]


@dataclass(frozen=True)
class AddKeyAction:
    public_key: PublicKey
    permission: AccessKeyPermission
    nonce: int = 0

    def to_borsh(self) -> bytes:
        return (
            BorshWriter()
            .u8(5)
            .raw(self.public_key.to_borsh())
            .u64(self.nonce)
            .raw(self.permission.to_borsh())
            .getvalue()
        )

    def describe(self) -> str:
        return f"add key {self.public_key} with {self.permission}"


@dataclass(frozen=True)
class DeleteKeyAction:
    public_key: PublicKey

    def to_borsh(self) -> bytes:
        return BorshWriter().u8(6).raw(self.public_key.to_borsh()).getvalue()

    def describe(self) -> str:
        return f"delete key {self.public_key}"


Action = Union[
    CreateAccountAction,
    FunctionCallAction,
    TransferAction,
    AddKeyAction,
    DeleteKeyAction,
]


# Transactions ------------------------------------------------------------------


@dataclass(frozen=True)
class PrepopulatedTransaction:
    """Signer, receiver and actions; nonce, block hash and key are filled in later."""

    signer_id: str
    receiver_id: str
    actions: tuple[Action, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "actions", tuple(self.actions))


@dataclass(frozen=True)
class Transaction:
    signer_id: str
    public_key: PublicKey
    nonce: int
    receiver_id: str
    block_hash: bytes
    actions: tuple[Action, ...]

    @classmethod
    def from_prepopulated(
        cls,
        prepopulated: PrepopulatedTransaction,
        public_key: PublicKey,
        nonce: int,
        block_hash: bytes,
    ) -> "Transaction":
        return cls(
            signer_id=prepopulated.signer_id,
            public_key=public_key,
            nonce=nonce,
            receiver_id=prepopulated.receiver_id,
            block_hash=block_hash,
            actions=prepopulated.actions,
        )

    def to_borsh(self) -> bytes:
        writer = (
            BorshWriter()
            .string(self.signer_id)
            .raw(self.public_key.to_borsh())
            .u64(self.nonce)
            .string(self.receiver_id)
            .raw(self.block_hash)
            .u32(len(self.actions))
        )
        for action in self.actions:
            writer.raw(action.to_borsh())
        return writer.getvalue()

    def get_hash(self) -> bytes:
        return hashlib.sha256(self.to_borsh()).digest()

    def to_base64(self) -> str:
        return base64.b64encode(self.to_borsh()).decode("ascii")


@dataclass(frozen=True)
class SignedTransaction:
    transaction: Transaction
    signature: bytes

    def to_borsh(self) -> bytes:
        return self.transaction.to_borsh() + bytes([0]) + self.signature

    def to_base64(self) -> str:
        return base64.b64encode(self.to_borsh()).decode("ascii")

    @property
    def hash(self) -> str:
        return base58.b58encode(self.transaction.get_hash()).decode("ascii")


def describe_transaction(transaction: PrepopulatedTransaction | Transaction) -> list[str]:
    """Human-readable lines summarising a transaction for confirmation output."""

    lines = [
        f"signer_id:    {transaction.signer_id}",
        f"receiver_id:  {transaction.receiver_id}",
    ]
    if isinstance(transaction, Transaction):
        lines.append(f"public_key:   {transaction.public_key}")
        lines.append(f"nonce:        {transaction.nonce}")
        lines.append(f"block_hash:   {base58.b58encode(transaction.block_hash).decode('ascii')}")
    lines.append("actions:")
    lines.extend(f"  - {action.describe()}" for action in transaction.actions)
    return lines


# Outcomes --------------------------------------------------------------------

SUCCESS_VALUE = "SuccessValue"
SUCCESS_RECEIPT_ID = "SuccessReceiptId"
FAILURE = "Failure"


@dataclass(frozen=True)
class ExecutionStatus:
    kind: str
    value: Any = None

    @classmethod
    def from_json(cls, raw: Any) -> "ExecutionStatus":
        if isinstance(raw, str):
            return cls(kind=raw)
        if isinstance(raw, dict) and len(raw) == 1:
            kind, value = next(iter(raw.items()))
            return cls(kind=kind, value=value)
        raise ValueError(f"Unrecognised execution status: {raw!r}")


@dataclass(frozen=True)
class FinalExecutionOutcome:
    status: ExecutionStatus
    transaction_hash: str
    signer_id: str
    receiver_id: str
    logs: tuple[str, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> "FinalExecutionOutcome":
        transaction = raw.get("transaction") or {}
        logs: list[str] = []
        for entry in [raw.get("transaction_outcome") or {}, *(raw.get("receipts_outcome") or [])]:
            logs.extend((entry.get("outcome") or {}).get("logs") or [])
        return cls(
            status=ExecutionStatus.from_json(raw.get("status")),
            transaction_hash=str(transaction.get("hash", "")),
            signer_id=str(transaction.get("signer_id", "")),
            receiver_id=str(transaction.get("receiver_id", "")),
            logs=tuple(logs),
            raw=raw,
        )

    @property
    def is_success_value(self) -> bool:
        return self.status.kind == SUCCESS_VALUE

    @property
    def is_failure(self) -> bool:
        return self.status.kind == FAILURE

    def success_value(self) -> Optional[bytes]:
        if not self.is_success_value:
            return None
        return base64.b64decode(self.status.value or "")
