"""Transaction lifecycle driver.

Every command family ends in an :class:`ActionContext`: the accounts the
transaction touches plus four hooks. Once a network, signing method and
submission mode are known, :func:`execute_transaction` runs the hooks in a
fixed order::

    1. prepopulate      (network)            -> PrepopulatedTransaction
    2. before-signing   (transaction, network)
    3. before-sending   (signed, network)    -> text shown to the user
    4. after-sending    (outcome, network)   only for SuccessValue outcomes

A failing hook raises :class:`LifecycleError` naming its step and nothing
after it runs.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

import base58

from .config import GlobalContext, NetworkConfig
from .rpc_client import QueryError, RPCError, RPCTransportError, format_rpc_hint
from .transaction import (
    FinalExecutionOutcome,
    PrepopulatedTransaction,
    SignedTransaction,
    Transaction,
    describe_transaction,
)

logger = logging.getLogger(__name__)

SUBMIT_SEND = "send"
SUBMIT_DISPLAY = "display"

LIFECYCLE_STEPS = ("prepopulate", "before-signing", "before-sending", "after-sending")

Emit = Callable[[str], None]


class LifecycleError(RuntimeError):
    """Raised when one of the four action-context hooks fails."""

    def __init__(self, step: str, cause: BaseException) -> None:
        self.step = step
        self.index = LIFECYCLE_STEPS.index(step) + 1
        self.cause = cause
        super().__init__(f"{step} step ({self.index}/{len(LIFECYCLE_STEPS)}) failed: {cause}")


class BroadcastError(RuntimeError):
    """Raised when the node refuses or cannot receive a signed transaction."""


class ExecutionFailure(RuntimeError):
    """Raised when a broadcast transaction was accepted but its execution failed."""

    def __init__(self, outcome: FinalExecutionOutcome) -> None:
        self.outcome = outcome
        detail = json.dumps(outcome.status.value, sort_keys=True)
        super().__init__(f"Transaction {outcome.transaction_hash} failed on-chain: {detail}")


def no_op_before_signing(transaction: Transaction, network_config: NetworkConfig) -> None:
    return None


def empty_before_sending(signed_transaction: SignedTransaction, network_config: NetworkConfig) -> str:
    return ""


def no_op_after_sending(outcome: FinalExecutionOutcome, network_config: NetworkConfig) -> None:
    return None


@dataclass(frozen=True)
class ActionContext:
    """Terminal context of a command family, consumed only by the driver."""

    global_context: GlobalContext
    interacting_with_account_ids: tuple[str, ...]
    get_prepopulated_transaction: Callable[[NetworkConfig], PrepopulatedTransaction]
    on_before_signing: Callable[[Transaction, NetworkConfig], None] = no_op_before_signing
    on_before_sending_transaction: Callable[[SignedTransaction, NetworkConfig], str] = empty_before_sending
    on_after_sending_transaction: Callable[[FinalExecutionOutcome, NetworkConfig], None] = no_op_after_sending


@dataclass(frozen=True)
class TransactionPlan:
    """An action context with the network, signing method and submission mode chosen."""

    action_context: ActionContext
    network_config: NetworkConfig
    signing_method: Any
    submission: str = SUBMIT_SEND


@dataclass(frozen=True)
class TransactionResult:
    transaction: Transaction
    signed_transaction: Optional[SignedTransaction] = None
    outcome: Optional[FinalExecutionOutcome] = None


def _run_step(step: str, hook: Callable[..., Any], *args: Any) -> Any:
    logger.debug("Running %s hook", step)
    try:
        return hook(*args)
    except Exception as exc:
        raise LifecycleError(step, exc) from exc


def fetch_nonce_and_block_hash(
    network_config: NetworkConfig, signer_id: str, public_key: Any
) -> tuple[int, bytes]:
    """Return the next nonce for the access key and the hash of a recent block."""

    try:
        access_key = network_config.json_rpc_client().view_access_key(signer_id, str(public_key))
    except (RPCError, RPCTransportError) as exc:
        hint = format_rpc_hint(exc) if isinstance(exc, RPCError) else None
        hint_suffix = f"\nHint: {hint}" if hint else ""
        raise QueryError(
            f"Failed to fetch access key {public_key} of <{signer_id}> "
            f"on network <{network_config.network_name}>: {exc}{hint_suffix}",
            contract_id=signer_id,
            method_name="view_access_key",
            network_name=network_config.network_name,
        ) from exc
    return int(access_key["nonce"]) + 1, base58.b58decode(access_key["block_hash"])


def broadcast_signed_transaction(
    network_config: NetworkConfig, signed_transaction_b64: str
) -> FinalExecutionOutcome:
    try:
        raw = network_config.json_rpc_client().broadcast_tx_commit(signed_transaction_b64)
    except (RPCError, RPCTransportError) as exc:
        hint = format_rpc_hint(exc) if isinstance(exc, RPCError) else None
        hint_suffix = f"\nHint: {hint}" if hint else ""
        raise BroadcastError(
            f"Failed to broadcast transaction on network <{network_config.network_name}>: {exc}{hint_suffix}"
        ) from exc
    try:
        return FinalExecutionOutcome.from_json(raw or {})
    except ValueError as exc:
        raise BroadcastError(f"Node returned an unreadable execution outcome: {exc}") from exc


def report_outcome(outcome: FinalExecutionOutcome, network_config: NetworkConfig, emit: Emit = print) -> None:
    """Print the generic part of an outcome: logs, hash and explorer link."""

    for line in outcome.logs:
        emit(f"Log: {line}")
    emit(f"Transaction ID: {outcome.transaction_hash}")
    url = network_config.transaction_url(outcome.transaction_hash)
    if url:
        emit(f"To see the transaction in the transaction explorer, please open this url in your browser:\n{url}")


def _emit_lines(lines: Sequence[str], emit: Emit) -> None:
    for line in lines:
        emit(line)


def execute_transaction(plan: TransactionPlan, emit: Emit = print) -> TransactionResult:
    """Drive the four hooks of *plan.action_context* against the chosen network."""

    action_context = plan.action_context
    network_config = plan.network_config

    prepopulated = _run_step(
        "prepopulate", action_context.get_prepopulated_transaction, network_config
    )
    logger.info(
        "Prepared transaction %s -> %s with %d action(s) on %s",
        prepopulated.signer_id,
        prepopulated.receiver_id,
        len(prepopulated.actions),
        network_config.network_name,
    )

    public_key = plan.signing_method.public_key(prepopulated.signer_id, network_config)
    nonce, block_hash = fetch_nonce_and_block_hash(network_config, prepopulated.signer_id, public_key)
    transaction = Transaction.from_prepopulated(prepopulated, public_key, nonce, block_hash)

    _run_step("before-signing", action_context.on_before_signing, transaction, network_config)

    emit("Unsigned transaction:")
    _emit_lines(describe_transaction(transaction), emit)

    signed = plan.signing_method.sign(transaction, network_config)
    if signed is None:
        emit(f"Unsigned transaction (serialized as base64):\n{transaction.to_base64()}")
        return TransactionResult(transaction=transaction)

    display = _run_step(
        "before-sending", action_context.on_before_sending_transaction, signed, network_config
    )
    if display:
        emit(display)

    if plan.submission == SUBMIT_DISPLAY:
        emit(f"Signed transaction (serialized as base64):\n{signed.to_base64()}")
        return TransactionResult(transaction=transaction, signed_transaction=signed)

    emit(f"Sending transaction {signed.hash} ...")
    outcome = broadcast_signed_transaction(network_config, signed.to_base64())
    report_outcome(outcome, network_config, emit)

    if outcome.is_failure:
        raise ExecutionFailure(outcome)
    if outcome.is_success_value:
        _run_step(
            "after-sending", action_context.on_after_sending_transaction, outcome, network_config
        )
    else:
        emit(f"Transaction {outcome.transaction_hash} finished with status {outcome.status.kind}.")

    return TransactionResult(transaction=transaction, signed_transaction=signed, outcome=outcome)
