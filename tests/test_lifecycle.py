import base64

import pytest

from near_txwizard.lifecycle import (
    LIFECYCLE_STEPS,
    SUBMIT_DISPLAY,
    SUBMIT_SEND,
    ActionContext,
    BroadcastError,
    ExecutionFailure,
    LifecycleError,
    TransactionPlan,
    execute_transaction,
)
from near_txwizard.rpc_client import QueryError, RPCError
from near_txwizard.signer import SignLater, SignWithPlaintextPrivateKey
from near_txwizard.transaction import PrepopulatedTransaction, TransferAction
from near_txwizard.units import NearToken


class RecordingHooks:
    """Action-context hooks that record their order and can fail at one step."""

    def __init__(self, fail_at: str | None = None) -> None:
        self.fail_at = fail_at
        self.calls: list[str] = []

    def _enter(self, step: str) -> None:
        self.calls.append(step)
        if step == self.fail_at:
            raise RuntimeError(f"{step} exploded")

    def prepopulate(self, network_config):
        self._enter("prepopulate")
        return PrepopulatedTransaction(
            signer_id="alice.near",
            receiver_id="bob.near",
            actions=(TransferAction(deposit=NearToken.from_near(1)),),
        )

    def before_signing(self, transaction, network_config):
        self._enter("before-signing")

    def before_sending(self, signed_transaction, network_config):
        self._enter("before-sending")
        return "about to send"

    def after_sending(self, outcome, network_config):
        self._enter("after-sending")

    def action_context(self, global_context):
        return ActionContext(
            global_context=global_context,
            interacting_with_account_ids=("alice.near", "bob.near"),
            get_prepopulated_transaction=self.prepopulate,
            on_before_signing=self.before_signing,
            on_before_sending_transaction=self.before_sending,
            on_after_sending_transaction=self.after_sending,
        )


def _plan(hooks, global_context, network_config, signing_method, submission=SUBMIT_SEND):
    return TransactionPlan(
        action_context=hooks.action_context(global_context),
        network_config=network_config,
        signing_method=signing_method,
        submission=submission,
    )


def test_successful_send_runs_all_hooks_in_order(rpc, global_context, network_config, key_pair):
    hooks = RecordingHooks()
    emitted: list[str] = []

    result = execute_transaction(
        _plan(hooks, global_context, network_config, SignWithPlaintextPrivateKey(key_pair)), emitted.append
    )

    assert hooks.calls == list(LIFECYCLE_STEPS)
    assert result.transaction.nonce == 42
    assert result.outcome is not None and result.outcome.is_success_value
    assert rpc.broadcasts == [result.signed_transaction.to_base64()]
    assert "about to send" in emitted
    assert "Transaction ID: 9rHash" in emitted
    assert any("https://explorer.testnet.example/transactions/9rHash" in line for line in emitted)


@pytest.mark.parametrize("step", LIFECYCLE_STEPS)
def test_failing_hook_stops_later_steps(step, rpc, global_context, network_config, key_pair):
    hooks = RecordingHooks(fail_at=step)

    with pytest.raises(LifecycleError) as excinfo:
        execute_transaction(
            _plan(hooks, global_context, network_config, SignWithPlaintextPrivateKey(key_pair)), lambda _line: None
        )

    index = LIFECYCLE_STEPS.index(step) + 1
    assert excinfo.value.index == index
    assert excinfo.value.step == step
    assert hooks.calls == list(LIFECYCLE_STEPS[:index])
    if index < 4:
        assert rpc.broadcasts == []


def test_failure_outcome_raises_and_skips_after_sending(rpc, global_context, network_config, key_pair):
    rpc.outcome = rpc.failure_outcome()
    hooks = RecordingHooks()

    with pytest.raises(ExecutionFailure) as excinfo:
        execute_transaction(
            _plan(hooks, global_context, network_config, SignWithPlaintextPrivateKey(key_pair)), lambda _line: None
        )

    assert "FunctionCallError" in str(excinfo.value)
    assert "after-sending" not in hooks.calls


def test_receipt_status_is_reported_generically(rpc, global_context, network_config, key_pair):
    rpc.outcome = rpc.success_outcome(kind="SuccessReceiptId")
    hooks = RecordingHooks()
    emitted: list[str] = []

    execute_transaction(
        _plan(hooks, global_context, network_config, SignWithPlaintextPrivateKey(key_pair)), emitted.append
    )

    assert "after-sending" not in hooks.calls
    assert "Transaction 9rHash finished with status SuccessReceiptId." in emitted


def test_display_mode_prints_signed_envelope_without_broadcast(rpc, global_context, network_config, key_pair):
    hooks = RecordingHooks()
    emitted: list[str] = []

    result = execute_transaction(
        _plan(hooks, global_context, network_config, SignWithPlaintextPrivateKey(key_pair), SUBMIT_DISPLAY),
        emitted.append,
    )

    assert rpc.broadcasts == []
    assert hooks.calls == ["prepopulate", "before-signing", "before-sending"]
    assert f"Signed transaction (serialized as base64):\n{result.signed_transaction.to_base64()}" in emitted
    envelope = base64.b64decode(result.signed_transaction.to_base64())
    assert envelope.endswith(result.signed_transaction.signature)
    key_pair.verify(result.signed_transaction.signature, result.transaction.get_hash())


def test_sign_later_prints_unsigned_transaction(rpc, global_context, network_config, key_pair):
    hooks = RecordingHooks()
    emitted: list[str] = []

    result = execute_transaction(
        _plan(hooks, global_context, network_config, SignLater(key_pair.public_key), SUBMIT_DISPLAY),
        emitted.append,
    )

    assert result.signed_transaction is None
    assert hooks.calls == ["prepopulate", "before-signing"]
    assert f"Unsigned transaction (serialized as base64):\n{result.transaction.to_base64()}" in emitted
    assert rpc.access_key_calls == [("alice.near", str(key_pair.public_key))]


def test_missing_access_key_surfaces_hint(rpc, global_context, network_config, key_pair):
    rpc.access_key = RPCError(-32000, "Server error", name="UNKNOWN_ACCESS_KEY")
    hooks = RecordingHooks()

    with pytest.raises(QueryError) as excinfo:
        execute_transaction(
            _plan(hooks, global_context, network_config, SignWithPlaintextPrivateKey(key_pair)), lambda _line: None
        )

    assert "Hint:" in str(excinfo.value)
    assert hooks.calls == ["prepopulate"]


def test_broadcast_failure_is_reported(rpc, global_context, network_config, key_pair):
    rpc.outcome = RPCError(-32000, "Server error", name="INVALID_TRANSACTION", data="InvalidNonce")
    hooks = RecordingHooks()

    with pytest.raises(BroadcastError, match="re-run|Re-run"):
        execute_transaction(
            _plan(hooks, global_context, network_config, SignWithPlaintextPrivateKey(key_pair)), lambda _line: None
        )
