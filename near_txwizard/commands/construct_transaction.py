"""Construct a transaction from an arbitrary list of actions.

Actions are collected one at a time. On the command line each ``--action``
takes a JSON object naming the action ``kind`` plus the values of that kind's
stages, for example::

    --action '{"kind": "transfer", "deposit": "1 NEAR"}'
    --action '{"kind": "function-call", "function": "ping", "gas": "30 Tgas"}'

Values missing from an object are prompted for, exactly as in the
interactive loop.
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Sequence

from ..config import GlobalContext, NetworkConfig
from ..keys import PublicKey
from ..lifecycle import ActionContext, Emit, TransactionResult
from ..stages import Prompter, Stage, ValidationError, advance_stage, run_stages, select_branch
from ..transaction import (
    Action,
    AddKeyAction,
    CreateAccountAction,
    DeleteKeyAction,
    FinalExecutionOutcome,
    FullAccessPermission,
    FunctionCallAction,
    PrepopulatedTransaction,
    TransferAction,
)
from ..transaction_options import complete_transaction
from ..units import NearGas, NearToken
from .common import (
    account_stage,
    add_transaction_arguments,
    deposit_stage,
    gas_stage,
    parse_json_args,
    route_report,
)

logger = logging.getLogger(__name__)

LABEL = "Construct a new transaction"

KIND_TRANSFER = "transfer"
KIND_FUNCTION_CALL = "function-call"
KIND_ADD_FULL_ACCESS_KEY = "add-full-access-key"
KIND_DELETE_KEY = "delete-key"
KIND_CREATE_ACCOUNT = "create-account"
KIND_DONE = "done"

ACTION_CHOICES = (
    (KIND_TRANSFER, "Transfer NEAR tokens"),
    (KIND_FUNCTION_CALL, "Call a function"),
    (KIND_ADD_FULL_ACCESS_KEY, "Add a full-access key"),
    (KIND_DELETE_KEY, "Delete an access key"),
    (KIND_CREATE_ACCOUNT, "Create the receiver account"),
)
DONE_CHOICE = (KIND_DONE, "Skip adding a new action")


@dataclass(frozen=True)
class ConstructContext:
    global_context: GlobalContext


@dataclass(frozen=True)
class ConstructSignerContext:
    global_context: GlobalContext
    signer_account_id: str

    @classmethod
    def from_previous_context(cls, previous_context: ConstructContext, signer_account_id: str) -> "ConstructSignerContext":
        return cls(previous_context.global_context, signer_account_id)


@dataclass(frozen=True)
class ActionsContext:
    global_context: GlobalContext
    signer_account_id: str
    receiver_account_id: str
    actions: tuple[Action, ...] = ()

    @classmethod
    def from_previous_context(
        cls, previous_context: ConstructSignerContext, receiver_account_id: str
    ) -> "ActionsContext":
        return cls(previous_context.global_context, previous_context.signer_account_id, receiver_account_id)

    def with_action(self, action: Action) -> "ActionsContext":
        return replace(self, actions=self.actions + (action,))


# Per-kind stages -------------------------------------------------------------


@dataclass(frozen=True)
class FunctionCallDraft:
    method_name: str = ""
    function_args: bytes = b"{}"
    gas: Optional[NearGas] = None


def _finish_function_call(draft: FunctionCallDraft, deposit: NearToken) -> FunctionCallAction:
    return FunctionCallAction(
        method_name=draft.method_name,
        args=draft.function_args,
        gas=draft.gas or NearGas.from_tgas(100),
        deposit=deposit,
    )


FUNCTION_CALL_STAGES = (
    Stage(
        name="function",
        question="What is the name of the function?",
        advance=lambda draft, method_name: replace(draft, method_name=method_name),
    ),
    Stage(
        name="args",
        question="Enter arguments to this function (JSON object)",
        parse=parse_json_args,
        default="{}",
        advance=lambda draft, function_args: replace(draft, function_args=function_args),
    ),
    gas_stage(lambda draft, gas: replace(draft, gas=gas)),
    deposit_stage(_finish_function_call),
)

TRANSFER_STAGES = (
    Stage(
        name="deposit",
        question="How many NEAR Tokens do you want to transfer? (example: 10 NEAR or 0.5 near or 10000 yoctonear)",
        parse=NearToken.from_str,
        advance=lambda _, amount: TransferAction(deposit=amount),
    ),
)

ADD_FULL_ACCESS_KEY_STAGES = (
    Stage(
        name="public_key",
        question="Enter the public key for the new full-access key",
        parse=PublicKey.from_str,
        advance=lambda _, public_key: AddKeyAction(public_key=public_key, permission=FullAccessPermission()),
    ),
)

DELETE_KEY_STAGES = (
    Stage(
        name="public_key",
        question="Enter the public key to delete",
        parse=PublicKey.from_str,
        advance=lambda _, public_key: DeleteKeyAction(public_key=public_key),
    ),
)

ACTION_STAGES: dict[str, tuple[Stage, ...]] = {
    KIND_TRANSFER: TRANSFER_STAGES,
    KIND_FUNCTION_CALL: FUNCTION_CALL_STAGES,
    KIND_ADD_FULL_ACCESS_KEY: ADD_FULL_ACCESS_KEY_STAGES,
    KIND_DELETE_KEY: DELETE_KEY_STAGES,
    KIND_CREATE_ACCOUNT: (),
}


def build_action(
    kind: str,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
) -> Action:
    """Run the stages of one action kind and return the finished action."""

    if kind == KIND_CREATE_ACCOUNT:
        return CreateAccountAction()
    start: Any = FunctionCallDraft() if kind == KIND_FUNCTION_CALL else None
    return run_stages(start, ACTION_STAGES[kind], supplied, prompter)


def parse_action_flag(raw: str) -> dict[str, str]:
    """Decode one ``--action`` JSON object into stage values keyed by stage name."""

    try:
        document = json.loads(raw)
    except ValueError as exc:
        raise ValidationError("action", f"not valid JSON: {exc}", "--action") from exc
    if not isinstance(document, dict):
        raise ValidationError("action", "expected a JSON object", "--action")
    kind = document.get("kind")
    if kind not in ACTION_STAGES:
        allowed = ", ".join(ACTION_STAGES)
        raise ValidationError("action", f"'kind' must be one of: {allowed}", "--action")
    values: dict[str, str] = {"kind": kind}
    for key, value in document.items():
        if key == "kind":
            continue
        if key == "args" and isinstance(value, dict):
            values[key] = json.dumps(value)
        else:
            values[key] = str(value)
    return values


def collect_actions(
    context: ActionsContext,
    action_flags: Sequence[str],
    prompter: Optional[Prompter] = None,
) -> ActionsContext:
    if action_flags:
        for raw in action_flags:
            values = parse_action_flag(raw)
            context = context.with_action(build_action(values["kind"], values, prompter))
        return context

    while True:
        choices = ACTION_CHOICES + (DONE_CHOICE,) if context.actions else ACTION_CHOICES
        kind = select_branch(
            "action_kind",
            f"Select an action to add (actions so far: {len(context.actions)})",
            choices,
            context,
            {},
            prompter,
        )
        if kind == KIND_DONE:
            return context
        context = context.with_action(build_action(kind, {}, prompter))
        logger.debug("Added %s action; %d in total", kind, len(context.actions))


@dataclass(frozen=True)
class ConstructedPrepopulate:
    signer_account_id: str
    receiver_account_id: str
    actions: tuple[Action, ...]

    def __call__(self, network_config: NetworkConfig) -> PrepopulatedTransaction:
        return PrepopulatedTransaction(
            signer_id=self.signer_account_id,
            receiver_id=self.receiver_account_id,
            actions=self.actions,
        )


@dataclass(frozen=True)
class ConstructedAfterSending:
    action_count: int
    emit: Emit = field(default=print, repr=False, compare=False)

    def __call__(self, outcome: FinalExecutionOutcome, network_config: NetworkConfig) -> None:
        self.emit(
            f"Transaction with {self.action_count} action(s) from <{outcome.signer_id}> "
            f"to <{outcome.receiver_id}> executed successfully."
        )


def actions_action_context(context: ActionsContext) -> ActionContext:
    return ActionContext(
        global_context=context.global_context,
        interacting_with_account_ids=(context.signer_account_id, context.receiver_account_id),
        get_prepopulated_transaction=ConstructedPrepopulate(
            context.signer_account_id, context.receiver_account_id, context.actions
        ),
        on_after_sending_transaction=ConstructedAfterSending(len(context.actions)),
    )


SIGNER_STAGE = account_stage("signer", "What is the sender account ID?", ConstructSignerContext.from_previous_context)
RECEIVER_STAGE = account_stage("receiver", "What is the receiver account ID?", ActionsContext.from_previous_context)


def build_action_context(
    global_context: GlobalContext,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
) -> ActionContext:
    signer_context = advance_stage(SIGNER_STAGE, ConstructContext(global_context), supplied, prompter)
    actions_context = advance_stage(RECEIVER_STAGE, signer_context, supplied, prompter)
    action_flags = supplied.get("action") or ()
    if not action_flags and prompter is None:
        raise ValidationError("action", "at least one action is required", "--action")
    actions_context = collect_actions(actions_context, action_flags, prompter)
    return actions_action_context(actions_context)


def run(
    global_context: GlobalContext,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
    emit: Emit = print,
) -> TransactionResult:
    action_context = route_report(build_action_context(global_context, supplied, prompter), emit)
    return complete_transaction(action_context, supplied, prompter, emit)


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--signer", help="Sender account ID")
    parser.add_argument("--receiver", help="Receiver account ID")
    parser.add_argument(
        "--action",
        action="append",
        help="JSON object describing one action, e.g. '{\"kind\": \"transfer\", \"deposit\": \"1 NEAR\"}'; repeatable",
    )
    add_transaction_arguments(parser)
