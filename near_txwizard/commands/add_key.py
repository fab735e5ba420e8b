"""Add an access key to an account."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..config import GlobalContext, NetworkConfig
from ..keys import PublicKey
from ..lifecycle import ActionContext, Emit, TransactionResult
from ..stages import Prompter, Stage, advance_stage, run_stages, select_branch
from ..transaction import (
    AccessKeyPermission,
    AddKeyAction,
    FinalExecutionOutcome,
    FullAccessPermission,
    FunctionCallPermission,
    PrepopulatedTransaction,
)
from ..transaction_options import complete_transaction
from ..units import NearToken
from .common import account_stage, add_transaction_arguments, parse_method_names, route_report

LABEL = "Add access key"

FULL_ACCESS = "full-access"
FUNCTION_CALL = "function-call"
PERMISSION_CHOICES = (
    (FULL_ACCESS, "A permission with full access"),
    (FUNCTION_CALL, "A permission with function call"),
)


@dataclass(frozen=True)
class AddKeyContext:
    global_context: GlobalContext


@dataclass(frozen=True)
class AddKeySignerContext:
    global_context: GlobalContext
    signer_account_id: str

    @classmethod
    def from_previous_context(cls, previous_context: AddKeyContext, signer_account_id: str) -> "AddKeySignerContext":
        return cls(previous_context.global_context, signer_account_id)


@dataclass(frozen=True)
class PermissionContext:
    global_context: GlobalContext
    signer_account_id: str
    permission: AccessKeyPermission


@dataclass(frozen=True)
class AllowedReceiverContext:
    global_context: GlobalContext
    signer_account_id: str
    receiver_account_id: str

    @classmethod
    def from_previous_context(
        cls, previous_context: AddKeySignerContext, receiver_account_id: str
    ) -> "AllowedReceiverContext":
        return cls(previous_context.global_context, previous_context.signer_account_id, receiver_account_id)


@dataclass(frozen=True)
class MethodNamesContext:
    global_context: GlobalContext
    signer_account_id: str
    receiver_account_id: str
    method_names: tuple[str, ...]

    @classmethod
    def from_previous_context(
        cls, previous_context: AllowedReceiverContext, method_names: Optional[tuple[str, ...]]
    ) -> "MethodNamesContext":
        return cls(
            previous_context.global_context,
            previous_context.signer_account_id,
            previous_context.receiver_account_id,
            method_names or (),
        )


def allowance_permission_context(previous_context: MethodNamesContext, allowance: Optional[NearToken]) -> PermissionContext:
    return PermissionContext(
        global_context=previous_context.global_context,
        signer_account_id=previous_context.signer_account_id,
        permission=FunctionCallPermission(
            receiver_id=previous_context.receiver_account_id,
            method_names=previous_context.method_names,
            allowance=allowance,
        ),
    )


@dataclass(frozen=True)
class AddKeyPrepopulate:
    signer_account_id: str
    public_key: PublicKey
    permission: AccessKeyPermission

    def __call__(self, network_config: NetworkConfig) -> PrepopulatedTransaction:
        return PrepopulatedTransaction(
            signer_id=self.signer_account_id,
            receiver_id=self.signer_account_id,
            actions=(AddKeyAction(public_key=self.public_key, permission=self.permission),),
        )


@dataclass(frozen=True)
class AddKeyAfterSending:
    signer_account_id: str
    public_key: PublicKey
    emit: Emit = field(default=print, repr=False, compare=False)

    def __call__(self, outcome: FinalExecutionOutcome, network_config: NetworkConfig) -> None:
        self.emit(f"Added access key = {self.public_key} to {self.signer_account_id}.")


def public_key_action_context(previous_context: PermissionContext, public_key: PublicKey) -> ActionContext:
    return ActionContext(
        global_context=previous_context.global_context,
        interacting_with_account_ids=(previous_context.signer_account_id,),
        get_prepopulated_transaction=AddKeyPrepopulate(
            previous_context.signer_account_id, public_key, previous_context.permission
        ),
        on_after_sending_transaction=AddKeyAfterSending(previous_context.signer_account_id, public_key),
    )


SIGNER_STAGE = account_stage(
    "signer", "Which account should you add an access key to?", AddKeySignerContext.from_previous_context
)

FUNCTION_CALL_STAGES = (
    account_stage(
        "contract",
        "Enter a receiver to use by this access key to pay for function call gas and transaction fees",
        AllowedReceiverContext.from_previous_context,
    ),
    Stage(
        name="method_names",
        question="Enter a comma-separated list of method names allowed (empty allows any method)",
        parse=parse_method_names,
        optional=True,
        advance=MethodNamesContext.from_previous_context,
    ),
    Stage(
        name="allowance",
        question="Enter the allowance, a budget this access key can use to pay for transaction fees "
        "(empty means unlimited)",
        parse=NearToken.from_str,
        optional=True,
        advance=allowance_permission_context,
    ),
)

PUBLIC_KEY_STAGE = Stage(
    name="public_key",
    question="Enter the public key",
    parse=PublicKey.from_str,
    advance=public_key_action_context,
)


def build_action_context(
    global_context: GlobalContext,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
) -> ActionContext:
    signer_context = advance_stage(SIGNER_STAGE, AddKeyContext(global_context), supplied, prompter)
    permission = select_branch(
        "permission",
        "Select a permission that you want to add to the access key",
        PERMISSION_CHOICES,
        signer_context,
        supplied,
        prompter,
    )
    if permission == FUNCTION_CALL:
        permission_context = run_stages(signer_context, FUNCTION_CALL_STAGES, supplied, prompter)
    else:
        permission_context = PermissionContext(
            global_context=global_context,
            signer_account_id=signer_context.signer_account_id,
            permission=FullAccessPermission(),
        )
    return advance_stage(PUBLIC_KEY_STAGE, permission_context, supplied, prompter)


def run(
    global_context: GlobalContext,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
    emit: Emit = print,
) -> TransactionResult:
    action_context = route_report(build_action_context(global_context, supplied, prompter), emit)
    return complete_transaction(action_context, supplied, prompter, emit)


def add_arguments(parser: argparse.ArgumentParser) -> None:
    permissions = parser.add_subparsers(dest="permission")
    full_parser = permissions.add_parser(FULL_ACCESS, help="Grant full access")
    full_parser.add_argument("--signer", help="Account that receives the new access key")
    full_parser.add_argument("--public-key", dest="public_key", help="ed25519:<base58> public key")
    add_transaction_arguments(full_parser)

    call_parser = permissions.add_parser(FUNCTION_CALL, help="Grant function-call access to one contract")
    call_parser.add_argument("--signer", help="Account that receives the new access key")
    call_parser.add_argument("--contract", help="Contract the key may call")
    call_parser.add_argument("--method-names", dest="method_names", help="Comma-separated method names")
    call_parser.add_argument("--allowance", help="Fee allowance, e.g. '0.25 NEAR'")
    call_parser.add_argument("--public-key", dest="public_key", help="ed25519:<base58> public key")
    add_transaction_arguments(call_parser)
