"""Command families offered at the top level of the wizard."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from ..config import GlobalContext
from ..lifecycle import Emit
from ..stages import Prompter, select_branch
from . import add_key, construct_transaction, execute, transfer, utils


@dataclass(frozen=True)
class CommandFamily:
    name: str
    label: str
    help: str
    add_arguments: Callable[[argparse.ArgumentParser], None]
    run: Callable[..., Any]


COMMAND_FAMILIES: dict[str, CommandFamily] = {
    "add-key": CommandFamily(
        "add-key", add_key.LABEL, "Add an access key to an account", add_key.add_arguments, add_key.run
    ),
    "construct-transaction": CommandFamily(
        "construct-transaction",
        construct_transaction.LABEL,
        "Build a transaction from an arbitrary list of actions",
        construct_transaction.add_arguments,
        construct_transaction.run,
    ),
    "execute": CommandFamily(
        "execute", execute.LABEL, "Call a change or view method of a contract", execute.add_arguments, execute.run
    ),
    "transfer": CommandFamily(
        "transfer", transfer.LABEL, "Transfer NEAR or fungible tokens", transfer.add_arguments, transfer.run
    ),
    "utils": CommandFamily("utils", utils.LABEL, "Key generation, balances and relaying", utils.add_arguments, utils.run),
}


def choose_command(global_context: GlobalContext, prompter: Optional[Prompter]) -> str:
    """Ask which family to run; without a prompter a subcommand is required."""

    choices = [(name, family.label) for name, family in COMMAND_FAMILIES.items()]
    return select_branch("command", "What are you up to?", choices, global_context, {}, prompter)


def dispatch(
    command: str,
    global_context: GlobalContext,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
    emit: Emit = print,
) -> Any:
    return COMMAND_FAMILIES[command].run(global_context, supplied, prompter, emit)


__all__ = ["COMMAND_FAMILIES", "CommandFamily", "choose_command", "dispatch"]
