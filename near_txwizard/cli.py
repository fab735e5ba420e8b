"""Command line entry point for near-txwizard."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Sequence

from .commands import COMMAND_FAMILIES, choose_command, dispatch
from .config import ConfigurationError, load_global_context
from .lifecycle import BroadcastError, ExecutionFailure, LifecycleError
from .prompts import ConsolePrompter
from .rpc_client import QueryError, RPCError, RPCTransportError
from .signer import SigningError
from .stages import ValidationError

logger = logging.getLogger(__name__)

GLOBAL_OPTIONS = ("command", "config", "non_interactive", "verbose")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="near-txwizard",
        description="Build, sign and submit NEAR transactions step by step",
    )
    parser.add_argument("--config", default=None, help="Path to a YAML config file (default: ~/.near-txwizard.yaml)")
    parser.add_argument(
        "--non-interactive",
        dest="non_interactive",
        action="store_true",
        help="Never prompt; every required value must be passed as a flag",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")
    for name, family in COMMAND_FAMILIES.items():
        family.add_arguments(subparsers.add_parser(name, help=family.help, description=family.label))
    return parser


def supplied_values(args: argparse.Namespace) -> dict[str, Any]:
    """Stage values given on the command line, keyed by stage name."""

    return {
        key: value
        for key, value in vars(args).items()
        if key not in GLOBAL_OPTIONS and value is not None
    }


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    prompter = None if args.non_interactive else ConsolePrompter()
    try:
        global_context = load_global_context(config_path=args.config)
        command = args.command or choose_command(global_context, prompter)
        dispatch(command, global_context, supplied_values(args), prompter)
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
        return 1
    except (
        ValidationError,
        QueryError,
        SigningError,
        BroadcastError,
        ExecutionFailure,
        LifecycleError,
        ConfigurationError,
        RPCError,
        RPCTransportError,
    ) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
