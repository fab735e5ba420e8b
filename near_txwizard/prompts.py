"""Blocking console prompts used by the interactive wizard."""

from __future__ import annotations

from typing import Any, Callable, Optional

from .stages import Choices, ValidationError


class ConsolePrompter:
    """Ask questions on the terminal, re-asking until the answer validates."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ) -> None:
        self._input = input_func
        self._output = output

    def ask(
        self,
        question: str,
        *,
        default: Optional[str],
        coerce: Callable[[str], Any],
    ) -> Any:
        suffix = f" [{default}]" if default is not None else ""
        self._output("")
        while True:
            raw = self._input(f"{question}{suffix}: ")
            if not raw.strip() and default is not None:
                raw = default
            try:
                return coerce(raw)
            except ValidationError as exc:
                self._output(f"{exc.message}. Please try again.")

    def select(self, question: str, choices: Choices, *, default: Optional[str] = None) -> str:
        """Render a numbered menu and return the key of the chosen entry.

        Answers may be the menu number or the key itself; blank input picks
        *default* (or the first entry).
        """

        keys = [key for key, _ in choices]
        default_key = default if default in keys else keys[0]
        default_index = keys.index(default_key) + 1
        self._output("")
        self._output(question)
        for index, (key, label) in enumerate(choices, start=1):
            self._output(f"  [{index}] {label}")
        while True:
            raw = self._input(f"Selection [{default_index}]: ").strip().lower()
            if not raw:
                return default_key
            if raw.isdigit() and 1 <= int(raw) <= len(keys):
                return keys[int(raw) - 1]
            for key in keys:
                if raw == key.lower():
                    return key
            self._output("Invalid selection, please try again.")
