"""Staged context composition.

A :class:`Stage` obtains exactly one value, either from pre-parsed command
line arguments or from a :class:`Prompter`, and hands it to its ``advance``
function together with the previous context. ``advance`` builds the next,
larger context; contexts are frozen dataclasses and are never edited in
place. Both value sources run through :meth:`Stage.coerce`, so a value typed
at a prompt and the same value passed as a flag yield the same context.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence, Union

logger = logging.getLogger(__name__)

Choices = Sequence[tuple[str, str]]


class ValidationError(ValueError):
    """Raised when a supplied or prompted value fails a stage constraint."""

    def __init__(self, stage_name: str, message: str, flag: str | None = None) -> None:
        label = flag or stage_name
        super().__init__(f"invalid value for {label}: {message}")
        self.stage_name = stage_name
        self.flag = flag
        self.message = message


class Prompter(Protocol):
    def ask(
        self,
        question: str,
        *,
        default: Optional[str],
        coerce: Callable[[str], Any],
    ) -> Any:
        ...

    def select(self, question: str, choices: Choices, *, default: Optional[str] = None) -> str:
        ...


@dataclass(frozen=True)
class Stage:
    """One step of a wizard: which value it needs and how it advances the context."""

    name: str
    question: str
    advance: Callable[[Any, Any], Any]
    parse: Callable[[str], Any] = str
    validate: Optional[Callable[[Any], Optional[str]]] = None
    default: Union[str, Callable[[Any], Optional[str]], None] = None
    choices: Union[Choices, Callable[[Any], Choices], None] = None
    optional: bool = False
    strip: bool = True

    @property
    def flag(self) -> str:
        return "--" + self.name.replace("_", "-")

    def resolve_default(self, context: Any) -> Optional[str]:
        if callable(self.default):
            return self.default(context)
        return self.default

    def resolve_choices(self, context: Any) -> Optional[Choices]:
        if callable(self.choices):
            return self.choices(context)
        return self.choices

    def coerce(self, raw: Any, context: Any) -> Any:
        """Parse (when given text) and validate a candidate value."""

        if isinstance(raw, str):
            if not raw.strip():
                if self.optional:
                    return None
                raise ValidationError(self.name, "a value is required", self.flag)
            text = raw.strip() if self.strip else raw
            choices = self.resolve_choices(context)
            if choices is not None and text not in {key for key, _ in choices}:
                allowed = ", ".join(key for key, _ in choices)
                raise ValidationError(self.name, f"expected one of: {allowed}", self.flag)
            try:
                value = self.parse(text)
            except ValueError as exc:
                raise ValidationError(self.name, str(exc), self.flag) from exc
        else:
            value = raw

        if value is not None and self.validate is not None:
            message = self.validate(value)
            if message:
                raise ValidationError(self.name, message, self.flag)
        return value


def obtain_value(
    stage: Stage,
    context: Any,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
) -> Any:
    """Return the stage's value from *supplied* or, failing that, from *prompter*."""

    raw = supplied.get(stage.name)
    if raw is not None:
        return stage.coerce(raw, context)

    if prompter is None:
        if stage.optional:
            return None
        raise ValidationError(stage.name, "missing required argument", stage.flag)

    default = stage.resolve_default(context)
    choices = stage.resolve_choices(context)
    if choices is not None:
        selected = prompter.select(stage.question, choices, default=default)
        return stage.coerce(selected, context)
    return prompter.ask(
        stage.question,
        default=default,
        coerce=lambda text: stage.coerce(text, context),
    )


def advance_stage(
    stage: Stage,
    previous_context: Any,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
) -> Any:
    value = obtain_value(stage, previous_context, supplied, prompter)
    next_context = stage.advance(previous_context, value)
    logger.debug("Stage %s produced %s", stage.name, type(next_context).__name__)
    return next_context


def run_stages(
    context: Any,
    stages: Sequence[Stage],
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
) -> Any:
    """Thread *context* through *stages* in order and return the last context."""

    for stage in stages:
        context = advance_stage(stage, context, supplied, prompter)
    return context


def select_branch(
    name: str,
    question: str,
    choices: Choices,
    context: Any,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
    default: Optional[str] = None,
) -> str:
    """Pick which group of stages runs next without adding to the context."""

    stage = Stage(
        name=name,
        question=question,
        advance=lambda previous, value: value,
        choices=choices,
        default=default,
    )
    return advance_stage(stage, context, supplied, prompter)
