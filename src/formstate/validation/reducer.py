"""Pure state machine for field validation.

``reduce(state, action)`` returns the next state plus the effects the
engine has to run (start a race, cancel a race, drop shadowed awaitables,
fire the on-valid continuation). Nothing here touches the event loop, so
every transition can be tested without timing.

State per field:
- ``None``: valid
- ``str``: synchronous error (also the stored outcome of a settled race)
- ``Pending(generation)``: a race is in flight
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Union

from formstate.validation.types import (
    FieldId,
    Outcome,
    Pending,
    Resolved,
    Result,
    Reveal,
    is_error,
    is_waiting,
)


def _frozen(mapping: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


# =============================================================================
# State
# =============================================================================


@dataclass(frozen=True)
class ValidationState:
    """Immutable validation state for a whole form.

    Attributes:
        validation: Latest computed result per field
        errors: Revealed errors; only changed by reveal operations and
            eager settles
        generations: Per-field race generation counter
        on_valid: Continuation stored by validate_all, fired once the form
            has no error and no pending check
    """

    validation: Mapping[FieldId, Result] = field(default_factory=_frozen)
    errors: Mapping[FieldId, str] = field(default_factory=_frozen)
    generations: Mapping[FieldId, int] = field(default_factory=_frozen)
    on_valid: Callable[[], Any] | None = None

    @property
    def valid(self) -> bool:
        return not any(self.validation.values())


# =============================================================================
# Actions
# =============================================================================


@dataclass(frozen=True)
class Update:
    """A new value bag was validated; ``outcomes`` holds each field's raw
    validator outcomes in declaration order."""

    outcomes: Mapping[FieldId, Sequence[Outcome]]


@dataclass(frozen=True)
class Settle:
    """A race for ``field_id`` settled with ``outcome``."""

    field_id: FieldId
    generation: int
    outcome: Resolved


@dataclass(frozen=True)
class Validate:
    field_id: FieldId


@dataclass(frozen=True)
class ValidateAll:
    on_valid: Callable[[], Any] | None = None


Action = Union[Update, Settle, Validate, ValidateAll]


# =============================================================================
# Effects
# =============================================================================


@dataclass(frozen=True)
class StartRace:
    field_id: FieldId
    generation: int
    awaitables: tuple[Awaitable[Resolved], ...]


@dataclass(frozen=True)
class CancelRace:
    field_id: FieldId


@dataclass(frozen=True)
class Discard:
    """Awaitables shadowed by a synchronous error; they are never raced."""

    field_id: FieldId
    awaitables: tuple[Awaitable[Resolved], ...]


@dataclass(frozen=True)
class NotifyValid:
    callback: Callable[[], Any]


Effect = Union[StartRace, CancelRace, Discard, NotifyValid]


# =============================================================================
# Reducer
# =============================================================================


def reduce(state: ValidationState, action: Action) -> tuple[ValidationState, list[Effect]]:
    """Compute the next state and the effects to run for ``action``.

    Returns the same state object when nothing observable changed.
    """
    if isinstance(action, Update):
        return _update(state, action)
    if isinstance(action, Settle):
        return _settle(state, action)
    if isinstance(action, Validate):
        return _validate(state, action), []
    if isinstance(action, ValidateAll):
        return _validate_all(state, action)
    raise TypeError(f"Unknown validation action: {action!r}")


def _classify(field_id: FieldId, outcomes: Sequence[Outcome]) -> tuple[str | None, list[Awaitable]]:
    """Split outcomes into the first synchronous error and the pending ones."""
    error: str | None = None
    pending: list[Awaitable] = []

    for outcome in outcomes:
        if not outcome:
            continue
        if isinstance(outcome, (str, Reveal)):
            # Sync errors are revealed lazily; an eager tag has no meaning here
            if error is None and str(outcome):
                error = str(outcome)
        elif inspect.isawaitable(outcome):
            pending.append(outcome)
        else:
            raise TypeError(
                f"Validator for '{field_id}' returned {type(outcome).__name__}; "
                "expected None, a message string or an awaitable"
            )

    return error, pending


def _update(state: ValidationState, action: Update) -> tuple[ValidationState, list[Effect]]:
    validation: dict[FieldId, Result] = {}
    generations = dict(state.generations)
    effects: list[Effect] = []

    for field_id, outcomes in action.outcomes.items():
        error, pending = _classify(field_id, outcomes)
        previous = state.validation.get(field_id)

        if is_waiting(previous):
            effects.append(CancelRace(field_id))
        if is_waiting(previous) or (pending and error is None):
            generations[field_id] = generations.get(field_id, 0) + 1

        if error is not None:
            validation[field_id] = error
            if pending:
                effects.append(Discard(field_id, tuple(pending)))
        elif pending:
            generation = generations[field_id]
            validation[field_id] = Pending(generation)
            effects.append(StartRace(field_id, generation, tuple(pending)))
        else:
            validation[field_id] = None

    # Fields dropped from the value bag lose their result; any race is stale
    for field_id, previous in state.validation.items():
        if field_id not in action.outcomes and is_waiting(previous):
            effects.append(CancelRace(field_id))
            generations[field_id] = generations.get(field_id, 0) + 1

    if validation == dict(state.validation):
        return state, effects

    next_state = replace(
        state,
        validation=_frozen(validation),
        generations=_frozen(generations),
    )
    return _notify_if_valid(next_state, effects)


def _settle(state: ValidationState, action: Settle) -> tuple[ValidationState, list[Effect]]:
    current = state.validation.get(action.field_id)

    # Superseded races and races shadowed by a sync error never write
    if state.generations.get(action.field_id) != action.generation:
        return state, []
    if current != Pending(action.generation):
        return state, []

    outcome = action.outcome
    message = str(outcome) if outcome else None
    if not message:
        message = None
    eager = isinstance(outcome, Reveal) and outcome.eager

    validation = _frozen({**state.validation, action.field_id: message})
    errors = state.errors
    if eager and message and state.errors.get(action.field_id) != message:
        errors = _frozen({**state.errors, action.field_id: message})

    return _notify_if_valid(replace(state, validation=validation, errors=errors), [])


def _validate(state: ValidationState, action: Validate) -> ValidationState:
    result = state.validation.get(action.field_id)
    revealed = state.errors.get(action.field_id)

    if result == revealed:
        return state

    if is_error(result):
        return replace(state, errors=_frozen({**state.errors, action.field_id: result}))

    if action.field_id in state.errors:
        errors = {k: v for k, v in state.errors.items() if k != action.field_id}
        return replace(state, errors=_frozen(errors))

    return state


def _validate_all(state: ValidationState, action: ValidateAll) -> tuple[ValidationState, list[Effect]]:
    errors = {k: v for k, v in state.validation.items() if is_error(v)}

    next_state = state
    if errors != dict(state.errors):
        next_state = replace(next_state, errors=_frozen(errors))
    if action.on_valid is not state.on_valid:
        next_state = replace(next_state, on_valid=action.on_valid)

    return _notify_if_valid(next_state, [])


def _notify_if_valid(
    state: ValidationState, effects: list[Effect]
) -> tuple[ValidationState, list[Effect]]:
    """Fire the stored continuation once the form is fully valid.

    The continuation is cleared in the same transition so it cannot fire
    again on an unrelated update.
    """
    if state.on_valid is None or not state.valid:
        return state, effects
    return replace(state, on_valid=None), [*effects, NotifyValid(state.on_valid)]
