"""Validation engine: runs validator chains and owns the async races.

The engine is the effect runner around the pure reducer in
``formstate.validation.reducer``:

1. ``update(values)`` invokes every field's validator chain and dispatches
   the raw outcomes
2. The reducer decides the next state and which races to start or cancel
3. The engine runs those effects; settled races are fed back as actions

Errors are only surfaced through ``validate``/``validate_all`` (lazy
reveal) or by an async validator resolving to an eager ``Reveal``.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from functools import partial
from types import MappingProxyType
from typing import Any

from formstate.equality import same_values
from formstate.errors import EngineClosedError, MissingValidatorsError, UnknownFieldError
from formstate.validation.race import Race
from formstate.validation.reducer import (
    Action,
    CancelRace,
    Discard,
    Effect,
    NotifyValid,
    Settle,
    StartRace,
    Update,
    Validate,
    ValidateAll,
    ValidationState,
    reduce,
)
from formstate.validation.types import (
    FieldId,
    Outcome,
    Resolved,
    Result,
    ValidationSnapshot,
    Validator,
    is_waiting,
    reveal,
)

logger = logging.getLogger(__name__)


def _close_awaitable(awaitable: Awaitable[Any]) -> None:
    """Release an awaitable that will never be awaited."""
    if inspect.iscoroutine(awaitable):
        awaitable.close()
    elif isinstance(awaitable, asyncio.Future):
        awaitable.cancel()


class ValidationEngine:
    """Per-field validation with supersedable async races.

    Validator chains are fixed at construction. Every field that appears in
    a value bag passed to ``update`` must have a chain (possibly empty).

    Example:
        engine = ValidationEngine({"email": [required, email_available]})
        engine.update({"email": "a@example.com"})
        engine.snapshot().waiting["email"]   # True while the check runs
        await engine.join()
        engine.validate("email")             # reveal the result
    """

    def __init__(self, validators: Mapping[FieldId, Sequence[Validator]]):
        self._validators: dict[FieldId, tuple[Validator, ...]] = {
            field_id: tuple(chain) for field_id, chain in validators.items()
        }
        self._state = ValidationState()
        self._races: dict[FieldId, Race] = {}
        self._values: dict[FieldId, Any] | None = None
        self._closed = False

        self._snapshot: ValidationSnapshot | None = None
        self._snapshot_state: ValidationState | None = None

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    @property
    def fields(self) -> tuple[FieldId, ...]:
        """Fields with a configured validator chain."""
        return tuple(self._validators)

    @property
    def state(self) -> ValidationState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def result(self, field_id: FieldId) -> Result:
        """The current (possibly unrevealed) result for a field."""
        self._check_field(field_id)
        return self._state.validation.get(field_id)

    def snapshot(self) -> ValidationSnapshot:
        """Return the externally visible state.

        The same object is returned until the state changes.
        """
        state = self._state
        if self._snapshot is None or self._snapshot_state is not state:
            previous = self._snapshot_state
            if previous is not None and previous.validation is state.validation:
                waiting = self._snapshot.waiting
            else:
                waiting = MappingProxyType(
                    {field_id: is_waiting(result) for field_id, result in state.validation.items()}
                )
            self._snapshot = ValidationSnapshot(
                invalid=not state.valid,
                waiting=waiting,
                errors=state.errors,
            )
            self._snapshot_state = state
        return self._snapshot

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def update(self, values: Mapping[FieldId, Any]) -> None:
        """Re-validate after the value bag changed.

        A bag equal to the previous one is ignored.

        Raises:
            MissingValidatorsError: If a field has no validator chain
            EngineClosedError: If the engine was closed
            RuntimeError: If a validator returns an awaitable outside a
                running event loop
        """
        self._check_open()
        if self._values is not None and same_values(values, self._values):
            return

        for field_id in values:
            if field_id not in self._validators:
                raise MissingValidatorsError(field_id)

        outcomes = self._run_chains(values)
        try:
            state, effects = reduce(self._state, Update(outcomes))
        except BaseException:
            self._release(outcomes)
            raise
        self._values = dict(values)
        self._commit(state, effects)

    def validate(self, field_id: FieldId | None = None) -> None:
        """Reveal the current result of one field, or of all fields.

        For a single field, a synchronous error becomes visible; anything
        else clears the field's visible error.
        """
        if field_id is None:
            self.validate_all()
            return
        self._check_open()
        self._check_field(field_id)
        self._dispatch(Validate(field_id))

    def validate_all(self, on_valid: Callable[[], Any] | None = None) -> None:
        """Reveal every field's synchronous error.

        Args:
            on_valid: Continuation invoked once, as soon as no field has an
                error or a pending check (immediately if that is already the
                case). Replaces any continuation stored earlier.
        """
        self._check_open()
        self._dispatch(ValidateAll(on_valid))

    async def join(self) -> None:
        """Wait until no validation race is in flight."""
        while True:
            races = [race for race in self._races.values() if race.pending]
            if not races:
                return
            await asyncio.gather(*(race.wait() for race in races))

    def close(self) -> None:
        """Tear down: cancel every race. Further operations raise."""
        if self._closed:
            return
        self._closed = True
        for race in self._races.values():
            race.cancel()
        logger.debug("Validation engine closed (%d field(s))", len(self._validators))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _run_chains(self, values: Mapping[FieldId, Any]) -> dict[FieldId, list[Outcome]]:
        """Invoke each field's chain in declaration order."""
        outcomes: dict[FieldId, list[Outcome]] = {}
        try:
            for field_id, value in values.items():
                outcomes[field_id] = results = []
                for validator in self._validators[field_id]:
                    results.append(validator(value, field_id, reveal))

            if any(inspect.isawaitable(o) for chain in outcomes.values() for o in chain):
                asyncio.get_running_loop()
        except BaseException:
            # Validator faults propagate; nothing already created may leak
            self._release(outcomes)
            raise
        return outcomes

    def _release(self, outcomes: Mapping[FieldId, Sequence[Outcome]]) -> None:
        for chain in outcomes.values():
            for outcome in chain:
                if inspect.isawaitable(outcome):
                    _close_awaitable(outcome)

    def _dispatch(self, action: Action) -> None:
        self._commit(*reduce(self._state, action))

    def _commit(self, state: ValidationState, effects: list[Effect]) -> None:
        self._state = state
        for effect in effects:
            self._run_effect(effect)

    def _run_effect(self, effect: Effect) -> None:
        if isinstance(effect, CancelRace):
            race = self._races.get(effect.field_id)
            if race is not None:
                race.cancel()
        elif isinstance(effect, StartRace):
            race = self._races.setdefault(effect.field_id, Race(effect.field_id))
            race.start(
                effect.awaitables,
                partial(self._on_settle, effect.field_id),
                generation=effect.generation,
            )
        elif isinstance(effect, Discard):
            for awaitable in effect.awaitables:
                _close_awaitable(awaitable)
        elif isinstance(effect, NotifyValid):
            logger.debug("Form is valid; running on_valid continuation")
            effect.callback()
        else:
            raise TypeError(f"Unknown validation effect: {effect!r}")

    def _on_settle(self, field_id: FieldId, generation: int, outcome: Resolved) -> None:
        if self._closed:
            return
        logger.debug("Race for '%s' settled (generation %s): %r", field_id, generation, outcome)
        self._dispatch(Settle(field_id, generation, outcome))

    def _check_open(self) -> None:
        if self._closed:
            raise EngineClosedError("Validation engine is closed")

    def _check_field(self, field_id: FieldId) -> None:
        if field_id not in self._validators:
            raise UnknownFieldError(field_id, f"Field '{field_id}' has no validator chain")
