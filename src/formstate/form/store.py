"""Form value store with pristine/partial tracking.

State is immutable: every effective change produces new read-only
mappings, and a no-op change keeps the exact same objects. Consumers can
therefore detect changes by identity.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any

from formstate.equality import same_value, same_values
from formstate.errors import UnknownFieldError
from formstate.validation.types import FieldId


@dataclass(frozen=True)
class FormState:
    """Initial values, current values and the diff between them.

    Invariant: ``updates`` holds exactly the keys whose value differs from
    ``initial``.
    """

    initial: Mapping[FieldId, Any]
    values: Mapping[FieldId, Any]
    updates: Mapping[FieldId, Any]


@dataclass(frozen=True)
class FormSnapshot:
    """Read-only view of a FormStore.

    Attributes:
        pristine: True when no field differs from its initial value
        values: Current values of every field
        partial: Only the fields that differ from their initial value
    """

    pristine: bool
    values: Mapping[FieldId, Any]
    partial: Mapping[FieldId, Any]


class FormStore:
    """Owns the values of a form and tracks which ones changed.

    Example:
        store = FormStore({"name": "", "age": 0})
        store.set("name", "Ada")
        store.set("age", lambda age: age + 1)
        store.snapshot().partial   # {"name": "Ada", "age": 1}
        store.reset()
    """

    def __init__(self, initial: Mapping[FieldId, Any]):
        frozen = MappingProxyType(dict(initial))
        self._state = FormState(initial=frozen, values=frozen, updates=MappingProxyType({}))
        self._snapshot: FormSnapshot | None = None

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def initial(self) -> Mapping[FieldId, Any]:
        return self._state.initial

    @property
    def values(self) -> Mapping[FieldId, Any]:
        return self._state.values

    @property
    def partial(self) -> Mapping[FieldId, Any]:
        return self._state.updates

    @property
    def pristine(self) -> bool:
        return not self._state.updates

    def is_dirty(self, field_id: FieldId) -> bool:
        """True if the field currently differs from its initial value."""
        self._check_field(field_id)
        return field_id in self._state.updates

    def set(self, field_id: FieldId, value: Any | Callable[[Any], Any]) -> bool:
        """Set a field to a value, or to ``value(current)`` if callable.

        Returns:
            True if the value changed

        Raises:
            UnknownFieldError: If the field is not part of the form
        """
        self._check_field(field_id)
        state = self._state
        current = state.values[field_id]
        new_value = value(current) if callable(value) else value

        if same_value(new_value, current):
            return False

        values = MappingProxyType({**state.values, field_id: new_value})

        if same_value(new_value, state.initial[field_id]):
            updates = MappingProxyType(
                {k: v for k, v in state.updates.items() if k != field_id}
            )
        else:
            updates = MappingProxyType({**state.updates, field_id: new_value})

        self._state = replace(state, values=values, updates=updates)
        return True

    def restore(self, field_id: FieldId) -> bool:
        """Set a single field back to its initial value."""
        self._check_field(field_id)
        return self.set(field_id, self._state.initial[field_id])

    def reset(self, initial: Mapping[FieldId, Any] | None = None) -> None:
        """Reset values to ``initial``, or to the last initial values given.

        Clears every update. Resetting a pristine store to equal initial
        values is a no-op.
        """
        state = self._state
        if initial is None or same_values(initial, state.initial):
            frozen = state.initial
        else:
            frozen = MappingProxyType(dict(initial))

        if frozen is state.initial and state.values is state.initial and not state.updates:
            return

        self._state = FormState(initial=frozen, values=frozen, updates=MappingProxyType({}))

    def snapshot(self) -> FormSnapshot:
        """Return the current snapshot; identical until the next change."""
        state = self._state
        snapshot = self._snapshot
        if (
            snapshot is None
            or snapshot.values is not state.values
            or snapshot.partial is not state.updates
        ):
            snapshot = FormSnapshot(
                pristine=not state.updates,
                values=state.values,
                partial=state.updates,
            )
            self._snapshot = snapshot
        return snapshot

    def _check_field(self, field_id: FieldId) -> None:
        if field_id not in self._state.initial:
            raise UnknownFieldError(field_id)
