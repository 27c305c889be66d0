"""Form: a FormStore wired to a ValidationEngine.

The store and the engine know nothing about each other. The Form is the
caller that feeds every new values snapshot from the store into the engine,
and merges both snapshots into a single view.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from formstate.errors import UnknownFieldError
from formstate.form.store import FormSnapshot, FormStore
from formstate.validation.engine import ValidationEngine
from formstate.validation.types import FieldId, Result, ValidationSnapshot, Validator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormView:
    """Combined form and validation state.

    Attributes:
        pristine: No field differs from its initial value
        values: Current values
        partial: Fields that differ from their initial value
        invalid: Some field has an error or a pending check
        waiting: Per field, True while an async check is in flight
        errors: Revealed errors only
    """

    pristine: bool
    values: Mapping[FieldId, Any]
    partial: Mapping[FieldId, Any]
    invalid: bool
    waiting: Mapping[FieldId, bool]
    errors: Mapping[FieldId, str]


class Form:
    """A form with change tracking and lazily revealed validation.

    Args:
        initial: Initial value of every field
        validators: Validator chain per field; fields without an entry get
            an empty chain
        name: Optional form name, used in log messages

    Raises:
        UnknownFieldError: If a validator chain names a field that has no
            initial value
        RuntimeError: If an async validator runs on the initial values
            outside a running event loop

    Example:
        form = Form({"email": ""}, {"email": [required]})
        form.set("email", "someone@example.com")
        form.validate("email")
        form.snapshot().errors
    """

    def __init__(
        self,
        initial: Mapping[FieldId, Any],
        validators: Mapping[FieldId, Sequence[Validator]] | None = None,
        name: str = "",
    ):
        validators = dict(validators or {})
        for field_id in validators:
            if field_id not in initial:
                raise UnknownFieldError(
                    field_id, f"Validated field '{field_id}' has no initial value"
                )

        self.name = name
        self.store = FormStore(initial)
        self.engine = ValidationEngine(
            {field_id: validators.get(field_id, ()) for field_id in initial}
        )
        self._view: FormView | None = None
        self._view_sources: tuple[FormSnapshot, ValidationSnapshot] | None = None

        self.engine.update(self.store.values)

    # -------------------------------------------------------------------------
    # Values
    # -------------------------------------------------------------------------

    def set(self, field_id: FieldId, value: Any | Callable[[Any], Any]) -> bool:
        """Set a field value (or apply an updater) and re-validate."""
        changed = self.store.set(field_id, value)
        if changed:
            self._sync()
        return changed

    def restore(self, field_id: FieldId) -> bool:
        """Set a field back to its initial value and re-validate."""
        changed = self.store.restore(field_id)
        if changed:
            self._sync()
        return changed

    def reset(self, initial: Mapping[FieldId, Any] | None = None) -> None:
        """Reset every field to ``initial`` (or the last initial values)."""
        if initial is not None:
            unknown = set(initial) - set(self.engine.fields)
            if unknown:
                raise UnknownFieldError(sorted(unknown)[0])
        before = self.store.values
        self.store.reset(initial)
        if self.store.values is not before:
            self._sync()

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self, field_id: FieldId | None = None) -> None:
        """Reveal one field's error, or every field's when no id is given."""
        self.engine.validate(field_id)

    def validate_all(self, on_valid: Callable[[], Any] | None = None) -> None:
        """Reveal every error; run ``on_valid`` once the form becomes valid."""
        self.engine.validate_all(on_valid)

    def result(self, field_id: FieldId) -> Result:
        return self.engine.result(field_id)

    async def join(self) -> None:
        """Wait for in-flight async validation to settle."""
        await self.engine.join()

    def close(self) -> None:
        """Cancel pending validation and release the form."""
        self.engine.close()

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def snapshot(self) -> FormView:
        """Combined view; the same object until either side changes."""
        form = self.store.snapshot()
        validation = self.engine.snapshot()
        sources = self._view_sources
        if self._view is None or sources is None or sources[0] is not form or sources[1] is not validation:
            self._view = FormView(
                pristine=form.pristine,
                values=form.values,
                partial=form.partial,
                invalid=validation.invalid,
                waiting=validation.waiting,
                errors=validation.errors,
            )
            self._view_sources = (form, validation)
        return self._view

    def _sync(self) -> None:
        if self.name:
            logger.debug("Form '%s' values changed; re-validating", self.name)
        self.engine.update(self.store.values)
