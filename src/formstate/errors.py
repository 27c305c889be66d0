"""Exception types for formstate.

Usage faults (misconfigured forms, unknown fields, use after teardown)
fail fast. Validation failures are never exceptions: they are plain
strings in the engine's result map.
"""


class FormStateError(Exception):
    """Base class for all formstate errors."""


class UsageError(FormStateError):
    """A programmer error in how a form or engine is being driven."""


class UnknownFieldError(UsageError, KeyError):
    """The field is not part of the form (or not configured on the engine)."""

    def __init__(self, field_id: str, message: str | None = None):
        self.field_id = field_id
        super().__init__(message or f"Field '{field_id}' is not part of this form")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class MissingValidatorsError(UsageError, KeyError):
    """A value was supplied for a field that has no registered validator chain."""

    def __init__(self, field_id: str):
        self.field_id = field_id
        super().__init__(
            f"No validator chain registered for field '{field_id}'. "
            "Configure an (optionally empty) chain for every validated field."
        )

    def __str__(self) -> str:
        return str(self.args[0])


class EngineClosedError(UsageError):
    """The validation engine was used after close()."""


class ValidationSuperseded(FormStateError):
    """Rejection delivered to an in-flight race when a newer cycle replaces it.

    Internal: it is consumed by the race and never reaches callers.
    """

    def __init__(self, field_id: str = ""):
        self.field_id = field_id
        super().__init__(f"Validation race for '{field_id}' was superseded")


class DefinitionError(FormStateError, ValueError):
    """A form definition is malformed or references unknown validators."""
