"""Core types for the formstate validation engine.

A validator is a plain callable ``(value, field_id, reveal) -> outcome``.
The outcome is one of:

- ``None`` (or an empty string): the value is valid
- ``str``: a synchronous validation failure
- an awaitable: a pending check resolving to ``str | Reveal | None``

``reveal`` is the hook an asynchronous validator uses to ask for its error
to be surfaced as soon as it resolves, instead of waiting for an explicit
``validate()`` call.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

FieldId = str


@dataclass(frozen=True)
class Reveal:
    """A resolved validation message tagged for eager surfacing.

    Attributes:
        message: The error message
        eager: When True the engine reveals the message as soon as the
            pending check resolves
    """

    message: str
    eager: bool = True

    def __str__(self) -> str:
        return self.message


def reveal(message: str | None = None) -> Reveal | None:
    """The reveal hook handed to every validator.

    Returns None for an empty message so ``reveal(None)`` still means valid.
    """
    return Reveal(message) if message else None


RevealHook = Callable[[Union[str, None]], Union[Reveal, None]]

Resolved = Union[str, Reveal, None]

Outcome = Union[str, None, Awaitable[Resolved]]


class Validator(Protocol):
    """Protocol that all field validators must implement.

    Validators must return rather than raise. An exception raised
    synchronously propagates to the caller of ``ValidationEngine.update``.
    """

    def __call__(self, value: Any, field_id: FieldId, reveal: RevealHook) -> Outcome:
        ...


@dataclass(frozen=True)
class Pending:
    """Result marker for a field whose validation race is still in flight.

    Attributes:
        generation: The field generation the race was started for
    """

    generation: int


Result = Union[str, Pending, None]


def is_error(result: Result) -> bool:
    return isinstance(result, str)


def is_waiting(result: Result) -> bool:
    return isinstance(result, Pending)


@dataclass
class ValidatorDefinition:
    """Declarative description of a validator (from YAML or code).

    Resolved to a callable through the ValidatorRegistry.

    Attributes:
        type: Registered validator name ("required", "minLength", ...)
        params: Type-specific parameters
        message: Message override; canned validators supply a default
    """

    type: str
    params: dict[str, Any] = field(default_factory=dict)
    message: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ValidatorDefinition":
        """Create ValidatorDefinition from a YAML/JSON dict."""
        return cls(
            type=data["type"],
            params=dict(data.get("params") or {}),
            message=data.get("message", "") or "",
        )


@dataclass(frozen=True)
class ValidationSnapshot:
    """Externally visible validation state.

    Attributes:
        invalid: True if any field has an error or a pending check
        waiting: Per field, True while a validation race is in flight
        errors: Revealed errors only; fields without one are omitted
    """

    invalid: bool
    waiting: Mapping[FieldId, bool]
    errors: Mapping[FieldId, str]
