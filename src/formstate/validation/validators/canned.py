"""Canned field validators for formstate.

These are ready-to-use, synchronous validators that ship with the package.
They are declared in form definitions and configured via parameters.

Available validators:
- required: Value must be non-empty
- minLength / maxLength: String (or list) length bounds
- min / max: Numeric bounds
- pattern: Regex match
- email / url: Format checks
- oneOf: Value must be one of the allowed choices

Every validator except ``required`` skips empty values, so an optional
field is valid while blank.
"""

import re
from dataclasses import dataclass
from typing import Any

from formstate.errors import DefinitionError
from formstate.validation.registry import ValidatorRegistry
from formstate.validation.types import FieldId, RevealHook, ValidatorDefinition


# =============================================================================
# Format Patterns
# =============================================================================

# Email: Basic RFC 5322 compliant pattern
EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

# URL: Basic URL pattern
URL_PATTERN = re.compile(
    r"^https?://[^\s/$.?#].[^\s]*$",
    re.IGNORECASE
)


def is_empty(value: Any) -> bool:
    """Check if a value is considered empty."""
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    if isinstance(value, (list, tuple, set, dict)) and len(value) == 0:
        return True
    return False


def _param(definition: ValidatorDefinition, name: str) -> Any:
    if name not in definition.params:
        raise DefinitionError(
            f"Validator '{definition.type}' requires the '{name}' parameter"
        )
    return definition.params[name]


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


# =============================================================================
# Required
# =============================================================================


@dataclass
class RequiredValidator:
    message: str = "This field is required"

    def __call__(self, value: Any, field_id: FieldId, reveal: RevealHook) -> str | None:
        return self.message if is_empty(value) else None


def _required_factory(definition: ValidatorDefinition) -> RequiredValidator:
    return RequiredValidator(message=definition.message or "This field is required")


# =============================================================================
# Length Bounds
# =============================================================================


@dataclass
class LengthValidator:
    """Validates the length of a string or collection.

    Params:
        length: The bound
    """

    minimum: int | None
    maximum: int | None
    message: str

    def __call__(self, value: Any, field_id: FieldId, reveal: RevealHook) -> str | None:
        if is_empty(value) or not hasattr(value, "__len__"):
            return None

        length = len(value)
        if self.minimum is not None and length < self.minimum:
            return self.message
        if self.maximum is not None and length > self.maximum:
            return self.message
        return None


def _min_length_factory(definition: ValidatorDefinition) -> LengthValidator:
    length = int(_param(definition, "length"))
    return LengthValidator(
        minimum=length,
        maximum=None,
        message=definition.message or f"Must be at least {length} characters",
    )


def _max_length_factory(definition: ValidatorDefinition) -> LengthValidator:
    length = int(_param(definition, "length"))
    return LengthValidator(
        minimum=None,
        maximum=length,
        message=definition.message or f"Must be at most {length} characters",
    )


# =============================================================================
# Numeric Bounds
# =============================================================================


@dataclass
class RangeValidator:
    """Validates numeric bounds. Numeric strings are parsed first."""

    minimum: float | None
    maximum: float | None
    message: str

    def __call__(self, value: Any, field_id: FieldId, reveal: RevealHook) -> str | None:
        if is_empty(value):
            return None

        number = _number(value)
        if number is None:
            return "Must be a number"
        if self.minimum is not None and number < self.minimum:
            return self.message
        if self.maximum is not None and number > self.maximum:
            return self.message
        return None


def _bound(definition: ValidatorDefinition) -> tuple[float, Any]:
    raw = _param(definition, "value")
    bound = _number(raw)
    if bound is None:
        raise DefinitionError(
            f"Validator '{definition.type}' requires a numeric 'value', got {raw!r}"
        )
    return bound, raw


def _min_factory(definition: ValidatorDefinition) -> RangeValidator:
    bound, raw = _bound(definition)
    return RangeValidator(
        minimum=bound,
        maximum=None,
        message=definition.message or f"Must be at least {raw}",
    )


def _max_factory(definition: ValidatorDefinition) -> RangeValidator:
    bound, raw = _bound(definition)
    return RangeValidator(
        minimum=None,
        maximum=bound,
        message=definition.message or f"Must be at most {raw}",
    )


# =============================================================================
# Pattern and Formats
# =============================================================================


@dataclass
class PatternValidator:
    pattern: re.Pattern
    message: str

    def __call__(self, value: Any, field_id: FieldId, reveal: RevealHook) -> str | None:
        if is_empty(value) or not isinstance(value, str):
            return None
        return None if self.pattern.match(value) else self.message


def _pattern_factory(definition: ValidatorDefinition) -> PatternValidator:
    source = _param(definition, "pattern")
    try:
        pattern = re.compile(source)
    except re.error as e:
        raise DefinitionError(f"Invalid pattern {source!r}: {e}") from e
    return PatternValidator(pattern=pattern, message=definition.message or "Format is invalid")


def _email_factory(definition: ValidatorDefinition) -> PatternValidator:
    return PatternValidator(
        pattern=EMAIL_PATTERN,
        message=definition.message or "Must be a valid email address",
    )


def _url_factory(definition: ValidatorDefinition) -> PatternValidator:
    return PatternValidator(
        pattern=URL_PATTERN,
        message=definition.message or "Must be a valid URL",
    )


# =============================================================================
# Choices
# =============================================================================


@dataclass
class ChoiceValidator:
    """Validates that a value (or each item of a list) is an allowed choice.

    Params:
        choices: The allowed values
    """

    choices: tuple[Any, ...]
    message: str

    def __call__(self, value: Any, field_id: FieldId, reveal: RevealHook) -> str | None:
        if is_empty(value):
            return None
        items = value if isinstance(value, list) else [value]
        for item in items:
            if item not in self.choices:
                return self.message.replace("{value}", str(item))
        return None


def _one_of_factory(definition: ValidatorDefinition) -> ChoiceValidator:
    choices = _param(definition, "choices")
    if not isinstance(choices, (list, tuple)) or not choices:
        raise DefinitionError("Validator 'oneOf' requires a non-empty 'choices' list")
    return ChoiceValidator(
        choices=tuple(choices),
        message=definition.message or "'{value}' is not a valid option",
    )


# =============================================================================
# Registration
# =============================================================================


def register_canned_validators() -> None:
    """Register all canned validators with the ValidatorRegistry."""
    ValidatorRegistry.register_factory("required", _required_factory)
    ValidatorRegistry.register_factory("minLength", _min_length_factory)
    ValidatorRegistry.register_factory("maxLength", _max_length_factory)
    ValidatorRegistry.register_factory("min", _min_factory)
    ValidatorRegistry.register_factory("max", _max_factory)
    ValidatorRegistry.register_factory("pattern", _pattern_factory)
    ValidatorRegistry.register_factory("email", _email_factory)
    ValidatorRegistry.register_factory("url", _url_factory)
    ValidatorRegistry.register_factory("oneOf", _one_of_factory)
