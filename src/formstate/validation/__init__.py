"""formstate validation engine.

Usage:
    from formstate.validation import ValidationEngine, register_canned_validators

    engine = ValidationEngine({"name": [lambda v, f, r: None if v else "Required"]})
    engine.update({"name": ""})
    engine.validate("name")
    engine.snapshot().errors   # {"name": "Required"}
"""

from formstate.validation.engine import ValidationEngine
from formstate.validation.race import Race
from formstate.validation.reducer import ValidationState, reduce
from formstate.validation.registry import ValidatorRegistry, validator, with_message
from formstate.validation.types import (
    FieldId,
    Outcome,
    Pending,
    Result,
    Reveal,
    RevealHook,
    ValidationSnapshot,
    Validator,
    ValidatorDefinition,
    is_error,
    is_waiting,
    reveal,
)
from formstate.validation.validators import register_canned_validators

__all__ = [
    # Types
    "FieldId",
    "Outcome",
    "Pending",
    "Result",
    "Reveal",
    "RevealHook",
    "ValidationSnapshot",
    "Validator",
    "ValidatorDefinition",
    "is_error",
    "is_waiting",
    "reveal",
    # Engine
    "Race",
    "ValidationEngine",
    "ValidationState",
    "reduce",
    # Registry
    "ValidatorRegistry",
    "validator",
    "with_message",
    # Setup
    "register_canned_validators",
]
