"""formstate: reactive form state and lazily revealed validation.

Two independent components, composed by ``Form``:
- FormStore: values, pristine/partial tracking, reset
- ValidationEngine: per-field validator chains with supersedable async
  races and explicit error reveal

Usage:
    from formstate import Form, reveal

    async def username_free(value, field_id, reveal):
        taken = await directory.exists(value)
        return reveal("Username is taken") if taken else None

    form = Form({"username": ""}, {"username": [username_free]})
    form.set("username", "ada")
    await form.join()
    form.validate_all(on_valid=submit)
"""

from formstate.errors import (
    DefinitionError,
    EngineClosedError,
    FormStateError,
    MissingValidatorsError,
    UnknownFieldError,
    UsageError,
    ValidationSuperseded,
)
from formstate.form import Form, FormSnapshot, FormStore, FormView
from formstate.validation import (
    Pending,
    Reveal,
    ValidationEngine,
    ValidationSnapshot,
    Validator,
    ValidatorDefinition,
    ValidatorRegistry,
    register_canned_validators,
    reveal,
    validator,
)

__version__ = "0.1.0"

__all__ = [
    # Form state
    "Form",
    "FormSnapshot",
    "FormStore",
    "FormView",
    # Validation
    "Pending",
    "Reveal",
    "ValidationEngine",
    "ValidationSnapshot",
    "Validator",
    "ValidatorDefinition",
    "ValidatorRegistry",
    "register_canned_validators",
    "reveal",
    "validator",
    # Errors
    "DefinitionError",
    "EngineClosedError",
    "FormStateError",
    "MissingValidatorsError",
    "UnknownFieldError",
    "UsageError",
    "ValidationSuperseded",
]
