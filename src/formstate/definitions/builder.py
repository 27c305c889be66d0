"""Build live forms from form definitions.

Bridges the declarative side (FormDefinition, ValidatorDefinition) and
the runtime side (Form, validator callables) through the registry.
"""

from typing import Any

from formstate.errors import DefinitionError
from formstate.definitions.loader import FormDefinition
from formstate.form.form import Form
from formstate.validation.registry import ValidatorRegistry
from formstate.validation.types import FieldId, Validator


def resolve_validators(definition: FormDefinition) -> dict[FieldId, list[Validator]]:
    """Resolve every field's validator chain, preserving declared order.

    Raises:
        DefinitionError: If a validator type is not registered or its
            parameters are invalid
    """
    chains: dict[FieldId, list[Validator]] = {}
    for field in definition.fields:
        chain: list[Validator] = []
        for validator_def in field.validators:
            try:
                chain.append(ValidatorRegistry.create(validator_def))
            except DefinitionError:
                raise
            except (ValueError, TypeError) as e:
                raise DefinitionError(
                    f"Form '{definition.name}', field '{field.name}': {e}"
                ) from e
        chains[field.name] = chain
    return chains


def build_form(
    definition: FormDefinition,
    initial: dict[FieldId, Any] | None = None,
) -> Form:
    """Create a Form from a definition.

    Args:
        definition: The form definition
        initial: Optional overrides for the definition's initial values

    Returns:
        A Form validated against its initial values
    """
    values = definition.initial
    if initial:
        unknown = set(initial) - set(values)
        if unknown:
            raise DefinitionError(
                f"Form '{definition.name}' has no field(s): {', '.join(sorted(unknown))}"
            )
        values.update(initial)

    return Form(values, resolve_validators(definition), name=definition.name)
