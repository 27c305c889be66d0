"""Declarative form definitions: YAML loading, schema checks and building."""

from formstate.definitions.builder import build_form, resolve_validators
from formstate.definitions.loader import (
    FieldDefinition,
    FormDefinition,
    load_form_definition,
    load_form_definitions,
)
from formstate.definitions.schema import (
    DefinitionIssue,
    validate_definition,
    validate_definition_file,
)

__all__ = [
    "DefinitionIssue",
    "FieldDefinition",
    "FormDefinition",
    "build_form",
    "load_form_definition",
    "load_form_definitions",
    "resolve_validators",
    "validate_definition",
    "validate_definition_file",
]
