"""Load form definitions from YAML files."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from formstate.errors import DefinitionError
from formstate.validation.types import ValidatorDefinition


@dataclass
class FieldDefinition:
    name: str
    initial: Any = None
    label: str = ""
    validators: list[ValidatorDefinition] = field(default_factory=list)


@dataclass
class FormDefinition:
    """A declarative form: fields, initial values and validator chains.

    Attributes:
        name: Form name
        fields: Field definitions in declared order
        source: File the definition was loaded from, if any
    """

    name: str
    fields: list[FieldDefinition] = field(default_factory=list)
    source: Path | None = None

    @property
    def initial(self) -> dict[str, Any]:
        return {f.name: f.initial for f in self.fields}

    def get_field(self, name: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: Path | None = None) -> "FormDefinition":
        """Create a FormDefinition from a parsed YAML/JSON document.

        Raises:
            DefinitionError: If required keys are missing or field names repeat
        """
        if not isinstance(data, dict) or "form" not in data:
            raise DefinitionError("Form definition must be a mapping with a 'form' key")

        fields: list[FieldDefinition] = []
        seen: set[str] = set()

        for raw in data.get("fields") or []:
            if not isinstance(raw, dict) or "name" not in raw:
                raise DefinitionError(f"Form '{data['form']}': every field needs a 'name'")

            name = str(raw["name"])
            if name in seen:
                raise DefinitionError(f"Form '{data['form']}': duplicate field '{name}'")
            seen.add(name)

            try:
                validators = [
                    ValidatorDefinition.from_dict(v) for v in raw.get("validators") or []
                ]
            except (KeyError, TypeError) as e:
                raise DefinitionError(
                    f"Form '{data['form']}', field '{name}': malformed validator ({e})"
                ) from e

            fields.append(
                FieldDefinition(
                    name=name,
                    initial=raw.get("initial"),
                    label=raw.get("label", _to_label(name)),
                    validators=validators,
                )
            )

        return cls(name=str(data["form"]), fields=fields, source=source)


def load_form_definition(path: Path) -> FormDefinition:
    """Load a single form definition from a YAML file.

    Raises:
        DefinitionError: If the file cannot be parsed or is not a form
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DefinitionError(f"{path}: YAML parse error: {e}") from e

    if data is None:
        raise DefinitionError(f"{path}: file is empty")

    return FormDefinition.from_dict(data, source=path)


def load_form_definitions(directory: Path) -> dict[str, FormDefinition]:
    """Load every ``*.yaml`` form definition in a directory, keyed by name."""
    definitions: dict[str, FormDefinition] = {}
    if not directory.is_dir():
        return definitions

    for yaml_file in sorted(directory.glob("*.yaml")):
        definition = load_form_definition(yaml_file)
        if definition.name in definitions:
            raise DefinitionError(
                f"Duplicate form '{definition.name}' in {yaml_file} "
                f"and {definitions[definition.name].source}"
            )
        definitions[definition.name] = definition

    return definitions


def _to_label(name: str) -> str:
    """Convert camelCase or snake_case to Title Case."""
    spaced = "".join(f" {c}" if c.isupper() else c for c in name).replace("_", " ")
    return spaced.strip().title()
