"""
definitions/schema.py: JSON Schema validation for form definition files.

Usage:
    from formstate.definitions.schema import validate_definition_file

    issues = validate_definition_file(Path("forms/signup.yaml"))
    for issue in issues:
        print(issue)
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from formstate.validation.registry import ValidatorRegistry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Public data types
# ---------------------------------------------------------------------------

_SCHEMA_PATH = Path(__file__).parent / "schemas" / "form.schema.json"


@dataclass
class DefinitionIssue:
    """A single finding for a form definition file."""

    file: Path
    message: str
    path: str = ""          # location within the document, e.g. "fields[0]/validators[1]"
    severity: str = "error" # "error" | "warning"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {self.file}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _load_schema() -> dict[str, Any]:
    with _SCHEMA_PATH.open() as fh:
        return json.load(fh)


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def _unregistered_validators(yaml_path: Path, doc: dict[str, Any]) -> list[DefinitionIssue]:
    """Warn about validator types the registry does not know (yet)."""
    issues: list[DefinitionIssue] = []
    for i, field in enumerate(doc.get("fields") or []):
        for j, validator in enumerate(field.get("validators") or []):
            name = validator.get("type")
            if name and not ValidatorRegistry.is_registered(name):
                issues.append(
                    DefinitionIssue(
                        file=yaml_path,
                        message=f"Validator type '{name}' is not registered",
                        path=f"fields[{i}]/validators[{j}]",
                        severity="warning",
                    )
                )
    return issues


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_definition(doc: Any, source: Path) -> list[DefinitionIssue]:
    """Validate an already-parsed definition document.

    Schema violations are errors; unregistered validator types are warnings.
    """
    validator = Draft202012Validator(_load_schema())
    issues = [
        DefinitionIssue(file=source, message=error.message, path=_json_path(error))
        for error in sorted(validator.iter_errors(doc), key=_json_path)
    ]
    if not issues and isinstance(doc, dict):
        issues.extend(_unregistered_validators(source, doc))
    return issues


def validate_definition_file(
    yaml_path: Path,
    *,
    strict: bool = False,
) -> list[DefinitionIssue]:
    """
    Validate a single form definition file against the form schema.

    Args:
        yaml_path: Path to the YAML file to validate.
        strict:    If ``True``, warnings are escalated to errors.

    Returns:
        A list of :class:`DefinitionIssue` objects (empty on success).
    """
    try:
        with yaml_path.open() as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        return [DefinitionIssue(file=yaml_path, message=f"YAML parse error: {exc}")]

    if raw is None:
        return [
            DefinitionIssue(file=yaml_path, message="File is empty or contains only whitespace")
        ]

    issues = validate_definition(raw, yaml_path)
    if strict:
        for issue in issues:
            if issue.severity == "warning":
                issue.severity = "error"

    logger.debug("Validated %s: %d issue(s)", yaml_path, len(issues))
    return issues
