"""Form definition CLI commands: validate and check."""

import asyncio
from pathlib import Path
from typing import Any

import click
import yaml

from formstate.config import FormStateConfig
from formstate.definitions import (
    FormDefinition,
    build_form,
    load_form_definition,
    validate_definition_file,
)
from formstate.errors import FormStateError
from formstate.form import FormView
from formstate.validation import register_canned_validators


def _resolve(config: FormStateConfig | None, target: str) -> Path:
    config = config or FormStateConfig.from_env()
    path = config.resolve_definition(target)
    if not path.exists():
        click.echo(f"Error: form definition not found at {path}", err=True)
        raise SystemExit(1)
    return path


def _parse_assignment(raw: str) -> tuple[str, Any]:
    if "=" not in raw:
        raise click.BadParameter(f"expected FIELD=VALUE, got '{raw}'", param_hint="--set")
    name, _, text = raw.partition("=")
    if not text:
        return name.strip(), ""
    # YAML scalars: "42" -> 42, "true" -> True
    try:
        return name.strip(), yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise click.BadParameter(
            f"cannot parse value for '{name.strip()}': {e}", param_hint="--set"
        ) from e


@click.group()
def definition():
    """Form definition commands."""
    pass


@definition.command()
@click.argument("target")
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat warnings as errors.",
)
@click.pass_obj
def validate(config: FormStateConfig | None, target: str, strict: bool):
    """Validate a form definition file against the form schema."""
    register_canned_validators()
    path = _resolve(config, target)
    issues = validate_definition_file(path, strict=strict)

    errors = [i for i in issues if i.severity == "error"]
    warnings = [i for i in issues if i.severity == "warning"]

    for issue in issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if errors:
        click.echo(
            click.style(
                f"\n{len(errors)} schema error(s) found"
                + (f", {len(warnings)} warning(s)" if warnings else ""),
                fg="red",
                bold=True,
            )
        )
        raise SystemExit(1)

    if warnings:
        click.echo(click.style(f"{len(warnings)} warning(s) found.", fg="yellow"))

    try:
        form_def = load_form_definition(path)
    except FormStateError as e:
        click.echo(click.style(f"\nDefinition could not be loaded: {e}", fg="red"), err=True)
        raise SystemExit(1)

    click.echo(f"\nForm '{form_def.name}' ({len(form_def.fields)} fields):")
    for field in form_def.fields:
        chain = ", ".join(v.type for v in field.validators) or "no validators"
        click.echo(f"  ✓ {field.name} ({chain})")

    click.echo(click.style("\nForm definition is valid.", fg="green", bold=True))


@definition.command()
@click.argument("target")
@click.option(
    "--set",
    "assignments",
    multiple=True,
    metavar="FIELD=VALUE",
    help="Set a field before validating. Values are parsed as YAML scalars.",
)
@click.pass_obj
def check(config: FormStateConfig | None, target: str, assignments: tuple[str, ...]):
    """Apply values to a form, validate every field and report errors."""
    register_canned_validators()
    path = _resolve(config, target)
    values = [_parse_assignment(a) for a in assignments]

    try:
        form_def = load_form_definition(path)
        view = asyncio.run(_check(form_def, values))
    except FormStateError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)

    click.echo(f"Form '{form_def.name}'")
    click.echo(f"  pristine: {'yes' if view.pristine else 'no'}")
    if view.partial:
        click.echo(f"  changed: {', '.join(view.partial)}")

    for field in form_def.fields:
        error = view.errors.get(field.name)
        if error:
            click.echo(click.style(f"  ✗ {field.name}: {error}", fg="red"))
        else:
            click.echo(f"  ✓ {field.name}")

    if view.invalid:
        click.echo(click.style("\nForm is invalid.", fg="red", bold=True))
        raise SystemExit(1)

    click.echo(click.style("\nForm is valid.", fg="green", bold=True))


async def _check(form_def: FormDefinition, values: list[tuple[str, Any]]) -> FormView:
    form = build_form(form_def)
    try:
        for name, value in values:
            form.set(name, value)
        await form.join()
        form.validate_all()
        return form.snapshot()
    finally:
        form.close()
