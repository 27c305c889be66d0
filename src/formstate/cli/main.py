"""formstate CLI entry point."""

import logging

import click

from formstate.config import FormStateConfig


@click.group()
@click.pass_context
def cli(ctx: click.Context):
    """formstate: form definition tooling."""
    config = FormStateConfig.from_env()
    logging.basicConfig(
        level=config.log_level_value,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config


# Register subcommand groups
from formstate.cli.definition_cmd import definition  # noqa: E402

cli.add_command(definition)
