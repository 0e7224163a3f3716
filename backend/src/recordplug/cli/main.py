"""recordplug CLI entry point."""

import logging

import click

from recordplug.persistence.config import HostConfig


@click.group()
@click.option(
    "--log-level",
    default=None,
    help="Logging level (default: RECORDPLUG_LOG_LEVEL or INFO).",
)
def cli(log_level: str | None):
    """recordplug — record platform plugin toolkit CLI."""
    config = HostConfig.from_env()
    if log_level:
        config.log_level = log_level.upper()
    try:
        level = config.logging_level
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--log-level") from e
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register subcommand groups
from recordplug.cli.plugin_cmd import plugin  # noqa: E402

cli.add_command(plugin)
