"""Plugin CLI commands — list steps and run a plugin against an event file."""

import logging
from pathlib import Path

import click

from recordplug.core.errors import PluginConfigurationError, RecordNotFoundError
from recordplug.core.types import ColumnSet
from recordplug.host.events import load_event
from recordplug.host.sandbox import PluginHost
from recordplug.persistence.config import HostConfig, create_service_factory
from recordplug.plugins.catalog import PluginCatalog, register_builtin_plugins
from recordplug.plugins.tracing import LoggingTracingService
from recordplug.plugins.types import Stage

logger = logging.getLogger(__name__)


def _resolve_plugin_class(name: str):
    register_builtin_plugins()
    try:
        return PluginCatalog.get(name)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="PLUGIN") from e


@click.group()
def plugin():
    """Plugin commands."""
    pass


@plugin.command("list")
def list_plugins():
    """List the plugins known to the catalog."""
    register_builtin_plugins()
    for name in PluginCatalog.list_registered():
        click.echo(name)


@plugin.command()
@click.argument("name")
def steps(name: str):
    """Show the events a plugin registers for."""
    plugin_class = _resolve_plugin_class(name)
    instance = plugin_class()
    for event in instance.registered_events:
        click.echo(
            f"{Stage(event.stage).name:<15} "
            f"{event.message_name or '*':<12} "
            f"{event.entity_name or '*':<24} "
            f"{event.action_name}"
        )


@plugin.command()
@click.argument("name")
@click.argument("event_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--db",
    "db_path",
    default=None,
    help="SQLite database path. Defaults to DATABASE_URL / RECORDPLUG_DB_PATH.",
)
@click.option("--unsecure-config", default=None, help="Unsecure step configuration.")
@click.option("--secure-config", default=None, help="Secure step configuration.")
def invoke(
    name: str,
    event_file: Path,
    db_path: str | None,
    unsecure_config: str | None,
    secure_config: str | None,
):
    """Run a plugin once for the invocation described in EVENT_FILE."""
    _resolve_plugin_class(name)
    try:
        instance = PluginCatalog.create(name, unsecure_config, secure_config)
    except PluginConfigurationError as e:
        raise click.BadParameter(str(e), param_hint="--unsecure-config") from e

    try:
        event = load_event(event_file)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="EVENT_FILE") from e

    config = HostConfig.from_env()
    if db_path is not None:
        config.url = f"sqlite:///{db_path}"
    try:
        factory = create_service_factory(config)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    try:
        seeder = factory.create_organization_service(event.user_id)
        for record in event.seed:
            try:
                seeder.retrieve(record.logical_name, record.id, ColumnSet.of())
                seeder.update(record)
            except RecordNotFoundError:
                seeder.create(record)

        host = PluginHost(factory)
        context = host.build_context(
            stage=event.stage,
            message_name=event.message_name,
            entity_name=event.entity_name,
            target=event.target,
            pre_images=event.pre_images,
            post_images=event.post_images,
            user_id=event.user_id,
        )
        tracing = LoggingTracingService()
        try:
            host.invoke(instance, context, tracing_service=tracing)
        except Exception as e:
            for line in tracing.lines:
                click.echo(line)
            click.echo(click.style(f"Plugin failed: {e}", fg="red"), err=True)
            raise SystemExit(1)

        for line in tracing.lines:
            click.echo(line)
        click.echo(click.style("Plugin completed.", fg="green"))
    finally:
        factory.conn.close()
