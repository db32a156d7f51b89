"""tracemap CLI - Import map resolution, tracing and installs."""

import logging

import click

from .cli_context import CliContext
from .commands import env_cmd
from .commands import flatten_cmd
from .commands import install_cmd
from .commands import rebase_cmd
from .commands import resolve_cmd
from .commands import show_cmd
from .commands import sort_cmd
from .commands import trace_cmd
from .commands import uninstall_cmd
from .commands import upgrade_cmd
from .logging_setup import init_json_logging
from .map_file import MapFile
from .settings import AppSettings

logger = logging.getLogger(__name__)


@click.group()
@click.option("--map", "map_path", type=click.Path(dir_okay=False), help="Import map document (.json or .html)")
@click.option("--base-url", help="Base URL for relative entries (default: the map's directory)")
@click.option("--system", is_flag=True, help="Use systemjs-importmap in HTML documents")
@click.option("--minify", is_flag=True, help="Write the map without whitespace")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write JSONL logs to this file")
@click.pass_context
def cli(
    ctx: click.Context,
    map_path: str | None,
    base_url: str | None,
    system: bool,
    minify: bool,
    log_file: str | None,
):
    """tracemap - manage import maps.

    Settings are read from ~/.tracemap/settings.yaml, .tracemap/settings.yaml
    and .tracemap/settings.local.yaml. Command-line options take precedence.
    """
    if log_file:
        init_json_logging(log_file)

    settings = AppSettings()
    ctx.obj = CliContext(
        map_file=MapFile(map_path or settings.get_map_file(), system=system or settings.get_system()),
        settings=settings,
        base_url=base_url or settings.get_base_url(),
        minify=minify or settings.get_minify(),
        env=settings.get_env(),
    )
    logger.debug(f"Using import map {ctx.obj.map_file.path}")


cli.add_command(resolve_cmd)
cli.add_command(show_cmd)
cli.add_command(rebase_cmd)
cli.add_command(flatten_cmd)
cli.add_command(sort_cmd)
cli.add_command(trace_cmd)
cli.add_command(install_cmd)
cli.add_command(upgrade_cmd)
cli.add_command(uninstall_cmd)
cli.add_command(env_cmd)


def main():
    cli()


if __name__ == "__main__":
    main()
