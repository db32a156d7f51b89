"""Import map inspection and structural commands.

Commands that read or reshape the map document without installing anything.
"""

import logging

import click

from ..cli_context import CliContext
from ..cli_context import report_errors
from ..console import console
from ..utils.error_format import escape_markup

logger = logging.getLogger(__name__)


@click.command("resolve")
@click.argument("specifier")
@click.option("--parent", "parent_url", help="URL of the importing module (default: base URL)")
@click.pass_obj
@report_errors
def resolve_cmd(ctx: CliContext, specifier: str, parent_url: str | None):
    """Resolve SPECIFIER through the import map.

    Examples:

        \b
        tracemap resolve react
        tracemap resolve lodash/map.js --parent https://example.com/app/main.js
    """
    trace_map = ctx.load()
    resolved = trace_map.resolve(specifier, parent_url)
    if resolved is None:
        console.print(f"[yellow]{escape_markup(specifier)} is blocked by the import map[/yellow]")
        return
    click.echo(resolved)


@click.command("show")
@click.option("--minify", is_flag=True, help="Print without whitespace")
@click.pass_obj
@report_errors
def show_cmd(ctx: CliContext, minify: bool):
    """Print the import map."""
    trace_map = ctx.load()
    click.echo(trace_map.to_string(minify or ctx.minify), nl=False)


@click.command("rebase")
@click.argument("new_base_url", required=False)
@click.pass_obj
@report_errors
def rebase_cmd(ctx: CliContext, new_base_url: str | None):
    """Rewrite relative entries against NEW_BASE_URL.

    Every entry keeps resolving to the same absolute URL. Without an
    argument, entries are normalized against the current base URL.
    """
    trace_map = ctx.load()
    trace_map.rebase(new_base_url)
    _save(ctx, trace_map)
    click.echo(f"✓ Rebased to {trace_map.base_url}")


@click.command("flatten")
@click.pass_obj
@report_errors
def flatten_cmd(ctx: CliContext):
    """Hoist scope entries into origin-root scopes where they agree."""
    trace_map = ctx.load()
    scopes_before = len(trace_map.map.scopes)
    trace_map.flatten()
    _save(ctx, trace_map)
    click.echo(f"✓ Flattened scopes: {scopes_before} → {len(trace_map.map.scopes)}")


@click.command("sort")
@click.pass_obj
@report_errors
def sort_cmd(ctx: CliContext):
    """Sort imports, scopes and depcache keys alphabetically."""
    trace_map = ctx.load()
    trace_map.sort()
    _save(ctx, trace_map)
    click.echo("✓ Sorted import map")


def _save(ctx: CliContext, trace_map) -> None:
    if ctx.save(trace_map):
        logger.info(f"Updated {ctx.map_file.path}")
    else:
        click.echo("  (no changes)")
