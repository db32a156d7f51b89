"""Install-family commands.

Each command loads the map document, runs one orchestrated install operation
against it and writes the result back.
"""

import logging
from collections.abc import Awaitable
from collections.abc import Callable

import click

from ..cli_context import CliContext
from ..cli_context import run_async
from ..installer.protocol import InstallTarget
from ..tracemap import TraceMap
from ..tracing.analyzer import SourceAnalyzer

logger = logging.getLogger(__name__)


def parse_package(arg: str) -> str | InstallTarget:
    """Parse ``name=url`` into an InstallTarget; anything else is a name."""
    if "=" in arg:
        name, target = arg.split("=", 1)
        if not name or not target:
            raise click.BadParameter(f"Expected NAME=URL, got '{arg}'")
        return InstallTarget(name=name, target=target)
    return arg


def _run(ctx: CliContext, operation: Callable[[TraceMap], Awaitable[TraceMap]]) -> bool:
    """Load, run ``operation`` with a live analyzer, save."""

    async def _operation() -> TraceMap:
        async with SourceAnalyzer() as analyzer:
            trace_map = ctx.load()
            if trace_map.analyzer is None:
                trace_map.analyzer = analyzer
            return await operation(trace_map)

    trace_map = run_async(_operation())
    return ctx.save(trace_map)


@click.command("install")
@click.argument("packages", nargs=-1, required=True)
@click.option("--lock", is_flag=True, help="Keep existing pins")
@click.option("--force", is_flag=True, help="Ignore existing pins when looking up targets")
@click.option("--depcache", is_flag=True, help="Write depcache entries for traced modules")
@click.pass_obj
def install_cmd(ctx: CliContext, packages: tuple[str, ...], lock: bool, force: bool, depcache: bool):
    """Install PACKAGES into the import map.

    Each package is NAME=URL, or a NAME with a configured resolution.

    Examples:

        \b
        tracemap install lodash=https://cdn.example/lodash@4/lodash.js
        tracemap install react --depcache
    """
    targets = [parse_package(pkg) for pkg in packages]
    options = ctx.install_options(lock=lock, force=force, depcache=depcache)
    changed = _run(ctx, lambda trace_map: trace_map.install(targets, options))
    click.echo(f"✓ Installed {len(targets)} package(s)" + ("" if changed else " (no changes)"))


@click.command("upgrade")
@click.argument("packages", nargs=-1)
@click.pass_obj
def upgrade_cmd(ctx: CliContext, packages: tuple[str, ...]):
    """Reinstall PACKAGES (default: all top-level imports)."""
    names = list(packages) or None
    changed = _run(ctx, lambda trace_map: trace_map.upgrade(names, ctx.install_options()))
    click.echo("✓ Upgraded" + ("" if changed else " (no changes)"))


@click.command("uninstall")
@click.argument("packages", nargs=-1, required=True)
@click.option("--force", is_flag=True, help="Override existing pins while re-tracing")
@click.pass_obj
def uninstall_cmd(ctx: CliContext, packages: tuple[str, ...], force: bool):
    """Remove PACKAGES and prune entries only they needed."""
    _run(ctx, lambda trace_map: trace_map.uninstall(list(packages), options=ctx.install_options(force=force)))
    click.echo(f"✓ Uninstalled {', '.join(packages)}")


@click.command("env")
@click.argument("conditions", nargs=-1, required=True)
@click.pass_obj
def env_cmd(ctx: CliContext, conditions: tuple[str, ...]):
    """Switch environment CONDITIONS and re-trace the whole map.

    Example:

        \b
        tracemap env browser development
    """
    _run(ctx, lambda trace_map: trace_map.install_env(conditions, ctx.install_options()))
    click.echo(f"✓ Environment: {', '.join(conditions)}")
