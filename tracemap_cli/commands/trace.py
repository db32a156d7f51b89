"""Dependency trace command."""

import json
import math

import click
from rich.table import Table

from ..cli_context import CliContext
from ..cli_context import run_async
from ..console import console
from ..tracing.analyzer import SourceAnalyzer
from ..tracing.tracer import TraceResult
from ..utils.error_format import escape_markup


@click.command("trace")
@click.argument("specifiers", nargs=-1, required=True)
@click.option("--system", is_flag=True, help="Trace System.register modules")
@click.option("--json", "as_json", is_flag=True, help="Print the trace as JSON")
@click.pass_obj
def trace_cmd(ctx: CliContext, specifiers: tuple[str, ...], system: bool, as_json: bool):
    """Trace the module graph of SPECIFIERS.

    Lists every reachable module dependencies-first with its size.

    Examples:

        \b
        tracemap trace react react-dom
        tracemap trace ./src/main.js --json
    """

    async def _trace() -> TraceResult:
        async with SourceAnalyzer() as analyzer:
            trace_map = ctx.load()
            if trace_map.analyzer is None:
                trace_map.analyzer = analyzer
            return await trace_map.trace(list(specifiers), system or ctx.map_file.system)

    result = run_async(_trace())

    if as_json:
        click.echo(json.dumps(trace_to_json(result), indent=2))
        return

    table = Table(title="Module trace")
    table.add_column("Order", justify="right")
    table.add_column("Module", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Dependencies")
    for url in result.postorder():
        entry = result.trace[url]
        table.add_row(
            str(entry.order),
            escape_markup(url),
            _format_size(entry.size),
            escape_markup(", ".join(entry.deps)) or "-",
        )
    console.print(table)
    console.print(f"[bold]{len(result.trace)} modules, {_format_size(result.total_size())} total[/bold]")


def trace_to_json(result: TraceResult) -> dict:
    return {
        "map": result.map,
        "trace": {
            url: {
                "deps": entry.deps,
                "size": None if math.isnan(entry.size) else entry.size,
                "order": entry.order,
            }
            for url, entry in result.trace.items()
        },
    }


def _format_size(size: float) -> str:
    if math.isnan(size):
        return "?"
    if size < 1024:
        return f"{int(size)} B"
    return f"{size / 1024:.1f} KiB"
