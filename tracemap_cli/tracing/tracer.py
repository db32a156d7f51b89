"""Dependency tracing over a module graph.

Tracing runs in two phases:

1. Discovery: an explicit worklist of in-flight analyses. Each resolved URL
   gets a placeholder entry in the trace the moment it is first seen, before
   its analysis is requested, so every module is analyzed exactly once and
   cycles cannot re-enter. Sibling analyses run concurrently.
2. Finalization: an iterative depth-first pass over the finished graph assigns
   postorder ranks, so a module is ordered only after all of its non-cyclic
   dependencies.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field

from .analyzer import ModuleAnalyzer

logger = logging.getLogger(__name__)

# (specifier, parent URL) -> resolved URL, or None when blocked
Resolver = Callable[[str, str], str | None]

_ON_STACK = 1
_FINALIZED = 2


@dataclass
class TraceEntry:
    """One traced module."""

    deps: dict[str, str | None] = field(default_factory=dict)
    size: float = math.nan
    order: int | None = None


Trace = dict[str, TraceEntry]


@dataclass
class TraceResult:
    """Outcome of a trace.

    Attributes:
        map: How each entry specifier resolved
        trace: Every reached module by resolved URL
    """

    map: dict[str, str | None]
    trace: Trace

    def postorder(self) -> list[str]:
        """Module URLs, dependencies first."""
        ordered = [url for url, entry in self.trace.items() if entry.order is not None]
        return sorted(ordered, key=lambda url: self.trace[url].order)

    def total_size(self) -> float:
        return sum(entry.size for entry in self.trace.values() if not math.isnan(entry.size))


class DependencyTracer:
    """Walks the module graph reachable from a set of entry specifiers."""

    def __init__(self, resolve: Resolver, analyzer: ModuleAnalyzer, system: bool = False):
        self._resolve = resolve
        self._analyzer = analyzer
        self.system = system

    async def trace(self, specifiers: Iterable[str], parent_url: str) -> TraceResult:
        """Trace ``specifiers`` imported from ``parent_url``.

        Raises:
            ModuleResolutionError: A bare specifier in the graph is unknown
            AnalysisError: A module could not be analyzed
        """
        trace: Trace = {}
        entry_map: dict[str, str | None] = {}
        pending: dict[asyncio.Future, str] = {}

        def visit(specifier: str, parent: str, deps: dict[str, str | None]) -> None:
            resolved = self._resolve(specifier, parent)
            deps[specifier] = resolved
            if resolved is None or resolved in trace:
                return
            trace[resolved] = TraceEntry()
            task = asyncio.ensure_future(self._analyzer.analyze(resolved, parent, self.system))
            pending[task] = resolved

        try:
            for specifier in specifiers:
                visit(specifier, parent_url, entry_map)

            while pending:
                done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    url = pending.pop(task)
                    analysis = task.result()
                    entry = trace[url]
                    entry.size = analysis.size
                    for dep in analysis.deps:
                        visit(dep, url, entry.deps)
        finally:
            if pending:
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

        _assign_postorder(entry_map, trace)
        logger.debug(f"[trace] traced {len(trace)} modules from {len(entry_map)} entries")
        return TraceResult(map=entry_map, trace=trace)


def _assign_postorder(entry_map: dict[str, str | None], trace: Trace) -> None:
    """Number modules so every dependency ranks below its dependents.

    Edges back to a module still on the stack close a cycle and are skipped.
    """
    order = 0
    state: dict[str, int] = {}
    for root in entry_map.values():
        if root is None or root in state:
            continue
        state[root] = _ON_STACK
        stack = [(root, iter(trace[root].deps.values()))]
        while stack:
            url, children = stack[-1]
            for child in children:
                if child is not None and child not in state:
                    state[child] = _ON_STACK
                    stack.append((child, iter(trace[child].deps.values())))
                    break
            else:
                stack.pop()
                trace[url].order = order
                order += 1
                state[url] = _FINALIZED
