"""URL-pinning installer.

Installs packages by pinning top-level imports to explicit target URLs, then
traces them to record what the map is actually used for.

Per-run policy:
- Targets come from an explicit ``name=url`` pair, ``options.resolutions``,
  or the existing pin (unless ``force``)
- Lock mode never changes an existing pin
- No registry lookups and no version selection
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import InstallError
from ..importmap.model import ImportMap
from ..importmap.urls import base_url_relative
from ..importmap.urls import get_package_name
from ..importmap.urls import join_url
from ..tracing.analyzer import SourceAnalyzer
from ..tracing.tracer import DependencyTracer
from ..tracing.tracer import Trace
from ..tracing.tracer import TraceResult
from .protocol import InstallOptions

if TYPE_CHECKING:
    from ..tracemap import TraceMap

logger = logging.getLogger(__name__)


class LocalInstaller:
    """Installer bound to one TraceMap for one install run."""

    def __init__(self, trace_map: TraceMap, options: InstallOptions):
        self.trace_map = trace_map
        self.options = options
        self.traced: Trace = {}
        # (scope or None for imports, key) of every map entry used while tracing
        self.used_entries: set[tuple[str | None, str]] = set()

    async def install(self, target: str, name: str | None = None) -> None:
        """Pin ``name`` to ``target`` and trace it.

        Without a name, ``target`` is a package name whose target is looked
        up in the resolutions or the existing pin.

        Raises:
            InstallError: No target known for a package name
            InvalidScopeError: Malformed ``@scope`` package name
        """
        base_url = self.trace_map.base_url
        if name is None:
            name = target
            target = self._lookup_target(name)
        get_package_name(name, base_url)

        current = self.trace_map.map.imports.get(name)
        if self.options.lock and current is not None:
            logger.debug(f"[install] {name} locked at {current}")
        else:
            pin = target if target.startswith("/") else base_url_relative(join_url(target, base_url), base_url)
            self.trace_map.extend(ImportMap(imports={name: pin}))
            logger.info(f"[install] {name} -> {pin}")

        await self.trace_install(name, base_url, self.options.system)

    def _lookup_target(self, name: str) -> str:
        if name in self.options.resolutions:
            return self.options.resolutions[name]
        current = self.trace_map.map.imports.get(name)
        if current is not None and not self.options.force:
            return current
        raise InstallError(f"No install target known for {name}. Install it as {name}=<url> or add a resolution for it.")

    async def trace_install(self, specifier: str, parent_url: str, system: bool = False) -> None:
        """Trace ``specifier``, recording the modules and map entries it uses."""

        def resolve_recording(spec: str, parent: str) -> str | None:
            match = self.trace_map.resolve_match(spec, parent)
            if match is not None:
                self.used_entries.add((match.scope, match.key))
            return self.trace_map.resolve(spec, parent)

        result = await self._trace(resolve_recording, specifier, parent_url, system)
        self.traced.update(result.trace)

    async def _trace(self, resolver, specifier: str, parent_url: str, system: bool) -> TraceResult:
        analyzer = self.trace_map.analyzer
        if analyzer is not None:
            return await DependencyTracer(resolver, analyzer, system).trace([specifier], parent_url)
        async with SourceAnalyzer() as owned:
            return await DependencyTracer(resolver, owned, system).trace([specifier], parent_url)

    def complete(self) -> None:
        """Write depcache entries and prune unused entries into the map."""
        base_url = self.trace_map.base_url
        import_map = self.trace_map.map

        if self.options.depcache:
            for url, entry in self.traced.items():
                deps = [specifier for specifier, resolved in entry.deps.items() if resolved is not None]
                if deps:
                    import_map.depcache[base_url_relative(url, base_url)] = deps

        if self.options.clean:
            scopes = {}
            for scope, table in import_map.scopes.items():
                kept = {key: target for key, target in table.items() if (scope, key) in self.used_entries}
                if kept:
                    scopes[scope] = kept
            import_map.scopes = scopes
            import_map.depcache = {
                url: deps for url, deps in import_map.depcache.items() if join_url(url, base_url) in self.traced
            }

        self.trace_map.set(import_map)
        logger.info(f"[install] complete: {len(self.traced)} modules traced")
