"""TraceMap - an import map store with resolution, tracing and installs.

A TraceMap owns one import map together with the base URL it is relative to,
the JSON style it was read with and the environment conditions. Structural
operations (extend, rebase, flatten, sort) mutate it synchronously.
Install-family operations are async and serialized by a single-slot gate so
two of them never mutate the same map concurrently.

Resolution and tracing read the live tables and are not gated. Callers must
not run them while an install on the same TraceMap is in flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from collections.abc import Iterable
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from .errors import MapFormatError
from .errors import OperationError
from .importmap.model import ImportMap
from .importmap.model import alphabetize
from .importmap.model import sort_map
from .importmap.resolver import MapMatch
from .importmap.resolver import resolve
from .importmap.resolver import resolve_match
from .importmap.style import DEFAULT_STYLE
from .importmap.style import JsonStyle
from .importmap.style import parse_styled
from .importmap.style import stringify_styled
from .importmap.urls import base_url_relative
from .importmap.urls import default_base_url
from .importmap.urls import ensure_trailing_slash
from .importmap.urls import is_plain
from .importmap.urls import join_url
from .importmap.urls import url_origin
from .installer.local import LocalInstaller
from .installer.protocol import InstallerFactory
from .installer.protocol import InstallOptions
from .installer.protocol import InstallTarget
from .installer.protocol import PackageInstaller
from .tracing.analyzer import ModuleAnalyzer
from .tracing.analyzer import SourceAnalyzer
from .tracing.tracer import DependencyTracer
from .tracing.tracer import TraceResult

logger = logging.getLogger(__name__)

DEFAULT_ENV = ("browser", "production")


def coerce_import_map(value: ImportMap | dict[str, Any], file_name: str | None = None) -> ImportMap:
    """Validate a parsed document as an import map.

    Raises:
        MapFormatError: Document does not have the import map shape
    """
    if isinstance(value, ImportMap):
        return value
    try:
        return ImportMap.model_validate(value)
    except ValidationError as e:
        where = f" in {file_name}" if file_name else ""
        raise MapFormatError(f"Invalid import map{where}: {e}", file_name) from e


class TraceMap:
    """Import map store and install orchestrator.

    Usage:
        trace_map = TraceMap("https://example.com/app/", '{"imports": {"a": "./a.js"}}')
        trace_map.resolve("a")  # "https://example.com/app/a.js"
        result = await trace_map.trace(["a"])
    """

    def __init__(
        self,
        base_url: str | None = None,
        import_map: ImportMap | dict[str, Any] | str | None = None,
        *,
        env: Iterable[str] = DEFAULT_ENV,
        analyzer: ModuleAnalyzer | None = None,
        installer_factory: InstallerFactory | None = None,
        file_name: str | None = None,
    ):
        """Initialize a TraceMap.

        Args:
            base_url: URL all relative entries are anchored at. Defaults to
                the current working directory.
            import_map: Initial map as a model, a parsed dict or JSON text.
                The style of JSON text is kept for serialization.
            env: Environment conditions
            analyzer: Module analyzer for tracing. If None, a SourceAnalyzer
                is opened per trace.
            installer_factory: Builds the installer for each install-family
                operation. Defaults to LocalInstaller.
            file_name: Name used in parse errors
        """
        self._base_url = default_base_url()
        if base_url:
            self._base_url = ensure_trailing_slash(join_url(base_url, self._base_url))
        self._map = ImportMap()
        self._style = DEFAULT_STYLE
        self._env = tuple(env)
        self._gate = asyncio.Lock()
        self.analyzer = analyzer
        self._installer_factory: InstallerFactory = installer_factory or LocalInstaller

        if isinstance(import_map, str):
            import_map, self._style = parse_styled(import_map, file_name)
        if import_map is not None:
            self.extend(coerce_import_map(import_map, file_name), override_scopes=True)

    # ----- Properties -----

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def env(self) -> tuple[str, ...]:
        return self._env

    @property
    def style(self) -> JsonStyle:
        return self._style

    @property
    def map(self) -> ImportMap:
        """Deep copy of the current tables."""
        return self._map.model_copy(deep=True)

    # ----- Structural mutation -----

    def set(self, import_map: ImportMap) -> TraceMap:
        """Replace all three tables."""
        self._map = import_map.model_copy(deep=True)
        return self

    def extend(self, import_map: ImportMap, override_scopes: bool = False) -> TraceMap:
        """Merge ``import_map`` into the tables.

        Args:
            import_map: Entries to merge
            override_scopes: Replace whole scope tables instead of merging
                their entries. Used for the initial load.
        """
        self._map.imports.update(import_map.imports)
        if override_scopes:
            self._map.scopes.update({scope: dict(table) for scope, table in import_map.scopes.items()})
        else:
            for scope, table in import_map.scopes.items():
                self._map.scopes.setdefault(scope, {}).update(table)
        self._map.depcache.update({url: list(deps) for url, deps in import_map.depcache.items()})
        return self

    def rebase(self, new_base_url: str | None = None) -> TraceMap:
        """Move the base URL, keeping every entry's absolute target.

        Root-relative entries (``/x.js``) are left alone while the origin
        stays the same and become absolute when it changes. Bare depcache
        specifiers are never touched.
        """
        old_base_url = self._base_url
        self._base_url = ensure_trailing_slash(join_url(new_base_url or old_base_url, default_base_url()))
        same_origin = url_origin(old_base_url) == url_origin(self._base_url)

        def rebased(url: str) -> str:
            if url.startswith("/") and same_origin:
                return url
            return base_url_relative(join_url(url, old_base_url), self._base_url)

        def rebased_table(table: dict[str, str | None]) -> dict[str, str | None]:
            return {name: None if target is None else rebased(target) for name, target in table.items()}

        self._map.imports = rebased_table(self._map.imports)
        self._map.scopes = {rebased(scope): rebased_table(table) for scope, table in self._map.scopes.items()}
        self._map.depcache = {
            rebased(url): [dep if is_plain(dep) else rebased(dep) for dep in deps]
            for url, deps in self._map.depcache.items()
        }
        logger.debug(f"[map] rebased {old_base_url} -> {self._base_url}")
        return self

    def flatten(self) -> TraceMap:
        """Hoist scope entries into their origin-root scope where they agree.

        The root scope is ``/`` for the base URL's origin and ``<origin>/``
        for other origins. A scope whose entries all hoist is removed.
        ``file:`` scopes are never flattened. Empty depcache entries are
        pruned.
        """
        base_origin = url_origin(self._base_url)
        for scope in list(self._map.scopes):
            scope_url = join_url(scope, self._base_url)
            if scope_url.startswith("file:"):
                continue
            origin = url_origin(scope_url)
            root_key = "/" if origin == base_origin else origin + "/"
            if scope == root_key or join_url(root_key, self._base_url) == scope_url:
                continue

            root = self._map.scopes.get(root_key, {})
            table = self._map.scopes[scope]
            flattened_all = True
            hoisted = False
            for name in list(table):
                target = table[name]
                if target is None:
                    can_hoist = root.get(name) is None
                else:
                    existing = root.get(name, target)
                    can_hoist = existing is not None and join_url(existing, self._base_url) == join_url(target, self._base_url)
                if not can_hoist:
                    flattened_all = False
                    continue
                root[name] = None if target is None else base_url_relative(join_url(target, self._base_url), self._base_url)
                del table[name]
                hoisted = True

            if hoisted:
                self._map.scopes[root_key] = alphabetize(root)
            if flattened_all:
                del self._map.scopes[scope]

        self._map.depcache = {url: deps for url, deps in self._map.depcache.items() if deps}
        return self

    def sort(self) -> TraceMap:
        """Alphabetize all key tables (depcache lists keep their order)."""
        self._map = sort_map(self._map)
        return self

    # ----- Serialization -----

    def to_json(self) -> dict[str, Any]:
        return self._map.to_json()

    def to_string(self, minify: bool = False) -> str:
        """Serialize with the style captured at parse time."""
        style = self._style.minified() if minify else self._style
        return stringify_styled(self._map.to_json(), style)

    def __str__(self) -> str:
        return self.to_string()

    # ----- Resolution and tracing -----

    def resolve(self, specifier: str, parent_url: str | None = None) -> str | None:
        """Resolve ``specifier`` imported from ``parent_url`` (default: base URL).

        Raises:
            ModuleResolutionError: Bare specifier unknown to the map
        """
        return resolve(specifier, parent_url or self._base_url, self._map, self._base_url)

    def resolve_match(self, specifier: str, parent_url: str | None = None) -> MapMatch | None:
        """The map entry that resolves ``specifier``; None for non-bare specifiers."""
        return resolve_match(specifier, parent_url or self._base_url, self._map, self._base_url)

    async def trace(self, specifiers: str | Sequence[str], system: bool = False) -> TraceResult:
        """Trace the module graph of ``specifiers`` from the base URL."""
        if isinstance(specifiers, str):
            specifiers = [specifiers]
        if self.analyzer is not None:
            return await DependencyTracer(self.resolve, self.analyzer, system).trace(specifiers, self._base_url)
        async with SourceAnalyzer() as analyzer:
            return await DependencyTracer(self.resolve, analyzer, system).trace(specifiers, self._base_url)

    # ----- Install orchestration (serialized by the gate) -----

    async def trace_install(
        self, modules: str | Sequence[str] | None = None, options: InstallOptions | None = None
    ) -> TraceMap:
        """Install what ``modules`` need by tracing them.

        With no modules, re-traces every top-level import; lock mode is then
        on unless ``options`` sets it explicitly.
        """
        if isinstance(modules, str):
            modules = [modules]
        options = options or InstallOptions()
        async with self._gate:
            if modules is None:
                modules = list(self._map.imports)
                if "lock" not in options.model_fields_set:
                    options = options.model_copy(update={"lock": True})
            await self._run_trace_install(modules, options)
        return self

    async def lock_install(self, options: InstallOptions | None = None) -> TraceMap:
        """Re-trace every top-level import against the existing pins."""
        options = (options or InstallOptions()).model_copy(update={"lock": True})
        async with self._gate:
            await self._run_trace_install(list(self._map.imports), options)
        return self

    async def install(
        self, packages: str | InstallTarget | Sequence[str | InstallTarget], options: InstallOptions | None = None
    ) -> TraceMap:
        """Install packages by name or as explicit name/target pairs."""
        if isinstance(packages, (str, InstallTarget)):
            packages = [packages]
        async with self._gate:
            await self._run_install(packages, options or InstallOptions())
        return self

    async def upgrade(self, packages: str | Sequence[str] | None = None, options: InstallOptions | None = None) -> TraceMap:
        """Reinstall top-level packages from scratch.

        Raises:
            OperationError: No packages, or a package is not a top-level import
        """
        if isinstance(packages, str):
            packages = [packages]
        async with self._gate:
            if packages is None:
                packages = list(self._map.imports)
            if not packages:
                raise OperationError("No packages to upgrade.")
            options = options or InstallOptions()
            removed = self._remove_top_level(packages, "upgrade")
            # Without a resolution the removed pin is the only known target
            targets = [
                pkg if pkg in options.resolutions else InstallTarget(name=pkg, target=removed[pkg]) for pkg in packages
            ]
            await self._run_install(targets, options)
        return self

    async def uninstall(
        self, packages: str | Sequence[str], force: bool = False, options: InstallOptions | None = None
    ) -> TraceMap:
        """Remove top-level packages and prune what only they needed.

        The remaining imports are re-traced with ``options`` in lock and clean
        mode.

        Raises:
            OperationError: No packages, or a package is not a top-level import
        """
        if isinstance(packages, str):
            packages = [packages]
        options = _clean_options(options, force)
        async with self._gate:
            if not packages:
                raise OperationError("No packages provided to uninstall.")
            self._remove_top_level(packages, "uninstall")
            await self._run_trace_install(list(self._map.imports), options)
        return self

    async def install_env(self, env: Iterable[str], options: InstallOptions | None = None) -> TraceMap:
        """Switch environment conditions and recompute the whole map."""
        options = _clean_options(options)
        async with self._gate:
            self._env = tuple(env)
            logger.info(f"[install] environment -> {', '.join(self._env)}")
            await self._run_trace_install(list(self._map.imports), options)
        return self

    def _remove_top_level(self, packages: Sequence[str], operation: str) -> dict[str, str]:
        """Delete top-level pins, returning their previous targets."""
        for pkg in packages:
            if self._map.imports.get(pkg) is None:
                raise OperationError(f'Cannot {operation} package {pkg} as it is not a top-level "imports" entry.')
        return {pkg: self._map.imports.pop(pkg) for pkg in packages}

    def _create_installer(self, options: InstallOptions) -> PackageInstaller:
        return self._installer_factory(self, options)

    async def _run_trace_install(self, modules: Sequence[str], options: InstallOptions) -> None:
        logger.info(f"[install] trace install of {len(modules)} modules (lock={options.lock}, clean={options.clean})")
        installer = self._create_installer(options)
        await _run_all(installer.trace_install(module, self._base_url, options.system) for module in modules)
        installer.complete()

    async def _run_install(self, packages: Sequence[str | InstallTarget], options: InstallOptions) -> None:
        logger.info(f"[install] installing {len(packages)} packages")
        installer = self._create_installer(options)
        await _run_all(
            installer.install(pkg) if isinstance(pkg, str) else installer.install(pkg.target, pkg.name)
            for pkg in packages
        )
        installer.complete()

    def __repr__(self) -> str:
        return f"TraceMap({self._base_url}, {len(self._map.imports)} imports, {len(self._map.scopes)} scopes)"


def _clean_options(options: InstallOptions | None, force: bool = False) -> InstallOptions:
    update = {"lock": True, "clean": True}
    if force:
        update["force"] = True
    return (options or InstallOptions()).model_copy(update=update)


async def _run_all(coros: Iterable[Coroutine[Any, Any, Any]]) -> None:
    """Run ``coros`` concurrently; on the first failure cancel and await the rest.

    No package task outlives the operation that started it, so the gate is
    only released once the installer is idle.
    """
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
