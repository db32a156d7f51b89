"""Specifier resolution against an import map.

Resolution order (first match wins):
1. Non-bare specifiers (URLs, ``/``, ``./``, ``../``) join the parent URL
2. Scopes containing the parent URL, most specific first
3. Top-level ``imports``

Within a table an exact key beats a trailing-slash prefix key, and the longest
prefix key wins among those.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import ModuleResolutionError
from .model import ImportMap
from .model import MapTable
from .urls import is_plain
from .urls import join_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MapMatch:
    """The map entry that decided a bare specifier's resolution."""

    scope: str | None  # None for the top-level imports table
    key: str
    target: str | None


def get_scope_matches(parent_url: str, scopes: dict[str, MapTable], base_url: str) -> list[tuple[str, str]]:
    """Scopes whose URL prefixes ``parent_url``, most specific first.

    Returns:
        List of (scope key, absolute scope URL) tuples
    """
    matches = []
    for scope in scopes:
        scope_url = join_url(scope, base_url)
        if parent_url.startswith(scope_url):
            matches.append((scope, scope_url))
    matches.sort(key=lambda match: len(match[1]), reverse=True)
    return matches


def get_map_match(specifier: str, table: MapTable) -> str | None:
    """Best matching key of ``table`` for ``specifier``, if any."""
    if specifier in table:
        return specifier
    best_match = None
    for key in table:
        if key.endswith("/") and specifier.startswith(key) and (best_match is None or len(key) > len(best_match)):
            best_match = key
    return best_match


def resolve_match(specifier: str, parent_url: str, import_map: ImportMap, base_url: str) -> MapMatch | None:
    """Find the map entry that resolves a bare specifier.

    Returns:
        The winning MapMatch, or None when ``specifier`` is not bare

    Raises:
        ModuleResolutionError: No scope and no top-level entry matched
    """
    if not is_plain(specifier):
        return None
    for scope, _scope_url in get_scope_matches(parent_url, import_map.scopes, base_url):
        table = import_map.scopes[scope]
        if (key := get_map_match(specifier, table)) is not None:
            return MapMatch(scope=scope, key=key, target=table[key])
    if (key := get_map_match(specifier, import_map.imports)) is not None:
        return MapMatch(scope=None, key=key, target=import_map.imports[key])
    raise ModuleResolutionError(specifier, parent_url)


def resolve(specifier: str, parent_url: str, import_map: ImportMap, base_url: str) -> str | None:
    """Resolve ``specifier`` imported from ``parent_url`` to a module URL.

    Returns:
        Absolute module URL, or None when the map blocks the specifier

    Raises:
        ModuleResolutionError: Bare specifier unknown to the map
    """
    match = resolve_match(specifier, parent_url, import_map, base_url)
    if match is None:
        return join_url(specifier, parent_url)
    if match.target is None:
        logger.debug(f"[resolve] {specifier} -> blocked ({match.scope or 'imports'})")
        return None
    resolved = join_url(match.target + specifier[len(match.key) :], base_url)
    logger.debug(f"[resolve] {specifier} -> {resolved} ({match.scope or 'imports'})")
    return resolved
