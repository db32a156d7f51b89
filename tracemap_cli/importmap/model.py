"""Import map data model.

The three tables are plain dicts, so insertion order is kept end to end and
only changes when a caller explicitly sorts.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel
from pydantic import Field

MapTable = dict[str, str | None]


class ImportMap(BaseModel):
    """An import map: top-level imports, per-prefix scopes and a depcache."""

    imports: MapTable = Field(default_factory=dict, description="Bare specifier to URL (None blocks)")
    scopes: dict[str, MapTable] = Field(default_factory=dict, description="Scope prefix URL to imports table")
    depcache: dict[str, list[str]] = Field(default_factory=dict, description="Module URL to its dependencies")

    def to_json(self) -> dict[str, Any]:
        """Serialization-ready snapshot that leaves out empty tables."""
        out: dict[str, Any] = {}
        if self.imports:
            out["imports"] = dict(self.imports)
        if self.scopes:
            out["scopes"] = {scope: dict(table) for scope, table in self.scopes.items()}
        if self.depcache:
            out["depcache"] = {url: list(deps) for url, deps in self.depcache.items()}
        return out


def alphabetize(table: dict[str, Any]) -> dict[str, Any]:
    return {key: table[key] for key in sorted(table)}


def sort_map(import_map: ImportMap) -> ImportMap:
    """Return a copy with every key table sorted.

    Depcache keys are sorted; the dependency lists keep their order.
    """
    return ImportMap(
        imports=alphabetize(import_map.imports),
        scopes={scope: alphabetize(import_map.scopes[scope]) for scope in sorted(import_map.scopes)},
        depcache={url: list(import_map.depcache[url]) for url in sorted(import_map.depcache)},
    )
