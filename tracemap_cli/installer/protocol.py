"""Installer contracts used by the TraceMap install orchestration.

The orchestrator only knows these protocols. Where packages come from (a
registry, a CDN, explicit URLs) is installer policy.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING
from typing import Protocol

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

if TYPE_CHECKING:
    from ..tracemap import TraceMap


class InstallOptions(BaseModel):
    """Options for one install-family operation."""

    model_config = ConfigDict(frozen=True)

    lock: bool = Field(default=False, description="Resolve only against existing pins")
    clean: bool = Field(default=False, description="Prune entries not reached by this run")
    force: bool = Field(default=False, description="Override existing pins")
    system: bool = Field(default=False, description="Trace as System.register modules")
    depcache: bool = Field(default=False, description="Write depcache entries for traced modules")
    resolutions: dict[str, str] = Field(default_factory=dict, description="Package name to target URL")


class InstallTarget(BaseModel):
    """Install ``target`` under the top-level name ``name``."""

    model_config = ConfigDict(frozen=True)

    name: str
    target: str


class PackageInstaller(Protocol):
    """One install run against a TraceMap.

    Created fresh for every orchestrated operation; ``complete()`` finalizes
    the run by writing results into the map's tables.
    """

    async def install(self, target: str, name: str | None = None) -> None:
        """Install a package target, optionally under an explicit name."""
        ...

    async def trace_install(self, specifier: str, parent_url: str, system: bool = False) -> None:
        """Install whatever ``specifier`` needs, tracing from ``parent_url``."""
        ...

    def complete(self) -> None:
        """Write the run's results into the map."""
        ...


InstallerFactory = Callable[["TraceMap", InstallOptions], PackageInstaller]
