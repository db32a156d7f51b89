"""CLI-specific policy and dependency injection helpers.

Commands receive a ``CliContext`` through click's context object; it decides
which map document is used and how TraceMaps are created for it.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Coroutine
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import TypeVar

import click

from .errors import TraceMapError
from .installer.protocol import InstallOptions
from .map_file import MapFile
from .settings import AppSettings
from .tracemap import TraceMap
from .tracing.analyzer import ModuleAnalyzer
from .utils.error_format import format_error_message

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CliContext:
    """Per-invocation CLI state."""

    map_file: MapFile
    settings: AppSettings
    base_url: str | None = None
    minify: bool = False
    env: list[str] | None = None
    analyzer: ModuleAnalyzer | None = field(default=None, repr=False)

    def load(self) -> TraceMap:
        return self.map_file.load(base_url=self.base_url, env=self.env, analyzer=self.analyzer)

    def save(self, trace_map: TraceMap) -> bool:
        return self.map_file.save(trace_map, minify=self.minify)

    def install_options(self, **overrides: Any) -> InstallOptions:
        """Install options from settings plus command-line overrides."""
        return InstallOptions(
            system=self.map_file.system,
            resolutions=self.settings.get_resolutions(),
            **overrides,
        )


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a command coroutine, turning tracemap errors into CLI errors."""
    try:
        return asyncio.run(coro)
    except TraceMapError as e:
        logger.debug(f"Command failed: {e}", exc_info=True)
        raise click.ClickException(format_error_message(e)) from e


def report_errors(func):
    """Turn tracemap errors raised by a synchronous command into CLI errors."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except TraceMapError as e:
            logger.debug(f"Command failed: {e}", exc_info=True)
            raise click.ClickException(format_error_message(e)) from e

    return wrapper
