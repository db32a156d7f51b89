"""CLI commands for tracemap."""

from .install import env_cmd
from .install import install_cmd
from .install import uninstall_cmd
from .install import upgrade_cmd
from .map import flatten_cmd
from .map import rebase_cmd
from .map import resolve_cmd
from .map import show_cmd
from .map import sort_cmd
from .trace import trace_cmd

__all__ = [
    "resolve_cmd",
    "show_cmd",
    "rebase_cmd",
    "flatten_cmd",
    "sort_cmd",
    "trace_cmd",
    "install_cmd",
    "upgrade_cmd",
    "uninstall_cmd",
    "env_cmd",
]
