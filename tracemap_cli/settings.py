"""Settings management for tracemap.

Philosophy: Simple, scope-aware YAML settings. Every key is optional; CLI
options override whatever the merged settings say.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import Literal

import yaml

logger = logging.getLogger(__name__)

Scope = Literal["local", "project", "global"]

DEFAULT_MAP_FILE = "importmap.json"


@dataclass
class SettingsPaths:
    """Standard paths for settings files."""

    global_settings: Path
    project_settings: Path
    local_settings: Path

    @classmethod
    def default(cls) -> SettingsPaths:
        """Create default paths for the standard tracemap layout."""
        return cls(
            global_settings=Path.home() / ".tracemap" / "settings.yaml",
            project_settings=Path.cwd() / ".tracemap" / "settings.yaml",
            local_settings=Path.cwd() / ".tracemap" / "settings.local.yaml",
        )


class AppSettings:
    """Simple settings manager with scope-aware merging.

    Scope priority (most specific wins):
    1. local (.tracemap/settings.local.yaml) - gitignored, machine-specific
    2. project (.tracemap/settings.yaml) - committed, team-shared
    3. global (~/.tracemap/settings.yaml) - user defaults

    Usage:
        settings = AppSettings()
        map_file = settings.get_map_file()
        settings.set_value("env", ["browser", "development"], scope="project")
    """

    def __init__(self, paths: SettingsPaths | None = None) -> None:
        self.paths = paths or SettingsPaths.default()

    def get_merged_settings(self) -> dict[str, Any]:
        """Load and merge settings from all scopes."""
        result: dict[str, Any] = {}
        for path in [self.paths.global_settings, self.paths.project_settings, self.paths.local_settings]:
            if path.exists():
                try:
                    with open(path) as f:
                        content = yaml.safe_load(f) or {}
                    result = self._deep_merge(result, content)
                except (OSError, yaml.YAMLError) as e:
                    logger.warning(f"Skipping malformed settings file {path}: {e}")
        return result

    # ----- Map settings -----

    def get_map_file(self) -> str:
        return self.get_merged_settings().get("map_file") or DEFAULT_MAP_FILE

    def get_base_url(self) -> str | None:
        return self.get_merged_settings().get("base_url")

    def get_env(self) -> list[str] | None:
        env = self.get_merged_settings().get("env")
        return list(env) if env else None

    def get_system(self) -> bool:
        return bool(self.get_merged_settings().get("system", False))

    def get_minify(self) -> bool:
        return bool(self.get_merged_settings().get("minify", False))

    def get_resolutions(self) -> dict[str, str]:
        return dict(self.get_merged_settings().get("resolutions") or {})

    # ----- Generic access -----

    def set_value(self, key: str, value: Any, scope: Scope = "project") -> None:
        """Set a setting at specified scope."""
        self._update_setting(key, value, scope)

    def remove_value(self, key: str, scope: Scope = "project") -> None:
        """Remove a setting from specified scope."""
        self._remove_setting(key, scope)

    # ----- Scope utilities -----

    def _get_scope_path(self, scope: Scope) -> Path:
        """Get settings file path for scope."""
        return {
            "local": self.paths.local_settings,
            "project": self.paths.project_settings,
            "global": self.paths.global_settings,
        }[scope]

    def _read_scope(self, scope: Scope) -> dict[str, Any]:
        """Read settings from a specific scope."""
        path = self._get_scope_path(scope)
        if not path.exists():
            return {}
        with open(path) as f:
            return yaml.safe_load(f) or {}

    def _write_scope(self, scope: Scope, settings: dict[str, Any]) -> None:
        """Write settings to a specific scope."""
        path = self._get_scope_path(scope)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(settings, f, default_flow_style=False)

    def _update_setting(self, key: str, value: Any, scope: Scope) -> None:
        """Update a single setting at specified scope."""
        settings = self._read_scope(scope)
        settings[key] = value
        self._write_scope(scope, settings)

    def _remove_setting(self, key: str, scope: Scope) -> None:
        """Remove a setting from specified scope."""
        settings = self._read_scope(scope)
        if key in settings:
            del settings[key]
            self._write_scope(scope, settings)

    def _deep_merge(self, base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dicts, overlay wins."""
        result = base.copy()
        for key, value in overlay.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
