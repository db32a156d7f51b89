"""
Import map documents on disk.

Reads and writes import maps stored either as JSON files or inline in an
HTML document, with atomic writes and a backup of the previous version.
"""

import contextlib
import logging
import shutil
import tempfile
from collections.abc import Iterable
from pathlib import Path

from .importmap.html import find_html_import_map
from .importmap.html import replace_html_import_map
from .importmap.style import json_equals
from .importmap.urls import ensure_trailing_slash
from .tracemap import DEFAULT_ENV
from .tracemap import TraceMap
from .tracing.analyzer import ModuleAnalyzer

logger = logging.getLogger(__name__)

HTML_SUFFIXES = frozenset({".html", ".htm"})


class MapFile:
    """
    An import map document.

    Contract:
    - Inputs: path to a .json or .html document (may not exist yet)
    - Outputs: TraceMap instances, saved documents
    - Side Effects: Writes <path> and <path>.backup
    - Errors: MapFormatError for invalid JSON, HtmlImportMapError for HTML
      without an inline import map, OSError for disk issues
    """

    def __init__(self, path: Path | str, system: bool = False):
        self.path = Path(path)
        self.system = system

    @property
    def is_html(self) -> bool:
        return self.path.suffix.lower() in HTML_SUFFIXES

    def default_base_url(self) -> str:
        """Base URL of the document: the directory containing it."""
        return ensure_trailing_slash(self.path.resolve().parent.as_uri())

    def _read_source(self) -> str:
        # newline="" keeps \r\n so the document's newline style is detected
        with open(self.path, encoding="utf-8", newline="") as f:
            return f.read()

    def read_map_text(self) -> str | None:
        """Raw map text of the document, or None if there is none yet."""
        if not self.path.exists():
            return None
        source = self._read_source()
        if self.is_html:
            location = find_html_import_map(source, str(self.path), self.system)
            source = source[location.map_span[0] : location.map_span[1]]
        return source if source.strip() else None

    def load(
        self,
        base_url: str | None = None,
        env: Iterable[str] | None = None,
        analyzer: ModuleAnalyzer | None = None,
    ) -> TraceMap:
        """Load the document into a TraceMap.

        Args:
            base_url: Base URL override. Defaults to the document's directory.
            env: Environment conditions
            analyzer: Module analyzer for the TraceMap
        """
        text = self.read_map_text()
        logger.debug(f"[map] loading {self.path} ({'empty' if text is None else f'{len(text)} chars'})")
        return TraceMap(
            base_url or self.default_base_url(),
            text,
            env=env or DEFAULT_ENV,
            analyzer=analyzer,
            file_name=str(self.path),
        )

    def save(self, trace_map: TraceMap, minify: bool = False) -> bool:
        """Write ``trace_map`` back to the document.

        Returns:
            True if the map content changed, False otherwise
        """
        map_text = trace_map.to_string(minify)
        existing = self.read_map_text()
        changed = existing is None or not json_equals(existing, map_text)
        if existing == map_text:
            logger.debug(f"[map] {self.path} unchanged")
            return False

        if self.is_html:
            source = self._read_source()
            location = find_html_import_map(source, str(self.path), self.system)
            content = replace_html_import_map(source, location, map_text)
        else:
            content = map_text

        self._write_atomic(content)
        logger.info(f"[map] saved {self.path}")
        return changed

    def _write_atomic(self, content: str) -> None:
        """Write with backup and atomic rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        backup_file = self.path.with_name(self.path.name + ".backup")

        # Create backup if file exists
        if self.path.exists():
            try:
                shutil.copy2(self.path, backup_file)
            except OSError as e:
                logger.warning(f"Failed to create backup: {e}")

        # Write to temp file first (atomic write pattern)
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=self.path.parent,
            prefix=f"{self.path.stem}_",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
            newline="",
        ) as tmp_file:
            temp_path = Path(tmp_file.name)
            try:
                tmp_file.write(content)
                tmp_file.flush()
            except Exception as e:
                with contextlib.suppress(OSError):
                    temp_path.unlink()
                raise OSError(f"Failed to save import map: {e}") from e

        temp_path.replace(self.path)
