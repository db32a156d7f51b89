"""Module analysis - dependency specifiers and byte size of one module.

The tracer only depends on the ``ModuleAnalyzer`` protocol. ``SourceAnalyzer``
is the default implementation: it loads ``file:`` URLs from disk and
``http(s)`` URLs with httpx, then scans the source text for import specifiers.
It is a lexical scan, not a parser; specifiers built at runtime are not seen.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit
from urllib.request import url2pathname

import httpx

from ..errors import AnalysisError

logger = logging.getLogger(__name__)

# Strings are matched so that comment markers inside them are left alone
_STRING_OR_COMMENT_RE = re.compile(
    r"""("(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*'|`(?:\\.|[^`\\])*`)|(/\*[\s\S]*?\*/|//[^\n]*)"""
)
_STATIC_RE = re.compile(r"""\b(?:import|export)\s*(?:[\w$*{}\s,]*?\s*\bfrom\s*)?(['"])([^'"\n]+)\1""")
_DYNAMIC_RE = re.compile(r"""\bimport\s*\(\s*(['"])([^'"\n]+)\1\s*\)""")
_SYSTEM_REGISTER_RE = re.compile(r"""\bSystem\.register\s*\(\s*(?:(['"])[^'"]*\1\s*,\s*)?\[([^\]]*)\]""")
_QUOTED_RE = re.compile(r"""(['"])([^'"\n]+)\1""")


@dataclass(frozen=True)
class ModuleAnalysis:
    """Dependencies (in source order) and size in bytes of a module."""

    deps: list[str] = field(default_factory=list)
    size: float = 0


class ModuleAnalyzer(Protocol):
    """Analyzes one module for the tracer."""

    async def analyze(self, url: str, parent_url: str, system: bool = False) -> ModuleAnalysis:
        """Analyze the module at ``url``, imported from ``parent_url``.

        Raises:
            AnalysisError: Module cannot be loaded
        """
        ...


def strip_comments(source: str) -> str:
    return _STRING_OR_COMMENT_RE.sub(lambda m: m.group(1) or " ", source)


def extract_dependencies(source: str, system: bool = False) -> list[str]:
    """Import specifiers of ``source`` in source order, without duplicates.

    Args:
        source: Module source text
        system: Also read ``System.register([...])`` dependency arrays
    """
    code = strip_comments(source)
    found: list[tuple[int, str]] = []
    for pattern in (_STATIC_RE, _DYNAMIC_RE):
        found.extend((match.start(), match.group(2)) for match in pattern.finditer(code))
    if system:
        for match in _SYSTEM_REGISTER_RE.finditer(code):
            found.extend((match.start(2) + quoted.start(), quoted.group(2)) for quoted in _QUOTED_RE.finditer(match.group(2)))
    found.sort(key=lambda item: item[0])
    return list(dict.fromkeys(specifier for _, specifier in found))


class SourceAnalyzer:
    """Default analyzer for local files and CDN URLs.

    Usage:
        async with SourceAnalyzer() as analyzer:
            analysis = await analyzer.analyze(url, parent_url)
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 10.0):
        """Initialize analyzer.

        Args:
            client: HTTP client to use. If None, one is created on first use and
                closed by ``aclose()``.
            timeout: Request timeout in seconds for a created client
        """
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout

    async def analyze(self, url: str, parent_url: str, system: bool = False) -> ModuleAnalysis:
        source = await self._load(url, parent_url)
        deps = extract_dependencies(source.decode("utf-8", errors="replace"), system)
        logger.debug(f"[trace] analyzed {url}: {len(deps)} deps, {len(source)} bytes")
        return ModuleAnalysis(deps=deps, size=len(source))

    async def _load(self, url: str, parent_url: str) -> bytes:
        scheme = urlsplit(url).scheme
        if scheme == "file":
            path = Path(url2pathname(urlsplit(url).path))
            try:
                return path.read_bytes()
            except OSError as e:
                raise AnalysisError(f"Unable to read {url}, imported from {parent_url}: {e}", url) from e

        if scheme in ("http", "https"):
            if self._client is None:
                self._client = httpx.AsyncClient(timeout=self.timeout)
            try:
                response = await self._client.get(url, follow_redirects=True)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise AnalysisError(f"Unable to fetch {url}, imported from {parent_url}: {e}", url) from e
            return response.content

        raise AnalysisError(f"Unsupported URL scheme for analysis: {url}", url)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> SourceAnalyzer:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
