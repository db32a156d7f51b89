"""Pytest configuration for tracemap tests."""

import asyncio

import pytest

from tracemap_cli.errors import AnalysisError
from tracemap_cli.tracing.analyzer import ModuleAnalysis

BASE_URL = "https://example.com/app/"


class FakeAnalyzer:
    """In-memory module graph: url -> dependency specifiers.

    Records every analyzed URL so tests can check modules are analyzed once.
    """

    def __init__(self, graph: dict[str, list[str]], sizes: dict[str, float] | None = None):
        self.graph = graph
        self.sizes = sizes or {}
        self.calls: list[str] = []

    async def analyze(self, url: str, parent_url: str, system: bool = False) -> ModuleAnalysis:
        self.calls.append(url)
        # Yield so sibling analyses interleave
        await asyncio.sleep(0)
        if url not in self.graph:
            raise AnalysisError(f"Unable to fetch {url}, imported from {parent_url}", url)
        return ModuleAnalysis(deps=list(self.graph[url]), size=self.sizes.get(url, 100))


@pytest.fixture
def base_url():
    return BASE_URL


@pytest.fixture
def make_analyzer():
    """Factory for FakeAnalyzer instances."""
    return FakeAnalyzer
