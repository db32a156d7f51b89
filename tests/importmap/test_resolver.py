"""Tests for specifier resolution against an import map."""

import pytest

from tracemap_cli.errors import ModuleResolutionError
from tracemap_cli.importmap.model import ImportMap
from tracemap_cli.importmap.resolver import MapMatch
from tracemap_cli.importmap.resolver import resolve
from tracemap_cli.importmap.resolver import resolve_match

BASE = "https://example.com/app/"
MAIN = "https://example.com/app/main.js"


@pytest.fixture
def import_map():
    return ImportMap(
        imports={
            "react": "https://cdn.example.com/react.js",
            "lodash/": "https://cdn.example.com/lodash/",
            "lodash/fp": "https://cdn.example.com/lodash-fp.js",
            "app": "./src/app.js",
            "blocked": None,
        },
        scopes={
            "/": {"react": "https://cdn.example.com/react-root.js"},
            "./vendor/": {"react": "https://cdn.example.com/react-legacy.js"},
        },
    )


class TestTopLevelImports:
    def test_exact_match(self):
        import_map = ImportMap(imports={"react": "https://cdn.example.com/react.js"})
        assert resolve("react", MAIN, import_map, BASE) == "https://cdn.example.com/react.js"

    def test_relative_target_joins_base_url(self):
        import_map = ImportMap(imports={"app": "./src/app.js"})
        assert resolve("app", MAIN, import_map, BASE) == "https://example.com/app/src/app.js"

    def test_trailing_slash_prefix(self, import_map):
        assert resolve("lodash/map.js", MAIN, ImportMap(imports=import_map.imports), BASE) == (
            "https://cdn.example.com/lodash/map.js"
        )

    def test_exact_key_beats_prefix(self, import_map):
        assert resolve("lodash/fp", MAIN, ImportMap(imports=import_map.imports), BASE) == (
            "https://cdn.example.com/lodash-fp.js"
        )

    def test_longest_prefix_wins(self):
        import_map = ImportMap(imports={"a/": "https://x.example.com/a/", "a/b/": "https://y.example.com/ab/"})
        assert resolve("a/b/c.js", MAIN, import_map, BASE) == "https://y.example.com/ab/c.js"
        assert resolve("a/c.js", MAIN, import_map, BASE) == "https://x.example.com/a/c.js"

    def test_blocked_entry_resolves_to_none(self, import_map):
        assert resolve("blocked", MAIN, import_map, BASE) is None


class TestScopes:
    def test_most_specific_scope_wins(self, import_map):
        parent = "https://example.com/app/vendor/lib.js"
        assert resolve("react", parent, import_map, BASE) == "https://cdn.example.com/react-legacy.js"

    def test_scope_beats_imports(self, import_map):
        assert resolve("react", MAIN, import_map, BASE) == "https://cdn.example.com/react-root.js"

    def test_scope_falls_back_to_imports(self, import_map):
        parent = "https://example.com/app/vendor/lib.js"
        assert resolve("app", parent, import_map, BASE) == "https://example.com/app/src/app.js"

    def test_scope_not_containing_parent_is_ignored(self, import_map):
        parent = "https://other.example.com/main.js"
        assert resolve("react", parent, import_map, BASE) == "https://cdn.example.com/react.js"


class TestNonBareSpecifiers:
    def test_relative_joins_parent(self, import_map):
        assert resolve("./util.js", MAIN, import_map, BASE) == "https://example.com/app/util.js"
        assert resolve("../lib.js", MAIN, import_map, BASE) == "https://example.com/lib.js"

    def test_root_relative(self, import_map):
        assert resolve("/x.js", MAIN, import_map, BASE) == "https://example.com/x.js"

    def test_absolute_url_passes_through(self, import_map):
        assert resolve("https://cdn.example.com/y.js", MAIN, import_map, BASE) == "https://cdn.example.com/y.js"


class TestUnmatched:
    def test_unknown_bare_specifier_raises(self, import_map):
        with pytest.raises(ModuleResolutionError) as exc_info:
            resolve("missing", MAIN, import_map, BASE)

        assert exc_info.value.specifier == "missing"
        assert exc_info.value.parent_url == MAIN
        assert exc_info.value.code == "MODULE_NOT_FOUND"
        assert "missing" in str(exc_info.value)

    def test_prefix_key_needs_trailing_slash(self):
        import_map = ImportMap(imports={"lodash": "https://cdn.example.com/lodash.js"})
        with pytest.raises(ModuleResolutionError):
            resolve("lodash/map.js", MAIN, import_map, BASE)


class TestResolveMatch:
    def test_returns_none_for_non_bare(self, import_map):
        assert resolve_match("./a.js", MAIN, import_map, BASE) is None

    def test_reports_winning_entry(self, import_map):
        parent = "https://example.com/app/vendor/lib.js"
        assert resolve_match("react", parent, import_map, BASE) == MapMatch(
            scope="./vendor/", key="react", target="https://cdn.example.com/react-legacy.js"
        )
        assert resolve_match("lodash/map.js", parent, import_map, BASE) == MapMatch(
            scope=None, key="lodash/", target="https://cdn.example.com/lodash/"
        )
