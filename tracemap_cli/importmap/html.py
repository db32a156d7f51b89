"""Locate an inline import map inside an HTML document.

This is a raw text scan, not an HTML parse: the map is the text between the
``>`` closing the script tag and the next ``<``.
"""

from __future__ import annotations

from typing import NamedTuple

from ..errors import HtmlImportMapError

_IMPORTMAP_TAG = '<script type="importmap'
_SYSTEMJS_TAG = '<script type="systemjs-importmap'


class HtmlImportMap(NamedTuple):
    """Character spans of an inline import map."""

    type_span: tuple[int, int]  # The type attribute value
    map_span: tuple[int, int]  # The map text between the tags


def find_html_import_map(source: str, file_name: str, system: bool = False) -> HtmlImportMap:
    """Find the inline import map of an HTML document.

    Args:
        source: HTML text
        file_name: Used in error messages
        system: Prefer ``systemjs-importmap`` over ``importmap``

    Raises:
        HtmlImportMapError: No import map tag, or the tag has a ``src``
    """
    start = -1
    if system:
        start = source.find(_SYSTEMJS_TAG)
    if start == -1:
        start = source.find(_IMPORTMAP_TAG)
    if start == -1:
        start = source.find(_SYSTEMJS_TAG)
    if start == -1:
        raise HtmlImportMapError(
            f"Unable to find an import map section in {file_name}. "
            f'You need to first manually include a <script type="importmap"> section.'
        )

    inner = source.find(">", start)
    src_start = source.find("src=", start)
    end = source.find("<", inner)
    if src_start != -1 and src_start < end:
        raise HtmlImportMapError(f"{file_name} references an external import map. Rather install from/to this file directly.")

    type_start = start + len('<script type="')
    return HtmlImportMap(
        type_span=(type_start, source.find('"', type_start + 1)),
        map_span=(inner + 1, end),
    )


def replace_html_import_map(source: str, location: HtmlImportMap, map_text: str) -> str:
    """Splice ``map_text`` into ``source`` in place of the located map."""
    map_start, map_end = location.map_span
    return source[:map_start] + map_text + source[map_end:]
