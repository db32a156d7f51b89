"""Import map model, resolution and document formats."""

from .html import HtmlImportMap
from .html import find_html_import_map
from .html import replace_html_import_map
from .model import ImportMap
from .model import sort_map
from .resolver import MapMatch
from .resolver import resolve
from .resolver import resolve_match
from .style import DEFAULT_STYLE
from .style import JsonStyle
from .style import detect_style
from .style import json_equals
from .style import parse_styled
from .style import stringify_styled

__all__ = [
    "ImportMap",
    "sort_map",
    "MapMatch",
    "resolve",
    "resolve_match",
    "JsonStyle",
    "DEFAULT_STYLE",
    "detect_style",
    "parse_styled",
    "stringify_styled",
    "json_equals",
    "HtmlImportMap",
    "find_html_import_map",
    "replace_html_import_map",
]
