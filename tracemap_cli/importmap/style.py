"""Format provenance for JSON documents.

When an existing import map is parsed, its indentation unit, newline sequence,
trailing newline and quote character are captured in a ``JsonStyle``. Writing
the map back with the same style keeps diffs down to the entries that changed.
"""

from __future__ import annotations

import json
import os
import re
from collections import Counter
from dataclasses import dataclass
from dataclasses import replace
from typing import Any

from ..errors import MapFormatError

_NEWLINE_RE = re.compile(r"\r?\n|\r(?!\n)")
_LEADING_RE = re.compile(r"^\s*\S")
_TAB_RE = re.compile(r"^[ \t]*")
_QUOTE_RE = re.compile(r"\"|'")


@dataclass(frozen=True)
class JsonStyle:
    """Immutable description of how a JSON document is laid out."""

    tab: str = "  "
    newline: str = os.linesep
    trailing_newline: str = os.linesep
    indent: str = ""
    quote: str = '"'

    def minified(self) -> JsonStyle:
        return replace(self, indent="", tab="", newline="")


DEFAULT_STYLE = JsonStyle()


def detect_style(source: str) -> JsonStyle:
    """Best-effort detection of the layout of ``source``.

    The tab unit is the most common indentation difference between
    consecutive lines; the tab string is the most common sample of that
    length taken from the end of each line's leading whitespace.
    """
    newline_match = _NEWLINE_RE.search(source)
    newline = newline_match.group(0) if newline_match else DEFAULT_STYLE.newline

    lines = source.split(newline)
    indent: str | None = None
    for line in lines:
        if match := _LEADING_RE.match(line):
            current = match.group(0)[:-1]
            if indent is None or len(current) < len(indent):
                indent = current
    indent = indent or ""
    lines = [line[len(indent) :] for line in lines]

    tab_spaces = [_TAB_RE.match(line).group(0) for line in lines]
    difference_freqs: Counter[int] = Counter()
    last_length = 0
    for tab_space in tab_spaces:
        diff = abs(len(tab_space) - last_length)
        if diff:
            difference_freqs[diff] += 1
        last_length = len(tab_space)

    tab = DEFAULT_STYLE.tab
    if difference_freqs:
        # Ties go to the wider unit
        best_length = max(difference_freqs, key=lambda length: (difference_freqs[length], length))
        samples = Counter(tab_space[-best_length:] for tab_space in tab_spaces if len(tab_space) >= best_length)
        if samples:
            tab = samples.most_common(1)[0][0]

    quote_match = _QUOTE_RE.search(source)
    quote = quote_match.group(0) if quote_match else DEFAULT_STYLE.quote

    trailing_newline = newline if source and source.endswith(newline) else ""

    return JsonStyle(tab=tab, newline=newline, trailing_newline=trailing_newline, indent=indent, quote=quote)


def parse_styled(source: str, file_name: str | None = None) -> tuple[Any, JsonStyle]:
    """Parse JSON text and capture its style.

    Raises:
        MapFormatError: Text is not valid JSON
    """
    if source.startswith("\ufeff"):
        source = source[1:]

    style = detect_style(source)
    try:
        return json.loads(source), style
    except json.JSONDecodeError as e:
        raise MapFormatError(f"Error parsing JSON file{' ' + file_name if file_name else ''}", file_name) from e


def stringify_styled(value: Any, style: JsonStyle) -> str:
    """Serialize ``value`` using ``style``."""
    if style.tab:
        text = json.dumps(value, indent=style.tab, ensure_ascii=False)
    else:
        text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)

    if style.quote != '"':
        quote = style.quote
        text = re.sub(r'([^\\])""', lambda m: m.group(1) + quote + quote, text)
        text = re.sub(r'([^\\])"', lambda m: m.group(1) + quote, text)

    return style.indent + text.replace("\n", style.newline + style.indent) + style.trailing_newline


def json_equals(source_a: str | Any, source_b: str | Any) -> bool:
    """Structural equality of two JSON documents (text or parsed)."""
    try:
        if isinstance(source_a, str):
            source_a = json.loads(source_a)
        if isinstance(source_b, str):
            source_b = json.loads(source_b)
    except json.JSONDecodeError:
        return False
    return json.dumps(source_a) == json.dumps(source_b)
