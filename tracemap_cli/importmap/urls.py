"""URL helpers for import map resolution.

Module URLs are carried around as plain ``str`` hrefs. These helpers give them
WHATWG-like behaviour where it matters for import maps: joining relative
references, telling bare specifiers apart from URLs, and expressing an
absolute URL relative to a base.
"""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import urljoin
from urllib.parse import urlsplit
from urllib.parse import urlunsplit

from ..errors import InvalidScopeError

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")

# Schemes whose URLs always have a path ("https://x.com" is "https://x.com/")
SPECIAL_SCHEMES = frozenset({"http", "https", "ws", "wss", "ftp", "file"})


def default_base_url() -> str:
    """Base URL for the current working directory."""
    return ensure_trailing_slash(Path.cwd().as_uri())


def ensure_trailing_slash(url: str) -> str:
    parts = urlsplit(url)
    if parts.path.endswith("/"):
        return url
    return urlunsplit(parts._replace(path=parts.path + "/"))


def is_url(specifier: str) -> bool:
    """True for absolute URLs and root-relative paths."""
    if specifier.startswith("/"):
        return True
    return bool(_SCHEME_RE.match(specifier))


def is_plain(specifier: str) -> bool:
    """True for bare specifiers, which can only be resolved through a map."""
    if specifier.startswith("./") or specifier.startswith("../"):
        return False
    return not is_url(specifier)


def join_url(reference: str, base: str) -> str:
    """Resolve ``reference`` against ``base`` and normalize the result."""
    joined = urljoin(base, reference)
    parts = urlsplit(joined)
    if parts.scheme.lower() in SPECIAL_SCHEMES and not parts.path:
        return urlunsplit(parts._replace(path="/"))
    return joined


def url_origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def base_url_relative(url: str, base_url: str) -> str:
    """Express absolute ``url`` relative to ``base_url`` where possible.

    URLs on another origin are returned unchanged. Relative results always
    start with ``./`` or ``../`` so they can never be mistaken for bare
    specifiers.
    """
    if url.startswith(base_url):
        return "./" + url[len(base_url) :]

    target = urlsplit(url)
    base = urlsplit(base_url)
    if (target.scheme, target.netloc) != (base.scheme, base.netloc):
        return url

    base_path = base.path
    url_path = target.path
    shared_index = -1
    for i in range(min(len(base_path), len(url_path))):
        if base_path[i] != url_path[i]:
            break
        if url_path[i] == "/":
            shared_index = i

    ups = base_path[shared_index + 1 :].count("/")
    relative = "../" * ups + url_path[shared_index + 1 :]
    if target.query:
        relative += "?" + target.query
    if target.fragment:
        relative += "#" + target.fragment
    return relative if ups else "./" + relative


def get_package_name(specifier: str, parent_url: str) -> str:
    """Package name portion of a bare specifier (``@scope/name`` or ``name``)."""
    sep_index = specifier.find("/")
    if specifier.startswith("@"):
        if sep_index == -1:
            raise InvalidScopeError(specifier, parent_url)
        sep_index = specifier.find("/", sep_index + 1)
    return specifier if sep_index == -1 else specifier[:sep_index]
