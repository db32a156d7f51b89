"""Error taxonomy for import map resolution, tracing and installs.

Every error carries a stable ``code`` so callers (and the CLI) can branch on
the kind of failure without matching message text.
"""

from __future__ import annotations


# ============================================================================
# Base
# ============================================================================


class TraceMapError(Exception):
    """Base class for all tracemap errors."""

    code = "TRACEMAP_ERROR"


# ============================================================================
# Resolution
# ============================================================================


class ModuleResolutionError(TraceMapError):
    """Raised when a bare specifier matches no scope and no top-level entry."""

    code = "MODULE_NOT_FOUND"

    def __init__(self, specifier: str, parent_url: str):
        super().__init__(f'Unable to resolve "{specifier}" from {parent_url}')
        self.specifier = specifier
        self.parent_url = parent_url


class InvalidScopeError(TraceMapError):
    """Raised for an ``@scope`` package name without its second path segment."""

    code = "INVALID_SCOPE"

    def __init__(self, specifier: str, parent_url: str):
        super().__init__(f"{specifier} is not a valid scoped package name, imported from {parent_url}.")
        self.specifier = specifier
        self.parent_url = parent_url


# ============================================================================
# Documents
# ============================================================================


class MapFormatError(TraceMapError):
    """Raised when text cannot be parsed as an import map."""

    code = "INVALID_FORMAT"

    def __init__(self, message: str, file_name: str | None = None):
        super().__init__(message)
        self.file_name = file_name


class HtmlImportMapError(TraceMapError):
    """Raised when an HTML document has no usable inline import map."""

    code = "HTML_IMPORT_MAP"


# ============================================================================
# Operations
# ============================================================================


class OperationError(TraceMapError):
    """Raised when an install-family operation's preconditions do not hold."""

    code = "INVALID_OPERATION"


class AnalysisError(TraceMapError):
    """Raised when a module cannot be loaded for analysis."""

    code = "ANALYSIS_FAILED"

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class InstallError(TraceMapError):
    """Raised when the installer cannot determine a target for a package."""

    code = "INSTALL_FAILED"
