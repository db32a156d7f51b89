"""tracemap - import map resolution, dependency tracing and installs."""

from .errors import AnalysisError
from .errors import HtmlImportMapError
from .errors import InstallError
from .errors import InvalidScopeError
from .errors import MapFormatError
from .errors import ModuleResolutionError
from .errors import OperationError
from .errors import TraceMapError
from .importmap import ImportMap
from .importmap import JsonStyle
from .importmap import resolve
from .installer import InstallOptions
from .installer import InstallTarget
from .tracemap import TraceMap
from .tracing import TraceEntry
from .tracing import TraceResult

__all__ = [
    "TraceMap",
    "ImportMap",
    "JsonStyle",
    "resolve",
    "InstallOptions",
    "InstallTarget",
    "TraceEntry",
    "TraceResult",
    "TraceMapError",
    "ModuleResolutionError",
    "InvalidScopeError",
    "MapFormatError",
    "HtmlImportMapError",
    "OperationError",
    "AnalysisError",
    "InstallError",
]
