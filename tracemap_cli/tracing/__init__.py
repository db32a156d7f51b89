"""Module graph tracing."""

from .analyzer import ModuleAnalysis
from .analyzer import ModuleAnalyzer
from .analyzer import SourceAnalyzer
from .analyzer import extract_dependencies
from .tracer import DependencyTracer
from .tracer import Trace
from .tracer import TraceEntry
from .tracer import TraceResult

__all__ = [
    "DependencyTracer",
    "Trace",
    "TraceEntry",
    "TraceResult",
    "ModuleAnalysis",
    "ModuleAnalyzer",
    "SourceAnalyzer",
    "extract_dependencies",
]
