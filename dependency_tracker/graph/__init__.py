"""
Graph module: import graph construction, usage matching and classification.
"""

from .import_graph import ImportGraph
from .interfaces import aggregate_interface_usage, index_interfaces_by_name
from .usage_matcher import (
    UsageMatcher,
    normalize_target_path,
    route_pattern,
)
from .builder import (
    REASON_EXPORT_NOT_FOUND,
    REASON_NO_EXPORTS,
    DependencyGraphBuilder,
    analyze,
    match_export,
    relative_path,
)

__all__ = [
    "ImportGraph",
    "aggregate_interface_usage",
    "index_interfaces_by_name",
    "UsageMatcher",
    "normalize_target_path",
    "route_pattern",
    "REASON_EXPORT_NOT_FOUND",
    "REASON_NO_EXPORTS",
    "DependencyGraphBuilder",
    "analyze",
    "match_export",
    "relative_path",
]
