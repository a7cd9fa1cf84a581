"""
Report module: markdown and JSON rendering of analysis results.
"""

from .markdown import (
    JSON_FILE,
    REPORT_FILES,
    generate_interfaces_markdown,
    generate_missing_imports_markdown,
    generate_routes_markdown,
    generate_unused_exports_markdown,
    generate_used_exports_markdown,
    render_reports,
    write_reports,
)

__all__ = [
    "JSON_FILE",
    "REPORT_FILES",
    "generate_interfaces_markdown",
    "generate_missing_imports_markdown",
    "generate_routes_markdown",
    "generate_unused_exports_markdown",
    "generate_used_exports_markdown",
    "render_reports",
    "write_reports",
]
