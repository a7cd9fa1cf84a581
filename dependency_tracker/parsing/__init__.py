"""
Parsing module: file discovery and tree-sitter fact extraction.
"""

from .file_finder import BASE_EXCLUDES, combined_excludes, find_project_files
from .parser import parse_file, parse_project, parse_source
from .routes import derive_routes, find_app_dir, route_path_for

__all__ = [
    "BASE_EXCLUDES",
    "combined_excludes",
    "find_project_files",
    "parse_file",
    "parse_project",
    "parse_source",
    "derive_routes",
    "find_app_dir",
    "route_path_for",
]
