"""
App Router route derivation.

Route paths come from the directory structure under `app/` or `src/app/`:
route groups `(marketing)` are dropped, `@slot` and `_private` folders are
skipped, and bracket segments (`[id]`, `[...slug]`) are kept as-is.
"""

import logging
import os
from typing import Dict, List, Optional

from ..core.entities import HTTP_METHODS, Export, Route

logger = logging.getLogger(__name__)


APP_DIR_NAMES = ("app", os.path.join("src", "app"))

PAGE_FILES = ("page.ts", "page.tsx", "page.js", "page.jsx")
ROUTE_FILES = ("route.ts", "route.tsx", "route.js", "route.jsx")


def find_app_dir(project_root: str) -> Optional[str]:
    """First of app/ or src/app/ that exists."""
    for name in APP_DIR_NAMES:
        candidate = os.path.join(project_root, name)
        if os.path.isdir(candidate):
            return candidate
    return None


def is_route_segment(part: str) -> bool:
    if part.startswith("(") and part.endswith(")"):
        return False
    return not part.startswith("@") and not part.startswith("_")


def route_path_for(directories: List[str]) -> str:
    """URL path for the directory segments between the app dir and the route file."""
    segments = [part for part in directories if part and is_route_segment(part)]
    return "/" + "/".join(segments) if segments else "/"


def exported_http_methods(exports: List[Export]) -> Optional[List[str]]:
    """HTTP method names a route file exports, or None if it exports none."""
    methods = [e.exported_name for e in exports if not e.is_default and e.exported_name in HTTP_METHODS]
    return methods or None


def derive_routes(
    files: List[str],
    project_root: str,
    exports_by_file: Optional[Dict[str, List[Export]]] = None,
) -> List[Route]:
    """
    Build the route list from page.* and route.* files.

    Args:
        files: Absolute paths of all discovered files
        project_root: Project root directory
        exports_by_file: Parsed exports per file, used for HTTP methods

    Returns:
        Routes sorted by route path
    """
    app_dir = find_app_dir(project_root)
    if app_dir is None:
        logger.info("No 'app' or 'src/app' directory found. Skipping App Router route parsing.")
        return []
    logger.info("Found App Router directory: %s", os.path.relpath(app_dir, project_root))

    exports_by_file = exports_by_file or {}
    routes = []
    for file_path in files:
        if not file_path.startswith(app_dir + os.sep):
            continue

        parts = os.path.relpath(file_path, app_dir).split(os.sep)
        file_name = parts.pop()
        is_api = file_name in ROUTE_FILES
        if not is_api and file_name not in PAGE_FILES:
            continue

        routes.append(Route(
            route_path=route_path_for(parts),
            declaring_file=file_path,
            is_api_route=is_api,
            exported_http_methods=exported_http_methods(exports_by_file.get(file_path, [])) if is_api else None,
        ))

    routes.sort(key=lambda r: (r.route_path, r.is_api_route, r.declaring_file))
    logger.info("Found %d App Router routes.", len(routes))
    return routes
