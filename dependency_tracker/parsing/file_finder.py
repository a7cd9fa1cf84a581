"""
Project file discovery.

Walks the project tree for .ts/.tsx/.js/.jsx files, pruning excluded
folders, and enforces the file count and file size limits.
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Tuple, TYPE_CHECKING

from ..core.resolver import SOURCE_EXTENSIONS
from ..errors import AnalysisCancelled, DiscoveryError

if TYPE_CHECKING:
    from ..config import TrackerSettings

logger = logging.getLogger(__name__)


# Always excluded, whatever the settings say
BASE_EXCLUDES = (".git", "node_modules", ".next", ".dependencies", "dist", "out", ".vscode")

SIZE_PROBE_WORKERS = 8


def combined_excludes(configured: Iterable[str]) -> List[str]:
    """Base excludes followed by configured ones, without duplicates."""
    merged: List[str] = []
    for folder in list(BASE_EXCLUDES) + list(configured or []):
        folder = folder.strip().strip("/\\").replace("\\", "/")
        if folder and folder not in merged:
            merged.append(folder)
    return merged


def is_excluded_dir(rel_dir: str, name: str, excludes: List[str]) -> bool:
    """
    A folder is excluded when its name is in the list (anywhere in the tree)
    or its project-relative path equals a multi-segment entry.
    """
    if name in excludes:
        return True
    rel = rel_dir.replace("\\", "/")
    return any("/" in folder and (rel == folder or rel.startswith(folder + "/")) for folder in excludes)


def _file_size(path: str) -> Tuple[str, int]:
    return path, os.path.getsize(path)


def find_project_files(
    project_root: str,
    settings: "TrackerSettings",
    cancel_event: Optional[threading.Event] = None,
) -> List[str]:
    """
    Find all source files under the project root.

    Args:
        project_root: Directory to scan
        settings: Exclusions and resource limits
        cancel_event: Stops the walk when set

    Returns:
        Sorted absolute file paths

    Raises:
        DiscoveryError: root missing, too many files, or a file over the size limit
        AnalysisCancelled: cancel_event was set
    """
    if not os.path.isdir(project_root):
        raise DiscoveryError(f"Project root is not a directory: {project_root}")

    start_time = time.time()
    excludes = combined_excludes(settings.excluded_folders)
    logger.debug("Using exclusions: %s", excludes)

    files: List[str] = []

    def _walk_error(err: OSError):
        raise DiscoveryError(f"Cannot enumerate {err.filename}: {err.strerror}") from err

    for dir_path, dir_names, file_names in os.walk(project_root, onerror=_walk_error):
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelled("Cancelled during file discovery")

        rel_dir = os.path.relpath(dir_path, project_root)
        dir_names[:] = sorted(
            d for d in dir_names
            if not is_excluded_dir(d if rel_dir == "." else os.path.join(rel_dir, d), d, excludes)
        )

        for file_name in file_names:
            if file_name.endswith(SOURCE_EXTENSIONS):
                files.append(os.path.join(dir_path, file_name))

        if len(files) > settings.max_files:
            raise DiscoveryError(
                f"Found more than {settings.max_files} source files. "
                f"Add folders to excluded_folders or raise max_files."
            )

    files.sort()
    _check_sizes(files, settings.max_file_size_bytes, project_root)

    logger.info("Found %d source files in %dms.", len(files), (time.time() - start_time) * 1000)
    return files


def _check_sizes(files: List[str], limit: int, project_root: str) -> None:
    """Stat every file in parallel and fail on the first one over the limit."""
    if not files:
        return
    try:
        with ThreadPoolExecutor(max_workers=SIZE_PROBE_WORKERS) as executor:
            sizes = list(executor.map(_file_size, files))
    except OSError as e:
        raise DiscoveryError(f"Cannot stat {e.filename}: {e.strerror}") from e

    oversized = [(path, size) for path, size in sizes if size > limit]
    if oversized:
        path, size = oversized[0]
        rel = os.path.relpath(path, project_root)
        raise DiscoveryError(f"File {rel} is {size} bytes, over the {limit} byte limit")
