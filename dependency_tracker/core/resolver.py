"""
Module reference resolution for import statements.

Maps the module string of an import (`./utils`, `@/components/button`,
`react`) to a project file, emulating the bundler's lookup:
- Relative paths with extension and index-file inference
- Path aliases from tsconfig.json / jsconfig.json (longest prefix wins)
- Everything else is treated as an external package
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .compiler_config import CompilerConfigCache, CompilerPaths
from .entities import FailureReason, ResolutionFailure

logger = logging.getLogger(__name__)


SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
VENDOR_DIR = "node_modules"

# `import './x.js'` commonly points at x.ts in TypeScript projects
_EXTENSION_SWAPS = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
}


@dataclass
class Resolution:
    """Result of resolving one module reference from one importing file."""
    module_reference: str
    importing_file: str
    resolution_type: str           # "relative", "alias", "external", "unresolved"
    resolved_path: Optional[str] = None
    failure: Optional[ResolutionFailure] = None

    @property
    def ok(self) -> bool:
        return self.resolved_path is not None

    @property
    def is_external(self) -> bool:
        return self.failure is not None and self.failure.is_external


def is_relative_reference(reference: str) -> bool:
    return reference in (".", "..") or reference.startswith("./") or reference.startswith("../")


def in_vendor_dir(path: str) -> bool:
    return VENDOR_DIR in os.path.normpath(path).split(os.sep)


def match_alias(reference: str, paths: Dict[str, List[str]]) -> Optional[Tuple[str, str]]:
    """
    Pick the alias entry for a reference.

    Returns (alias key, wildcard capture) for the entry with the longest
    literal prefix, keeping the first one on ties, or None.
    """
    best_key: Optional[str] = None
    best_length = -1
    best_capture = ""

    for key in paths:
        if "*" in key:
            prefix, suffix = key.split("*", 1)
            if (
                reference.startswith(prefix)
                and reference.endswith(suffix)
                and len(reference) >= len(prefix) + len(suffix)
            ):
                if len(prefix) > best_length:
                    best_key = key
                    best_length = len(prefix)
                    best_capture = reference[len(prefix):len(reference) - len(suffix)]
        elif reference == key and len(key) > best_length:
            best_key = key
            best_length = len(key)
            best_capture = ""

    if best_key is None:
        return None
    return best_key, best_capture


class ModuleResolver:
    """
    Resolves module references to canonical file paths.

    One resolver serves one analysis run: results are cached per
    (reference, importing file, project root) and `reset()` must be called
    (or a new resolver built) before the next run.
    """

    def __init__(self, project_root: str, config_cache: Optional[CompilerConfigCache] = None):
        self.project_root = os.path.normpath(project_root)
        self.config_cache = config_cache or CompilerConfigCache()
        self._cache: Dict[Tuple[str, str, str], Resolution] = {}
        self.stats = {"lookups": 0, "cache_hits": 0, "probes": 0}

    def reset(self) -> None:
        """Drop cached resolutions and the compiler config."""
        self._cache.clear()
        self.config_cache.invalidate()
        self.stats = {"lookups": 0, "cache_hits": 0, "probes": 0}

    def resolve(self, module_reference: str, importing_file: str) -> Resolution:
        """
        Resolve a module reference as seen from an importing file.

        Args:
            module_reference: The literal from the import statement
            importing_file: Absolute path of the file containing the import

        Returns:
            Resolution with either a canonical resolved_path or a failure
        """
        self.stats["lookups"] += 1
        cache_key = (module_reference, os.path.normpath(importing_file), self.project_root)
        cached = self._cache.get(cache_key)
        if cached is not None:
            self.stats["cache_hits"] += 1
            return cached

        if is_relative_reference(module_reference):
            result = self._resolve_relative(module_reference, importing_file)
        else:
            result = self._resolve_non_relative(module_reference, importing_file)

        self._cache[cache_key] = result
        return result

    # ─── Strategies ───────────────────────────────

    def _resolve_relative(self, reference: str, importing_file: str) -> Resolution:
        """Resolve ./x and ../x against the importing file's directory."""
        candidate = os.path.normpath(os.path.join(os.path.dirname(importing_file), reference))
        found, is_asset = self._probe(candidate)

        if found is None:
            return self._failed(
                reference, importing_file, "relative", FailureReason.RELATIVE_FAILED,
                f"Relative path resolution failed: cannot find file or index for '{reference}'",
            )
        if in_vendor_dir(found):
            return self._failed(
                reference, importing_file, "external", FailureReason.EXTERNAL_NODE_MODULES,
                "Relative path resolved into node_modules",
            )
        if is_asset:
            return self._failed(
                reference, importing_file, "external", FailureReason.ASSET,
                f"'{reference}' is not a source module",
            )

        logger.debug("Resolved relative path '%s' to %s", reference, found)
        return Resolution(reference, importing_file, "relative", resolved_path=self._canonical(found))

    def _resolve_non_relative(self, reference: str, importing_file: str) -> Resolution:
        """Resolve through the alias table, or classify as external."""
        config = self.config_cache.get(self.project_root)
        if config is not None and config.paths:
            match = match_alias(reference, config.paths)
            if match is not None:
                return self._resolve_alias(reference, importing_file, config, *match)

        return self._failed(
            reference, importing_file, "external", FailureReason.EXTERNAL,
            "Module is not relative and not resolved via tsconfig paths (likely external)",
        )

    def _resolve_alias(self, reference: str, importing_file: str, config: CompilerPaths,
                       alias_key: str, capture: str) -> Resolution:
        """Try every target of a matched alias entry in listed order."""
        for target_pattern in config.paths.get(alias_key, []):
            target = target_pattern.replace("*", capture, 1) if "*" in target_pattern else target_pattern
            candidate = os.path.normpath(os.path.join(config.base_url, target))
            found, is_asset = self._probe(candidate)
            if found is None or in_vendor_dir(found):
                continue
            if is_asset:
                return self._failed(
                    reference, importing_file, "external", FailureReason.ASSET,
                    f"'{reference}' is not a source module",
                )
            logger.debug("Resolved alias '%s' to %s via %s", reference, found, alias_key)
            return Resolution(reference, importing_file, "alias", resolved_path=self._canonical(found))

        return self._failed(
            reference, importing_file, "alias", FailureReason.ALIAS_FAILED,
            f"Alias resolution failed: path mapping '{alias_key}' for '{reference}' "
            f"did not lead to an existing file",
        )

    # ─── Filesystem probing ───────────────────────

    def _probe(self, candidate: str) -> Tuple[Optional[str], bool]:
        """
        Find the file a candidate path refers to.

        Order: the candidate with a source extension appended, then
        `index.<ext>` inside a directory, then the candidate itself. Returns
        (path, is_asset) where is_asset marks an existing non-source file.
        """
        _, ext = os.path.splitext(candidate)
        if ext in SOURCE_EXTENSIONS:
            if self._is_file(candidate):
                return candidate, False
            stem = candidate[: -len(ext)]
            for swapped in _EXTENSION_SWAPS.get(ext, ()):
                if self._is_file(stem + swapped):
                    return stem + swapped, False
        else:
            for source_ext in SOURCE_EXTENSIONS:
                if self._is_file(candidate + source_ext):
                    return candidate + source_ext, False

        if self._is_dir(candidate):
            for source_ext in SOURCE_EXTENSIONS:
                index_file = os.path.join(candidate, "index" + source_ext)
                if self._is_file(index_file):
                    return index_file, False

        if ext not in SOURCE_EXTENSIONS and self._is_file(candidate):
            return candidate, True

        return None, False

    def _is_file(self, path: str) -> bool:
        self.stats["probes"] += 1
        return os.path.isfile(path)

    def _is_dir(self, path: str) -> bool:
        self.stats["probes"] += 1
        return os.path.isdir(path)

    @staticmethod
    def _canonical(path: str) -> str:
        return os.path.realpath(path)

    @staticmethod
    def _failed(reference: str, importing_file: str, resolution_type: str,
                reason: FailureReason, detail: str) -> Resolution:
        return Resolution(
            module_reference=reference,
            importing_file=importing_file,
            resolution_type=resolution_type,
            failure=ResolutionFailure(
                source_module=reference,
                importing_file=importing_file,
                reason=reason,
                detail=detail,
            ),
        )
