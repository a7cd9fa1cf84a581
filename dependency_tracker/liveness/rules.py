"""
Framework Liveness Rules

Heuristics that mark exports as used because the framework calls them by
convention rather than through a static import. Rules only ever add usage
sites; they never demote an export.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..core.entities import (
    FRAMEWORK_SENTINEL, HTTP_METHODS, Export, Hook, Route, ServerAction, UsageSite
)


FRAMEWORK_SITE = UsageSite(FRAMEWORK_SENTINEL, 0)

# Directories whose file tree maps to URLs
ROUTE_TREE_ROOTS = ("app", "src/app", "pages", "src/pages")

PAGE_FILE_STEMS = (
    "page", "layout", "template", "loading", "error",
    "not-found", "global-error", "default",
)

SPECIAL_EXPORT_NAMES = (
    # App Router
    "generateMetadata", "generateStaticParams", "generateViewport",
    "generateImageMetadata", "generateSitemaps",
    "metadata", "viewport",
    # Route segment config
    "revalidate", "dynamic", "dynamicParams", "fetchCache",
    "preferredRegion", "runtime", "maxDuration",
    # Pages Router data fetching
    "getServerSideProps", "getStaticProps", "getStaticPaths", "getInitialProps",
    "config",
)

ACTIONS_DIRECTORY_NAMES = ("actions",)

# Files the framework loads from the project root or src/
ROOT_ENTRY_STEMS = ("middleware", "instrumentation")


@dataclass
class LivenessContext:
    """
    What a rule can see: the export index plus framework declarations.

    All paths are canonical absolute paths.
    """
    project_root: str
    exports_by_file: Dict[str, List[Export]]
    routes: List[Route] = field(default_factory=list)
    server_actions: List[ServerAction] = field(default_factory=list)
    hooks: List[Hook] = field(default_factory=list)

    def exports_in(self, file_path: str) -> List[Export]:
        return self.exports_by_file.get(os.path.normpath(file_path), [])

    def find_export(self, file_path: str, name: str) -> Optional[Export]:
        """Non-default export of `name` in a file, or a default export whose local name is `name`."""
        candidates = self.exports_in(file_path)
        for exp in candidates:
            if not exp.is_default and exp.exported_name == name:
                return exp
        for exp in candidates:
            if exp.is_default and exp.local_name == name:
                return exp
        return None

    def relative_parts(self, file_path: str) -> List[str]:
        """Path segments of a file relative to the project root."""
        rel = os.path.relpath(file_path, self.project_root)
        return rel.replace("\\", "/").split("/")


def mark_framework_used(export: Export) -> bool:
    """Append the framework sentinel once. Returns True if newly added."""
    return export.add_usage(FRAMEWORK_SITE)


def file_stem(file_path: str) -> str:
    return os.path.splitext(os.path.basename(file_path))[0]


def route_tree_root(parts: Sequence[str], roots: Sequence[str] = ROUTE_TREE_ROOTS) -> Optional[str]:
    """The route tree root (e.g. 'src/app') a relative path lives under, if any."""
    joined = "/".join(parts)
    # Longest root first so src/app wins over a top-level 'src' match
    for root in sorted(roots, key=len, reverse=True):
        if joined.startswith(root + "/"):
            return root
    return None


class LivenessRule(ABC):
    """
    A single "used by the framework" heuristic.

    Subclasses set `name` and implement `apply`, returning how many exports
    they newly marked.
    """

    name: str = "rule"

    @abstractmethod
    def apply(self, context: LivenessContext) -> int:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class RouteHandlerRule(LivenessRule):
    """
    HTTP method exports of route files (`export async function GET`).

    Network calls matched to the route are propagated to the handler for
    their method, or to every handler when the method is unknown.
    """

    name = "route-handlers"

    def apply(self, context: LivenessContext) -> int:
        marked = 0
        for route in context.routes:
            methods = route.exported_http_methods
            if methods is None:
                methods = list(HTTP_METHODS) if route.is_api_route else []

            handlers = []
            for method in methods:
                if method not in HTTP_METHODS:
                    continue
                export = context.find_export(route.declaring_file, method)
                if export is None or export.is_default:
                    continue
                handlers.append(export)
                if mark_framework_used(export):
                    marked += 1

            for usage in route.used_by:
                targets = [h for h in handlers if h.exported_name == usage.http_method] or handlers
                for handler in targets:
                    handler.add_usage(usage.site)
        return marked


class ServerActionRule(LivenessRule):
    """Exports declared as server actions; matched action usages are propagated."""

    name = "server-actions"

    def apply(self, context: LivenessContext) -> int:
        marked = 0
        for action in context.server_actions:
            export = context.find_export(action.declaring_file, action.name)
            if export is None:
                continue
            if mark_framework_used(export):
                marked += 1
            for usage in action.used_by:
                export.add_usage(usage.site)
        return marked


class HookUsageRule(LivenessRule):
    """
    Hooks need real invocation evidence: only recorded hook calls are
    propagated, a declaration alone never marks a hook used.
    """

    name = "hook-usage"

    def apply(self, context: LivenessContext) -> int:
        marked = 0
        for hook in context.hooks:
            if not hook.used_by:
                continue
            export = context.find_export(hook.declaring_file, hook.name)
            if export is None:
                continue
            was_used = export.is_used
            for usage in hook.used_by:
                export.add_usage(usage.site)
            if not was_used and export.is_used:
                marked += 1
        return marked


class PageComponentRule(LivenessRule):
    """Default exports of page.*, layout.* and sibling convention files in a route tree."""

    name = "page-components"

    def __init__(self, page_stems: Sequence[str] = PAGE_FILE_STEMS,
                 roots: Sequence[str] = ROUTE_TREE_ROOTS):
        self.page_stems = tuple(page_stems)
        self.roots = tuple(roots)

    def apply(self, context: LivenessContext) -> int:
        marked = 0
        for file_path, exports in context.exports_by_file.items():
            root = route_tree_root(context.relative_parts(file_path), self.roots)
            if root is None:
                continue
            # Under pages/ every default export is a page
            is_pages_router = root.endswith("pages")
            if not is_pages_router and file_stem(file_path) not in self.page_stems:
                continue
            for exp in exports:
                if exp.is_default and mark_framework_used(exp):
                    marked += 1
        return marked


class SpecialExportRule(LivenessRule):
    """Named exports the framework reads from route tree files (generateMetadata, revalidate, ...)."""

    name = "special-exports"

    def __init__(self, names: Sequence[str] = SPECIAL_EXPORT_NAMES,
                 roots: Sequence[str] = ROUTE_TREE_ROOTS):
        self.names = frozenset(names)
        self.roots = tuple(roots)

    def apply(self, context: LivenessContext) -> int:
        marked = 0
        for file_path, exports in context.exports_by_file.items():
            if route_tree_root(context.relative_parts(file_path), self.roots) is None:
                continue
            for exp in exports:
                if not exp.is_default and exp.exported_name in self.names:
                    if mark_framework_used(exp):
                        marked += 1
        return marked


class ActionsDirectoryRule(LivenessRule):
    """Every export of a file under an `actions/` directory."""

    name = "actions-directory"

    def __init__(self, directory_names: Sequence[str] = ACTIONS_DIRECTORY_NAMES):
        self.directory_names = frozenset(directory_names)

    def apply(self, context: LivenessContext) -> int:
        marked = 0
        for file_path, exports in context.exports_by_file.items():
            directories = context.relative_parts(file_path)[:-1]
            if not self.directory_names.intersection(directories):
                continue
            for exp in exports:
                if mark_framework_used(exp):
                    marked += 1
        return marked


class MiddlewareRule(LivenessRule):
    """middleware.* and instrumentation.* at the project root or in src/."""

    name = "middleware"

    def __init__(self, stems: Sequence[str] = ROOT_ENTRY_STEMS):
        self.stems = tuple(stems)

    def apply(self, context: LivenessContext) -> int:
        marked = 0
        for file_path, exports in context.exports_by_file.items():
            parts = context.relative_parts(file_path)
            if parts[:-1] not in ([], ["src"]):
                continue
            if file_stem(file_path) not in self.stems:
                continue
            for exp in exports:
                if mark_framework_used(exp):
                    marked += 1
        return marked


def default_rules() -> List[LivenessRule]:
    """The built-in rules in the order they run."""
    return [
        RouteHandlerRule(),
        ServerActionRule(),
        HookUsageRule(),
        PageComponentRule(),
        SpecialExportRule(),
        ActionsDirectoryRule(),
        MiddlewareRule(),
    ]
