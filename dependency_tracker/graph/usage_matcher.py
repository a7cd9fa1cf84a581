"""
Correlates dynamic usages with declared routes, hooks and server actions.

- network-call: matched against App Router route paths (exact, prefix or
  dynamic-segment pattern); the first matching route in list order wins.
- hook-call: exact hook name.
- form-action / action-call: exact server action name.
"""

import re
from typing import Dict, Iterable, List, Optional, Pattern
from urllib.parse import urlsplit

from ..core.entities import DynamicUsage, Hook, Route, ServerAction, UsageKind


_OPTIONAL_CATCH_ALL = re.compile(r"/\\\[\\\[\\\.\\\.\\\.[^\]]+\\\]\\\]")
_CATCH_ALL = re.compile(r"\\\[\\\.\\\.\\\.[^\]]+\\\]")
_DYNAMIC = re.compile(r"\\\[[^\]]+\\\]")


def route_pattern(route_path: str) -> Pattern:
    """
    Build the regex for a route path with bracket segments.

    `[id]` matches one segment, `[...slug]` one or more, `[[...slug]]` zero
    or more. The pattern is anchored and allows any trailing path.
    """
    escaped = re.escape(route_path)
    # Catch-all forms first so `[...slug]` is not taken for a single segment
    escaped = _OPTIONAL_CATCH_ALL.sub("(?:/[^/]+)*", escaped)
    escaped = _CATCH_ALL.sub("[^/]+(?:/[^/]+)*", escaped)
    escaped = _DYNAMIC.sub("[^/]+", escaped)
    return re.compile(f"^{escaped}(?:/.*)?$")


def normalize_target_path(target: str) -> str:
    """Reduce a fetch URL to its path: drop scheme, host, query and fragment."""
    parts = urlsplit(target)
    path = parts.path or "/"
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return path


class UsageMatcher:
    """
    Matches dynamic usages to routes, hooks and server actions.

    Patterns for dynamic routes are compiled once per matcher.
    """

    def __init__(self, routes: List[Route], hooks: List[Hook], server_actions: List[ServerAction]):
        self.routes = routes
        self.hooks = hooks
        self.server_actions = server_actions
        self._patterns: Dict[str, Pattern] = {}

    def match_route(self, target: str) -> Optional[Route]:
        """Find the first route a network call target refers to."""
        path = normalize_target_path(target)
        for route in self.routes:
            if path == route.route_path:
                return route
            if path.startswith(route.route_path.rstrip("/") + "/") and route.route_path != "/":
                return route
            if "[" in route.route_path and self._pattern_for(route.route_path).match(path):
                return route
        return None

    def match_hook(self, name: str) -> Optional[Hook]:
        for hook in self.hooks:
            if hook.name == name:
                return hook
        return None

    def match_server_action(self, name: str) -> Optional[ServerAction]:
        for action in self.server_actions:
            if action.name == name:
                return action
        return None

    def attach(self, usages: Iterable[DynamicUsage]) -> int:
        """
        Attach every usage to its matching declaration.

        Returns:
            Number of usages that found a match
        """
        matched = 0
        for usage in usages:
            target = None
            if usage.kind == UsageKind.NETWORK_CALL:
                target = self.match_route(usage.target)
            elif usage.kind == UsageKind.HOOK_CALL:
                target = self.match_hook(usage.target)
            elif usage.kind in (UsageKind.FORM_ACTION, UsageKind.ACTION_CALL):
                target = self.match_server_action(usage.target)

            if target is not None:
                target.used_by.append(usage)
                matched += 1
        return matched

    def _pattern_for(self, route_path: str) -> Pattern:
        if route_path not in self._patterns:
            self._patterns[route_path] = route_pattern(route_path)
        return self._patterns[route_path]

