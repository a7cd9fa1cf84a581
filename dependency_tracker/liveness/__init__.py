"""
Framework liveness rules: exports the framework uses by convention.

Usage:
    from dependency_tracker.liveness import LivenessRuleEngine

    engine = LivenessRuleEngine()                  # built-in rules
    engine = LivenessRuleEngine.from_settings(settings.liveness)
"""

from .rules import (
    FRAMEWORK_SITE,
    ROUTE_TREE_ROOTS,
    PAGE_FILE_STEMS,
    SPECIAL_EXPORT_NAMES,
    ACTIONS_DIRECTORY_NAMES,
    LivenessContext,
    LivenessRule,
    RouteHandlerRule,
    ServerActionRule,
    HookUsageRule,
    PageComponentRule,
    SpecialExportRule,
    ActionsDirectoryRule,
    MiddlewareRule,
    default_rules,
    mark_framework_used,
)

from .engine import LivenessRuleEngine


__all__ = [
    "FRAMEWORK_SITE",
    "ROUTE_TREE_ROOTS",
    "PAGE_FILE_STEMS",
    "SPECIAL_EXPORT_NAMES",
    "ACTIONS_DIRECTORY_NAMES",
    "LivenessContext",
    "LivenessRule",
    "RouteHandlerRule",
    "ServerActionRule",
    "HookUsageRule",
    "PageComponentRule",
    "SpecialExportRule",
    "ActionsDirectoryRule",
    "MiddlewareRule",
    "default_rules",
    "mark_framework_used",
    "LivenessRuleEngine",
]
