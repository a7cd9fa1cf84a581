"""
Liveness Rule Engine

Runs the ordered liveness rules over the export index. Rules can be
disabled and their name lists extended through the `liveness:` section of
the tracker settings.
"""

import logging
from typing import Dict, List, Optional, Sequence, TYPE_CHECKING

from .rules import (
    ACTIONS_DIRECTORY_NAMES,
    PAGE_FILE_STEMS,
    ROUTE_TREE_ROOTS,
    SPECIAL_EXPORT_NAMES,
    ActionsDirectoryRule,
    HookUsageRule,
    LivenessContext,
    LivenessRule,
    MiddlewareRule,
    PageComponentRule,
    RouteHandlerRule,
    ServerActionRule,
    SpecialExportRule,
    default_rules,
)

if TYPE_CHECKING:
    from ..config import LivenessSettings

logger = logging.getLogger(__name__)


def _extend(base: Sequence[str], extra: Optional[Sequence[str]]) -> List[str]:
    merged = list(base)
    for item in extra or []:
        if item not in merged:
            merged.append(item)
    return merged


class LivenessRuleEngine:
    """
    Applies liveness rules in order.

    Every rule is additive and idempotent, so applying the engine twice to
    the same context leaves it unchanged after the first pass.
    """

    def __init__(self, rules: Optional[List[LivenessRule]] = None):
        self.rules = rules if rules is not None else default_rules()

    @classmethod
    def from_settings(cls, settings: Optional["LivenessSettings"]) -> "LivenessRuleEngine":
        """
        Build the rule list from the `liveness` settings section.

        Args:
            settings: Parsed settings; None gives the default rules

        Returns:
            Configured LivenessRuleEngine instance
        """
        if settings is None:
            return cls()

        roots = _extend(ROUTE_TREE_ROOTS, settings.route_roots)
        rules: List[LivenessRule] = [
            RouteHandlerRule(),
            ServerActionRule(),
            HookUsageRule(),
            PageComponentRule(_extend(PAGE_FILE_STEMS, settings.page_file_stems), roots),
            SpecialExportRule(_extend(SPECIAL_EXPORT_NAMES, settings.special_export_names), roots),
            ActionsDirectoryRule(_extend(ACTIONS_DIRECTORY_NAMES, settings.actions_directories)),
            MiddlewareRule(),
        ]

        disabled = set(settings.disabled_rules or [])
        unknown = disabled - {rule.name for rule in rules}
        if unknown:
            logger.warning("Unknown liveness rules in settings: %s", ", ".join(sorted(unknown)))

        return cls([rule for rule in rules if rule.name not in disabled])

    def apply(self, context: LivenessContext) -> Dict[str, int]:
        """
        Run every rule against the context.

        Returns:
            Dict of rule name -> number of exports it newly marked used
        """
        marked: Dict[str, int] = {}
        for rule in self.rules:
            marked[rule.name] = rule.apply(context)
            logger.debug("Liveness rule '%s' marked %d exports", rule.name, marked[rule.name])
        return marked

    def get_rules_summary(self) -> List[str]:
        return [rule.name for rule in self.rules]
