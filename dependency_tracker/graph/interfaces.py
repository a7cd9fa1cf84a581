"""
Interface usage aggregation.

Matching is by name only: an identifier in a type position counts as a use
of every interface declared with that name, in any file. There is no scope
or import check, so same-named interfaces share their usages.
"""

from typing import Dict, Iterable, List

from ..core.entities import Interface, PotentialInterfaceUsage


def index_interfaces_by_name(interfaces: Iterable[Interface]) -> Dict[str, List[Interface]]:
    """Group interface declarations by name."""
    by_name: Dict[str, List[Interface]] = {}
    for intf in interfaces:
        by_name.setdefault(intf.name, []).append(intf)
    return by_name


def aggregate_interface_usage(
    interfaces: Iterable[Interface],
    potential_usages: Iterable[PotentialInterfaceUsage],
) -> int:
    """
    Attach usage sites to interface declarations.

    Args:
        interfaces: Declarations to update in place
        potential_usages: Identifiers found in type references / heritage clauses

    Returns:
        Number of usage sites attached
    """
    by_name = index_interfaces_by_name(interfaces)
    attached = 0
    for usage in potential_usages:
        for intf in by_name.get(usage.name, []):
            if usage.site not in intf.used_by:
                intf.used_by.append(usage.site)
                attached += 1
    return attached
