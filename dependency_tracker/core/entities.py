"""
Fact models for dependency analysis.

Extraction produces these records as plain data; the analysis core only ever
reads them (and attaches usage sites to its own copies). Every record keeps
absolute file paths and 1-based line numbers.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
from enum import Enum


# Location used for usages the framework creates implicitly
FRAMEWORK_SENTINEL = "<framework>"

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD")


def export_key(file_path: str, name: str, is_default: bool) -> str:
    """Identity key of an export: normalized file, exported name, default flag."""
    return f"{os.path.normpath(file_path)}|{name}|{is_default}"


class ExportCategory(Enum):
    """What kind of thing an export appears to be."""
    ROUTE_HANDLER = "route-handler"
    SERVER_ACTION = "server-action"
    HOOK = "hook"
    COMPONENT = "component"
    UTILITY = "utility"


class UsageKind(Enum):
    """Runtime reference patterns that bypass the import graph."""
    NETWORK_CALL = "network-call"
    FORM_ACTION = "form-action"
    HOOK_CALL = "hook-call"
    ACTION_CALL = "action-call"


class FailureReason(Enum):
    """Why a module reference did not map to a project file."""
    RELATIVE_FAILED = "relative path resolution failed"
    ALIAS_FAILED = "alias resolution failed"
    EXTERNAL_NODE_MODULES = "external via node_modules"
    EXTERNAL = "not relative, not aliased"
    ASSET = "non-source asset"

    @property
    def is_external(self) -> bool:
        """External failures are expected and never reported as missing."""
        return self in (
            FailureReason.EXTERNAL_NODE_MODULES,
            FailureReason.EXTERNAL,
            FailureReason.ASSET,
        )


@dataclass(frozen=True)
class UsageSite:
    """A location where an export or interface is referenced."""
    file: str
    line: int

    @property
    def is_framework(self) -> bool:
        return self.file == FRAMEWORK_SENTINEL

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "line": self.line}


@dataclass
class Export:
    """
    A named or default binding a file makes available to importers.

    Attributes:
        exported_name: Public name ('default' for default exports)
        declaring_file: Absolute path of the exporting file
        declared_line: Line of the declaration (or of the export statement)
        is_default: True for `export default ...`
        local_name: Name inside the file, None for anonymous defaults
        category: Heuristic classification used by reports
        used_by: Usage sites, filled in during analysis
    """
    exported_name: str
    declaring_file: str
    declared_line: int
    is_default: bool = False
    local_name: Optional[str] = None
    category: Optional[ExportCategory] = None
    used_by: List[UsageSite] = field(default_factory=list)

    @property
    def key(self) -> str:
        return export_key(self.declaring_file, self.exported_name, self.is_default)

    @property
    def is_used(self) -> bool:
        return len(self.used_by) > 0

    @property
    def display_name(self) -> str:
        """Name as shown in reports, e.g. `default (default: Page)`."""
        if not self.is_default:
            return self.exported_name
        if self.local_name:
            return f"{self.exported_name} (default: {self.local_name})"
        return f"{self.exported_name} (default)"

    def add_usage(self, site: UsageSite) -> bool:
        """Attach a usage site once. Returns False if it was already there."""
        if site in self.used_by:
            return False
        self.used_by.append(site)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.exported_name,
            "local_name": self.local_name,
            "file": self.declaring_file,
            "line": self.declared_line,
            "is_default": self.is_default,
            "category": self.category.value if self.category else None,
            "used_by": [u.to_dict() for u in self.used_by],
        }


@dataclass
class Import:
    """
    One import statement.

    `imported_names` holds the locally bound names. For `import { a as b }`
    the bound name is `b` and `aliases` maps it back to `a`. A namespace
    import (`import * as ns`) binds `namespace_name`.
    """
    importing_file: str
    module_reference: str
    line: int
    imported_names: List[str] = field(default_factory=list)
    aliases: Dict[str, str] = field(default_factory=dict)
    namespace_name: Optional[str] = None

    def lookup_name(self, local_name: str) -> str:
        """Name to look for in the target module for a bound name."""
        return self.aliases.get(local_name, local_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.importing_file,
            "line": self.line,
            "module": self.module_reference,
            "imported_names": self.imported_names,
            "aliases": self.aliases,
            "namespace_name": self.namespace_name,
        }


@dataclass
class Interface:
    """An interface declaration. Each declaration stays distinct, including merged ones in one file."""
    name: str
    declaring_file: str
    declared_line: int
    used_by: List[UsageSite] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{os.path.normpath(self.declaring_file)}|{self.name}|{self.declared_line}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file": self.declaring_file,
            "line": self.declared_line,
            "used_by": [u.to_dict() for u in self.used_by],
        }


@dataclass
class PotentialInterfaceUsage:
    """An identifier seen in a type reference or heritage clause."""
    name: str
    site: UsageSite


@dataclass
class DynamicUsage:
    """A runtime-pattern reference: fetch call, form action, hook call or action call."""
    kind: UsageKind
    target: str
    source_file: str
    line: int
    http_method: Optional[str] = None

    @property
    def site(self) -> UsageSite:
        return UsageSite(self.source_file, self.line)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "target": self.target,
            "method": self.http_method,
            "file": self.source_file,
            "line": self.line,
        }


@dataclass
class Route:
    """
    An App Router route.

    Attributes:
        route_path: URL path, e.g. /api/users/[id]
        declaring_file: Absolute path of the page.* or route.* file
        is_api_route: True for route.* handlers
        exported_http_methods: HTTP method names the route file exports
        used_by: Network calls matched to this route
    """
    route_path: str
    declaring_file: str
    is_api_route: bool = False
    exported_http_methods: Optional[List[str]] = None
    used_by: List[DynamicUsage] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "route_path": self.route_path,
            "file": self.declaring_file,
            "is_api": self.is_api_route,
            "methods": self.exported_http_methods,
            "used_by": [u.to_dict() for u in self.used_by],
        }


@dataclass
class ServerAction:
    """An exported function from a 'use server' module or with a 'use server' body."""
    name: str
    declaring_file: str
    declared_line: int
    used_by: List[DynamicUsage] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file": self.declaring_file,
            "line": self.declared_line,
            "used_by": [u.to_dict() for u in self.used_by],
        }


@dataclass
class Hook:
    """An exported React hook (name starting with `use`)."""
    name: str
    declaring_file: str
    declared_line: int
    used_by: List[DynamicUsage] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file": self.declaring_file,
            "line": self.declared_line,
            "used_by": [u.to_dict() for u in self.used_by],
        }


@dataclass
class ResolutionFailure:
    """A module reference that could not be mapped to a project file."""
    source_module: str
    importing_file: str
    reason: FailureReason
    detail: str = ""

    @property
    def is_external(self) -> bool:
        return self.reason.is_external

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module": self.source_module,
            "file": self.importing_file,
            "reason": self.reason.value,
            "detail": self.detail,
        }


@dataclass
class MissingImport:
    """An imported name that could not be matched to an export."""
    importing_file: str
    importing_line: int
    missing_name: str
    target_module: str
    reason: str
    resolved_target: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.importing_file,
            "line": self.importing_line,
            "name": self.missing_name,
            "module": self.target_module,
            "resolved_target": self.resolved_target,
            "reason": self.reason,
        }


@dataclass
class ParsedFile:
    """
    Everything extraction found in one source file.
    """
    file_path: str
    exports: List[Export] = field(default_factory=list)
    imports: List[Import] = field(default_factory=list)
    interfaces: List[Interface] = field(default_factory=list)
    potential_interface_usages: List[PotentialInterfaceUsage] = field(default_factory=list)
    dynamic_usages: List[DynamicUsage] = field(default_factory=list)
    server_actions: List[ServerAction] = field(default_factory=list)
    hooks: List[Hook] = field(default_factory=list)

    # Parse status
    parse_success: bool = True
    parse_errors: List[str] = field(default_factory=list)


@dataclass
class ProjectFacts:
    """Aggregated extraction output for one analysis run."""
    exports: List[Export] = field(default_factory=list)
    imports: List[Import] = field(default_factory=list)
    interfaces: List[Interface] = field(default_factory=list)
    potential_interface_usages: List[PotentialInterfaceUsage] = field(default_factory=list)
    routes: List[Route] = field(default_factory=list)
    server_actions: List[ServerAction] = field(default_factory=list)
    hooks: List[Hook] = field(default_factory=list)
    dynamic_usages: List[DynamicUsage] = field(default_factory=list)
    parse_errors: List[str] = field(default_factory=list)
    file_count: int = 0

    def add(self, parsed: ParsedFile) -> None:
        """Merge one parsed file into the project facts."""
        self.file_count += 1
        self.exports.extend(parsed.exports)
        self.imports.extend(parsed.imports)
        self.interfaces.extend(parsed.interfaces)
        self.potential_interface_usages.extend(parsed.potential_interface_usages)
        self.dynamic_usages.extend(parsed.dynamic_usages)
        self.server_actions.extend(parsed.server_actions)
        self.hooks.extend(parsed.hooks)
        self.parse_errors.extend(parsed.parse_errors)


@dataclass
class AnalysisResult:
    """
    Output of one analysis run, consumed by report assembly.
    """
    project_root: str
    used_exports: Dict[str, Export] = field(default_factory=dict)
    unused_exports: List[Export] = field(default_factory=list)
    missing_imports: List[MissingImport] = field(default_factory=list)
    interfaces: Dict[str, Interface] = field(default_factory=dict)
    routes: List[Route] = field(default_factory=list)
    server_actions: List[ServerAction] = field(default_factory=list)
    hooks: List[Hook] = field(default_factory=list)
    dynamic_usages: List[DynamicUsage] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    graph_stats: Dict[str, Any] = field(default_factory=dict)
    # ImportGraph of the run; not serialized
    import_graph: Optional[Any] = field(default=None, repr=False, compare=False)

    @property
    def total_exports(self) -> int:
        return len(self.used_exports) + len(self.unused_exports)

    def summary(self) -> Dict[str, int]:
        return {
            "exports": self.total_exports,
            "used_exports": len(self.used_exports),
            "unused_exports": len(self.unused_exports),
            "missing_imports": len(self.missing_imports),
            "interfaces": len(self.interfaces),
            "routes": len(self.routes),
            "server_actions": len(self.server_actions),
            "hooks": len(self.hooks),
            "errors": len(self.errors),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_root": self.project_root,
            "summary": self.summary(),
            "used_exports": [e.to_dict() for e in self.used_exports.values()],
            "unused_exports": [e.to_dict() for e in self.unused_exports],
            "missing_imports": [m.to_dict() for m in self.missing_imports],
            "interfaces": [i.to_dict() for i in self.interfaces.values()],
            "routes": [r.to_dict() for r in self.routes],
            "server_actions": [a.to_dict() for a in self.server_actions],
            "hooks": [h.to_dict() for h in self.hooks],
            "dynamic_usages": [d.to_dict() for d in self.dynamic_usages],
            "errors": self.errors,
            "graph": self.graph_stats,
        }
