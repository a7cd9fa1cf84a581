"""
Dependency Graph Builder

Turns extracted facts into an AnalysisResult:
1. Index exports by key and by declaring file
2. Resolve every import and match its bound names against the target's exports
3. Correlate dynamic usages with routes, hooks and server actions
4. Apply framework liveness rules
5. Partition exports into used / unused
6. Aggregate interface usages by name
"""

import logging
import os
import time
from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple

from ..core.entities import (
    AnalysisResult,
    Export,
    Import,
    MissingImport,
    ProjectFacts,
    UsageSite,
)
from ..core.resolver import ModuleResolver, Resolution
from ..liveness import LivenessContext, LivenessRuleEngine
from .import_graph import ImportGraph
from .interfaces import aggregate_interface_usage
from .usage_matcher import UsageMatcher

logger = logging.getLogger(__name__)


REASON_NO_EXPORTS = "target resolved but no exports parsed"
REASON_EXPORT_NOT_FOUND = "export not found in target module"


def relative_path(path: str, project_root: str) -> str:
    """Forward-slash path relative to the project root (unchanged for sentinels)."""
    if not os.path.isabs(path):
        return path
    return os.path.relpath(path, project_root).replace("\\", "/")


def match_export(name: str, target_exports: List[Export]) -> Optional[Export]:
    """
    Find the export an imported name binds to.

    A non-default export matches on exact name. A default export matches
    when its local name equals the imported name, or when it has no local
    name at all. The first match in declaration order wins.
    """
    for exp in target_exports:
        if not exp.is_default:
            if exp.exported_name == name:
                return exp
        elif not exp.local_name or exp.local_name == name:
            return exp
    return None


class DependencyGraphBuilder:
    """
    Builds the used/unused classification for one analysis run.

    The builder copies every fact it annotates, so the caller's ProjectFacts
    are never modified and running twice gives the same result.
    """

    def __init__(
        self,
        project_root: str,
        resolver: Optional[ModuleResolver] = None,
        rule_engine: Optional[LivenessRuleEngine] = None,
    ):
        self.project_root = os.path.realpath(project_root)
        self.resolver = resolver or ModuleResolver(self.project_root)
        self.rule_engine = rule_engine or LivenessRuleEngine()
        self._canonical_cache: Dict[str, str] = {}

    def analyze(self, facts: ProjectFacts) -> AnalysisResult:
        start_time = time.time()
        logger.info("Starting dependency analysis...")

        self.resolver.reset()
        self._canonical_cache.clear()

        # 1. Index exports
        export_index, exports_by_file = self._index_exports(facts.exports)
        import_graph = ImportGraph()
        for file_path in exports_by_file:
            import_graph.add_file(file_path)

        # 2. Process imports
        logger.info("Analyzing %d imports...", len(facts.imports))
        missing: List[MissingImport] = []
        errors: List[str] = []
        reported: Set[Tuple[str, str]] = set()

        for imp in facts.imports:
            importer = self._canonical(imp.importing_file)
            import_graph.add_file(importer)
            resolution = self.resolver.resolve(imp.module_reference, importer)

            if resolution.ok:
                import_graph.add_import(importer, resolution.resolved_path, imp.line, imp.module_reference)
                target_exports = exports_by_file.get(resolution.resolved_path, [])
                missing.extend(self._bind_names(imp, importer, resolution, target_exports))
            elif resolution.is_external:
                continue
            else:
                missing.extend(self._unresolved(imp, importer, resolution))
                if (imp.module_reference, importer) not in reported:
                    reported.add((imp.module_reference, importer))
                    errors.append(
                        f"Module resolution failed for '{imp.module_reference}' in "
                        f"{relative_path(importer, self.project_root)}: {resolution.failure.detail}"
                    )

        # 3. Dynamic usages
        routes = [replace(r, declaring_file=self._canonical(r.declaring_file), used_by=list(r.used_by))
                  for r in facts.routes]
        server_actions = [replace(a, declaring_file=self._canonical(a.declaring_file), used_by=list(a.used_by))
                          for a in facts.server_actions]
        hooks = [replace(h, declaring_file=self._canonical(h.declaring_file), used_by=list(h.used_by))
                 for h in facts.hooks]
        dynamic_usages = [replace(d, source_file=self._canonical(d.source_file))
                          for d in facts.dynamic_usages]
        matched = UsageMatcher(routes, hooks, server_actions).attach(dynamic_usages)
        logger.debug("Matched %d of %d dynamic usages", matched, len(dynamic_usages))

        # 4. Framework liveness
        context = LivenessContext(
            project_root=self.project_root,
            exports_by_file=exports_by_file,
            routes=routes,
            server_actions=server_actions,
            hooks=hooks,
        )
        self.rule_engine.apply(context)

        # 5. Partition
        used = sorted((e for e in export_index.values() if e.is_used),
                      key=lambda e: (e.declaring_file, e.exported_name, e.is_default))
        unused = sorted((e for e in export_index.values() if not e.is_used),
                        key=lambda e: (e.declaring_file, e.declared_line, e.exported_name))

        # 6. Interfaces
        interfaces = [replace(i, declaring_file=self._canonical(i.declaring_file), used_by=list(i.used_by))
                      for i in facts.interfaces]
        potential = [replace(p, site=UsageSite(self._canonical(p.site.file), p.site.line))
                     for p in facts.potential_interface_usages]
        logger.info("Analyzing %d potential interface usages...", len(potential))
        aggregate_interface_usage(interfaces, potential)
        for intf in interfaces:
            intf.used_by.sort(key=lambda s: (s.file, s.line))
        interfaces.sort(key=lambda i: (i.name, i.declaring_file, i.declared_line))

        for exp in used:
            exp.used_by.sort(key=lambda s: (not s.is_framework, s.file, s.line))
        missing.sort(key=lambda m: (m.importing_file, m.importing_line, m.missing_name))

        result = AnalysisResult(
            project_root=self.project_root,
            used_exports={e.key: e for e in used},
            unused_exports=unused,
            missing_imports=missing,
            interfaces={i.key: i for i in interfaces},
            routes=routes,
            server_actions=server_actions,
            hooks=hooks,
            dynamic_usages=dynamic_usages,
            errors=sorted(errors) + list(facts.parse_errors),
            graph_stats=import_graph.get_statistics(self.project_root),
            import_graph=import_graph,
        )

        elapsed_ms = (time.time() - start_time) * 1000
        logger.info("Dependency analysis finished in %dms.", elapsed_ms)
        logger.info(
            "Found %d used exports, %d unused exports, %d missing imports.",
            len(result.used_exports), len(result.unused_exports), len(result.missing_imports),
        )
        logger.debug("Resolver stats: %s", self.resolver.stats)
        return result

    # ─── Steps ────────────────────────────────────

    def _index_exports(self, exports: List[Export]) -> Tuple[Dict[str, Export], Dict[str, List[Export]]]:
        """Copy exports into the key index and the per-file index."""
        index: Dict[str, Export] = {}
        by_file: Dict[str, List[Export]] = {}
        for exp in exports:
            copy = replace(exp, declaring_file=self._canonical(exp.declaring_file), used_by=list(exp.used_by))
            if copy.key in index:
                logger.debug("Duplicate export %s ignored", copy.key)
                continue
            index[copy.key] = copy
            by_file.setdefault(copy.declaring_file, []).append(copy)
        return index, by_file

    def _bind_names(self, imp: Import, importer: str, resolution: Resolution,
                    target_exports: List[Export]) -> List[MissingImport]:
        """Register usages for every name an import binds; return what did not match."""
        site = UsageSite(importer, imp.line)
        missing = []

        if imp.namespace_name:
            if target_exports:
                for exp in target_exports:
                    exp.add_usage(site)
            else:
                missing.append(self._missing(imp, importer, f"* as {imp.namespace_name}",
                                             REASON_NO_EXPORTS, resolution.resolved_path))

        for local_name in imp.imported_names:
            name = imp.lookup_name(local_name)
            if not target_exports:
                missing.append(self._missing(imp, importer, name, REASON_NO_EXPORTS,
                                             resolution.resolved_path))
                continue
            exp = match_export(name, target_exports)
            if exp is None:
                missing.append(self._missing(imp, importer, name, REASON_EXPORT_NOT_FOUND,
                                             resolution.resolved_path))
            else:
                exp.add_usage(site)
        return missing

    def _unresolved(self, imp: Import, importer: str, resolution: Resolution) -> List[MissingImport]:
        """Missing-import entries for a module reference that failed to resolve."""
        names = [imp.lookup_name(n) for n in imp.imported_names]
        if imp.namespace_name:
            names.insert(0, f"* as {imp.namespace_name}")
        return [self._missing(imp, importer, name, resolution.failure.detail) for name in names]

    @staticmethod
    def _missing(imp: Import, importer: str, name: str, reason: str,
                 resolved_target: Optional[str] = None) -> MissingImport:
        return MissingImport(
            importing_file=importer,
            importing_line=imp.line,
            missing_name=name,
            target_module=imp.module_reference,
            reason=reason,
            resolved_target=resolved_target,
        )

    def _canonical(self, path: str) -> str:
        if path not in self._canonical_cache:
            self._canonical_cache[path] = os.path.realpath(path)
        return self._canonical_cache[path]


def analyze(
    facts: ProjectFacts,
    project_root: str,
    resolver: Optional[ModuleResolver] = None,
    rule_engine: Optional[LivenessRuleEngine] = None,
) -> AnalysisResult:
    """
    Analyze extracted facts for one project.

    Args:
        facts: Extraction output for every project file
        project_root: Root directory the facts were extracted from
        resolver: Module resolver for this run (a fresh one by default)
        rule_engine: Liveness rules to apply (the built-in rules by default)

    Returns:
        AnalysisResult with every export either used or unused
    """
    return DependencyGraphBuilder(project_root, resolver, rule_engine).analyze(facts)
