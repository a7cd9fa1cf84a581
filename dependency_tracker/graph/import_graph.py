"""
File-level import graph.

Wraps a NetworkX DiGraph whose nodes are source files and whose edges are
resolved imports (importer -> imported file).
"""

import itertools
import os
from typing import Dict, List, Optional, Any

import networkx as nx


# simple_cycles can be exponential on dense graphs
MAX_REPORTED_CYCLES = 50


class ImportGraph:
    """
    Directed graph of resolved imports between project files.
    """

    def __init__(self):
        self.graph = nx.DiGraph()

    def add_file(self, file_path: str) -> None:
        """Add a file node."""
        self.graph.add_node(file_path)

    def add_import(self, importer: str, target: str, line: int, module_reference: str) -> None:
        """Add (or extend) the edge for a resolved import."""
        if self.graph.has_edge(importer, target):
            data = self.graph.edges[importer, target]
            data["lines"].append(line)
            if module_reference not in data["modules"]:
                data["modules"].append(module_reference)
            return
        self.graph.add_edge(importer, target, lines=[line], modules=[module_reference])

    def get_importers(self, file_path: str) -> List[str]:
        """Files that import this file."""
        if file_path not in self.graph:
            return []
        return sorted(self.graph.predecessors(file_path))

    def get_dependencies(self, file_path: str) -> List[str]:
        """Files this file imports."""
        if file_path not in self.graph:
            return []
        return sorted(self.graph.successors(file_path))

    def get_dependents(self, file_path: str) -> List[str]:
        """All files that depend on this file, directly or transitively."""
        if file_path not in self.graph:
            return []
        return sorted(nx.ancestors(self.graph, file_path))

    def find_cycles(self, limit: int = MAX_REPORTED_CYCLES) -> List[List[str]]:
        """Find import cycles, each rotated to start at its smallest path."""
        cycles = []
        for cycle in itertools.islice(nx.simple_cycles(self.graph), limit):
            start = cycle.index(min(cycle))
            cycles.append(cycle[start:] + cycle[:start])
        return sorted(cycles)

    def unimported_files(self) -> List[str]:
        """Files no other file imports."""
        return sorted(n for n in self.graph.nodes if self.graph.in_degree(n) == 0)

    def get_statistics(self, project_root: Optional[str] = None) -> Dict[str, Any]:
        """Summary used in the analysis result."""
        def _rel(path: str) -> str:
            if project_root is None:
                return path
            return os.path.relpath(path, project_root).replace("\\", "/")

        nodes = self.graph.number_of_nodes()
        return {
            "files": nodes,
            "edges": self.graph.number_of_edges(),
            "density": nx.density(self.graph) if nodes > 1 else 0.0,
            "cycles": [[_rel(p) for p in cycle] for cycle in self.find_cycles()],
            "unimported_files": len(self.unimported_files()),
        }
