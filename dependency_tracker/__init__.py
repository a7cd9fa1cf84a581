"""
Static dependency analysis for Next.js projects.

Usage:
    from dependency_tracker import AnalysisService

    service = AnalysisService("path/to/project")
    result = service.run_full_analysis()
    print(result.summary())

Or run the pieces directly:
    from dependency_tracker import analyze, parse_project, find_project_files, load_settings
"""

from .config import TrackerSettings, LivenessSettings, load_settings, configure_logging
from .core import AnalysisResult, ModuleResolver, ProjectFacts
from .errors import TrackerError, DiscoveryError, AnalysisCancelled, ConfigError
from .graph import analyze, DependencyGraphBuilder
from .liveness import LivenessRuleEngine
from .parsing import find_project_files, parse_project
from .report import write_reports
from .service import AnalysisService

__version__ = "1.0.0"

__all__ = [
    "TrackerSettings",
    "LivenessSettings",
    "load_settings",
    "configure_logging",
    "AnalysisResult",
    "ModuleResolver",
    "ProjectFacts",
    "TrackerError",
    "DiscoveryError",
    "AnalysisCancelled",
    "ConfigError",
    "analyze",
    "DependencyGraphBuilder",
    "LivenessRuleEngine",
    "find_project_files",
    "parse_project",
    "write_reports",
    "AnalysisService",
]
