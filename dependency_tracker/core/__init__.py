"""
Core module for dependency analysis: fact models and module resolution.
"""

from .entities import (
    FRAMEWORK_SENTINEL,
    HTTP_METHODS,
    ExportCategory,
    UsageKind,
    FailureReason,
    UsageSite,
    Export,
    Import,
    Interface,
    PotentialInterfaceUsage,
    DynamicUsage,
    Route,
    ServerAction,
    Hook,
    ResolutionFailure,
    MissingImport,
    ParsedFile,
    ProjectFacts,
    AnalysisResult,
    export_key,
)

from .compiler_config import (
    CompilerPaths,
    CompilerConfigCache,
    read_compiler_paths,
    strip_json_comments,
)

from .resolver import (
    SOURCE_EXTENSIONS,
    Resolution,
    ModuleResolver,
    match_alias,
)

__all__ = [
    # Entities
    "FRAMEWORK_SENTINEL",
    "HTTP_METHODS",
    "ExportCategory",
    "UsageKind",
    "FailureReason",
    "UsageSite",
    "Export",
    "Import",
    "Interface",
    "PotentialInterfaceUsage",
    "DynamicUsage",
    "Route",
    "ServerAction",
    "Hook",
    "ResolutionFailure",
    "MissingImport",
    "ParsedFile",
    "ProjectFacts",
    "AnalysisResult",
    "export_key",
    # Compiler config
    "CompilerPaths",
    "CompilerConfigCache",
    "read_compiler_paths",
    "strip_json_comments",
    # Resolver
    "SOURCE_EXTENSIONS",
    "Resolution",
    "ModuleResolver",
    "match_alias",
]
