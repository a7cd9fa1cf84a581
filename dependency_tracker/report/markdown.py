"""
Report Assembly

Renders an AnalysisResult into the markdown documents written to the
output directory, plus a machine-readable analysis.json.
"""

import json
import logging
import os
from typing import Dict, List

from ..core.entities import AnalysisResult, UsageSite
from ..graph.builder import relative_path

logger = logging.getLogger(__name__)


REPORT_FILES = {
    "used_exports": "used_exports.md",
    "unused_exports": "unused_exports.md",
    "missing_imports": "missing_imports.md",
    "interfaces": "interfaces.md",
    "routes": "routes.md",
}
JSON_FILE = "analysis.json"


def _usage_line(site: UsageSite, root: str) -> str:
    if site.is_framework:
        return "- Used by framework convention\n"
    return f"- Used in: `{relative_path(site.file, root)}` (Line {site.line})\n"


def generate_used_exports_markdown(result: AnalysisResult) -> str:
    md = "# ✅ Used Exports\n\n"
    if not result.used_exports:
        md += "No used exports found (or none tracked).\n"
        return md

    exports = sorted(result.used_exports.values(), key=lambda e: (e.declaring_file, e.exported_name))
    current_file = None
    for exp in exports:
        if exp.declaring_file != current_file:
            md += f"## File: `{relative_path(exp.declaring_file, result.project_root)}`\n"
            current_file = exp.declaring_file
        md += f"### Export: `{exp.display_name}` (Line {exp.declared_line})\n"
        for site in exp.used_by:
            md += _usage_line(site, result.project_root)
        md += "\n"
    return md


def generate_unused_exports_markdown(result: AnalysisResult) -> str:
    md = "# ❓ Unused Exports\n\n"
    if not result.unused_exports:
        md += "No potentially unused exports found within the analyzed scope.\n"
        return md

    for exp in sorted(result.unused_exports, key=lambda e: (e.declaring_file, e.declared_line)):
        rel = relative_path(exp.declaring_file, result.project_root)
        category = f" _{exp.category.value}_" if exp.category else ""
        md += f"- `{rel}` (Line {exp.declared_line}) → `{exp.display_name}`{category}\n"
    md += (
        "\n*Note: This list includes exports not found in static imports within the project "
        "and not matched by a framework convention. They might be used dynamically, "
        "by external projects, or are genuinely unused.*\n"
    )
    return md


def generate_missing_imports_markdown(result: AnalysisResult) -> str:
    md = "# ❌ Missing Imports\n\n"
    if not result.missing_imports:
        md += "No imports found that seem to be missing or unresolved.\n"
        return md

    root = result.project_root
    for mis in sorted(result.missing_imports, key=lambda m: (m.importing_file, m.importing_line)):
        md += f"- File: `{relative_path(mis.importing_file, root)}` (Line {mis.importing_line})\n"
        md += f"  - Tries to import: `{mis.missing_name}`\n"
        md += f"  - From module: `{mis.target_module}`\n"
        if mis.resolved_target:
            md += f"  - Resolved Target: `{relative_path(mis.resolved_target, root)}` ({mis.reason})\n"
        else:
            md += f"  - Resolution Error: {mis.reason or 'Could not resolve module path'}\n"
        md += "\n"
    md += (
        "\n*Note: This indicates imports where the specified name couldn't be found in the "
        "target module's exports, or the module itself couldn't be resolved within the "
        "workspace. This could be due to typos, incorrect paths, missing exports, or path "
        "alias configurations.*\n"
    )
    return md


def generate_interfaces_markdown(result: AnalysisResult) -> str:
    md = "# 📝 Interface Usage\n\n"
    if not result.interfaces:
        md += "No interface declarations found.\n"
        return md

    root = result.project_root
    for intf in sorted(result.interfaces.values(), key=lambda i: (i.name, i.declaring_file, i.declared_line)):
        md += f"## {intf.name}\n"
        md += f"- Declared in: `{relative_path(intf.declaring_file, root)}` (Line {intf.declared_line})\n"
        if intf.used_by:
            for site in sorted(intf.used_by, key=lambda s: (s.file, s.line)):
                md += _usage_line(site, root)
        else:
            md += "- *No usage found based on simple type reference matching within the project.*\n"
        md += "\n"
    md += (
        "\n*Note: Usage detection is based on finding type references matching the interface "
        "name. It might miss complex type manipulations or include matches for identically "
        "named types from other files.*\n"
    )
    return md


def generate_routes_markdown(result: AnalysisResult) -> str:
    md = "# 🧭 Route Structure (App Router)\n\n"
    root = result.project_root
    if not result.routes:
        md += "No App Router routes (`app/page.*` or `app/route.*`) found.\n"
    else:
        pages = [r for r in result.routes if not r.is_api_route]
        api_routes = [r for r in result.routes if r.is_api_route]

        if pages:
            md += "## Pages (`page.*`)\n"
            for route in pages:
                md += f"- `{route.route_path}` → `{relative_path(route.declaring_file, root)}`\n"
            md += "\n"

        if api_routes:
            md += "## API Routes (`route.*`)\n"
            for route in api_routes:
                methods = f" [{', '.join(route.exported_http_methods)}]" if route.exported_http_methods else ""
                md += f"- `{route.route_path}`{methods} → `{relative_path(route.declaring_file, root)}`\n"
                for usage in route.used_by:
                    md += (f"  - {usage.http_method or 'GET'} `{usage.target}` from "
                           f"`{relative_path(usage.source_file, root)}` (Line {usage.line})\n")
            md += "\n"

    if result.server_actions:
        md += "## Server Actions\n"
        for action in sorted(result.server_actions, key=lambda a: (a.declaring_file, a.declared_line)):
            md += (f"- `{action.name}` in `{relative_path(action.declaring_file, root)}` "
                   f"(Line {action.declared_line}), {len(action.used_by)} call site(s)\n")
        md += "\n"

    if result.hooks:
        md += "## Hooks\n"
        for hook in sorted(result.hooks, key=lambda h: (h.declaring_file, h.declared_line)):
            md += (f"- `{hook.name}` in `{relative_path(hook.declaring_file, root)}` "
                   f"(Line {hook.declared_line}), {len(hook.used_by)} call site(s)\n")
        md += "\n"

    md += (
        "\n*Note: Route paths are derived from the directory structure within `app/` or "
        "`src/app/`, ignoring route groups `(...)`.*\n"
    )
    return md


def render_reports(result: AnalysisResult) -> Dict[str, str]:
    """Render every markdown document, keyed by file name."""
    return {
        REPORT_FILES["used_exports"]: generate_used_exports_markdown(result),
        REPORT_FILES["unused_exports"]: generate_unused_exports_markdown(result),
        REPORT_FILES["missing_imports"]: generate_missing_imports_markdown(result),
        REPORT_FILES["interfaces"]: generate_interfaces_markdown(result),
        REPORT_FILES["routes"]: generate_routes_markdown(result),
    }


def write_reports(result: AnalysisResult, output_dir: str) -> List[str]:
    """
    Write the markdown reports and analysis.json.

    Args:
        result: Analysis to render
        output_dir: Absolute output directory, created if missing

    Returns:
        Paths of the files written
    """
    os.makedirs(output_dir, exist_ok=True)
    logger.info("Writing reports to %s/...", relative_path(output_dir, result.project_root))

    written = []
    for file_name, content in render_reports(result).items():
        path = os.path.join(output_dir, file_name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        written.append(path)

    json_path = os.path.join(output_dir, JSON_FILE)
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2)
    written.append(json_path)
    return written
