from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import logging
import os
from typing import Any, Dict, List, Optional

import dotenv

from dependency_tracker.core.entities import AnalysisResult
from dependency_tracker.graph.builder import relative_path
from dependency_tracker.service import AnalysisService

logger = logging.getLogger(__name__)

dotenv.load_dotenv()

# --- CONFIGURATION ---
PROJECT_ROOT = os.getenv("PROJECT_ROOT", os.getcwd())

app = FastAPI(
    title="Dependency Tracker",
    description="Used, unused and unresolved exports of a Next.js project",
    version="1.0.0"
)

# Enable CORS (so an editor extension can talk to this)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- GLOBAL STATE ---
state: Dict[str, Any] = {
    "service": None,       # AnalysisService, created lazily
    "last_error": None,    # message of the last failed run
}


def _record_notification(level: str, message: str) -> None:
    logger.log(logging.ERROR if level == "error" else logging.INFO, message)
    if level == "error":
        state["last_error"] = message


def get_service() -> AnalysisService:
    if state["service"] is None:
        state["service"] = AnalysisService(PROJECT_ROOT, notify=_record_notification)
    return state["service"]


def set_service(service: Optional[AnalysisService]) -> None:
    """Replace the service (used by tests and embedding applications)."""
    state["service"] = service
    state["last_error"] = None


def _require_result() -> AnalysisResult:
    result = get_service().last_result
    if result is None:
        raise HTTPException(status_code=404, detail="No analysis result yet. POST /analyze first.")
    return result


def _matches_file(path: str, root: str, file_filter: Optional[str]) -> bool:
    return not file_filter or file_filter in relative_path(path, root)


@app.on_event("startup")
async def create_service():
    """Create the analysis service; the first run happens on POST /analyze."""
    service = get_service()
    print(f"[Startup] Tracking project: {service.project_root}")


@app.get("/")
def health_check():
    service = get_service()
    return {
        "status": "active",
        "system": "Dependency Tracker",
        "project_root": service.project_root,
        "analysis_running": service.is_running,
        "has_result": service.last_result is not None,
        "last_error": state["last_error"],
    }


class AnalyzeRequest(BaseModel):
    project_root: Optional[str] = None


@app.post("/analyze")
def run_analysis(request: Optional[AnalyzeRequest] = None):
    """Run the full pipeline and return the summary."""
    service = get_service()
    if service.is_running:
        raise HTTPException(status_code=409, detail="An analysis is already in progress")

    project_root = request.project_root if request else None
    if project_root and not os.path.isdir(project_root):
        raise HTTPException(status_code=400, detail=f"Not a directory: {project_root}")

    state["last_error"] = None
    result = service.run_full_analysis(project_root)
    if result is None:
        if service.is_running:
            raise HTTPException(status_code=409, detail="An analysis is already in progress")
        raise HTTPException(status_code=500, detail=state["last_error"] or "Analysis did not complete")

    return {
        "status": "success",
        "project_root": result.project_root,
        "duration_seconds": round(service.last_duration or 0.0, 3),
        "summary": result.summary(),
    }


@app.get("/exports/used")
def get_used_exports(file: Optional[str] = Query(None, description="Filter by relative file path substring")):
    result = _require_result()
    return [e.to_dict() for e in result.used_exports.values()
            if _matches_file(e.declaring_file, result.project_root, file)]


@app.get("/exports/unused")
def get_unused_exports(
    file: Optional[str] = Query(None, description="Filter by relative file path substring"),
    category: Optional[str] = Query(None, description="route-handler, server-action, hook, component or utility"),
):
    result = _require_result()
    exports = [e for e in result.unused_exports if _matches_file(e.declaring_file, result.project_root, file)]
    if category:
        exports = [e for e in exports if e.category is not None and e.category.value == category]
    return [e.to_dict() for e in exports]


@app.get("/imports/missing")
def get_missing_imports(file: Optional[str] = Query(None, description="Filter by relative file path substring")):
    result = _require_result()
    return [m.to_dict() for m in result.missing_imports
            if _matches_file(m.importing_file, result.project_root, file)]


@app.get("/interfaces")
def get_interfaces(unused_only: bool = Query(False, description="Only interfaces with no usage")):
    result = _require_result()
    return [i.to_dict() for i in result.interfaces.values() if not unused_only or not i.used_by]


@app.get("/routes")
def get_routes() -> Dict[str, List[Dict[str, Any]]]:
    result = _require_result()
    return {
        "routes": [r.to_dict() for r in result.routes],
        "server_actions": [a.to_dict() for a in result.server_actions],
        "hooks": [h.to_dict() for h in result.hooks],
    }


@app.get("/graph/stats")
def get_graph_stats():
    result = _require_result()
    return {**result.graph_stats, "errors": result.errors}


@app.get("/graph/file")
def get_file_dependencies(path: str = Query(..., description="File path relative to the project root")):
    """Direct importers, direct dependencies and transitive dependents of one file."""
    result = _require_result()
    graph = result.import_graph
    file_path = os.path.realpath(os.path.join(result.project_root, path))
    if graph is None or file_path not in graph.graph:
        raise HTTPException(status_code=404, detail=f"File not in import graph: {path}")

    def _rel(paths: List[str]) -> List[str]:
        return [relative_path(p, result.project_root) for p in paths]

    return {
        "file": relative_path(file_path, result.project_root),
        "importers": _rel(graph.get_importers(file_path)),
        "dependencies": _rel(graph.get_dependencies(file_path)),
        "dependents": _rel(graph.get_dependents(file_path)),
    }
