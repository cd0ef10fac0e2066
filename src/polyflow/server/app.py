from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from ..dag import compute_levels
from ..engine import ExecutionMode, run_workflow
from ..errors import GraphError, LoaderError
from ..executor import RunnerRegistry
from ..loader import discover_workflows, load_workflow, resolve_workflow_path
from ..model import WorkflowDefinition
from ..runners import default_registry
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)

# -------------------- Schemas --------------------

class WorkflowInfo(BaseModel):
    name: str
    display_name: str
    description: Optional[str] = None
    path: str
    step_count: int = 0
    error: Optional[str] = None

class RunRequest(BaseModel):
    mode: ExecutionMode = ExecutionMode.SEQUENTIAL
    max_concurrency: Optional[int] = Field(default=None, ge=0)

class StepReport(BaseModel):
    step_number: int
    step_name: str
    language: str
    output: Any = None
    duration_ms: int
    status: str
    error: Optional[str] = None
    error_kind: Optional[str] = None
    console: str = ""
    level: int = 0

class WorkflowExecution(BaseModel):
    workflow_name: str
    status: str
    steps: list[StepReport]
    total_duration_ms: int
    error: Optional[str] = None
    error_kind: Optional[str] = None
    levels: list[list[str]] = Field(default_factory=list)

class PlanResponse(BaseModel):
    workflow_name: str
    levels: list[list[str]]

# -------------------- App --------------------

def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[RunnerRegistry] = None,
) -> FastAPI:
    settings = settings or get_settings()
    registry = registry or default_registry(settings)
    app = FastAPI(title="polyflow workflow engine")

    def _load(name: str) -> WorkflowDefinition:
        try:
            path = resolve_workflow_path(name, settings.workflows_dir)
        except LoaderError:
            raise HTTPException(status_code=404, detail=f"Workflow '{name}' not found")
        try:
            return load_workflow(path)
        except LoaderError as e:
            raise HTTPException(status_code=422, detail=e.message)

    @app.get("/health")
    def health() -> dict:
        return {"ok": True}

    @app.get("/api/workflows", response_model=list[WorkflowInfo])
    def list_workflows():
        infos: list[WorkflowInfo] = []
        for path in discover_workflows(settings.workflows_dir):
            try:
                wf = load_workflow(path)
            except LoaderError as e:
                infos.append(WorkflowInfo(name=path.stem, display_name=path.stem, path=str(path), error=e.message))
                continue
            infos.append(
                WorkflowInfo(
                    name=path.stem,
                    display_name=wf.name,
                    description=wf.description or None,
                    path=str(Path(path)),
                    step_count=len(wf),
                )
            )
        infos.sort(key=lambda i: i.display_name)
        return infos

    @app.get("/api/workflows/{name}/plan", response_model=PlanResponse)
    def plan_workflow(name: str):
        wf = _load(name)
        try:
            levels = compute_levels(wf)
        except GraphError as e:
            raise HTTPException(status_code=422, detail=e.message)
        return PlanResponse(workflow_name=wf.name, levels=levels)

    # Sync handler: FastAPI runs it in its threadpool, so a long run does not block the loop.
    @app.post("/api/workflows/{name}/run", response_model=WorkflowExecution)
    def run_workflow_handler(name: str, req: Optional[RunRequest] = None):
        req = req or RunRequest()
        wf = _load(name)
        max_concurrency = req.max_concurrency
        if max_concurrency is None:
            max_concurrency = settings.max_concurrency
        logger.info(f"Running workflow '{wf.name}' via API (mode={req.mode.value})")
        result = run_workflow(wf, req.mode, max_concurrency, registry=registry)
        return WorkflowExecution(**result.to_dict())

    return app


app = create_app()
