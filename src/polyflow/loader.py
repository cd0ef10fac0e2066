# loader.py
from __future__ import annotations

import json
import runpy
from pathlib import Path
from typing import Any, Dict, List, Mapping

from .errors import LoaderError, WorkflowError
from .model import Language, Payload, StepDefinition, WorkflowDefinition

WORKFLOW_SUFFIXES = (".py", ".json")
SUBFOLDERS = ("examples", "templates", "tests")


# ----------------------------------------------------------------------
# Dict layout (JSON files, HTTP bodies)
# ----------------------------------------------------------------------

def _step_from_dict(name: str, data: Mapping[str, Any], source: str) -> StepDefinition:
    if not name:
        raise LoaderError(source, "Step names must be non-empty")
    if not isinstance(data, Mapping):
        raise LoaderError(source, f"Step '{name}' must be a table/object")

    language = data.get("language") or Language.LUA.value
    depends_on = data.get("depends_on") or []
    if isinstance(depends_on, str):
        depends_on = [depends_on]
    if not isinstance(depends_on, list) or not all(isinstance(d, str) for d in depends_on):
        raise LoaderError(source, f"Step '{name}': depends_on must be a list of step names")

    code = data.get("code")
    if code is not None and not isinstance(code, str):
        raise LoaderError(source, f"Step '{name}': code must be a string")

    return StepDefinition(
        name=name,
        language=language,
        payload=Payload(
            code=code,
            module=data.get("module"),
            function=data.get("func") or data.get("function"),
        ),
        depends_on=tuple(depends_on),
    )


def workflow_from_dict(data: Mapping[str, Any], *, source: str = "<dict>", default_name: str = "") -> WorkflowDefinition:
    """
    Build a workflow from the table layout:

        {"name": ..., "description": ...,
         "steps": {"<step>": {"language", "code", "depends_on", "module", "func"}}}

    `steps` may also be a list of objects carrying their own "name".
    """
    if not isinstance(data, Mapping):
        raise LoaderError(source, "Workflow must be an object")

    steps_raw = data.get("steps")
    if steps_raw is None:
        raise LoaderError(source, "Workflow is missing 'steps'")

    steps: List[StepDefinition] = []
    if isinstance(steps_raw, Mapping):
        for name, body in steps_raw.items():
            steps.append(_step_from_dict(str(name), body, source))
    elif isinstance(steps_raw, list):
        for body in steps_raw:
            if not isinstance(body, Mapping) or not body.get("name"):
                raise LoaderError(source, "Each step in a list must be an object with a 'name'")
            steps.append(_step_from_dict(str(body["name"]), body, source))
    else:
        raise LoaderError(source, "'steps' must be an object or a list")

    name = data.get("name") or default_name
    if not name:
        raise LoaderError(source, "Workflow is missing 'name'")

    try:
        return WorkflowDefinition.from_steps(str(name), steps, description=str(data.get("description") or ""))
    except WorkflowError as e:
        raise LoaderError(source, e.message) from e


def workflow_to_dict(workflow: WorkflowDefinition) -> Dict[str, Any]:
    steps: Dict[str, Any] = {}
    for s in workflow:
        body: Dict[str, Any] = {"language": s.language, "depends_on": list(s.depends_on)}
        if s.code is not None:
            body["code"] = s.code
        if s.module is not None:
            body["module"] = s.module
        if s.function is not None:
            body["func"] = s.function
        steps[s.name] = body
    return {"name": workflow.name, "description": workflow.description, "steps": steps}


# ----------------------------------------------------------------------
# Workflow loading (local file/module)
# ----------------------------------------------------------------------

def _load_python(wf_path: Path) -> WorkflowDefinition:
    module_name = f"polyflow_workflow_{wf_path.stem}"
    try:
        globals_dict = runpy.run_path(str(wf_path), run_name=module_name)

        workflow = None
        if "workflow" in globals_dict and callable(globals_dict["workflow"]):
            workflow = globals_dict["workflow"]()
        elif "WORKFLOW" in globals_dict:
            workflow = globals_dict["WORKFLOW"]
    except WorkflowError as e:
        raise LoaderError(str(wf_path), e.message) from e
    except Exception as e:
        raise LoaderError(str(wf_path), f"Failed to load workflow: {type(e).__name__}: {e}") from e

    if isinstance(workflow, Mapping):
        workflow = workflow_from_dict(workflow, source=str(wf_path), default_name=wf_path.stem)

    if not isinstance(workflow, WorkflowDefinition):
        raise LoaderError(
            str(wf_path),
            "Workflow file must define workflow() -> WorkflowDefinition or WORKFLOW = wf(...).",
        )
    return workflow


def _load_json(wf_path: Path) -> WorkflowDefinition:
    try:
        data = json.loads(wf_path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise LoaderError(str(wf_path), f"Invalid JSON: {e}") from e
    return workflow_from_dict(data, source=str(wf_path), default_name=wf_path.stem)


def load_workflow(path: str | Path) -> WorkflowDefinition:
    """
    Load a workflow from a .py or .json file.

    A .py file must define either:
      - workflow() -> WorkflowDefinition
      - WORKFLOW = wf(...)
    """
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.exists():
        raise LoaderError(str(wf_path), f"Workflow file not found: {wf_path}")
    if wf_path.suffix == ".py":
        return _load_python(wf_path)
    if wf_path.suffix == ".json":
        return _load_json(wf_path)
    raise LoaderError(str(wf_path), f"Workflow must be a .py or .json file, got: {wf_path.name}")


def discover_workflows(directory: str | Path) -> List[Path]:
    """Workflow files directly inside `directory`, sorted by name."""
    root = Path(directory)
    if not root.is_dir():
        return []
    return sorted(p for p in root.iterdir() if p.is_file() and p.suffix in WORKFLOW_SUFFIXES)


def resolve_workflow_path(name: str, directory: str | Path = "workflows") -> Path:
    """
    Resolve a workflow argument to a file.

    Tries the path as given, then `directory/<name>` and its examples,
    templates and tests subfolders, each with and without a known suffix.
    Raises LoaderError when nothing matches.
    """
    given = Path(name)
    if given.is_file():
        return given

    root = Path(directory)
    candidates: List[Path] = []
    for base in [root] + [root / sub for sub in SUBFOLDERS]:
        candidates.append(base / name)
        if given.suffix not in WORKFLOW_SUFFIXES:
            candidates.extend(base / f"{name}{suffix}" for suffix in WORKFLOW_SUFFIXES)

    for candidate in candidates:
        if candidate.is_file():
            return candidate

    raise LoaderError(str(root / name), f"Could not find workflow '{name}' in {root}")
