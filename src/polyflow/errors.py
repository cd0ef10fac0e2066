# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(eq=False)
class WorkflowError(Exception):
    """
    Structured workflow error with enough context for:
      - clean CLI output
      - the JSON report
      - debugging without full tracebacks
    """
    kind: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


# ----------------------------------------------------------------------
# Graph errors: fatal to the whole run, raised before any step executes
# ----------------------------------------------------------------------

class GraphError(WorkflowError):
    pass


class EmptyWorkflow(GraphError):
    def __init__(self, workflow: str):
        super().__init__(
            kind="empty_workflow",
            message=f"Workflow '{workflow}' has no steps",
            details={"workflow": workflow},
        )
        self.workflow = workflow


class UnknownDependency(GraphError):
    def __init__(self, step: str, missing: str, known: List[str] | None = None):
        super().__init__(
            kind="unknown_dependency",
            message=f"Step '{step}' depends on missing step '{missing}'",
            details={"step": step, "missing": missing, "known": sorted(known or [])},
        )
        self.step = step
        self.missing = missing


class CycleDetected(GraphError):
    def __init__(self, steps: List[str], stuck: List[str] | None = None):
        steps = sorted(steps)
        stuck = sorted(stuck or steps)
        super().__init__(
            kind="cycle_detected",
            message=f"Circular dependency detected involving step '{steps[0]}'",
            details={"cycle": steps, "stuck": stuck},
        )
        self.steps = steps
        self.stuck = stuck


class DuplicateStep(GraphError):
    def __init__(self, step: str):
        super().__init__(
            kind="duplicate_step",
            message=f"Duplicate step name: '{step}'",
            details={"step": step},
        )
        self.step = step


# ----------------------------------------------------------------------
# Step errors: fail the step, then the level/run per fail-level policy
# ----------------------------------------------------------------------

class StepError(WorkflowError):
    step: str
    console: str = ""


class UnknownLanguage(StepError):
    def __init__(self, step: str, language: str, known: List[str] | None = None):
        super().__init__(
            kind="unknown_language",
            message=f"Unsupported language '{language}' in step '{step}'",
            details={"language": language, "known": sorted(known or [])},
        )
        self.step = step
        self.language = language
        self.console = ""


class ExecutorFailure(StepError):
    def __init__(self, step: str, detail: str, console: str = "", exit_code: int | None = None):
        details: Dict[str, Any] = {}
        if exit_code is not None:
            details["exit_code"] = exit_code
        super().__init__(
            kind="executor_failure",
            message=f"Step '{step}' failed: {detail}",
            details=details,
        )
        self.step = step
        self.detail = detail
        self.console = console
        self.exit_code = exit_code


class InvalidPayload(StepError):
    def __init__(self, step: str, reason: str):
        super().__init__(
            kind="invalid_payload",
            message=f"Step '{step}' has an invalid payload: {reason}",
            details={},
        )
        self.step = step
        self.reason = reason
        self.console = ""


# ----------------------------------------------------------------------
# Loader errors: outside the core, raised before a run starts
# ----------------------------------------------------------------------

class LoaderError(WorkflowError):
    def __init__(self, path: str, message: str):
        super().__init__(kind="loader_error", message=message, details={"path": path})
        self.path = path
