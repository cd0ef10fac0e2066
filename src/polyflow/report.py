"""Execution report: per-step results and the overall workflow outcome."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class StepStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class WorkflowStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class StepResult:
    """Outcome of one executed step."""
    step_number: int
    step_name: str
    language: str
    status: StepStatus
    output: Any = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    duration: float = 0.0  # seconds
    console: str = ""
    level: int = 0

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.SUCCESS

    @property
    def duration_ms(self) -> int:
        return int(round(self.duration * 1000))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_number": self.step_number,
            "step_name": self.step_name,
            "language": self.language,
            "output": self.output,
            "duration_ms": self.duration_ms,
            "status": self.status.value,
            "error": self.error,
            "error_kind": self.error_kind,
            "console": self.console,
            "level": self.level,
        }


@dataclass
class WorkflowResult:
    """
    Result of a whole run.

    `steps` is in actual completion order: levels are contiguous, and inside a
    parallel level the order reflects which step finished first.
    """
    workflow_name: str
    status: WorkflowStatus
    steps: List[StepResult] = field(default_factory=list)
    total_duration: float = 0.0  # wall clock, seconds
    error: Optional[str] = None
    error_kind: Optional[str] = None
    outputs: Dict[str, Any] = field(default_factory=dict)
    levels: List[List[str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == WorkflowStatus.COMPLETED

    @property
    def failed_steps(self) -> List[StepResult]:
        return [s for s in self.steps if not s.ok]

    @property
    def total_duration_ms(self) -> int:
        return int(round(self.total_duration * 1000))

    def step(self, name: str) -> Optional[StepResult]:
        for s in self.steps:
            if s.step_name == name:
                return s
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workflow_name": self.workflow_name,
            "status": self.status.value,
            "steps": [s.to_dict() for s in self.steps],
            "total_duration_ms": self.total_duration_ms,
            "error": self.error,
            "error_kind": self.error_kind,
            "levels": [list(level) for level in self.levels],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class ReportBuilder:
    """
    Collects step results as the scheduler produces them.

    Owned by a single run. The scheduler thread is the only writer, which is
    what keeps `outputs` (the execution context) free of locking.
    """

    def __init__(self, workflow_name: str):
        self.workflow_name = workflow_name
        self.steps: List[StepResult] = []
        self.outputs: Dict[str, Any] = {}
        self.levels: List[List[str]] = []
        self.error: Optional[str] = None
        self.error_kind: Optional[str] = None

    def next_step_number(self) -> int:
        return len(self.steps) + 1

    def record(self, result: StepResult) -> StepResult:
        result.step_number = self.next_step_number()
        self.steps.append(result)
        if result.ok:
            self.outputs[result.step_name] = result.output
        return result

    def fail_workflow(self, kind: str, message: str) -> None:
        self.error_kind = kind
        self.error = message

    @property
    def failed(self) -> bool:
        return self.error is not None or any(not s.ok for s in self.steps)

    def finish(self, total_duration: float) -> WorkflowResult:
        failed = self.failed
        error = self.error
        error_kind = self.error_kind
        if failed and error is None:
            first = next(s for s in self.steps if not s.ok)
            error = first.error or f"Step '{first.step_name}' failed"
            error_kind = first.error_kind
        return WorkflowResult(
            workflow_name=self.workflow_name,
            status=WorkflowStatus.FAILED if failed else WorkflowStatus.COMPLETED,
            steps=list(self.steps),
            total_duration=total_duration,
            error=error,
            error_kind=error_kind,
            outputs=dict(self.outputs),
            levels=[list(level) for level in self.levels],
        )
