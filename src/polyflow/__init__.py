from .dsl import step, python, lua, shell, sh, js, wasm, wf, WorkflowBuilder, build
from .dag import compute_levels
from .engine import ExecutionMode, run_workflow, run
from .executor import RunnerRegistry, StepOutput
from .loader import load_workflow
from .model import Language, Payload, StepDefinition, WorkflowDefinition
from .report import StepResult, StepStatus, WorkflowResult, WorkflowStatus
from .errors import (
    WorkflowError,
    GraphError,
    EmptyWorkflow,
    UnknownDependency,
    CycleDetected,
    DuplicateStep,
    StepError,
    UnknownLanguage,
    ExecutorFailure,
    InvalidPayload,
    LoaderError,
)

__version__ = "0.1.0"

__all__ = [
    "step", "python", "lua", "shell", "sh", "js", "wasm", "wf", "WorkflowBuilder", "build",
    "compute_levels", "ExecutionMode", "run_workflow", "run",
    "RunnerRegistry", "StepOutput", "load_workflow",
    "Language", "Payload", "StepDefinition", "WorkflowDefinition",
    "StepResult", "StepStatus", "WorkflowResult", "WorkflowStatus",
    "WorkflowError", "GraphError", "EmptyWorkflow", "UnknownDependency", "CycleDetected",
    "DuplicateStep", "StepError", "UnknownLanguage", "ExecutorFailure", "InvalidPayload",
    "LoaderError",
]
