# engine.py
from __future__ import annotations

import copy
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Union

from .dag import compute_levels
from .errors import GraphError, StepError
from .executor import RunnerRegistry
from .model import StepDefinition, WorkflowDefinition
from .report import ReportBuilder, StepResult, StepStatus, WorkflowResult

logger = logging.getLogger(__name__)


class ExecutionMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


StepCallback = Callable[[StepResult], None]


def resolve_concurrency(max_concurrency: Optional[int]) -> int:
    """0 or None means one worker per available CPU."""
    if max_concurrency is None or max_concurrency == 0:
        return os.cpu_count() or 1
    if max_concurrency < 0:
        raise ValueError(f"max_concurrency must be >= 0, got {max_concurrency}")
    return max_concurrency


def _default_registry() -> RunnerRegistry:
    from .runners import default_registry
    from .settings import get_settings

    return default_registry(get_settings())


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

def _inputs_for(step: StepDefinition, outputs: Mapping[str, Any]) -> Mapping[str, Any]:
    """
    Read-only snapshot of the outputs this step declared a dependency on.
    Deep-copied, so a runner can never reach the scheduler's own state.
    """
    snapshot = {dep: copy.deepcopy(outputs[dep]) for dep in step.depends_on if dep in outputs}
    return MappingProxyType(snapshot)


def _execute_step(
    registry: RunnerRegistry,
    step: StepDefinition,
    inputs: Mapping[str, Any],
    level: int,
) -> StepResult:
    """Run one step. Never raises: every runner fault becomes a failed StepResult."""
    start = time.perf_counter()
    try:
        out = registry.execute(step.name, step.language, step.payload, inputs)
    except StepError as e:
        return StepResult(
            step_number=0,
            step_name=step.name,
            language=step.language,
            status=StepStatus.FAILED,
            error=e.message,
            error_kind=e.kind,
            duration=time.perf_counter() - start,
            console=getattr(e, "console", "") or "",
            level=level,
        )
    except Exception as e:
        return StepResult(
            step_number=0,
            step_name=step.name,
            language=step.language,
            status=StepStatus.FAILED,
            error=f"Step '{step.name}' failed: {type(e).__name__}: {e}",
            error_kind="executor_failure",
            duration=time.perf_counter() - start,
            level=level,
        )

    return StepResult(
        step_number=0,
        step_name=step.name,
        language=step.language,
        status=StepStatus.SUCCESS,
        output=out.output,
        duration=time.perf_counter() - start,
        console=out.console,
        level=level,
    )


def _record(report: ReportBuilder, result: StepResult, on_step: Optional[StepCallback]) -> StepResult:
    report.record(result)
    if result.ok:
        logger.debug(f"✓ {result.step_name} ({result.duration_ms} ms)")
    else:
        logger.warning(f"✗ Step failed: {result.step_name}: {result.error}")
    if on_step is not None:
        try:
            on_step(result)
        except Exception:
            logger.exception(f"on_step callback raised for step '{result.step_name}'")
    return result


def _run_level_sequential(
    registry: RunnerRegistry,
    workflow: WorkflowDefinition,
    level: List[str],
    level_idx: int,
    report: ReportBuilder,
    on_step: Optional[StepCallback],
) -> bool:
    for name in level:
        step = workflow.get(name)
        result = _execute_step(registry, step, _inputs_for(step, report.outputs), level_idx)
        if not _record(report, result, on_step).ok:
            return False
    return True


def _run_level_parallel(
    registry: RunnerRegistry,
    workflow: WorkflowDefinition,
    level: List[str],
    level_idx: int,
    report: ReportBuilder,
    max_workers: int,
    on_step: Optional[StepCallback],
) -> bool:
    # Snapshots come only from earlier levels: take them all before the
    # first step of this level can complete.
    snapshots = {name: _inputs_for(workflow.get(name), report.outputs) for name in level}
    ok = True

    with ThreadPoolExecutor(
        max_workers=min(max_workers, len(level)),
        thread_name_prefix=f"polyflow-level{level_idx + 1}",
    ) as pool:
        futures = {
            pool.submit(_execute_step, registry, workflow.get(name), snapshots[name], level_idx): name
            for name in level
        }

        # A failure does not cancel siblings; the level always drains.
        for future in as_completed(futures):
            if not _record(report, future.result(), on_step).ok:
                ok = False

    return ok


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def run_workflow(
    workflow: WorkflowDefinition,
    mode: Union[ExecutionMode, str] = ExecutionMode.SEQUENTIAL,
    max_concurrency: Optional[int] = None,
    *,
    registry: Optional[RunnerRegistry] = None,
    on_step: Optional[StepCallback] = None,
) -> WorkflowResult:
    """
    Level the workflow, then execute it level by level.

    - Sequential: one step at a time in canonical order; the first failure
      stops the run.
    - Parallel: every step of a level runs concurrently (bounded by
      max_concurrency); the level drains fully, and a failure anywhere in it
      stops the run before the next level.

    Level i+1 never starts before every step of level i has finished.
    Graph errors produce a failed result with no step results.
    """
    mode = ExecutionMode(mode)
    max_workers = resolve_concurrency(max_concurrency) if mode == ExecutionMode.PARALLEL else 1
    if registry is None:
        registry = _default_registry()

    report = ReportBuilder(workflow.name)
    started = time.perf_counter()

    try:
        levels = compute_levels(workflow)
    except GraphError as e:
        logger.error(f"Workflow '{workflow.name}' rejected: {e.message}")
        report.fail_workflow(e.kind, e.message)
        return report.finish(time.perf_counter() - started)

    report.levels = levels
    logger.info(
        f"Running workflow '{workflow.name}': {len(workflow)} step(s), {len(levels)} level(s), "
        f"mode={mode.value}" + (f", max concurrency={max_workers}" if mode == ExecutionMode.PARALLEL else "")
    )

    for level_idx, level in enumerate(levels):
        logger.info(f"=== Level {level_idx + 1}/{len(levels)}: {level} ===")

        if mode == ExecutionMode.PARALLEL:
            ok = _run_level_parallel(registry, workflow, level, level_idx, report, max_workers, on_step)
        else:
            ok = _run_level_sequential(registry, workflow, level, level_idx, report, on_step)

        if not ok:
            logger.info(f"Stopping after level {level_idx + 1}: step failure")
            break

    result = report.finish(time.perf_counter() - started)
    logger.info(f"Workflow '{workflow.name}' {result.status.value} in {result.total_duration_ms} ms")
    return result


run = run_workflow
