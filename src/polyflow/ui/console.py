"""Console output formatting utilities for polyflow."""

from __future__ import annotations

import sys
from typing import List, Optional

from ..report import StepResult, WorkflowResult


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces and step console text
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_run_started(
        self,
        workflow: str,
        step_count: int,
        mode: str,
        max_concurrency: Optional[int] = None,
    ) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Workflow: {workflow}")
        print(f"Steps: {step_count}")
        if max_concurrency:
            print(f"Mode: {mode} (max concurrency: {max_concurrency})")
        else:
            print(f"Mode: {mode}")
        print()

    def print_plan(self, workflow: str, levels: List[List[str]]) -> None:
        """Print the execution levels of a workflow."""
        self.print_header(f"PLAN: {workflow}")
        for idx, level in enumerate(levels):
            tag = "(parallel)" if len(level) > 1 else "(sequential)"
            print(f"Level {idx + 1}/{len(levels)} {tag}: {', '.join(level)}")

    def print_step_result(self, result: StepResult) -> None:
        """Print one finished step."""
        if result.ok:
            print(f"✓ [{result.step_number}] {result.step_name} ({result.language}, {result.duration_ms} ms)")
        else:
            self.print_failure(result)
        if self.debug and result.console:
            for line in result.console.splitlines():
                print(f"    | {line}")

    def print_failure(self, result: StepResult) -> None:
        """
        Print failure message.

        Args:
            result: The failed step result
        """
        print(f"✗ [{result.step_number}] STEP FAILED: {result.step_name} ({result.language})")
        if result.error_kind:
            print(f"Kind: {result.error_kind}")
        reason = result.error or "Unknown error"
        if self.debug:
            print(f"Error details: {reason}")
        else:
            # Show first line of error for non-debug mode
            print(f"Error: {reason.splitlines()[0]}")

    def print_results(self, result: WorkflowResult) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for s in result.steps:
            print(f"  {s.step_name}: {s.status.value.upper()} ({s.duration_ms} ms)")
            if s.ok:
                print(f"    output: {s.output!r}")
        print(f"\nStatus: {result.status.value.upper()}")
        print(f"Duration: {result.total_duration:.2f}s")
        if not result.ok and result.error:
            print(f"Error: {result.error}")

    def print_workflow_list(self, entries: List[tuple]) -> None:
        """Print (name, description, path) rows."""
        if not entries:
            print("No workflows found.")
            return
        for name, description, path in entries:
            line = f"  {name}"
            if description:
                line += f" - {description}"
            print(line)
            self.print_debug(f"{name}: {path}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
