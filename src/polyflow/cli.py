# cli.py
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from polyflow.dag import compute_levels
from polyflow.engine import ExecutionMode, run_workflow
from polyflow.errors import GraphError, LoaderError
from polyflow.loader import discover_workflows, load_workflow, resolve_workflow_path
from polyflow.runners import default_registry
from polyflow.settings import get_settings
from polyflow.ui.console import Console, get_console, set_console


def discover_workflow(workflow_arg: str | None, workflows_dir: str) -> Path:
    """
    Discover workflow file from argument or workflows directory.

    Args:
        workflow_arg: Optional workflow name or path from CLI
        workflows_dir: Directory searched for named workflows

    Returns:
        Path to workflow file

    Raises:
        SystemExit: If workflow cannot be found or multiple workflows exist
    """
    console = get_console()

    if workflow_arg:
        try:
            return resolve_workflow_path(workflow_arg, workflows_dir)
        except LoaderError as e:
            console.print_error(
                "Workflow file not found",
                e.message,
                details=[f"Searched: {workflows_dir} (and its examples/, templates/, tests/ subfolders)"],
                suggestion="List available workflows:\n  polyflow list",
            )
            sys.exit(1)

    workflow_files = discover_workflows(workflows_dir)

    if len(workflow_files) == 0:
        console.print_error(
            "No workflow file found",
            f"Could not find any workflow files in {workflows_dir}.",
            suggestion="Create a workflow file (.py or .json) or specify one explicitly:\n  polyflow run my_workflow.py",
        )
        sys.exit(1)

    if len(workflow_files) > 1:
        file_list = "\n".join(f"  {f}" for f in workflow_files)
        console.print_error(
            "Multiple workflow files found",
            "Found multiple workflow files. Please specify which one to use:",
            details=[file_list],
            suggestion=f"Specify a workflow explicitly:\n  polyflow run {workflow_files[0].stem}",
        )
        sys.exit(1)

    return workflow_files[0]


def _load_or_exit(ctx, workflow_path: Path):
    console = get_console()
    try:
        return load_workflow(workflow_path)
    except LoaderError as e:
        console.print_error(
            "Failed to load workflow",
            f"Could not load workflow from {workflow_path}",
            details=[e.message],
        )
        if ctx.obj.get("debug", False):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces, step console output and debug logs)",
)
@click.pass_context
def cli(ctx, debug):
    """polyflow: run multi-language workflows as a DAG of steps."""
    settings = get_settings()
    console = Console(debug=debug)
    set_console(console)
    logging.basicConfig(
        level=logging.DEBUG if debug else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.argument("workflow", required=False)
@click.option("--parallel/--sequential", default=False, help="Run the steps of each level concurrently")
@click.option(
    "--max-concurrency",
    default=None,
    type=click.IntRange(min=0),
    help="Worker limit per level in parallel mode (0 = one per CPU)",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the execution report as JSON")
@click.option("--workflows-dir", default=None, help="Directory holding workflow files")
@click.pass_context
def run(ctx, workflow, parallel, max_concurrency, as_json, workflows_dir):
    """Run a workflow."""
    console = get_console()
    settings = get_settings()
    workflows_dir = workflows_dir or settings.workflows_dir
    if max_concurrency is None:
        max_concurrency = settings.max_concurrency

    workflow_path = discover_workflow(workflow, workflows_dir)
    wf = _load_or_exit(ctx, workflow_path)
    mode = ExecutionMode.PARALLEL if parallel else ExecutionMode.SEQUENTIAL

    try:
        if not as_json:
            console.print_run_started(
                workflow=wf.name,
                step_count=len(wf),
                mode=mode.value,
                max_concurrency=max_concurrency if parallel else None,
            )

        result = run_workflow(
            wf,
            mode,
            max_concurrency,
            registry=default_registry(settings),
            on_step=None if as_json else console.print_step_result,
        )

        if as_json:
            click.echo(result.to_json())
        else:
            console.print_results(result)

        if not result.ok:
            sys.exit(1)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command()
@click.argument("workflow", required=False)
@click.option("--workflows-dir", default=None, help="Directory holding workflow files")
@click.pass_context
def plan(ctx, workflow, workflows_dir):
    """Show the execution levels of a workflow without running it."""
    console = get_console()
    workflows_dir = workflows_dir or get_settings().workflows_dir

    wf = _load_or_exit(ctx, discover_workflow(workflow, workflows_dir))
    try:
        levels = compute_levels(wf)
    except GraphError as e:
        console.print_error("Invalid workflow", e.message, details=[f"{k}={v}" for k, v in e.details.items()])
        sys.exit(1)

    console.print_plan(wf.name, levels)


@cli.command(name="list")
@click.option("--workflows-dir", default=None, help="Directory holding workflow files")
def list_workflows(workflows_dir):
    """List the workflows found in the workflows directory."""
    console = get_console()
    workflows_dir = workflows_dir or get_settings().workflows_dir

    entries = []
    for path in discover_workflows(workflows_dir):
        try:
            wf = load_workflow(path)
        except LoaderError as e:
            entries.append((path.stem, f"(failed to load: {e.message})", str(path)))
            continue
        entries.append((path.stem, wf.description, str(path)))

    console.print_workflow_list(entries)


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to POLYFLOW_HOST or 127.0.0.1)")
@click.option("--port", default=None, type=int, help="Bind port (defaults to POLYFLOW_PORT or 3000)")
@click.option("--reload", is_flag=True, default=False, help="Reload on code changes (development)")
def serve(host, port, reload):
    """Serve the HTTP API."""
    import uvicorn

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    get_console().print_info(f"polyflow API listening on http://{host}:{port}")
    uvicorn.run("polyflow.server.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    cli()
