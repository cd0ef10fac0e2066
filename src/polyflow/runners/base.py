# runners/base.py
from __future__ import annotations

import json
import os
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from ..errors import ExecutorFailure, InvalidPayload
from ..model import Payload

# Prefix of the single stdout line that carries a step's result. Everything
# else the child prints is console text.
RESULT_MARKER = "__POLYFLOW_RESULT__ "

TOOL_HINTS = {
    "node": "Install Node.js or fix PATH (POLYFLOW_NODE).",
    "bash": "Install bash or fix PATH (POLYFLOW_SHELL).",
    "lua": "Install Lua 5.3+ or fix PATH (POLYFLOW_LUA).",
    "wasmtime": "Install the wasmtime CLI or fix PATH (POLYFLOW_WASMTIME).",
    "python3": "Install Python 3 or fix PATH (POLYFLOW_PYTHON).",
}


def require_code(step_name: str, payload: Payload) -> str:
    if payload.code is None or not payload.code.strip():
        raise InvalidPayload(step_name, "missing 'code'")
    return payload.code


@contextmanager
def workspace(files: Mapping[str, str]) -> Iterator[Path]:
    """Temporary directory holding the generated script files."""
    with tempfile.TemporaryDirectory(prefix="polyflow-") as tmp:
        root = Path(tmp)
        for name, content in files.items():
            (root / name).write_text(content, encoding="utf-8")
        yield root


def run_process(
    step_name: str,
    argv: List[str],
    *,
    stdin: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    merged = os.environ.copy()
    merged.update(env or {})

    tool = argv[0]
    try:
        return subprocess.run(
            argv,
            input=stdin if stdin is not None else "",
            env=merged,
            text=True,
            capture_output=True,
        )
    except FileNotFoundError as e:
        hint = TOOL_HINTS.get(Path(tool).name, f"Install {tool} or fix PATH.")
        raise ExecutorFailure(step_name, f"{tool} is not available. {hint}") from e
    except OSError as e:
        raise ExecutorFailure(step_name, f"could not start {tool}: {e}") from e


def console_text(stdout: str, stderr: str) -> str:
    parts = [p.strip("\n") for p in (stdout, stderr) if p and p.strip()]
    return "\n".join(parts)


def split_result(stdout: str) -> Tuple[Optional[str], str]:
    """Separate the marker line from console output. Returns (result_json, console)."""
    result: Optional[str] = None
    console: List[str] = []
    for line in stdout.splitlines():
        if line.startswith(RESULT_MARKER):
            result = line[len(RESULT_MARKER):]
        else:
            console.append(line)
    return result, "\n".join(console).strip("\n")


def failure_detail(proc: subprocess.CompletedProcess) -> str:
    """Last meaningful stderr line, e.g. 'ZeroDivisionError: division by zero'."""
    lines = [ln.strip() for ln in (proc.stderr or "").splitlines() if ln.strip()]
    if lines:
        return lines[-1]
    return f"exited with code {proc.returncode}"


def check_returncode(step_name: str, proc: subprocess.CompletedProcess, console: str) -> None:
    if proc.returncode != 0:
        raise ExecutorFailure(
            step_name,
            failure_detail(proc),
            console=console[-4000:],
            exit_code=proc.returncode,
        )


def decode_result(step_name: str, encoded: Optional[str], console: str) -> Any:
    if encoded is None:
        raise ExecutorFailure(step_name, "step produced no result", console=console)
    try:
        return json.loads(encoded)
    except ValueError:
        return encoded
