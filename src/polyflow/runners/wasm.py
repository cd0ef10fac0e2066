# runners/wasm.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from ..errors import ExecutorFailure, InvalidPayload
from ..executor import StepOutput
from ..model import Payload
from .base import check_returncode, console_text, run_process


def _return_code(stdout: str) -> int:
    for line in reversed(stdout.splitlines()):
        line = line.strip()
        if not line:
            continue
        try:
            return int(line)
        except ValueError:
            return 0
    return 0


class WasmRunner:
    """
    Invoke an exported function of a WebAssembly module with the wasmtime CLI.

    Modules return a status code (0 = success); inputs are summarised in the
    output, not passed to the module.
    """

    def __init__(self, wasmtime: str = "wasmtime"):
        self.wasmtime = wasmtime

    def __call__(self, step_name: str, payload: Payload, inputs: Mapping[str, Any]) -> StepOutput:
        if not payload.module:
            raise InvalidPayload(step_name, "wasm step is missing 'module'")

        module = Path(payload.module)
        if not module.exists():
            raise ExecutorFailure(
                step_name,
                f"WASM module file not found: {module}. Please ensure the .wasm file exists.",
            )

        func = payload.function or "run"
        proc = run_process(step_name, [self.wasmtime, "run", "--invoke", func, str(module)])

        console = console_text(proc.stdout, proc.stderr)
        check_returncode(step_name, proc, console)

        return_code = _return_code(proc.stdout)
        output = {
            "wasm_execution": {
                "module": str(module),
                "function": func,
                "return_code": return_code,
                "status": "success" if return_code == 0 else "error",
                "input_count": len(inputs),
                "input_keys": sorted(inputs),
            }
        }
        return StepOutput(output=output, console=console)
