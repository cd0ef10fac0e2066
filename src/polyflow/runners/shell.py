# runners/shell.py
from __future__ import annotations

import json
import re
from typing import Any, Dict, Mapping

from ..executor import StepOutput
from ..model import Payload
from .base import check_returncode, console_text, require_code, run_process, workspace

SCRIPT_HEADER = """\
set -e

# Echo the JSON output of a dependency: parse_input <step_name>
parse_input() {
  local var_name="INPUT_$(echo "$1" | tr 'a-z' 'A-Z' | sed 's/[^A-Z0-9_]/_/g')"
  printenv "$var_name"
}

"""

SCRIPT_FOOTER = """

# Call run function if it exists
if declare -f run > /dev/null; then
  run
fi
"""


def input_env_name(step_name: str) -> str:
    return "INPUT_" + re.sub(r"[^A-Z0-9_]", "_", step_name.upper())


def _first_json_object(stdout: str) -> Any:
    for line in stdout.splitlines():
        line = line.strip()
        if line.startswith("{") and line.endswith("}"):
            try:
                return json.loads(line)
            except ValueError:
                continue
    return None


class ShellRunner:
    """
    Run a shell step with bash.

    Inputs are exported as INPUT_<STEP> environment variables holding JSON.
    The output is the first stdout line that is a JSON object; otherwise the
    step's stdout/stderr/exit code are returned as the output.
    """

    def __init__(self, interpreter: str = "bash"):
        self.interpreter = interpreter

    def __call__(self, step_name: str, payload: Payload, inputs: Mapping[str, Any]) -> StepOutput:
        code = require_code(step_name, payload)
        env: Dict[str, str] = {input_env_name(k): json.dumps(v) for k, v in inputs.items()}

        with workspace({"step.sh": SCRIPT_HEADER + code + SCRIPT_FOOTER}) as root:
            proc = run_process(step_name, [self.interpreter, str(root / "step.sh")], env=env)

        console = console_text(proc.stdout, proc.stderr)
        check_returncode(step_name, proc, console)

        output = _first_json_object(proc.stdout)
        if output is None:
            output = {
                "stdout": proc.stdout.strip(),
                "stderr": proc.stderr.strip(),
                "exit_code": proc.returncode,
            }
        return StepOutput(output=output, console=console)
