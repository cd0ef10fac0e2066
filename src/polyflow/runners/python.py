# runners/python.py
from __future__ import annotations

import json
import sys
from typing import Any, Mapping

from ..executor import StepOutput
from ..model import Payload
from .base import (
    RESULT_MARKER,
    check_returncode,
    console_text,
    decode_result,
    require_code,
    run_process,
    split_result,
    workspace,
)

# Runs in the child interpreter:
#   argv: step source path, step name, result marker
#   stdin: JSON object of inputs
HARNESS = '''\
import json
import sys


def main():
    path, step_name, marker = sys.argv[1], sys.argv[2], sys.argv[3]
    inputs = json.loads(sys.stdin.read() or "{}")
    with open(path, encoding="utf-8") as f:
        source = f.read()

    namespace = {"__name__": "__polyflow_step__", "inputs": inputs}
    exec(compile(source, "<step %s>" % step_name, "exec"), namespace)

    run = namespace.get("run")
    if run is None:
        sys.stderr.write("No 'run' function found in step %s\\n" % step_name)
        return 3
    if not callable(run):
        sys.stderr.write("'run' is not callable in step %s\\n" % step_name)
        return 3

    result = run(inputs) if inputs else run()
    encoded = json.dumps(result)
    sys.stdout.flush()
    sys.stdout.write("\\n" + marker + encoded + "\\n")
    return 0


sys.exit(main())
'''


class PythonRunner:
    """
    Run a python step in a child interpreter.

    The step source must define run(); it is called as run() when the step
    has no inputs and run(inputs) otherwise.
    """

    def __init__(self, interpreter: str | None = None):
        self.interpreter = interpreter or sys.executable or "python3"

    def __call__(self, step_name: str, payload: Payload, inputs: Mapping[str, Any]) -> StepOutput:
        code = require_code(step_name, payload)

        with workspace({"harness.py": HARNESS, "step.py": code}) as root:
            proc = run_process(
                step_name,
                [self.interpreter, str(root / "harness.py"), str(root / "step.py"), step_name, RESULT_MARKER],
                stdin=json.dumps(dict(inputs)),
            )

        encoded, stdout = split_result(proc.stdout)
        console = console_text(stdout, proc.stderr)
        check_returncode(step_name, proc, console)
        return StepOutput(output=decode_result(step_name, encoded, console), console=console)
