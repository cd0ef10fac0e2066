# runners/javascript.py
from __future__ import annotations

import json
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

# argv: step name, result marker; stdin: JSON object of inputs
SCRIPT_HEADER = """\
const __polyflowStep = process.argv[2];
const __polyflowMarker = process.argv[3];
const inputs = JSON.parse(require('fs').readFileSync(0, 'utf8') || '{}');

function outputResult(result) {
  console.log(JSON.stringify(result));
}

"""

SCRIPT_FOOTER = """

;(function () {
  let result;
  try {
    if (typeof run !== 'function') {
      throw new Error('No run function defined in step ' + __polyflowStep);
    }
    result = Object.keys(inputs).length === 0 ? run() : run(inputs);
  } catch (error) {
    console.error('Error in JavaScript step ' + __polyflowStep + ': ' + (error && error.message ? error.message : error));
    process.exit(1);
  }
  if (result === undefined || result === null) {
    result = {};
  }
  if (typeof result !== 'object') {
    result = { value: result };
  }
  process.stdout.write('\\n' + __polyflowMarker + JSON.stringify(result) + '\\n');
})();
"""


class JavaScriptRunner:
    """Run a javascript step with Node.js. Non-object results are wrapped as {value: ...}."""

    def __init__(self, interpreter: str = "node"):
        self.interpreter = interpreter

    def __call__(self, step_name: str, payload: Payload, inputs: Mapping[str, Any]) -> StepOutput:
        code = require_code(step_name, payload)

        with workspace({"step.js": SCRIPT_HEADER + code + SCRIPT_FOOTER}) as root:
            proc = run_process(
                step_name,
                [self.interpreter, str(root / "step.js"), step_name, RESULT_MARKER],
                stdin=json.dumps(dict(inputs)),
            )

        encoded, stdout = split_result(proc.stdout)
        console = console_text(stdout, proc.stderr)
        check_returncode(step_name, proc, console)
        return StepOutput(output=decode_result(step_name, encoded, console), console=console)
