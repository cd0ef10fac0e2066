# runners/lua.py
from __future__ import annotations

import math
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

# argv: step source path, step name, result marker, inputs file
HARNESS = r"""
local step_path, step_name, marker, inputs_path = arg[1], arg[2], arg[3], arg[4]

local function escape_str(s)
  s = s:gsub('[%c"\\]', function(c)
    local map = { ['"'] = '\\"', ['\\'] = '\\\\', ['\n'] = '\\n', ['\r'] = '\\r', ['\t'] = '\\t' }
    return map[c] or string.format("\\u%04x", c:byte())
  end)
  return '"' .. s .. '"'
end

local function array_length(t)
  local n = 0
  for k in pairs(t) do
    if type(k) ~= "number" or k <= 0 or k % 1 ~= 0 then
      return nil
    end
    n = n + 1
  end
  for i = 1, n do
    if t[i] == nil then
      return nil
    end
  end
  return n
end

local encode
encode = function(v)
  local t = type(v)
  if v == nil then
    return "null"
  elseif t == "boolean" then
    return tostring(v)
  elseif t == "number" then
    if v ~= v or v == math.huge or v == -math.huge then
      return "null"
    end
    if math.type and math.type(v) == "integer" then
      return tostring(v)
    end
    return string.format("%.17g", v)
  elseif t == "string" then
    return escape_str(v)
  elseif t == "table" then
    local n = array_length(v)
    if n and n > 0 then
      local parts = {}
      for i = 1, n do
        parts[i] = encode(v[i])
      end
      return "[" .. table.concat(parts, ",") .. "]"
    end
    local parts = {}
    for k, val in pairs(v) do
      parts[#parts + 1] = escape_str(tostring(k)) .. ":" .. encode(val)
    end
    return "{" .. table.concat(parts, ",") .. "}"
  end
  return escape_str(tostring(v))
end

inputs = dofile(inputs_path)

local chunk, err = loadfile(step_path)
if not chunk then
  io.stderr:write(tostring(err) .. "\n")
  os.exit(1)
end
chunk()

if type(run) ~= "function" then
  io.stderr:write("No 'run' function found in step " .. step_name .. "\n")
  os.exit(3)
end

local ok, result
if next(inputs) == nil then
  ok, result = pcall(run)
else
  ok, result = pcall(run, inputs)
end
if not ok then
  io.stderr:write(tostring(result) .. "\n")
  os.exit(1)
end

io.stdout:write("\n" .. marker .. encode(result) .. "\n")
"""


def _lua_string(s: str) -> str:
    out = []
    for ch in s:
        code = ord(ch)
        if ch in '"\\' or code < 32 or code == 127:
            out.append(f"\\{code:03d}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def to_lua(value: Any) -> str:
    """Render a JSON value as a Lua literal."""
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "(0/0)"
        if math.isinf(value):
            return "math.huge" if value > 0 else "-math.huge"
        return repr(value)
    if isinstance(value, str):
        return _lua_string(value)
    if isinstance(value, (list, tuple)):
        return "{" + ", ".join(to_lua(v) for v in value) + "}"
    if isinstance(value, Mapping):
        items = (f"[{_lua_string(str(k))}] = {to_lua(v)}" for k, v in value.items())
        return "{" + ", ".join(items) + "}"
    return _lua_string(str(value))


class LuaRunner:
    """Run a lua step with a Lua 5.3+ interpreter; the result is JSON-encoded by the harness."""

    def __init__(self, interpreter: str = "lua"):
        self.interpreter = interpreter

    def __call__(self, step_name: str, payload: Payload, inputs: Mapping[str, Any]) -> StepOutput:
        code = require_code(step_name, payload)
        files = {
            "harness.lua": HARNESS,
            "step.lua": code,
            "inputs.lua": "return " + to_lua(dict(inputs)) + "\n",
        }

        with workspace(files) as root:
            proc = run_process(
                step_name,
                [
                    self.interpreter,
                    str(root / "harness.lua"),
                    str(root / "step.lua"),
                    step_name,
                    RESULT_MARKER,
                    str(root / "inputs.lua"),
                ],
            )

        encoded, stdout = split_result(proc.stdout)
        console = console_text(stdout, proc.stderr)
        check_returncode(step_name, proc, console)
        return StepOutput(output=decode_result(step_name, encoded, console), console=console)
