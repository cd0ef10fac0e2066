"""Built-in language runners. Each one runs its step in a child process."""

from __future__ import annotations

from typing import Optional

from ..executor import RunnerRegistry
from ..model import Language
from ..settings import Settings, get_settings
from .javascript import JavaScriptRunner
from .lua import LuaRunner
from .python import PythonRunner
from .shell import ShellRunner
from .wasm import WasmRunner


def default_registry(settings: Optional[Settings] = None) -> RunnerRegistry:
    settings = settings or get_settings()
    registry = RunnerRegistry()

    runners = {
        Language.PYTHON.value: PythonRunner(settings.python_interpreter),
        Language.SHELL.value: ShellRunner(settings.shell_interpreter),
        Language.JAVASCRIPT.value: JavaScriptRunner(settings.node_interpreter),
        Language.LUA.value: LuaRunner(settings.lua_interpreter),
        Language.WASM.value: WasmRunner(settings.wasmtime),
    }
    for language, runner in runners.items():
        if settings.runner_enabled(language):
            registry.register(language, runner)

    return registry


__all__ = [
    "default_registry",
    "JavaScriptRunner",
    "LuaRunner",
    "PythonRunner",
    "ShellRunner",
    "WasmRunner",
]
