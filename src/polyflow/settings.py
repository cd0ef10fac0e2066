from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional

ENV_PREFIX = "POLYFLOW_"


def _env(environ: Mapping[str, str], key: str, default: str) -> str:
    return environ.get(ENV_PREFIX + key, default)


@dataclass(frozen=True)
class Settings:
    workflows_dir: str = "workflows"
    max_concurrency: int = 0  # 0 -> cpu count
    log_level: str = "WARNING"

    python_interpreter: str = sys.executable or "python3"
    node_interpreter: str = "node"
    shell_interpreter: str = "bash"
    lua_interpreter: str = "lua"
    wasmtime: str = "wasmtime"
    disabled_runners: FrozenSet[str] = field(default_factory=frozenset)

    host: str = "127.0.0.1"
    port: int = 3000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        env = os.environ if environ is None else environ
        disabled = _env(env, "DISABLED_RUNNERS", "")
        return cls(
            workflows_dir=_env(env, "WORKFLOWS_DIR", "workflows"),
            max_concurrency=int(_env(env, "MAX_CONCURRENCY", "0")),
            log_level=_env(env, "LOG_LEVEL", "WARNING").upper(),
            python_interpreter=_env(env, "PYTHON", sys.executable or "python3"),
            node_interpreter=_env(env, "NODE", "node"),
            shell_interpreter=_env(env, "SHELL", "bash"),
            lua_interpreter=_env(env, "LUA", "lua"),
            wasmtime=_env(env, "WASMTIME", "wasmtime"),
            disabled_runners=frozenset(
                x.strip().lower() for x in disabled.split(",") if x.strip()
            ),
            host=_env(env, "HOST", "127.0.0.1"),
            port=int(_env(env, "PORT", "3000")),
        )

    def runner_enabled(self, language: str) -> bool:
        return language.lower() not in self.disabled_runners


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings, read from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace the process-wide settings (None re-reads the environment next time)."""
    global _settings
    _settings = settings
