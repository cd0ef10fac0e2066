from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Tuple

import pytest

from polyflow.errors import ExecutorFailure
from polyflow.executor import RunnerRegistry
from polyflow.settings import set_settings


class FakeRunner:
    """
    In-process runner for engine tests.

    Behaviours are keyed by step name; a step without one echoes its name and
    the names of its inputs. A payload whose code is "fail" raises.
    Every call is recorded with its start/end time.
    """

    def __init__(self):
        self.behaviours: Dict[str, Callable[[Mapping[str, Any]], Any]] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.spans: Dict[str, Tuple[float, float]] = {}
        self.max_active = 0
        self._active = 0
        self._lock = threading.Lock()

    def on(self, step_name: str, fn: Callable[[Mapping[str, Any]], Any]) -> "FakeRunner":
        self.behaviours[step_name] = fn
        return self

    def called(self) -> List[str]:
        return [name for name, _ in self.calls]

    def inputs_of(self, step_name: str) -> Dict[str, Any]:
        for name, inputs in self.calls:
            if name == step_name:
                return inputs
        raise KeyError(step_name)

    def __call__(self, step_name, payload, inputs):
        start = time.perf_counter()
        with self._lock:
            self._active += 1
            self.max_active = max(self.max_active, self._active)
            self.calls.append((step_name, dict(inputs)))
        try:
            if payload.code == "fail":
                raise ExecutorFailure(step_name, "boom", console="about to fail", exit_code=1)
            fn = self.behaviours.get(step_name)
            if fn is None:
                return {"step": step_name, "inputs": sorted(inputs)}
            return fn(inputs)
        finally:
            with self._lock:
                self._active -= 1
                self.spans[step_name] = (start, time.perf_counter())


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def registry(fake_runner) -> RunnerRegistry:
    return RunnerRegistry({"fake": fake_runner})


@pytest.fixture(autouse=True)
def reset_settings():
    set_settings(None)
    yield
    set_settings(None)
