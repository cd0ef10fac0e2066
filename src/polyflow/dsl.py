# src/polyflow/dsl.py
from __future__ import annotations

from typing import List, Optional

from .model import Language, Payload, StepDefinition, WorkflowDefinition


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def step(
    name: str,
    language: str,
    code: str | None = None,
    *,
    needs: Optional[List[str]] = None,
    module: str | None = None,
    function: str | None = None,
) -> StepDefinition:
    """Create a step in any language (tags are not restricted to the built-ins)."""
    return StepDefinition(
        name=name,
        language=language,
        payload=Payload(code=code, module=module, function=function),
        depends_on=tuple(needs or []),
    )


def python(name: str, code: str, *, needs: Optional[List[str]] = None) -> StepDefinition:
    return step(name, Language.PYTHON.value, code, needs=needs)


def lua(name: str, code: str, *, needs: Optional[List[str]] = None) -> StepDefinition:
    return step(name, Language.LUA.value, code, needs=needs)


def shell(name: str, code: str, *, needs: Optional[List[str]] = None) -> StepDefinition:
    return step(name, Language.SHELL.value, code, needs=needs)


sh = shell


def js(name: str, code: str, *, needs: Optional[List[str]] = None) -> StepDefinition:
    return step(name, Language.JAVASCRIPT.value, code, needs=needs)


def wasm(
    name: str,
    module: str,
    function: str | None = None,
    *,
    needs: Optional[List[str]] = None,
) -> StepDefinition:
    return step(name, Language.WASM.value, needs=needs, module=module, function=function)


# ---------------------------------------------------------------------
# Workflow helper (single-file story)
# ---------------------------------------------------------------------

def wf(name: str, *steps: StepDefinition, description: str = "") -> WorkflowDefinition:
    """
    Workflow definition helper.

    Users can write:
        from polyflow import wf, python, shell

        def workflow():
            return wf(
                "etl",
                python("extract", EXTRACT),
                shell("load", LOAD, needs=["extract"]),
            )

    Or define it directly:
        WORKFLOW = wf("etl", ...)
    """
    return WorkflowDefinition.from_steps(name, steps, description=description)


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class WorkflowBuilder:
    def __init__(self, name: str):
        self.name = name
        self._description = ""
        self._steps: list[StepDefinition] = []

    def describe(self, description: str):
        self._description = description
        return self

    def add(self, *steps: StepDefinition):
        self._steps.extend(steps)
        return self

    def define_step(
        self,
        name: str,
        language: str,
        code: str | None = None,
        *,
        needs: Optional[List[str]] = None,
        module: str | None = None,
        function: str | None = None,
    ):
        self._steps.append(step(name, language, code, needs=needs, module=module, function=function))
        return self

    def build(self) -> WorkflowDefinition:
        return WorkflowDefinition.from_steps(self.name, self._steps, description=self._description)


def build(name: str) -> WorkflowBuilder:
    """Convenience: build('etl').define_step(...).build()"""
    return WorkflowBuilder(name)
