# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from .errors import DuplicateStep


class Language(str, Enum):
    """Built-in language tags. Steps carry plain strings, so the set can grow."""
    LUA = "lua"
    PYTHON = "python"
    JAVASCRIPT = "javascript"
    SHELL = "shell"
    WASM = "wasm"


LANGUAGE_ALIASES: Dict[str, str] = {
    "sh": Language.SHELL.value,
    "bash": Language.SHELL.value,
    "js": Language.JAVASCRIPT.value,
    "node": Language.JAVASCRIPT.value,
    "nodejs": Language.JAVASCRIPT.value,
    "webassembly": Language.WASM.value,
    "py": Language.PYTHON.value,
}


def canonical_language(tag: str) -> str:
    tag = (tag or "").strip().lower()
    return LANGUAGE_ALIASES.get(tag, tag)


@dataclass(frozen=True)
class Payload:
    """What a runner executes: inline source, or a module/function reference."""
    code: Optional[str] = None
    module: Optional[str] = None
    function: Optional[str] = None

    @property
    def is_module(self) -> bool:
        return self.module is not None


@dataclass(frozen=True)
class StepDefinition:
    """A single named step, implemented in one language."""
    name: str
    language: str
    payload: Payload = field(default_factory=Payload)
    depends_on: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Step name must be a non-empty string")
        # de-dupe while preserving declared order
        seen: List[str] = []
        for dep in self.depends_on:
            if dep not in seen:
                seen.append(dep)
        object.__setattr__(self, "depends_on", tuple(seen))

    @property
    def code(self) -> Optional[str]:
        return self.payload.code

    @property
    def module(self) -> Optional[str]:
        return self.payload.module

    @property
    def function(self) -> Optional[str]:
        return self.payload.function


@dataclass(frozen=True)
class WorkflowDefinition:
    """
    Immutable workflow: name, description and steps keyed by step name.

    Graph invariants (non-empty, known dependencies, no cycles) are checked by
    polyflow.dag when the workflow is leveled, not here.
    """
    name: str
    steps: Mapping[str, StepDefinition] = field(default_factory=dict)
    description: str = ""

    def __post_init__(self) -> None:
        for key, step in self.steps.items():
            if key != step.name:
                raise ValueError(f"Step key '{key}' does not match step name '{step.name}'")
        object.__setattr__(self, "steps", MappingProxyType(dict(self.steps)))

    @classmethod
    def from_steps(
        cls,
        name: str,
        steps: Iterable[StepDefinition],
        description: str = "",
    ) -> WorkflowDefinition:
        by_name: Dict[str, StepDefinition] = {}
        for s in steps:
            if s.name in by_name:
                raise DuplicateStep(s.name)
            by_name[s.name] = s
        return cls(name=name, steps=by_name, description=description)

    def step_names(self) -> List[str]:
        return sorted(self.steps)

    def get(self, name: str) -> StepDefinition:
        return self.steps[name]

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[StepDefinition]:
        for name in self.step_names():
            yield self.steps[name]
