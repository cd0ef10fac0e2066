# executor.py
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .errors import ExecutorFailure, UnknownLanguage
from .model import Payload, canonical_language


@dataclass(frozen=True)
class StepOutput:
    """What a runner hands back: a JSON value plus the console text it captured."""
    output: Any = None
    console: str = ""


# A runner executes one step. It may block for as long as the external
# runtime needs, and raises StepError subclasses on failure.
Runner = Callable[[str, Payload, Mapping[str, Any]], Union[StepOutput, Any]]


def _normalize(step_name: str, value: Any) -> Any:
    try:
        return json.loads(json.dumps(value))
    except (TypeError, ValueError) as e:
        raise ExecutorFailure(step_name, f"output is not JSON-serializable: {e}") from e


class RunnerRegistry:
    """Language tag -> runner. Aliases (bash, js, ...) resolve through canonical_language()."""

    def __init__(self, runners: Optional[Mapping[str, Runner]] = None):
        self._runners: Dict[str, Runner] = {}
        for language, runner in (runners or {}).items():
            self.register(language, runner)

    def register(self, language: str, runner: Runner, *aliases: str) -> None:
        self._runners[canonical_language(language)] = runner
        for alias in aliases:
            self._runners[alias.strip().lower()] = runner

    def unregister(self, language: str) -> None:
        self._runners.pop(canonical_language(language), None)

    @property
    def languages(self) -> List[str]:
        return sorted(self._runners)

    def __contains__(self, language: object) -> bool:
        if not isinstance(language, str):
            return False
        return self._lookup(language) is not None

    def _lookup(self, language: str) -> Optional[Runner]:
        runner = self._runners.get(canonical_language(language))
        if runner is None:
            runner = self._runners.get((language or "").strip().lower())
        return runner

    def resolve(self, step_name: str, language: str) -> Runner:
        runner = self._lookup(language)
        if runner is None:
            raise UnknownLanguage(step_name, language, known=self.languages)
        return runner

    def execute(
        self,
        step_name: str,
        language: str,
        payload: Payload,
        inputs: Mapping[str, Any],
    ) -> StepOutput:
        runner = self.resolve(step_name, language)
        result = runner(step_name, payload, inputs)
        if isinstance(result, StepOutput):
            return StepOutput(output=_normalize(step_name, result.output), console=result.console)
        return StepOutput(output=_normalize(step_name, result))
