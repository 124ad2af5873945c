"""Collects per-trial executions and emits them in the requested format."""

from __future__ import annotations

from typing import IO, Protocol

from et_runner.models.results import Execution, OutputResult


class TrialRenderer(Protocol):
    """Human-readable output for one trial."""

    def render_trial(self, index: int, execution: Execution) -> None:
        ...


class ResultAggregator:
    """Accumulates the OutputResult across trials.

    In JSON mode nothing is written until :meth:`finish`, which writes a
    single ``{"Runs": [...]}`` object. Otherwise each trial is handed to the
    renderer as soon as it is recorded.
    """

    def __init__(self, *, json_output: bool, renderer: TrialRenderer | None = None) -> None:
        self.json_output = json_output
        self.renderer = renderer
        self.result = OutputResult()

    def add(self, execution: Execution) -> None:
        index = len(self.result.runs)
        self.result.runs.append(execution)
        if not self.json_output and self.renderer is not None:
            self.renderer.render_trial(index, execution)

    def finish(self, stream: IO[str]) -> OutputResult:
        if self.json_output:
            stream.write(self.result.to_json())
            stream.write("\n")
            stream.flush()
        return self.result
