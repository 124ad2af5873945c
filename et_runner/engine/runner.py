"""Run orchestrator: executes every trial in sequence."""

from __future__ import annotations

import logging
from typing import IO

from et_runner.engine.aggregator import ResultAggregator, TrialRenderer
from et_runner.engine.collaborators import Collaborators, default_collaborators
from et_runner.engine.launcher import check_snap_options
from et_runner.engine.trial import TrialRunner
from et_runner.models.config import RunConfiguration
from et_runner.models.results import OutputResult

logger = logging.getLogger(__name__)


class RunOrchestrator:
    """Runs ``1 + additional_iterations`` trials and aggregates the results."""

    def __init__(
        self,
        config: RunConfiguration,
        *,
        collaborators: Collaborators | None = None,
        renderer: TrialRenderer | None = None,
    ) -> None:
        self.config = config
        self.collaborators = collaborators or default_collaborators(config)
        self.aggregator = ResultAggregator(json_output=config.json_output, renderer=renderer)

    def run(self, stream: IO[str]) -> OutputResult:
        """Execute all trials and write the final result to ``stream``.

        Configuration and setup errors abort the whole run.
        """
        check_snap_options(self.config)
        trial_runner = TrialRunner(self.config, self.collaborators)
        for trial in range(self.config.trial_count):
            execution = trial_runner.run(trial)
            if execution.errors:
                logger.debug("Trial %s recorded %s errors", trial, len(execution.errors))
            self.aggregator.add(execution)
        return self.aggregator.finish(stream)
