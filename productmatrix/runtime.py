"""MatrixRuntime orchestrator for harness runs.

This module provides the MatrixRuntime class that ties the case runner,
report generator and event stream together into one run:

1. a fresh RunContext is created
2. every matrix in the config is processed in order
3. the RunReport is built and written exactly once
4. the run's events are optionally dumped as JSON Lines

A run that stops early (broken fixture or expectation mismatch) still writes
the report for the rows recorded so far before the error propagates, so the
offending row can be inspected.

Usage:
    >>> from productmatrix.config import config_from_directory
    >>> runtime = MatrixRuntime(config_from_directory("src/test/resources/pict"))  # doctest: +SKIP
    >>> report = runtime.run()  # doctest: +SKIP
    >>> report.total  # doctest: +SKIP
    42
"""

import logging
from pathlib import Path
from typing import List, Optional

from productmatrix.config import RunConfig
from productmatrix.errors import ExpectationMismatchError, FixtureError, ReportWriteError
from productmatrix.events import EventEmitter, RunEvent
from productmatrix.report import RunReport, write_report
from productmatrix.runner import CaseRunner, RunContext
from productmatrix.types import EventType

logger = logging.getLogger(__name__)


class MatrixRuntime:
    """Runs a configured set of matrices and produces the report.

    Attributes:
        config: The run configuration
        emitter: Event emitter shared with the run context; subscribe to it
            before calling run() to observe the run
        context: The context of the most recent run, or None before run()
        report: The report of the most recent run, or None
    """

    def __init__(self, config: RunConfig, emitter: Optional[EventEmitter] = None):
        self.config = config
        self.emitter = emitter or EventEmitter()
        self.context: Optional[RunContext] = None
        self.report: Optional[RunReport] = None

    def run(self) -> RunReport:
        """Execute the run.

        Returns:
            The RunReport, after it has been written

        Raises:
            FixtureError: If the config has no matrices or a matrix is broken
            ExpectationMismatchError: If a row disagrees with its matrix
            ReportWriteError: If the report or event stream cannot be written
        """
        context = RunContext(
            expectation_mode=self.config.expectation_mode,
            emitter=self.emitter,
        )
        self.context = context
        self.report = None
        context.emit(EventType.RUN_STARTED, payload=self.config.to_dict())
        logger.info(
            "Starting run over %d matrix file(s) (%s expectations)",
            len(self.config.matrices),
            self.config.expectation_mode.value,
        )

        runner = CaseRunner(context)
        try:
            if not self.config.matrices:
                raise FixtureError(Path("."), "no matrix files configured")
            for matrix in self.config.matrices:
                runner.run_matrix(matrix)
        except (FixtureError, ExpectationMismatchError) as e:
            logger.error("Run aborted: %s", e)
            self._finish(context)
            context.emit(EventType.RUN_FAILED, payload={"error": str(e)})
            self._dump_events(context.events)
            raise

        report = self._finish(context)
        context.emit(
            EventType.RUN_COMPLETED,
            payload={"total": report.total, "passed": report.passed, "failed": report.failed},
        )
        self._dump_events(context.events)
        logger.info(
            "Run completed: %d case(s), %d PASS, %d FAIL",
            report.total,
            report.passed,
            report.failed,
        )
        return report

    def _finish(self, context: RunContext) -> RunReport:
        report = RunReport.from_outcomes(context.outcomes)
        self.report = report
        path = write_report(
            report,
            self.config.report_path,
            include_category=self.config.include_category,
        )
        context.emit(EventType.REPORT_WRITTEN, payload={"path": str(path), "rows": report.total})
        return report

    def _dump_events(self, events: List[RunEvent]) -> None:
        path = self.config.events_path
        if path is None:
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("".join(e.to_jsonl() + "\n" for e in events), encoding="utf-8")
        except OSError as e:
            raise ReportWriteError(path, e, artifact="event stream") from e
        logger.info("Wrote %d event(s) to %s", len(events), path)


__all__ = [
    "MatrixRuntime",
]
