"""Case runner: drives every row of a matrix through validation.

For each data row of a matrix file the runner parses the raw tokens, builds
a Product, validates it, classifies it as PASS (no violations) or FAIL, and
records the outcome in the run context. Rows are processed sequentially in
file order.

Each row's classification is then checked against its matrix:

- valid matrix: the row must PASS
- invalid matrix, loose mode: the row must FAIL for any reason
- invalid matrix, strict mode: the row must FAIL with a violation on the
  column the matrix targets

A mismatch stops the run with ExpectationMismatchError once the offending
row has been recorded, so it still appears in the report.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from productmatrix.errors import ExpectationMismatchError, HarnessError
from productmatrix.events import EventEmitter, RunEvent
from productmatrix.matrix import VALID_CATEGORY, CaseOutcome, MatrixFile, MatrixRow, read_matrix
from productmatrix.product import build_product
from productmatrix.state_machine import MatrixStateMachine
from productmatrix.types import Classification, EventType, ExpectationMode, MatrixState
from productmatrix.validation import ConstraintValidator, ValidationResult

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """State shared by everything that happens during one run.

    A context is created when a run starts and discarded when it ends. The
    outcome lists are append-only.

    Attributes:
        validator: Validator applied to every built product
        expectation_mode: How invalid-matrix rows are checked
        emitter: Dispatches run events to listeners
        outcomes: Every recorded row, in processing order
        passed: Display names of rows classified PASS
        failed: Display names of rows classified FAIL
        events: Every emitted event, in emission order
    """

    validator: ConstraintValidator = field(default_factory=ConstraintValidator)
    expectation_mode: ExpectationMode = ExpectationMode.LOOSE
    emitter: EventEmitter = field(default_factory=EventEmitter)
    outcomes: List[CaseOutcome] = field(default_factory=list)
    passed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    events: List[RunEvent] = field(default_factory=list)

    def emit(self, event_type: EventType, matrix=None, payload=None) -> RunEvent:
        event = RunEvent.create(event_type, matrix=matrix, payload=payload)
        self.events.append(event)
        self.emitter.emit(event)
        return event

    def record(self, outcome: CaseOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.actual == Classification.PASS:
            self.passed.append(outcome.display_name)
        else:
            self.failed.append(outcome.display_name)


def expectation_met(category: str, result: ValidationResult, mode: ExpectationMode) -> bool:
    """Check a validation result against the expectation of its matrix.

    Examples:
        >>> from productmatrix.product import Product
        >>> result = ConstraintValidator().validate(Product(title="Widget"))
        >>> expectation_met("rating", result, ExpectationMode.LOOSE)
        True
        >>> expectation_met("rating", result, ExpectationMode.STRICT)
        False
    """
    if category == VALID_CATEGORY:
        return result.is_valid
    if result.is_valid:
        return False
    if mode == ExpectationMode.STRICT:
        return result.violates_field(category)
    return True


class CaseRunner:
    """Runs matrix files row by row against a run context.

    Examples:
        >>> runner = CaseRunner(RunContext())
        >>> outcome = runner.evaluate_row(MatrixRow(title="Widget", price="1", quantity="2"))
        >>> outcome.actual
        <Classification.PASS: 'PASS'>
    """

    def __init__(self, context: RunContext) -> None:
        self.context = context

    def evaluate_row(self, row: MatrixRow, category: str = VALID_CATEGORY, index: int = 1) -> CaseOutcome:
        """Build, validate and classify a single row without recording it.

        Args:
            row: The raw tokens
            category: Category of the matrix the row belongs to
            index: 1-based row position, used for display names

        Returns:
            The CaseOutcome, with matched set according to the run's
            expectation mode
        """
        product = build_product(row)
        result = self.context.validator.validate(product)
        return self._outcome(row, category, index, result)

    def _outcome(self, row: MatrixRow, category: str, index: int, result: ValidationResult) -> CaseOutcome:
        expected = Classification.PASS if category == VALID_CATEGORY else Classification.FAIL
        actual = Classification.PASS if result.is_valid else Classification.FAIL
        return CaseOutcome(
            category=category,
            index=index,
            row=row,
            expected=expected,
            actual=actual,
            violations=tuple(result.violations),
            matched=expectation_met(category, result, self.context.expectation_mode),
        )

    def run_matrix(self, matrix: MatrixFile) -> List[CaseOutcome]:
        """Process every data row of a matrix file.

        Args:
            matrix: The matrix file and its category

        Returns:
            The outcomes recorded for this matrix, in row order

        Raises:
            FixtureError: If the matrix is unreadable, malformed, or has no rows
            ExpectationMismatchError: If a row's classification disagrees
                with the matrix expectation
        """
        sm = MatrixStateMachine(path=matrix.path)
        recorded: List[CaseOutcome] = []
        self.context.emit(EventType.MATRIX_OPENED, matrix=matrix.category, payload=matrix.to_dict())
        logger.info("Processing %s matrix %s", matrix.category, matrix.path)

        try:
            for index, row in enumerate(read_matrix(matrix.path), start=1):
                sm.transition_to(MatrixState.PARSE)
                sm.transition_to(MatrixState.BUILD)
                product = build_product(row)
                sm.transition_to(MatrixState.VALIDATE)
                result = self.context.validator.validate(product)
                sm.transition_to(MatrixState.CLASSIFY)
                outcome = self._outcome(row, matrix.category, index, result)
                sm.transition_to(MatrixState.RECORD)
                self.context.record(outcome)
                recorded.append(outcome)
                self.context.emit(EventType.CASE_RECORDED, matrix=matrix.category, payload=outcome.to_dict())
                logger.debug(
                    "%s -> %s (%d violation(s))",
                    outcome.display_name,
                    outcome.actual.value,
                    len(outcome.violations),
                )

                if not outcome.matched:
                    self.context.emit(
                        EventType.CASE_MISMATCHED, matrix=matrix.category, payload=outcome.to_dict()
                    )
                    logger.error(
                        "%s expected %s but was %s; violations: %s",
                        outcome.display_name,
                        outcome.expected.value,
                        outcome.actual.value,
                        [v.to_dict() for v in outcome.violations],
                    )
                    raise ExpectationMismatchError(outcome)

            sm.close()
        except HarnessError as e:
            sm.fail()
            self.context.emit(
                EventType.MATRIX_FAILED,
                matrix=matrix.category,
                payload={"path": str(matrix.path), "error": str(e), "rowsRecorded": sm.rows_recorded},
            )
            raise

        passed = sum(1 for o in recorded if o.actual == Classification.PASS)
        self.context.emit(
            EventType.MATRIX_CLOSED,
            matrix=matrix.category,
            payload={"path": str(matrix.path), "rows": len(recorded), "passed": passed},
        )
        logger.info(
            "Closed %s matrix: %d row(s), %d PASS, %d FAIL",
            matrix.category,
            len(recorded),
            passed,
            len(recorded) - passed,
        )
        return recorded


__all__ = [
    "RunContext",
    "CaseRunner",
    "expectation_met",
]
