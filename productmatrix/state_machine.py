"""Per-matrix processing state machine.

Each matrix file is driven through a fixed lifecycle while its rows are
processed::

    OPEN -> PARSE -> BUILD -> VALIDATE -> CLASSIFY -> RECORD -> PARSE ...
                                                          \\-> CLOSED

Any non-terminal state may move to FAILED. A matrix may only be closed after
at least one row has been recorded: a matrix with zero rows is a broken
fixture and closing it fails the run.

Usage:
    >>> from pathlib import Path
    >>> sm = MatrixStateMachine(path=Path("valid_test_cases.csv"))
    >>> sm.state
    <MatrixState.OPEN: 'open'>
    >>> for state in ROW_CYCLE:
    ...     sm.transition_to(state)
    >>> sm.rows_recorded
    1
    >>> sm.close()
    >>> sm.is_terminal()
    True
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Set, Tuple

from productmatrix.errors import FixtureError, InvalidStateTransitionError
from productmatrix.types import MatrixState

# The states a single row passes through, in order.
ROW_CYCLE: Tuple[MatrixState, ...] = (
    MatrixState.PARSE,
    MatrixState.BUILD,
    MatrixState.VALIDATE,
    MatrixState.CLASSIFY,
    MatrixState.RECORD,
)

VALID_TRANSITIONS: Dict[MatrixState, Set[MatrixState]] = {
    MatrixState.OPEN: {
        MatrixState.PARSE,
        MatrixState.CLOSED,
        MatrixState.FAILED,
    },
    MatrixState.PARSE: {MatrixState.BUILD, MatrixState.FAILED},
    MatrixState.BUILD: {MatrixState.VALIDATE, MatrixState.FAILED},
    MatrixState.VALIDATE: {MatrixState.CLASSIFY, MatrixState.FAILED},
    MatrixState.CLASSIFY: {MatrixState.RECORD, MatrixState.FAILED},
    MatrixState.RECORD: {
        MatrixState.PARSE,
        MatrixState.CLOSED,
        MatrixState.FAILED,
    },
    # Terminal states - no transitions allowed
    MatrixState.CLOSED: set(),
    MatrixState.FAILED: set(),
}


@dataclass
class MatrixStateMachine:
    """Tracks where processing of one matrix file stands.

    Attributes:
        path: The matrix file being processed
        state: Current state
        rows_recorded: Number of rows that reached RECORD
    """

    path: Path
    state: MatrixState = MatrixState.OPEN
    rows_recorded: int = 0

    def can_transition_to(self, target_state: MatrixState) -> bool:
        return target_state in VALID_TRANSITIONS.get(self.state, set())

    def transition_to(self, target_state: MatrixState) -> None:
        """Move to a new state.

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(target_state):
            raise InvalidStateTransitionError(
                current_state=self.state,
                target_state=target_state,
                message=(
                    f"Invalid state transition: cannot transition from "
                    f"'{self.state.value}' to '{target_state.value}'. "
                    f"Valid transitions from '{self.state.value}' are: "
                    f"{', '.join(sorted(s.value for s in VALID_TRANSITIONS[self.state]))}"
                    if VALID_TRANSITIONS[self.state]
                    else f"Invalid state transition: '{self.state.value}' is a terminal state, "
                    f"no transitions are allowed."
                ),
            )
        self.state = target_state
        if target_state == MatrixState.RECORD:
            self.rows_recorded += 1

    def close(self) -> None:
        """Close the matrix once its rows are exhausted.

        Raises:
            FixtureError: If no row was recorded; the machine moves to FAILED
        """
        if self.rows_recorded == 0:
            self.fail()
            raise FixtureError(self.path, "matrix yielded zero data rows")
        self.transition_to(MatrixState.CLOSED)

    def fail(self) -> None:
        if not self.is_terminal():
            self.transition_to(MatrixState.FAILED)

    def is_terminal(self) -> bool:
        return len(VALID_TRANSITIONS[self.state]) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "state": self.state.value,
            "rowsRecorded": self.rows_recorded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatrixStateMachine":
        state = data["state"]
        if isinstance(state, str):
            state = MatrixState(state)
        return cls(
            path=Path(data["path"]),
            state=state,
            rows_recorded=data.get("rowsRecorded", 0),
        )


__all__ = [
    "ROW_CYCLE",
    "VALID_TRANSITIONS",
    "MatrixStateMachine",
]
