"""Violation records and harness exceptions.

A violated constraint rule is described by a FieldError: the column it
applies to, the rule code, a human-readable message, and what was expected
versus received. FieldError is also used to describe problems found in a run
manifest, so both kinds of diagnostics share a single shape.

Malformed matrix cells are not errors: they resolve to absent or sentinel
values in the token and sentinel layers. The exceptions below cover the
conditions that stop a run:

- ManifestError: the run manifest is unreadable or does not match its schema
- FixtureError: a matrix file is missing, malformed or yields no rows
- ExpectationMismatchError: a row classified differently than its matrix expects
- ReportWriteError: the report document or event stream could not be written
- InvalidStateTransitionError: a matrix state machine was driven out of order
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from productmatrix.types import MatrixState, RuleCode

if TYPE_CHECKING:
    from productmatrix.matrix import CaseOutcome


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


@dataclass(frozen=True)
class FieldError:
    """Per-field validation error details.

    Attributes:
        path: Matrix column name (e.g., "price", "dateModified") or, for
            manifest errors, the dot-notation path into the manifest
        code: Rule code for product violations, or a plain string for
            manifest schema errors
        message: Human-readable error description
        expected: Optional - what was expected
        received: Optional - what was actually received

    Examples:
        >>> err = FieldError(
        ...     path="rating",
        ...     code=RuleCode.RATING_MIN,
        ...     message="rating must be at least 1",
        ...     expected=">= 1",
        ...     received=-1,
        ... )
        >>> err.to_dict()["code"]
        'rating.min'
    """
    path: str
    code: Union[RuleCode, str]
    message: str
    expected: Optional[Any] = None
    received: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "path": self.path,
            "code": self.code.value if isinstance(self.code, RuleCode) else self.code,
            "message": self.message,
        }
        if self.expected is not None:
            result["expected"] = self.expected
        if self.received is not None:
            result["received"] = _jsonable(self.received)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldError":
        """Create FieldError from dict.

        Known rule codes are restored as RuleCode members; anything else
        (manifest schema keywords) stays a plain string.
        """
        code = data["code"]
        if isinstance(code, str) and code in RuleCode._value2member_map_:
            code = RuleCode(code)
        return cls(
            path=data["path"],
            code=code,
            message=data["message"],
            expected=data.get("expected"),
            received=data.get("received"),
        )


class HarnessError(Exception):
    """Base class for every condition that stops a run."""


class ManifestError(HarnessError):
    """Raised when a run manifest cannot be loaded.

    Attributes:
        path: Location of the manifest
        errors: Schema violations found in the manifest (may be empty when
            the file could not be read or decoded at all)
    """

    def __init__(self, path: Path, message: str, errors: Optional[List[FieldError]] = None):
        self.path = path
        self.errors = list(errors or [])
        super().__init__(message)


class FixtureError(HarnessError):
    """Raised when a matrix file cannot serve as a test fixture.

    A matrix that produces zero data rows indicates a broken fixture, not
    zero test cases.
    """

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class ExpectationMismatchError(HarnessError):
    """Raised when a row's actual classification disagrees with its matrix.

    Attributes:
        outcome: The recorded outcome of the offending row, including its
            full violation set
    """

    def __init__(self, outcome: "CaseOutcome"):
        self.outcome = outcome
        violations = ", ".join(v.message for v in outcome.violations) or "none"
        super().__init__(
            f"{outcome.display_name}: expected {outcome.expected.value}, "
            f"got {outcome.actual.value} (violations: {violations})"
        )


class ReportWriteError(HarnessError):
    """Raised when the report document or the event stream cannot be written.

    Attributes:
        path: The file that could not be written
        artifact: What was being written, e.g. "report" or "event stream"
    """

    def __init__(self, path: Path, cause: OSError, artifact: str = "report"):
        self.path = path
        self.artifact = artifact
        super().__init__(f"Failed to write {artifact} to {path}: {cause}")


class InvalidStateTransitionError(HarnessError):
    """Raised when attempting an invalid matrix state transition.

    Attributes:
        current_state: The current state before the attempted transition
        target_state: The target state that was attempted
    """

    def __init__(self, current_state: MatrixState, target_state: MatrixState, message: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(message)


__all__ = [
    "FieldError",
    "HarnessError",
    "ManifestError",
    "FixtureError",
    "ExpectationMismatchError",
    "ReportWriteError",
    "InvalidStateTransitionError",
]
