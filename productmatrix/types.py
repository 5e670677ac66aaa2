"""Core type definitions for the product matrix harness.

This module defines the enumerations shared by every layer of the harness:
- ProductStatus: Named lifecycle states a product can be in
- RuleCode: Identifiers for each constraint rule the validator evaluates
- Classification: PASS/FAIL outcome of validating one built product
- ExpectationMode: How strictly invalid-matrix rows are checked
- MatrixState: States of the per-matrix processing state machine
- EventType: Audit event types for the run event stream

String values are the form written to reports, manifests and event streams.
"""

from enum import Enum


class ProductStatus(str, Enum):
    """Known product states.

    Matching against raw tokens is by exact, case-sensitive member name.
    """
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DISCONTINUED = "DISCONTINUED"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class RuleCode(str, Enum):
    """Identifiers for the constraint rules declared on a Product.

    Values use the matrix column name followed by the rule kind, so a code
    can be traced back to the column that triggered it.
    """
    TITLE_REQUIRED = "title.required"
    TITLE_SIZE = "title.size"
    KEYWORDS_SIZE = "keywords.size"
    DESCRIPTION_SIZE = "description.size"
    RATING_MIN = "rating.min"
    PRICE_REQUIRED = "price.required"
    PRICE_MIN = "price.min"
    QUANTITY_REQUIRED = "quantity.required"
    QUANTITY_MIN = "quantity.min"
    STATUS_MEMBER = "status.member"
    WEIGHT_MIN = "weight.min"
    DIMENSIONS_SIZE = "dimensions.size"
    DATE_ADDED_INSTANT = "dateAdded.instant"
    DATE_MODIFIED_INSTANT = "dateModified.instant"
    DATE_MODIFIED_ORDER = "dateModified.order"


class Classification(str, Enum):
    """Outcome of validating one product: PASS iff no rule was violated."""
    PASS = "PASS"
    FAIL = "FAIL"


class ExpectationMode(str, Enum):
    """How rows from invalid matrices are checked against their expectation.

    LOOSE only requires that some rule was violated. STRICT additionally
    requires a violation on the column the matrix targets.
    """
    LOOSE = "loose"
    STRICT = "strict"


class MatrixState(str, Enum):
    """States of a matrix file while it is being processed.

    Terminal states: closed, failed.
    """
    OPEN = "open"
    PARSE = "parse"
    BUILD = "build"
    VALIDATE = "validate"
    CLASSIFY = "classify"
    RECORD = "record"
    CLOSED = "closed"
    FAILED = "failed"


class EventType(str, Enum):
    """Audit event types emitted during a run."""
    RUN_STARTED = "run.started"
    MATRIX_OPENED = "matrix.opened"
    CASE_RECORDED = "case.recorded"
    CASE_MISMATCHED = "case.mismatched"
    MATRIX_CLOSED = "matrix.closed"
    MATRIX_FAILED = "matrix.failed"
    REPORT_WRITTEN = "report.written"
    RUN_COMPLETED = "run.completed"
    RUN_FAILED = "run.failed"


__all__ = [
    "ProductStatus",
    "RuleCode",
    "Classification",
    "ExpectationMode",
    "MatrixState",
    "EventType",
]
