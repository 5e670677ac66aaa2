"""Product Matrix validation harness.

Validates Product entities against a fixed set of field-level business rules
and exercises that validation against combinatorial test matrices
(tab-separated files produced by a pairwise case generator):

- Token parsing with sentinel substitution for malformed optional values
- An explicit constraint rule table evaluated without short-circuiting
- A case runner that classifies every matrix row as PASS or FAIL and checks
  it against the expectation of its matrix
- A Markdown report summarising every processed row

Basic usage:
    >>> from productmatrix import CaseRunner, MatrixRow, RunContext
    >>> runner = CaseRunner(RunContext())
    >>> outcome = runner.evaluate_row(MatrixRow(title="Widget", price="9.99", quantity="5"))
    >>> outcome.actual.value
    'PASS'
"""

__version__ = "0.1.0"
__author__ = "Product Matrix Team"

# Version info
VERSION = (0, 1, 0)

# Core exports
from productmatrix.matrix import MatrixFile, MatrixRow
from productmatrix.product import Product, build_product
from productmatrix.runner import CaseRunner, RunContext
from productmatrix.runtime import MatrixRuntime
from productmatrix.validation import ConstraintValidator

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "CaseRunner",
    "ConstraintValidator",
    "MatrixFile",
    "MatrixRow",
    "MatrixRuntime",
    "Product",
    "RunContext",
    "build_product",
]
