"""Constraint validation engine for Product entities.

This module provides a ConstraintValidator that evaluates an explicit table
of constraint rules against a Product and produces a structured result with
one FieldError per violated rule.

Every rule is evaluated independently, with no short-circuit on the first
violation, so a report can always show the full violation set. The rule
table is an immutable tuple and the validator holds no mutable state, so one
validator can be shared by every row of a run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from productmatrix.errors import FieldError
from productmatrix.product import (
    DESCRIPTION_MAX_LENGTH,
    DIMENSIONS_MAX_LENGTH,
    KEYWORDS_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Product,
)
from productmatrix.types import ProductStatus, RuleCode

_ZERO = Decimal(0)


@dataclass(frozen=True)
class Rule:
    """A named predicate over one or more Product fields.

    Attributes:
        code: Identifier of the rule
        field: Matrix column the rule is reported against
        message: Human-readable description of the violation
        violated: Predicate returning True when the product breaks the rule
        value: Extracts the offending value for diagnostics
        expected: Short description of what the rule requires
    """
    code: RuleCode
    field: str
    message: str
    violated: Callable[[Product], bool]
    value: Callable[[Product], Any]
    expected: Optional[str] = None

    def check(self, product: Product) -> Optional[FieldError]:
        """Evaluate the rule, returning a FieldError when it is violated."""
        if not self.violated(product):
            return None
        return FieldError(
            path=self.field,
            code=self.code,
            message=self.message,
            expected=self.expected,
            received=self.value(product),
        )


def _is_status(value: Any) -> bool:
    # Plain strings count when they name a member exactly.
    if isinstance(value, ProductStatus):
        return True
    return isinstance(value, str) and value in ProductStatus.__members__


def _is_instant(value: Any) -> bool:
    return isinstance(value, datetime) and value.utcoffset() is not None


def _too_long(value: Optional[str], max_length: int) -> bool:
    return value is not None and len(value) > max_length


def _modified_before_added(product: Product) -> bool:
    # Only evaluated when both are present and comparable instants.
    if not (_is_instant(product.date_added) and _is_instant(product.date_modified)):
        return False
    return product.date_modified < product.date_added


PRODUCT_RULES: Tuple[Rule, ...] = (
    Rule(
        code=RuleCode.TITLE_REQUIRED,
        field="title",
        message="title is required",
        violated=lambda p: p.title is None,
        value=lambda p: p.title,
        expected="non-null",
    ),
    Rule(
        code=RuleCode.TITLE_SIZE,
        field="title",
        message=f"title must be between 1 and {TITLE_MAX_LENGTH} characters",
        violated=lambda p: p.title is not None and not 1 <= len(p.title) <= TITLE_MAX_LENGTH,
        value=lambda p: p.title,
        expected=f"1..{TITLE_MAX_LENGTH} characters",
    ),
    Rule(
        code=RuleCode.KEYWORDS_SIZE,
        field="keywords",
        message=f"keywords must be at most {KEYWORDS_MAX_LENGTH} characters",
        violated=lambda p: _too_long(p.keywords, KEYWORDS_MAX_LENGTH),
        value=lambda p: p.keywords,
        expected=f"at most {KEYWORDS_MAX_LENGTH} characters",
    ),
    Rule(
        code=RuleCode.DESCRIPTION_SIZE,
        field="description",
        message=f"description must be at most {DESCRIPTION_MAX_LENGTH} characters",
        violated=lambda p: _too_long(p.description, DESCRIPTION_MAX_LENGTH),
        value=lambda p: p.description,
        expected=f"at most {DESCRIPTION_MAX_LENGTH} characters",
    ),
    Rule(
        code=RuleCode.RATING_MIN,
        field="rating",
        message="rating must be at least 1",
        violated=lambda p: p.rating is not None and p.rating < 1,
        value=lambda p: p.rating,
        expected=">= 1",
    ),
    Rule(
        code=RuleCode.PRICE_REQUIRED,
        field="price",
        message="price is required",
        violated=lambda p: p.price is None,
        value=lambda p: p.price,
        expected="non-null",
    ),
    Rule(
        code=RuleCode.PRICE_MIN,
        field="price",
        message="price must be at least 0",
        violated=lambda p: p.price is not None and p.price < _ZERO,
        value=lambda p: p.price,
        expected=">= 0",
    ),
    Rule(
        code=RuleCode.QUANTITY_REQUIRED,
        field="quantity",
        message="quantityInStock is required",
        violated=lambda p: p.quantity_in_stock is None,
        value=lambda p: p.quantity_in_stock,
        expected="non-null",
    ),
    Rule(
        code=RuleCode.QUANTITY_MIN,
        field="quantity",
        message="quantityInStock must be at least 0",
        violated=lambda p: p.quantity_in_stock is not None and p.quantity_in_stock < 0,
        value=lambda p: p.quantity_in_stock,
        expected=">= 0",
    ),
    Rule(
        code=RuleCode.STATUS_MEMBER,
        field="status",
        message="status must be one of: " + ", ".join(ProductStatus.__members__),
        violated=lambda p: p.status is not None and not _is_status(p.status),
        value=lambda p: p.status,
        expected="ProductStatus member",
    ),
    Rule(
        code=RuleCode.WEIGHT_MIN,
        field="weight",
        message="weight must be at least 0",
        violated=lambda p: p.weight is not None and not p.weight >= 0,
        value=lambda p: p.weight,
        expected=">= 0",
    ),
    Rule(
        code=RuleCode.DIMENSIONS_SIZE,
        field="dimensions",
        message=f"dimensions must be at most {DIMENSIONS_MAX_LENGTH} characters",
        violated=lambda p: _too_long(p.dimensions, DIMENSIONS_MAX_LENGTH),
        value=lambda p: p.dimensions,
        expected=f"at most {DIMENSIONS_MAX_LENGTH} characters",
    ),
    Rule(
        code=RuleCode.DATE_ADDED_INSTANT,
        field="dateAdded",
        message="dateAdded must be a UTC instant",
        violated=lambda p: p.date_added is not None and not _is_instant(p.date_added),
        value=lambda p: p.date_added,
        expected="ISO-8601 instant",
    ),
    Rule(
        code=RuleCode.DATE_MODIFIED_INSTANT,
        field="dateModified",
        message="dateModified must be a UTC instant",
        violated=lambda p: p.date_modified is not None and not _is_instant(p.date_modified),
        value=lambda p: p.date_modified,
        expected="ISO-8601 instant",
    ),
    Rule(
        code=RuleCode.DATE_MODIFIED_ORDER,
        field="dateModified",
        message="dateModified must not be before dateAdded",
        violated=_modified_before_added,
        value=lambda p: p.date_modified,
        expected=">= dateAdded",
    ),
)


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a Product against the rule table.

    Attributes:
        is_valid: Whether the product passed every rule
        violations: One FieldError per violated rule, in rule-table order
        missing_fields: Columns whose required rule fired
        invalid_fields: Columns with any other violation

    Examples:
        >>> result = ConstraintValidator().validate(Product(title="Widget"))
        >>> result.is_valid
        False
        >>> sorted(result.missing_fields)
        ['price', 'quantity']
    """
    is_valid: bool
    violations: List[FieldError] = field(default_factory=list)
    missing_fields: List[str] = field(default_factory=list)
    invalid_fields: List[str] = field(default_factory=list)

    @property
    def codes(self) -> FrozenSet[RuleCode]:
        return frozenset(v.code for v in self.violations)

    def violates_field(self, column: str) -> bool:
        """Whether any violated rule is reported against the given column."""
        return any(v.path == column for v in self.violations)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "isValid": self.is_valid,
            "violations": [v.to_dict() for v in self.violations],
            "missingFields": self.missing_fields,
            "invalidFields": self.invalid_fields,
        }


_REQUIRED_CODES = frozenset(
    {RuleCode.TITLE_REQUIRED, RuleCode.PRICE_REQUIRED, RuleCode.QUANTITY_REQUIRED}
)


class ConstraintValidator:
    """Evaluates a fixed rule table against Product instances.

    Attributes:
        rules: The rules evaluated for every product, in order

    Examples:
        >>> from decimal import Decimal
        >>> validator = ConstraintValidator()
        >>> validator.validate(Product(title="Widget", price=Decimal("1"), quantity_in_stock=0)).is_valid
        True
    """

    def __init__(self, rules: Sequence[Rule] = PRODUCT_RULES) -> None:
        self.rules: Tuple[Rule, ...] = tuple(rules)

    def validate(self, product: Product) -> ValidationResult:
        """Validate a product against every rule.

        Args:
            product: The product to check

        Returns:
            ValidationResult with every violated rule
        """
        violations: List[FieldError] = []
        missing_fields: List[str] = []
        invalid_fields: List[str] = []

        for rule in self.rules:
            violation = rule.check(product)
            if violation is None:
                continue
            violations.append(violation)

            # Track which fields are missing vs invalid
            if rule.code in _REQUIRED_CODES:
                missing_fields.append(violation.path)
            elif violation.path not in invalid_fields:
                invalid_fields.append(violation.path)

        return ValidationResult(
            is_valid=not violations,
            violations=violations,
            missing_fields=missing_fields,
            invalid_fields=invalid_fields,
        )


__all__ = [
    "Rule",
    "PRODUCT_RULES",
    "ValidationResult",
    "ConstraintValidator",
]
