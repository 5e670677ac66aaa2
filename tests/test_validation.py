"""Unit tests for the constraint validator.

Tests cover:
- Required fields (title, price, quantityInStock)
- Length bounds on text fields
- Lower bounds on rating, price, quantity and weight, including sentinels
- Status membership and instant well-formedness
- The dateModified >= dateAdded ordering rule
- Evaluation of every rule without short-circuiting
- ValidationResult structure and idempotence
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from productmatrix.errors import FieldError
from productmatrix.matrix import MatrixRow
from productmatrix.product import (
    DESCRIPTION_MAX_LENGTH,
    DIMENSIONS_MAX_LENGTH,
    KEYWORDS_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Product,
    build_product,
)
from productmatrix.types import ProductStatus, RuleCode
from productmatrix.validation import PRODUCT_RULES, ConstraintValidator, Rule, ValidationResult
from tests.conftest import VALID_CELLS, with_cell

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def valid_product(**overrides) -> Product:
    values = dict(
        title="Widget",
        keywords="kw",
        description="desc",
        rating=3,
        price=Decimal("9.99"),
        quantity_in_stock=5,
        status=ProductStatus.ACTIVE,
        weight=1.2,
        dimensions="10x10",
        date_added=T0,
        date_modified=T0 + timedelta(days=1),
    )
    values.update(overrides)
    return Product(**values)


@pytest.fixture
def validator():
    return ConstraintValidator()


class TestValidProduct:

    def test_valid_product_has_no_violations(self, validator):
        result = validator.validate(valid_product())
        assert result.is_valid is True
        assert result.violations == []
        assert result.missing_fields == []
        assert result.invalid_fields == []

    def test_minimal_product_is_valid(self, validator):
        """Only title, price and quantity are required."""
        product = Product(title="T", price=Decimal("0"), quantity_in_stock=0)
        assert validator.validate(product).is_valid is True

    def test_boundaries_are_inclusive(self, validator):
        product = valid_product(
            title="x" * TITLE_MAX_LENGTH,
            keywords="k" * KEYWORDS_MAX_LENGTH,
            description="d" * DESCRIPTION_MAX_LENGTH,
            dimensions="m" * DIMENSIONS_MAX_LENGTH,
            rating=1,
            price=Decimal("0.00"),
            quantity_in_stock=0,
            weight=0.0,
            date_modified=T0,
        )
        assert validator.validate(product).is_valid is True


class TestRequiredFields:

    def test_missing_price_always_fails(self, validator):
        result = validator.validate(valid_product(price=None))
        assert result.is_valid is False
        assert RuleCode.PRICE_REQUIRED in result.codes
        assert result.missing_fields == ["price"]

    def test_missing_quantity_always_fails(self, validator):
        result = validator.validate(valid_product(quantity_in_stock=None))
        assert RuleCode.QUANTITY_REQUIRED in result.codes
        assert result.missing_fields == ["quantity"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"price": None},
            {"quantity_in_stock": None},
            {"price": None, "quantity_in_stock": None},
            {"price": None, "rating": None, "weight": None, "status": None},
        ],
    )
    def test_null_price_or_quantity_is_never_valid(self, validator, overrides):
        assert validator.validate(valid_product(**overrides)).is_valid is False

    def test_missing_title(self, validator):
        result = validator.validate(valid_product(title=None))
        assert result.codes == {RuleCode.TITLE_REQUIRED}

    def test_empty_title_violates_size(self, validator):
        result = validator.validate(valid_product(title=""))
        assert result.codes == {RuleCode.TITLE_SIZE}
        assert result.invalid_fields == ["title"]


class TestLengthBounds:

    @pytest.mark.parametrize(
        "field,column,limit,code",
        [
            ("title", "title", TITLE_MAX_LENGTH, RuleCode.TITLE_SIZE),
            ("keywords", "keywords", KEYWORDS_MAX_LENGTH, RuleCode.KEYWORDS_SIZE),
            ("description", "description", DESCRIPTION_MAX_LENGTH, RuleCode.DESCRIPTION_SIZE),
            ("dimensions", "dimensions", DIMENSIONS_MAX_LENGTH, RuleCode.DIMENSIONS_SIZE),
        ],
    )
    def test_over_long_text_is_rejected(self, validator, field, column, limit, code):
        result = validator.validate(valid_product(**{field: "x" * (limit + 1)}))
        assert result.codes == {code}
        assert result.violates_field(column)

    @pytest.mark.parametrize("field", ["keywords", "description", "dimensions"])
    def test_optional_text_may_be_absent_or_empty(self, validator, field):
        assert validator.validate(valid_product(**{field: None})).is_valid is True
        assert validator.validate(valid_product(**{field: ""})).is_valid is True


class TestNumericBounds:

    @pytest.mark.parametrize("rating", [0, -1, -100])
    def test_rating_below_one_is_rejected(self, validator, rating):
        result = validator.validate(valid_product(rating=rating))
        assert RuleCode.RATING_MIN in result.codes

    def test_absent_rating_is_valid(self, validator):
        assert validator.validate(valid_product(rating=None)).is_valid is True

    def test_negative_price_is_rejected(self, validator):
        result = validator.validate(valid_product(price=Decimal("-0.01")))
        assert result.codes == {RuleCode.PRICE_MIN}

    def test_price_compared_without_float_rounding(self, validator):
        """A tiny negative decimal must not round to zero."""
        result = validator.validate(valid_product(price=Decimal("-1E-400")))
        assert result.codes == {RuleCode.PRICE_MIN}

    def test_negative_quantity_is_rejected(self, validator):
        result = validator.validate(valid_product(quantity_in_stock=-1))
        assert result.codes == {RuleCode.QUANTITY_MIN}

    @pytest.mark.parametrize("weight", [-1.0, -0.001, float("nan")])
    def test_negative_weight_is_rejected(self, validator, weight):
        result = validator.validate(valid_product(weight=weight))
        assert RuleCode.WEIGHT_MIN in result.codes

    def test_absent_weight_is_valid(self, validator):
        assert validator.validate(valid_product(weight=None)).is_valid is True


class TestStatusAndInstants:

    def test_unknown_status_value_is_rejected(self, validator):
        result = validator.validate(valid_product(status="ARCHIVED"))
        assert result.codes == {RuleCode.STATUS_MEMBER}

    def test_member_name_string_is_accepted(self, validator):
        assert validator.validate(valid_product(status="ACTIVE")).is_valid is True

    def test_lowercase_status_is_rejected(self, validator):
        result = validator.validate(valid_product(status="active"))
        assert result.codes == {RuleCode.STATUS_MEMBER}

    def test_naive_date_added_is_rejected(self, validator):
        result = validator.validate(valid_product(date_added=datetime(2024, 1, 1), date_modified=None))
        assert result.codes == {RuleCode.DATE_ADDED_INSTANT}

    def test_naive_date_modified_skips_ordering(self, validator):
        result = validator.validate(valid_product(date_modified=datetime(2023, 1, 1)))
        assert result.codes == {RuleCode.DATE_MODIFIED_INSTANT}


class TestDateOrdering:

    def test_modified_before_added_is_rejected(self, validator):
        result = validator.validate(valid_product(date_modified=T0 - timedelta(seconds=1)))
        assert result.codes == {RuleCode.DATE_MODIFIED_ORDER}
        assert result.invalid_fields == ["dateModified"]

    def test_equal_dates_are_valid(self, validator):
        assert validator.validate(valid_product(date_modified=T0)).is_valid is True

    @pytest.mark.parametrize(
        "added,modified",
        [
            (None, T0 - timedelta(days=365)),
            (T0, None),
            (None, None),
        ],
    )
    def test_ordering_never_violated_when_either_is_absent(self, validator, added, modified):
        result = validator.validate(valid_product(date_added=added, date_modified=modified))
        assert RuleCode.DATE_MODIFIED_ORDER not in result.codes


class TestAllRulesEvaluated:

    def test_every_violation_is_reported(self, validator):
        product = Product(
            title="",
            keywords="k" * (KEYWORDS_MAX_LENGTH + 1),
            rating=-1,
            price=None,
            quantity_in_stock=-5,
            status="BOGUS",
            weight=-1.0,
            date_added=T0,
            date_modified=T0 - timedelta(days=1),
        )
        result = validator.validate(product)

        assert result.codes == {
            RuleCode.TITLE_SIZE,
            RuleCode.KEYWORDS_SIZE,
            RuleCode.RATING_MIN,
            RuleCode.PRICE_REQUIRED,
            RuleCode.QUANTITY_MIN,
            RuleCode.STATUS_MEMBER,
            RuleCode.WEIGHT_MIN,
            RuleCode.DATE_MODIFIED_ORDER,
        }
        assert result.missing_fields == ["price"]
        assert "quantity" in result.invalid_fields

    def test_violations_follow_rule_table_order(self, validator):
        result = validator.validate(Product())
        order = [rule.code for rule in PRODUCT_RULES]
        codes = [v.code for v in result.violations]
        assert codes == sorted(codes, key=order.index)

    def test_validation_is_idempotent(self, validator):
        product = valid_product(rating=-1, price=None)
        assert validator.validate(product) == validator.validate(product)

    def test_violation_details(self, validator):
        result = validator.validate(valid_product(rating=-1))
        violation = result.violations[0]
        assert isinstance(violation, FieldError)
        assert violation.path == "rating"
        assert violation.code == RuleCode.RATING_MIN
        assert violation.received == -1
        assert violation.expected == ">= 1"


class TestCustomRules:

    def test_validator_accepts_custom_rule_table(self):
        rule = Rule(
            code=RuleCode.TITLE_SIZE,
            field="title",
            message="title must not shout",
            violated=lambda p: p.title is not None and p.title.isupper(),
            value=lambda p: p.title,
        )
        validator = ConstraintValidator(rules=[rule])
        assert validator.validate(Product(title="LOUD")).codes == {RuleCode.TITLE_SIZE}
        assert validator.validate(Product()).is_valid is True


class TestValidationResultSerialization:

    def test_to_dict(self, validator):
        data = validator.validate(valid_product(price=None)).to_dict()
        assert data["isValid"] is False
        assert data["missingFields"] == ["price"]
        assert data["violations"][0]["code"] == "price.required"

    def test_empty_result(self):
        result = ValidationResult(is_valid=True)
        assert result.codes == frozenset()
        assert result.violates_field("title") is False


class TestEndToEndRows:
    """Rows from a matrix through the builder and validator."""

    def test_scenario_valid_row_passes(self, validator):
        result = validator.validate(build_product(MatrixRow.from_cells(VALID_CELLS)))
        assert result.is_valid is True

    def test_scenario_null_price_fails(self, validator):
        result = validator.validate(build_product(MatrixRow.from_cells(with_cell("price", "null"))))
        assert RuleCode.PRICE_REQUIRED in result.codes

    def test_scenario_malformed_rating_fails(self, validator):
        result = validator.validate(build_product(MatrixRow.from_cells(with_cell("rating", "abc"))))
        assert RuleCode.RATING_MIN in result.codes

    def test_scenario_malformed_date_modified_fails(self, validator):
        cells = with_cell("dateAdded", "2024-01-02T00:00:00Z")
        cells[-1] = "not-a-date"
        result = validator.validate(build_product(MatrixRow.from_cells(cells)))
        assert result.codes == {RuleCode.DATE_MODIFIED_ORDER}

    def test_malformed_weight_fails(self, validator):
        result = validator.validate(build_product(MatrixRow.from_cells(with_cell("weight", "heavy"))))
        assert result.codes == {RuleCode.WEIGHT_MIN}
