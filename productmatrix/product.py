"""The Product entity and the builder that assembles it from matrix tokens."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from typing_extensions import Final

from productmatrix.matrix import MatrixRow
from productmatrix.sentinels import resolve_date_modified, resolve_rating, resolve_weight
from productmatrix.tokens import (
    clean_text,
    format_decimal,
    format_instant,
    parse_decimal,
    parse_instant,
    parse_int,
    parse_status,
)
from productmatrix.types import ProductStatus

PLACEHOLDER_ID: Final = 1

TITLE_MAX_LENGTH: Final = 100
KEYWORDS_MAX_LENGTH: Final = 200
DESCRIPTION_MAX_LENGTH: Final = 1000
DIMENSIONS_MAX_LENGTH: Final = 50


@dataclass(frozen=True)
class Product:
    """A product under validation.

    Field types describe what the builder produces. The validator does not
    trust them: ``status`` may hold an arbitrary string and the timestamps
    may be naive when a Product is constructed directly.

    Attributes:
        id: Synthetic identifier; irrelevant to validation
        title: Required, 1 to TITLE_MAX_LENGTH characters
        keywords: Optional, at most KEYWORDS_MAX_LENGTH characters
        description: Optional, at most DESCRIPTION_MAX_LENGTH characters
        rating: Optional, at least 1 when present
        price: Required, at least 0
        quantity_in_stock: Required, at least 0
        status: Optional, a ProductStatus member when present
        weight: Optional, at least 0 when present
        dimensions: Optional, at most DIMENSIONS_MAX_LENGTH characters
        date_added: Optional instant
        date_modified: Optional instant, not before date_added when both are present
    """
    id: int = PLACEHOLDER_ID
    title: Optional[str] = None
    keywords: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[int] = None
    price: Optional[Decimal] = None
    quantity_in_stock: Optional[int] = None
    status: Optional[Union[ProductStatus, str]] = None
    weight: Optional[float] = None
    dimensions: Optional[str] = None
    date_added: Optional[datetime] = None
    date_modified: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dict keyed by entity field names."""
        return {
            "id": self.id,
            "title": self.title,
            "keywords": self.keywords,
            "description": self.description,
            "rating": self.rating,
            "price": format_decimal(self.price) if self.price is not None else None,
            "quantityInStock": self.quantity_in_stock,
            "status": self.status.value if isinstance(self.status, ProductStatus) else self.status,
            "weight": self.weight,
            "dimensions": self.dimensions,
            "dateAdded": _instant_or_none(self.date_added),
            "dateModified": _instant_or_none(self.date_modified),
        }


def _instant_or_none(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.isoformat()
    return format_instant(value)


def build_product(row: MatrixRow) -> Product:
    """Assemble a Product from the raw tokens of one matrix row.

    Text fields are cleaned, numeric and temporal fields parsed, and
    rating, weight and dateModified go through the sentinel policy so a
    malformed token still violates the rule its matrix targets.

    Examples:
        >>> row = MatrixRow(title="Widget", price="9.99", quantity="5", rating="abc")
        >>> product = build_product(row)
        >>> product.rating, product.price, product.quantity_in_stock
        (-1, Decimal('9.99'), 5)
    """
    date_added = parse_instant(row.date_added)
    return Product(
        id=PLACEHOLDER_ID,
        title=clean_text(row.title),
        keywords=clean_text(row.keywords),
        description=clean_text(row.description),
        rating=resolve_rating(row.rating),
        price=parse_decimal(row.price),
        quantity_in_stock=parse_int(row.quantity),
        status=parse_status(row.status),
        weight=resolve_weight(row.weight),
        dimensions=clean_text(row.dimensions),
        date_added=date_added,
        date_modified=resolve_date_modified(row.date_modified, date_added),
    )


__all__ = [
    "PLACEHOLDER_ID",
    "TITLE_MAX_LENGTH",
    "KEYWORDS_MAX_LENGTH",
    "DESCRIPTION_MAX_LENGTH",
    "DIMENSIONS_MAX_LENGTH",
    "Product",
    "build_product",
]
