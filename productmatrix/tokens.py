"""Token parser for raw test-matrix cells.

Every cell in a matrix file is a string produced by a combinatorial
generator. This module turns such a string into a typed value, or into
``None`` when the cell is absent or cannot be parsed. Parsing never raises:
a malformed token degrades to ``None`` so one matrix can mix well-formed and
malformed values. Whether a malformed token should instead become a
deliberately invalid value is decided one layer up, in
:mod:`productmatrix.sentinels`, which uses :func:`parse_with_outcome` to
tell "no token" apart from "token that failed to parse".

Cleaning rules applied before any typed parse:

- surrounding whitespace is stripped
- trailing semicolons are stripped repeatedly (generators sometimes append ``;``)
- the exact token ``null`` is absent
- the two-character token ``""`` is the empty string
- a cell that is empty after cleaning is absent

Examples:
    >>> parse_int(" 42;; ")
    42
    >>> parse_decimal("9.99")
    Decimal('9.99')
    >>> parse_int("abc") is None
    True
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional

from dateutil.parser import isoparse
from typing_extensions import Final, Literal

from productmatrix.types import ProductStatus

logger = logging.getLogger(__name__)

NULL_TOKEN: Final = "null"
EMPTY_QUOTES_TOKEN: Final = '""'

# Whole numbers are 32-bit signed, like the entity's integer columns.
INT_MIN: Final = -(2 ** 31)
INT_MAX: Final = 2 ** 31 - 1

TokenKind = Literal["int", "decimal", "float", "instant", "status"]

# Optional sign, digits with optional fraction, optional exponent.
_INT_RE = re.compile(r"[+-]?\d+")
_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def clean_token(raw: Optional[str]) -> Optional[str]:
    """Normalise a raw cell before parsing.

    Args:
        raw: The cell as read from the matrix, or None for an empty cell

    Returns:
        The cleaned text, ``""`` for the empty-quotes token, or None when the
        cell is the ``null`` token

    Examples:
        >>> clean_token("  Widget ;;")
        'Widget'
        >>> clean_token("null") is None
        True
        >>> clean_token('""')
        ''
    """
    if raw is None:
        return None
    text = raw.strip()
    while text.endswith(";"):
        text = text[:-1].strip()
    if text == NULL_TOKEN:
        return None
    if text == EMPTY_QUOTES_TOKEN:
        return ""
    return text


def clean_text(raw: Optional[str]) -> Optional[str]:
    """Clean a token destined for a text field.

    An empty cell is absent; the ``""`` token is the present-but-empty string.
    """
    if raw is not None and raw.strip() == "":
        return None
    return clean_token(raw)


def _to_int(text: str) -> Optional[int]:
    if not _INT_RE.fullmatch(text):
        return None
    try:
        value = int(text)
    except ValueError:
        # Digit strings beyond the interpreter's conversion limit.
        return None
    return value if INT_MIN <= value <= INT_MAX else None


def _to_decimal(text: str) -> Optional[Decimal]:
    if not _NUMBER_RE.fullmatch(text):
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _to_float(text: str) -> Optional[float]:
    if not _NUMBER_RE.fullmatch(text):
        return None
    value = float(text)
    return value if math.isfinite(value) else None


def _to_instant(text: str) -> Optional[datetime]:
    try:
        value = isoparse(text)
    except (ValueError, OverflowError):
        return None
    # An instant needs an offset; local date-times and bare dates are rejected.
    if value.tzinfo is None or value.utcoffset() is None:
        return None
    try:
        return value.astimezone(timezone.utc)
    except OverflowError:
        # The offset pushes the instant outside the representable range.
        return None


def _to_status(text: str) -> Optional[ProductStatus]:
    return ProductStatus.__members__.get(text)


_PARSERS: Dict[str, Callable[[str], Any]] = {
    "int": _to_int,
    "decimal": _to_decimal,
    "float": _to_float,
    "instant": _to_instant,
    "status": _to_status,
}


@dataclass(frozen=True)
class ParseOutcome:
    """Result of parsing one token.

    Attributes:
        value: The parsed value, or None
        malformed: True when a non-empty token was present but failed to
            parse; False for absent tokens and successful parses
    """
    value: Any
    malformed: bool = False

    @property
    def absent(self) -> bool:
        return self.value is None and not self.malformed


def parse_with_outcome(kind: TokenKind, raw: Optional[str]) -> ParseOutcome:
    """Parse a token and report whether a present token was malformed.

    Args:
        kind: One of "int", "decimal", "float", "instant", "status"
        raw: The raw cell text

    Returns:
        ParseOutcome with the value and malformed flag

    Raises:
        KeyError: If kind is not a known token kind

    Examples:
        >>> parse_with_outcome("int", "7")
        ParseOutcome(value=7, malformed=False)
        >>> parse_with_outcome("int", "seven")
        ParseOutcome(value=None, malformed=True)
        >>> parse_with_outcome("int", "null")
        ParseOutcome(value=None, malformed=False)
    """
    parser = _PARSERS[kind]
    text = clean_token(raw)
    if text is None or text == "":
        return ParseOutcome(value=None)
    value = parser(text)
    if value is None:
        logger.debug("Malformed %s token %r", kind, raw)
        return ParseOutcome(value=None, malformed=True)
    return ParseOutcome(value=value)


def parse_int(raw: Optional[str]) -> Optional[int]:
    """Parse a 32-bit whole number; None when absent, malformed or out of range."""
    return parse_with_outcome("int", raw).value


def parse_decimal(raw: Optional[str]) -> Optional[Decimal]:
    """Parse an arbitrary-precision decimal; None when absent or malformed."""
    return parse_with_outcome("decimal", raw).value


def parse_float(raw: Optional[str]) -> Optional[float]:
    """Parse an IEEE double; None when absent, malformed or non-finite."""
    return parse_with_outcome("float", raw).value


def parse_instant(raw: Optional[str]) -> Optional[datetime]:
    """Parse a strict ISO-8601 instant into an aware UTC datetime.

    Examples:
        >>> parse_instant("2024-01-01T00:00:00Z")
        datetime.datetime(2024, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
        >>> parse_instant("2024-01-01") is None
        True
    """
    return parse_with_outcome("instant", raw).value


def parse_status(raw: Optional[str]) -> Optional[ProductStatus]:
    """Match a token against the ProductStatus member names."""
    return parse_with_outcome("status", raw).value


def format_int(value: int) -> str:
    return str(value)


def format_decimal(value: Decimal) -> str:
    """Format a decimal so that parsing it back yields an equal value."""
    return str(value)


def format_instant(value: datetime) -> str:
    """Format an aware datetime as a UTC ISO-8601 instant with a Z suffix.

    Examples:
        >>> format_instant(parse_instant("2024-01-01T02:00:00+02:00"))
        '2024-01-01T00:00:00Z'
    """
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


__all__ = [
    "NULL_TOKEN",
    "EMPTY_QUOTES_TOKEN",
    "INT_MIN",
    "INT_MAX",
    "TokenKind",
    "ParseOutcome",
    "clean_token",
    "clean_text",
    "parse_with_outcome",
    "parse_int",
    "parse_decimal",
    "parse_float",
    "parse_instant",
    "parse_status",
    "format_int",
    "format_decimal",
    "format_instant",
]
