"""Sentinel substitution for optional fields with lower-bound rules.

Rating, weight and dateModified are optional, so an absent value is valid.
When a matrix row carries a malformed token for one of them, the row is
meant to exercise the field's range or ordering rule, not the "absent is
fine" path. These resolvers therefore replace a malformed token with a value
that is guaranteed to violate that rule:

- rating: ``-1`` (violates rating >= 1)
- weight: ``-1.0`` (violates weight >= 0)
- dateModified: one second before dateAdded, or the earliest representable
  instant when dateAdded is absent (violates dateModified >= dateAdded)

Absent tokens resolve to None and well-formed tokens to their parsed value.
Every other field uses plain absent-on-failure parsing from
:mod:`productmatrix.tokens`.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from typing_extensions import Final

from productmatrix.tokens import parse_with_outcome

logger = logging.getLogger(__name__)

RATING_SENTINEL: Final = -1
WEIGHT_SENTINEL: Final = -1.0
EARLIEST_INSTANT: Final = datetime.min.replace(tzinfo=timezone.utc)
DATE_MODIFIED_OFFSET: Final = timedelta(seconds=1)


def resolve_rating(raw: Optional[str]) -> Optional[int]:
    """Resolve a rating token, substituting -1 for malformed input.

    Examples:
        >>> resolve_rating("4")
        4
        >>> resolve_rating("abc")
        -1
        >>> resolve_rating("null") is None
        True
    """
    outcome = parse_with_outcome("int", raw)
    if outcome.malformed:
        logger.debug("rating token %r replaced by sentinel %d", raw, RATING_SENTINEL)
        return RATING_SENTINEL
    return outcome.value


def resolve_weight(raw: Optional[str]) -> Optional[float]:
    """Resolve a weight token, substituting -1.0 for malformed input."""
    outcome = parse_with_outcome("float", raw)
    if outcome.malformed:
        logger.debug("weight token %r replaced by sentinel %s", raw, WEIGHT_SENTINEL)
        return WEIGHT_SENTINEL
    return outcome.value


def date_modified_sentinel(date_added: Optional[datetime]) -> datetime:
    """Return an instant strictly earlier than date_added.

    Falls back to the earliest representable instant when date_added is
    absent or already at that minimum.
    """
    if date_added is None or date_added - EARLIEST_INSTANT < DATE_MODIFIED_OFFSET:
        return EARLIEST_INSTANT
    return date_added - DATE_MODIFIED_OFFSET


def resolve_date_modified(raw: Optional[str], date_added: Optional[datetime]) -> Optional[datetime]:
    """Resolve a dateModified token against an already resolved dateAdded.

    Args:
        raw: The raw dateModified cell
        date_added: The resolved dateAdded value, or None

    Returns:
        None for an absent token, the parsed instant for a well-formed one,
        or an instant earlier than date_added for a malformed one

    Examples:
        >>> from productmatrix.tokens import parse_instant
        >>> added = parse_instant("2024-01-02T00:00:00Z")
        >>> resolve_date_modified("not-a-date", added).isoformat()
        '2024-01-01T23:59:59+00:00'
    """
    outcome = parse_with_outcome("instant", raw)
    if outcome.malformed:
        sentinel = date_modified_sentinel(date_added)
        logger.debug("dateModified token %r replaced by sentinel %s", raw, sentinel.isoformat())
        return sentinel
    return outcome.value


__all__ = [
    "RATING_SENTINEL",
    "WEIGHT_SENTINEL",
    "EARLIEST_INSTANT",
    "DATE_MODIFIED_OFFSET",
    "resolve_rating",
    "resolve_weight",
    "resolve_date_modified",
    "date_modified_sentinel",
]
