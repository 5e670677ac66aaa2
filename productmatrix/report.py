"""Report generation for harness runs.

The report is a Markdown table with one row per processed test case, in
processing order::

    | attribute | title | keywords | ... | dateModified | result |
    |-|-|-|...|-|
    | valid | Widget | kw | ... | 2024-01-02T00:00:00Z | PASS |

Raw input tokens are shown as read from the matrix. Cells are sanitised so
that no value can break the table structure, and absent values render as
``null``.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from typing_extensions import Final

from productmatrix.errors import ReportWriteError
from productmatrix.matrix import MATRIX_COLUMNS, CaseOutcome
from productmatrix.types import Classification

logger = logging.getLogger(__name__)

DEFAULT_REPORT_PATH: Final = Path("test-reports") / "report.md"
CATEGORY_HEADER: Final = "attribute"
RESULT_HEADER: Final = "result"


@dataclass(frozen=True)
class RunReport:
    """Immutable summary of a run.

    Attributes:
        outcomes: Every recorded case, in processing order
    """
    outcomes: Tuple[CaseOutcome, ...] = ()

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[CaseOutcome]) -> "RunReport":
        return cls(outcomes=tuple(outcomes))

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def passed(self) -> int:
        return sum(1 for o in self.outcomes if o.actual == Classification.PASS)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def mismatched(self) -> int:
        return sum(1 for o in self.outcomes if not o.matched)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "mismatched": self.mismatched,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


def sanitize_cell(value: Optional[str]) -> str:
    """Make a value safe to place in a Markdown table cell.

    Examples:
        >>> sanitize_cell(None)
        'null'
        >>> sanitize_cell(" a|b\\nc ")
        'a/b c'
    """
    if value is None:
        return "null"
    text = value.strip()
    return text.replace("|", "/").replace("\r\n", " ").replace("\n", " ").replace("\r", " ")


def _table_row(cells: List[str]) -> str:
    return "| " + " | ".join(cells) + " |"


def render_markdown(report: RunReport, include_category: bool = True) -> str:
    """Render a report as a Markdown table.

    Args:
        report: The run report
        include_category: Whether to emit the leading attribute column
            naming each row's matrix

    Returns:
        The document text: header, separator, then one line per outcome,
        each terminated by a newline
    """
    headers = list(MATRIX_COLUMNS) + [RESULT_HEADER]
    if include_category:
        headers.insert(0, CATEGORY_HEADER)

    lines = [
        _table_row(headers),
        "|" + "-|" * len(headers),
    ]
    for outcome in report.outcomes:
        cells = [sanitize_cell(token) for token in outcome.row.cells()]
        cells.append(outcome.actual.value)
        if include_category:
            cells.insert(0, sanitize_cell(outcome.category))
        lines.append(_table_row(cells))
    return "\n".join(lines) + "\n"


def write_report(report: RunReport, path: Path = DEFAULT_REPORT_PATH, include_category: bool = True) -> Path:
    """Render and write the report, creating parent directories as needed.

    Returns:
        The absolute path of the written report

    Raises:
        ReportWriteError: If the directory or file cannot be written
    """
    path = Path(path)
    document = render_markdown(report, include_category=include_category)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(document, encoding="utf-8")
    except OSError as e:
        logger.error("Failed to write report to %s: %s", path, e)
        raise ReportWriteError(path, e) from e
    resolved = path.resolve()
    logger.info("Report written to %s", resolved)
    return resolved


__all__ = [
    "DEFAULT_REPORT_PATH",
    "RunReport",
    "sanitize_cell",
    "render_markdown",
    "write_report",
]
