"""Matrix files, raw rows and recorded test-case outcomes.

A matrix file is a tab-separated fixture produced by a combinatorial
generator. Its first line is a header (ignored) and every following line
holds the 11 raw tokens of one product, in MATRIX_COLUMNS order. One
"valid" matrix lists combinations expected to pass every rule; each
"invalid_<column>" matrix lists combinations expected to fail, targeting the
named column.

File names follow the generator's convention::

    valid_test_cases.csv
    invalid_title_cases.csv
    invalid_dateModified_cases.csv
    ...
"""

import csv
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from typing_extensions import Final

from productmatrix.errors import FieldError, FixtureError
from productmatrix.types import Classification

logger = logging.getLogger(__name__)

MATRIX_COLUMNS: Final = (
    "title",
    "keywords",
    "description",
    "rating",
    "price",
    "quantity",
    "status",
    "weight",
    "dimensions",
    "dateAdded",
    "dateModified",
)

VALID_CATEGORY: Final = "valid"
MATRIX_SUFFIXES: Final = (".csv", ".tsv")

_INVALID_NAME_RE = re.compile(r"invalid_(?P<column>\w+?)_cases")


@dataclass(frozen=True)
class MatrixRow:
    """The 11 raw tokens of one matrix row, exactly as read.

    Empty cells are None; every other cell is kept verbatim (cleaning happens
    when the product is built, so the report can show the original input).
    """
    title: Optional[str] = None
    keywords: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[str] = None
    price: Optional[str] = None
    quantity: Optional[str] = None
    status: Optional[str] = None
    weight: Optional[str] = None
    dimensions: Optional[str] = None
    date_added: Optional[str] = None
    date_modified: Optional[str] = None

    @classmethod
    def from_cells(cls, cells: Sequence[Optional[str]]) -> "MatrixRow":
        """Build a row from cells in MATRIX_COLUMNS order.

        Raises:
            ValueError: If the number of cells is not 11
        """
        if len(cells) != len(MATRIX_COLUMNS):
            raise ValueError(f"expected {len(MATRIX_COLUMNS)} cells, got {len(cells)}")
        values = [None if cell is None or cell == "" else cell for cell in cells]
        return cls(*values)

    def cells(self) -> Tuple[Optional[str], ...]:
        """Return the raw tokens in MATRIX_COLUMNS order."""
        return (
            self.title,
            self.keywords,
            self.description,
            self.rating,
            self.price,
            self.quantity,
            self.status,
            self.weight,
            self.dimensions,
            self.date_added,
            self.date_modified,
        )

    def to_dict(self) -> Dict[str, Optional[str]]:
        return dict(zip(MATRIX_COLUMNS, self.cells()))


@dataclass(frozen=True)
class MatrixFile:
    """A matrix fixture and the classification its rows are expected to get.

    Attributes:
        path: Location of the tab-separated file
        category: "valid", or the MATRIX_COLUMNS name the matrix targets

    Examples:
        >>> MatrixFile(path=Path("invalid_price_cases.csv"), category="price").expected
        <Classification.FAIL: 'FAIL'>
    """
    path: Path
    category: str = VALID_CATEGORY

    def __post_init__(self):
        if self.category != VALID_CATEGORY and self.category not in MATRIX_COLUMNS:
            raise ValueError(
                f"Unknown matrix category '{self.category}'. "
                f"Must be '{VALID_CATEGORY}' or one of: {', '.join(MATRIX_COLUMNS)}"
            )
        if not isinstance(self.path, Path):
            object.__setattr__(self, "path", Path(self.path))

    @property
    def is_valid(self) -> bool:
        return self.category == VALID_CATEGORY

    @property
    def expected(self) -> Classification:
        return Classification.PASS if self.is_valid else Classification.FAIL

    def to_dict(self) -> Dict[str, Any]:
        return {"path": str(self.path), "category": self.category}


@dataclass(frozen=True)
class CaseOutcome:
    """One processed matrix row and its classification.

    Attributes:
        category: Category of the matrix the row came from
        index: 1-based position of the row among the matrix's data rows
        row: The raw tokens
        expected: Classification derived from the matrix category
        actual: Classification computed from the violation set
        violations: Every rule the built product violated
        matched: Whether the row satisfied its matrix expectation
    """
    category: str
    index: int
    row: MatrixRow
    expected: Classification
    actual: Classification
    violations: Tuple[FieldError, ...] = field(default_factory=tuple)
    matched: bool = True

    @property
    def display_name(self) -> str:
        return f"{self.category} #{self.index}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "category": self.category,
            "index": self.index,
            "row": self.row.to_dict(),
            "expected": self.expected.value,
            "actual": self.actual.value,
            "matched": self.matched,
            "violations": [v.to_dict() for v in self.violations],
        }


def category_for_path(path: Path) -> Optional[str]:
    """Derive a matrix category from a generator file name.

    Returns:
        "valid", a MATRIX_COLUMNS name, or None when the name does not follow
        the generator convention

    Raises:
        FixtureError: If the name targets a column that does not exist

    Examples:
        >>> category_for_path(Path("invalid_dateAdded_cases.csv"))
        'dateAdded'
        >>> category_for_path(Path("notes.txt")) is None
        True
    """
    if path.suffix not in MATRIX_SUFFIXES:
        return None
    if path.stem == "valid_test_cases":
        return VALID_CATEGORY
    match = _INVALID_NAME_RE.fullmatch(path.stem)
    if match is None:
        return None
    column = match.group("column")
    if column not in MATRIX_COLUMNS:
        raise FixtureError(path, f"matrix targets unknown column '{column}'")
    return column


def discover_matrices(directory: Path) -> List[MatrixFile]:
    """Find the matrix files in a directory.

    The valid matrix comes first, followed by invalid matrices in
    MATRIX_COLUMNS order. Files that do not follow the naming convention are
    ignored.

    Raises:
        FixtureError: If the directory does not exist or holds no matrices
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FixtureError(directory, "matrix directory does not exist")

    found: Dict[str, MatrixFile] = {}
    for path in sorted(directory.iterdir()):
        category = category_for_path(path)
        if category is None:
            continue
        if category in found:
            raise FixtureError(path, f"duplicate matrix for category '{category}'")
        found[category] = MatrixFile(path=path, category=category)

    if not found:
        raise FixtureError(directory, "no matrix files found")

    order = (VALID_CATEGORY,) + MATRIX_COLUMNS
    matrices = [found[c] for c in order if c in found]
    logger.info("Discovered %d matrix file(s) in %s", len(matrices), directory)
    return matrices


def read_matrix(path: Path) -> Iterator[MatrixRow]:
    """Yield the data rows of a tab-separated matrix file.

    The header row and blank lines are skipped.

    Raises:
        FixtureError: If the file cannot be read or a row does not have
            exactly 11 columns
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as fh:
            reader = csv.reader(fh, delimiter="\t", quoting=csv.QUOTE_NONE)
            next(reader, None)
            for cells in reader:
                if not any(cell.strip() for cell in cells):
                    continue
                try:
                    yield MatrixRow.from_cells(cells)
                except ValueError as e:
                    raise FixtureError(path, f"line {reader.line_num}: {e}") from e
    except OSError as e:
        raise FixtureError(path, f"cannot read matrix: {e}") from e


__all__ = [
    "MATRIX_COLUMNS",
    "VALID_CATEGORY",
    "MatrixRow",
    "MatrixFile",
    "CaseOutcome",
    "category_for_path",
    "discover_matrices",
    "read_matrix",
]
