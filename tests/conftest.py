"""Shared fixtures for matrix-driven tests."""

from pathlib import Path
from typing import Callable, List, Sequence

import pytest

from productmatrix.matrix import MATRIX_COLUMNS

VALID_CELLS = [
    "Widget",
    "kw",
    "desc",
    "3",
    "9.99",
    "5",
    "ACTIVE",
    "1.2",
    "10x10",
    "2024-01-01T00:00:00Z",
    "2024-01-02T00:00:00Z",
]


def with_cell(column: str, value: str) -> List[str]:
    """Return VALID_CELLS with one column replaced."""
    cells = list(VALID_CELLS)
    cells[MATRIX_COLUMNS.index(column)] = value
    return cells


def write_matrix_file(path: Path, rows: Sequence[Sequence[str]]) -> Path:
    lines = ["\t".join(MATRIX_COLUMNS)]
    lines.extend("\t".join(row) for row in rows)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def write_matrix(tmp_path: Path) -> Callable[..., Path]:
    """Write a tab-separated matrix file under tmp_path and return its path."""

    def _write(name: str, rows: Sequence[Sequence[str]]) -> Path:
        return write_matrix_file(tmp_path / name, rows)

    return _write
