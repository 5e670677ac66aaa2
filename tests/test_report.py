"""Unit tests for report rendering and writing."""

from pathlib import Path

import pytest

from productmatrix.errors import ReportWriteError
from productmatrix.matrix import CaseOutcome, MatrixRow
from productmatrix.report import RunReport, render_markdown, sanitize_cell, write_report
from productmatrix.types import Classification
from tests.conftest import VALID_CELLS, with_cell

HEADER = (
    "| attribute | title | keywords | description | rating | price | quantity | status | weight "
    "| dimensions | dateAdded | dateModified | result |"
)


def outcome(category="valid", cells=VALID_CELLS, actual=Classification.PASS, index=1, matched=True):
    expected = Classification.PASS if category == "valid" else Classification.FAIL
    return CaseOutcome(
        category=category,
        index=index,
        row=MatrixRow.from_cells(cells),
        expected=expected,
        actual=actual,
        matched=matched,
    )


@pytest.fixture
def mixed_report():
    return RunReport.from_outcomes(
        [
            outcome(index=1),
            outcome(index=2),
            outcome(index=3),
            outcome("price", with_cell("price", "null"), Classification.FAIL, 1),
            outcome("rating", with_cell("rating", "abc"), Classification.FAIL, 1),
        ]
    )


class TestSanitizeCell:

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "null"),
            ("plain", "plain"),
            ("  padded ", "padded"),
            ("a|b", "a/b"),
            ("line1\nline2", "line1 line2"),
            ("line1\r\nline2", "line1 line2"),
            ("cr\ronly", "cr only"),
        ],
    )
    def test_sanitize(self, value, expected):
        assert sanitize_cell(value) == expected


class TestRunReport:

    def test_counts(self, mixed_report):
        assert mixed_report.total == 5
        assert mixed_report.passed == 3
        assert mixed_report.failed == 2
        assert mixed_report.mismatched == 0

    def test_mismatch_count(self):
        report = RunReport.from_outcomes([outcome(actual=Classification.FAIL, matched=False)])
        assert report.mismatched == 1

    def test_report_is_immutable(self, mixed_report):
        with pytest.raises(AttributeError):
            mixed_report.outcomes = ()

    def test_to_dict(self, mixed_report):
        data = mixed_report.to_dict()
        assert (data["total"], data["passed"], data["failed"]) == (5, 3, 2)
        assert len(data["outcomes"]) == 5


class TestRenderMarkdown:

    def test_three_valid_two_invalid_rows(self, mixed_report):
        lines = render_markdown(mixed_report).splitlines()

        assert len(lines) == 7
        assert lines[0] == HEADER
        assert lines[1] == "|" + "-|" * 13
        results = [line.rsplit("|", 2)[1].strip() for line in lines[2:]]
        assert results == ["PASS", "PASS", "PASS", "FAIL", "FAIL"]

    def test_rows_keep_processing_order_and_raw_tokens(self, mixed_report):
        lines = render_markdown(mixed_report).splitlines()
        assert lines[2] == (
            "| valid | Widget | kw | desc | 3 | 9.99 | 5 | ACTIVE | 1.2 | 10x10 "
            "| 2024-01-01T00:00:00Z | 2024-01-02T00:00:00Z | PASS |"
        )
        assert lines[5].startswith("| price | Widget | kw | desc | 3 | null | 5 |")
        assert lines[6].startswith("| rating | Widget | kw | desc | abc |")

    def test_absent_cells_render_as_null(self):
        report = RunReport.from_outcomes([outcome(cells=with_cell("keywords", ""))])
        assert "| Widget | null | desc |" in render_markdown(report)

    def test_structural_characters_are_neutralised(self):
        report = RunReport.from_outcomes([outcome(cells=with_cell("description", "a|b"))])
        row = render_markdown(report).splitlines()[2]
        assert row.count("|") == 14
        assert "| a/b |" in row

    def test_without_category_column(self, mixed_report):
        lines = render_markdown(mixed_report, include_category=False).splitlines()
        assert lines[0].startswith("| title |")
        assert lines[1] == "|" + "-|" * 12
        assert lines[2].startswith("| Widget |")

    def test_empty_report_has_header_only(self):
        assert render_markdown(RunReport()).count("\n") == 2

    def test_document_ends_with_newline(self, mixed_report):
        assert render_markdown(mixed_report).endswith("|\n")


class TestWriteReport:

    def test_creates_directories(self, tmp_path, mixed_report):
        target = tmp_path / "test-reports" / "nested" / "report.md"

        written = write_report(mixed_report, target)

        assert written == target.resolve()
        assert target.read_text(encoding="utf-8") == render_markdown(mixed_report)

    def test_existing_directory_is_fine(self, tmp_path, mixed_report):
        (tmp_path / "test-reports").mkdir()
        write_report(mixed_report, tmp_path / "test-reports" / "report.md")
        write_report(mixed_report, tmp_path / "test-reports" / "report.md")
        assert (tmp_path / "test-reports" / "report.md").exists()

    def test_default_location_is_relative(self, tmp_path, monkeypatch, mixed_report):
        monkeypatch.chdir(tmp_path)
        written = write_report(mixed_report)
        assert written == (tmp_path / "test-reports" / "report.md").resolve()

    def test_write_failure_raises(self, tmp_path, mixed_report):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")

        with pytest.raises(ReportWriteError) as exc_info:
            write_report(mixed_report, blocker / "report.md")

        assert exc_info.value.path == Path(blocker / "report.md")
        assert isinstance(exc_info.value.__cause__, OSError)
