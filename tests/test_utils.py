"""Unit tests for console helpers (ign.utils).

Tests cover:
- parse_assignments
- ACTION_STYLES constants
- Rich output helpers (print_report, print_success, etc.)
"""

from __future__ import annotations

import pytest

from ign.generator.report import ActionKind, GenerationReport, ReportEntry, UpdateStatus
from ign.utils import (
    ACTION_STYLES,
    console,
    parse_assignments,
    print_error,
    print_report,
    print_success,
    print_warning,
)


# ---------------------------------------------------------------------------
# parse_assignments
# ---------------------------------------------------------------------------


class TestParseAssignments:
    @pytest.mark.unit
    def test_pairs(self):
        assert parse_assignments(["A=1", "B=two"]) == {"A": "1", "B": "two"}

    @pytest.mark.unit
    def test_value_may_contain_equals(self):
        assert parse_assignments(["URL=http://x/?a=b"]) == {"URL": "http://x/?a=b"}

    @pytest.mark.unit
    def test_empty_value_allowed(self):
        assert parse_assignments(["EMPTY="]) == {"EMPTY": ""}

    @pytest.mark.unit
    def test_later_assignment_wins(self):
        assert parse_assignments(["A=1", "A=2"]) == {"A": "2"}

    @pytest.mark.unit
    @pytest.mark.parametrize("pair", ["NOEQUALS", "=value", "  =x"])
    def test_invalid(self, pair):
        with pytest.raises(ValueError, match="NAME=VALUE"):
            parse_assignments([pair])


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------


class TestActionStyles:
    @pytest.mark.unit
    def test_every_action_has_a_style(self):
        assert set(ACTION_STYLES) == set(ActionKind)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestRichOutputHelpers:
    @pytest.mark.unit
    def test_print_report(self):
        report = GenerationReport(
            entries=[
                ReportEntry(path="a.txt", action=ActionKind.CREATE),
                ReportEntry(
                    path="b.txt",
                    action=ActionKind.SKIP,
                    status=UpdateStatus.CONFLICT,
                    error="modified locally",
                ),
            ]
        )
        with console.capture() as capture:
            print_report(report, title="Update")
        output = capture.get()
        assert "Update" in output
        assert "a.txt" in output
        assert "conflict" in output
        assert "create: 1" in output

    @pytest.mark.unit
    def test_print_report_escapes_markup(self):
        report = GenerationReport(
            entries=[ReportEntry(path="[bold]x[/bold].txt", action=ActionKind.CREATE)]
        )
        with console.capture() as capture:
            print_report(report)
        assert "[bold]x[/bold].txt" in capture.get()

    @pytest.mark.unit
    def test_print_report_dry_run_and_empty(self):
        with console.capture() as capture:
            print_report(GenerationReport(dry_run=True))
        output = capture.get()
        assert "dry run" in output
        assert "nothing to do" in output

    @pytest.mark.unit
    def test_print_success(self):
        print_success("Project generated")

    @pytest.mark.unit
    def test_print_error(self):
        print_error("Something failed")

    @pytest.mark.unit
    def test_print_warning(self):
        print_warning("Check the conflicts")
