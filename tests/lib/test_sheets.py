"""Tests for markbook.lib.sheets module."""

from __future__ import annotations

import datetime
import io

import pytest

from markbook.lib import sheets
from markbook.model import ClassID, PeriodID, RosterEntry, StudentID


class TestGradeSheetReader(object):
    """Tests for sheets.GradeSheetReader."""

    def test_reads_rows_with_spreadsheet_row_numbers(self) -> None:
        """Rows are numbered as a spreadsheet numbers them, header included."""
        lines = [
            "code,name,regular_1,regular_2,midterm,final,note\n",
            "S001,Ada,8,7.5,8,9,\n",
            "S002,Alan,6,,7,,resit\n",
        ]

        rows = sheets.read_rows(lines)

        assert [r.row_number for r in rows] == [2, 3]
        assert rows[0].student_code == "S001"
        assert rows[0].regular == ["8", "7.5"]
        assert rows[0].midterm == "8"
        assert rows[0].note is None
        assert rows[1].regular == ["6", ""]
        assert rows[1].final == ""
        assert rows[1].note == "resit"

    def test_header_aliases(self) -> None:
        """Short and alternative header names map onto the same columns."""
        reader = sheets.GradeSheetReader(["Student Code;R1;R3;Mid;End;Comment\n", "S001;5;6;7;8;ok\n"], delimiter=";")

        (row,) = list(reader)

        assert reader.regular_count == 3
        assert row.regular == ["5", None, "6"]
        assert (row.midterm, row.final, row.note) == ("7", "8", "ok")

    def test_unknown_columns_are_ignored(self) -> None:
        (row,) = sheets.read_rows(["code,email,regular_1\n", "S001,ada@example.com,9\n"])

        assert row.student_code == "S001"
        assert row.regular == ["9"]

    def test_missing_code_column(self) -> None:
        """A sheet without a student code column cannot be read."""
        with pytest.raises(ValueError, match="student code column"):
            sheets.GradeSheetReader(["name,regular_1\n"])


class TestTemplate(object):
    """Tests for sheets.write_template()."""

    def test_one_row_per_student(self) -> None:
        now = datetime.datetime.now(datetime.UTC)
        class_id, period_id = ClassID(), PeriodID()
        entries = [
            RosterEntry(
                class_id=class_id,
                period_id=period_id,
                student_id=StudentID(),
                student_code=code,
                full_name=name,
                create_time=now,
            )
            for code, name in (("S001", "Ada Lovelace"), ("S002", "Alan Turing"))
        ]
        out = io.StringIO()

        n = sheets.write_template(out, entries, regular_count=2)

        assert n == 2
        assert out.getvalue().splitlines() == [
            "code,name,regular_1,regular_2,midterm,final,note",
            "S001,Ada Lovelace,,,,,",
            "S002,Alan Turing,,,,,",
        ]

    def test_template_reads_back_as_empty_rows(self) -> None:
        """A filled-in template is readable by the grade sheet reader."""
        lines = [",".join(sheets.template_header(1)) + "\n", "S001,Ada,9,8,7,\n"]

        (row,) = sheets.read_rows(lines)

        assert row.student_code == "S001"
        assert (row.regular, row.midterm, row.final) == (["9"], "8", "7")


class TestReadRoster(object):
    """Tests for sheets.read_roster()."""

    def test_skips_header_and_blank_lines(self) -> None:
        pairs = sheets.read_roster(["code,name\n", "S001, Ada Lovelace\n", "\n", "S002,Alan Turing\n"])

        assert pairs == [("S001", "Ada Lovelace"), ("S002", "Alan Turing")]

    def test_row_without_name(self) -> None:
        with pytest.raises(ValueError, match="row 2"):
            sheets.read_roster(["S001,Ada\n", "S002\n"])
