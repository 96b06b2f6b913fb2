from __future__ import annotations

import csv
import re
import typing as t

from markbook.model import ImportRow, RosterEntry

CodeAliases = frozenset({"code", "student_code", "studentcode", "student"})
MidtermAliases = frozenset({"midterm", "mid", "midterm_exam"})
FinalAliases = frozenset({"final", "final_exam", "end"})
NoteAliases = frozenset({"note", "notes", "comment", "comments"})
RegularHeader = re.compile(r"^(?:regular|reg|r)_?([1-9][0-9]*)$")


def normalize_header(name: str) -> str:
    return re.sub(r"[\s\-]+", "_", name.strip().lower())


class GradeSheetReader(object):
    """
    Reads a grade sheet in a DictReader-like way, yielding `ImportRow`s.

    The header row names the columns: `code`, `regular_<n>`, `midterm`,
    `final` and `note`, with a few aliases for each. Unknown columns are
    ignored. Row numbers count the header as row 1, as a spreadsheet does.
    """

    fieldnames: list[str]

    def __init__(self, lines: t.Iterable[str], delimiter: str = ","):
        self._reader = csv.reader(lines, delimiter=delimiter)
        self.fieldnames = next(self._reader, [])
        self._columns = self._map_columns(self.fieldnames)

    @staticmethod
    def _map_columns(fieldnames: t.Sequence[str]) -> dict[int, str | int]:
        columns: dict[int, str | int] = {}
        for i, name in enumerate(fieldnames):
            h = normalize_header(name)
            if h in CodeAliases:
                columns[i] = "student_code"
            elif h in MidtermAliases:
                columns[i] = "midterm"
            elif h in FinalAliases:
                columns[i] = "final"
            elif h in NoteAliases:
                columns[i] = "note"
            elif m := RegularHeader.match(h):
                columns[i] = int(m.group(1))
        if "student_code" not in columns.values():
            raise ValueError(f"grade sheet has no student code column: {list(fieldnames)}")
        return columns

    @property
    def regular_count(self) -> int:
        return max((c for c in self._columns.values() if isinstance(c, int)), default=0)

    def __iter__(self) -> t.Iterator[ImportRow]:
        for cells in self._reader:
            yield self.to_row(cells, row_number=self._reader.line_num)

    def to_row(self, cells: t.Sequence[str], *, row_number: int) -> ImportRow:
        values: dict[str, t.Any] = {"row_number": row_number}
        regular: list[str | None] = [None] * self.regular_count
        for i, cell in enumerate(cells):
            column = self._columns.get(i)
            if column is None:
                continue
            if isinstance(column, int):
                regular[column - 1] = cell
            elif column == "note":
                values["note"] = cell.strip() or None
            else:
                values[column] = cell
        values["regular"] = regular
        return ImportRow(**values)


def read_rows(lines: t.Iterable[str], delimiter: str = ",") -> list[ImportRow]:
    return list(GradeSheetReader(lines, delimiter=delimiter))


def template_header(regular_count: int) -> list[str]:
    return ["code", "name", *(f"regular_{i}" for i in range(1, regular_count + 1)), "midterm", "final", "note"]


def write_template(out: t.TextIO, entries: t.Iterable[RosterEntry], regular_count: int) -> int:
    """Write an empty grade sheet with one row per roster student; returns the number of rows."""
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(template_header(regular_count))
    n = 0
    for entry in entries:
        writer.writerow([entry.student_code, entry.full_name, *([""] * regular_count), "", "", ""])
        n += 1
    return n


def read_roster(lines: t.Iterable[str], delimiter: str = ",") -> list[tuple[str, str]]:
    """Read (code, name) pairs from a roster sheet; a header row naming the code column is skipped."""
    pairs: list[tuple[str, str]] = []
    for i, cells in enumerate(csv.reader(lines, delimiter=delimiter)):
        if not cells or not cells[0].strip():
            continue
        if i == 0 and normalize_header(cells[0]) in CodeAliases:
            continue
        if len(cells) < 2 or not cells[1].strip():
            raise ValueError(f"roster row {i + 1} has no student name")
        pairs.append((cells[0].strip(), cells[1].strip()))
    return pairs
