from __future__ import annotations

import decimal
import logging
import typing as t

import pydantic as p

from markbook.core.config.grading import GradingSettings
from markbook.model import GradeComponent, GradingPeriod, ImportRow, ImportStatistics, InvalidRow, Issue, IssueKind, \
    RawCell, RowOutcome, Severity, TypedRow, ValidationResult, ValidRow

from .errors import MissingRequiredError, RangeError, RosterError
from .roster import RosterResolver

logger = logging.getLogger(__name__)

EmptyMarkers = frozenset({"", "-"})


def is_empty(raw: RawCell) -> bool:
    if raw is None:
        return True
    return isinstance(raw, str) and raw.strip() in EmptyMarkers


def is_empty_row(row: ImportRow) -> bool:
    return (
        is_empty(row.student_code)
        and all(is_empty(c) for c in row.regular)
        and is_empty(row.midterm)
        and is_empty(row.final)
        and not (row.note or "").strip()
    )


class ImportValidator(object):
    """
    Turns loosely-shaped spreadsheet rows into typed rows ready for commit.

    Nothing is raised past `validate()`: every problem becomes an `Issue` in
    the result, and only rows without error-severity issues are returned in
    `data`. The batch `success` flag is the only gate to commit.
    """

    def __init__(self, settings: GradingSettings | None = None):
        self.settings = settings or GradingSettings()

    def parse_value(self, raw: RawCell, field: str) -> decimal.Decimal | None:
        """Parse one grade cell.

        Empty cells (`None`, blank, `-`) yield None. A comma is accepted as the
        decimal separator.

        Raises:
            RangeError: the cell is not a finite number, lies outside the
                configured bounds or is not a multiple of the granularity
        """
        if is_empty(raw):
            return None
        if isinstance(raw, bool):
            raise RangeError(field, raw, f"{field}: {raw!r} is not a number")

        source: str | int | decimal.Decimal
        if isinstance(raw, str):
            source = raw.strip().replace(",", ".")
        elif isinstance(raw, float):
            # go through repr so 8.4 stays 8.4 rather than its binary expansion
            source = repr(raw)
        else:
            source = t.cast(int | decimal.Decimal, raw)

        try:
            value = decimal.Decimal(source)
        except decimal.InvalidOperation:
            raise RangeError(field, raw, f"{field}: {raw!r} is not a number") from None
        if not value.is_finite():
            raise RangeError(field, raw, f"{field}: {raw!r} is not a number")

        s = self.settings
        if value < s.min_value or value > s.max_value:
            raise RangeError(field, value, f"{field}: {value} is outside [{s.min_value}, {s.max_value}]")
        if value % s.granularity != 0:
            raise RangeError(field, value, f"{field}: {value} is not a multiple of {s.granularity}")
        return value

    def validate_row(
        self, row: ImportRow, *, resolver: RosterResolver, period: GradingPeriod, stats: ImportStatistics
    ) -> tuple[RowOutcome, list[Issue]]:
        """Check one non-empty row, updating the grade counters in `stats`.

        Returns the row outcome and any row-level warnings.
        """
        row_number = t.cast(int, row.row_number)
        raw_code = "" if row.student_code is None else str(row.student_code).strip()
        errors: list[Issue] = []
        warnings: list[Issue] = []

        def issue(
            field: str, value: t.Any, kind: IssueKind, message: str, severity: Severity = Severity.Error
        ) -> Issue:
            return Issue(
                row_number=row_number,
                student_code=raw_code or None,
                field=field,
                value=value,
                severity=severity,
                kind=kind,
                message=message,
            )

        student_id = None
        try:
            if not raw_code:
                raise MissingRequiredError("studentCode", "student code is required")
            student_id = resolver.resolve(raw_code)
        except MissingRequiredError as e:
            errors.append(issue(e.field, None, IssueKind.MissingRequiredError, str(e)))
        except RosterError as e:
            errors.append(issue("studentCode", e.code, IssueKind.RosterError, str(e)))

        if len(row.regular) > self.settings.max_regular_count:
            errors.append(
                issue(
                    "regular",
                    len(row.regular),
                    IssueKind.RangeError,
                    f"{len(row.regular)} regular grades exceed the maximum of {self.settings.max_regular_count}",
                )
            )

        cells: dict[GradeComponent, decimal.Decimal | None] = {}
        invalid: set[GradeComponent] = set()
        raw_cells: list[tuple[GradeComponent, RawCell]] = [
            *((GradeComponent.regular(i), c) for i, c in enumerate(row.regular, start=1)),
            (GradeComponent.Midterm, row.midterm),
            (GradeComponent.Final, row.final),
        ]
        for component, raw in raw_cells:
            try:
                cells[component] = self.parse_value(raw, component)
            except RangeError as e:
                stats.invalid_grades += 1
                invalid.add(component)
                errors.append(issue(e.field, e.value, IssueKind.RangeError, str(e)))
                continue
            if cells[component] is not None:
                stats.valid_grades += 1

        expected = {GradeComponent.regular(i) for i in range(1, len(row.regular) + 1)} | period.required
        for component in sorted(expected, key=GradeComponent.sort_key):
            if cells.get(component) is not None or component in invalid:
                continue
            stats.missing_grades += 1
            if component in period.required:
                errors.append(
                    issue(
                        component,
                        None,
                        IssueKind.MissingRequiredError,
                        f"{component} is required for period {period.name!r}",
                    )
                )

        note = (row.note or "").strip() or None
        if note is None and any(cells.get(c) is not None for c in (GradeComponent.Midterm, GradeComponent.Final)):
            warnings.append(
                issue(
                    "note",
                    None,
                    IssueKind.Notice,
                    "midterm or final given without a note; a change to an existing value will carry no request note",
                    Severity.Warning,
                )
            )

        if errors or student_id is None:
            return InvalidRow(row_number, tuple(errors)), warnings

        regular = tuple(cells[GradeComponent.regular(i)] for i in range(1, len(row.regular) + 1))
        typed = TypedRow(
            row_number=row_number,
            student_code=raw_code,
            student_id=student_id,
            regular=regular,
            midterm=cells[GradeComponent.Midterm],
            final=cells[GradeComponent.Final],
            note=note,
        )
        return ValidRow(typed), warnings

    def validate(
        self,
        rows: t.Iterable[ImportRow | t.Mapping[str, t.Any]],
        *,
        resolver: RosterResolver,
        period: GradingPeriod,
    ) -> ValidationResult:
        stats = ImportStatistics()
        errors: list[Issue] = []
        warnings: list[Issue] = []
        data: list[TypedRow] = []

        parsed: list[ImportRow] = []
        for i, raw in enumerate(rows, start=1):
            stats.total_rows += 1
            try:
                row = raw if isinstance(raw, ImportRow) else ImportRow.model_validate(raw)
            except p.ValidationError as e:
                stats.invalid_rows += 1
                errors.append(
                    Issue(
                        row_number=i,
                        field="row",
                        severity=Severity.Error,
                        kind=IssueKind.RangeError,
                        message=f"row {i} is malformed: {e.error_count()} invalid field(s)",
                    )
                )
                continue
            if row.row_number is None:
                row = row.model_copy(update={"row_number": i})
            parsed.append(row)

        non_empty = [row for row in parsed if not is_empty_row(row)]
        stats.empty_rows = len(parsed) - len(non_empty)
        stats.duplicate_students = len(resolver.expect(row.student_code for row in non_empty))

        for row in non_empty:
            outcome, row_warnings = self.validate_row(row, resolver=resolver, period=period, stats=stats)
            warnings.extend(row_warnings)
            match outcome:
                case ValidRow(typed):
                    stats.valid_rows += 1
                    data.append(typed)
                case InvalidRow(_, issues):
                    stats.invalid_rows += 1
                    errors.extend(issues)

        warnings.extend(self.batch_warnings(non_empty, resolver=resolver, period=period))

        result = ValidationResult(
            success=not errors, errors=errors, warnings=warnings, statistics=stats, data=data
        )
        logger.debug(
            "validated import batch",
            extra={
                "period_id": str(period.period_id),
                "class_id": str(resolver.class_id),
                "success": result.success,
                **stats.model_dump(),
            },
        )
        return result

    def batch_warnings(
        self, rows: t.Sequence[ImportRow], *, resolver: RosterResolver, period: GradingPeriod
    ) -> t.Iterator[Issue]:
        expected = period.regular_count
        if rows and expected is not None:
            found = max(len(row.regular) for row in rows)
            if found != expected:
                yield Issue(
                    row_number=None,
                    field="regular",
                    value=found,
                    severity=Severity.Warning,
                    kind=IssueKind.Notice,
                    message=f"batch carries {found} regular grade column(s), period {period.name!r} expects {expected}",
                )

        for entry in resolver.missing():
            yield Issue(
                row_number=None,
                student_code=entry.student_code,
                field="studentCode",
                value=entry.student_code,
                severity=Severity.Warning,
                kind=IssueKind.Notice,
                message=f"{entry.full_name} ({entry.student_code}) is on the roster but not in this batch",
            )
