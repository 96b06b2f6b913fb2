from __future__ import annotations

import collections
import re
import typing as t

from sqlalchemy.orm import Session

from markbook.model import ClassID, PeriodID, RawCell, RosterEntry, StudentID
from markbook.storage import roster as roster_storage

from .errors import RosterError, RosterErrorKind

DefaultCodePattern = re.compile(r"^[A-Za-z0-9]{3,20}$")


class RosterResolver(object):
    """
    Maps external student codes onto the students enrolled in one class for
    one grading period.

    Codes are compared after trimming surrounding whitespace. A batch is
    registered with `expect()` so that codes occurring on more than one row
    are rejected on every row that carries them.
    """

    class_id: ClassID
    period_id: PeriodID

    def __init__(
        self,
        entries: t.Iterable[RosterEntry],
        *,
        class_id: ClassID,
        period_id: PeriodID,
        code_pattern: re.Pattern[str] | str = DefaultCodePattern,
    ):
        self.class_id = class_id
        self.period_id = period_id
        self.code_pattern = re.compile(code_pattern) if isinstance(code_pattern, str) else code_pattern
        self._by_code: dict[str, RosterEntry] = {}
        for entry in entries:
            if entry.class_id != class_id or entry.period_id != period_id:
                raise ValueError(f"roster entry for {entry.student_code} belongs to another class or period")
            self._by_code[entry.student_code.strip()] = entry
        self._batch: collections.Counter[str] = collections.Counter()

    @classmethod
    def load(
        cls,
        class_id: ClassID,
        period_id: PeriodID,
        *,
        session: Session,
        code_pattern: re.Pattern[str] | str = DefaultCodePattern,
    ) -> RosterResolver:
        entries = roster_storage.find(class_id=class_id, period_id=period_id, session=session)
        return cls(entries, class_id=class_id, period_id=period_id, code_pattern=code_pattern)

    @property
    def entries(self) -> tuple[RosterEntry, ...]:
        return tuple(self._by_code.values())

    def normalize(self, code: RawCell) -> str:
        """Trim a raw code cell and check its shape.

        Raises:
            RosterError: MalformedCode when the trimmed code does not match the
                configured pattern
        """
        s = "" if code is None else str(code).strip()
        if not self.code_pattern.match(s):
            raise RosterError(RosterErrorKind.MalformedCode, s, f"student code {s!r} is malformed")
        return s

    def expect(self, codes: t.Iterable[RawCell]) -> set[str]:
        """Register the codes of a whole batch; returns the codes that repeat."""
        self._batch = collections.Counter()
        for code in codes:
            if code is None:
                continue
            s = str(code).strip()
            if s:
                self._batch[s] += 1
        return self.duplicates

    @property
    def duplicates(self) -> set[str]:
        return {code for code, n in self._batch.items() if n > 1}

    def resolve(self, code: RawCell) -> StudentID:
        """Resolve one code to the enrolled student.

        Raises:
            RosterError: MalformedCode, DuplicateCode if the code occurs on more
                than one row of the registered batch, UnknownCode if nobody on
                the roster carries it
        """
        s = self.normalize(code)
        if self._batch[s] > 1:
            raise RosterError(
                RosterErrorKind.DuplicateCode, s, f"student code {s!r} appears on {self._batch[s]} rows of this batch"
            )
        entry = self._by_code.get(s)
        if entry is None:
            raise RosterError(RosterErrorKind.UnknownCode, s, f"student code {s!r} is not on the class roster")
        return entry.student_id

    def entry(self, student_id: StudentID) -> RosterEntry | None:
        return next((e for e in self._by_code.values() if e.student_id == student_id), None)

    def missing(self) -> tuple[RosterEntry, ...]:
        """Roster students with no row in the registered batch"""
        return tuple(e for code, e in sorted(self._by_code.items()) if code not in self._batch)
