"""Tests for the grade overview API endpoint."""

from __future__ import annotations

import decimal
import typing as t

from fastapi.testclient import TestClient

from markbook.model import GradeKey, GradeRecord, ImportScope, PeriodID, RosterEntry

D = decimal.Decimal


class TestOverview(object):
    """Tests for GET /api/grades/overview."""

    def test_includes_students_without_grades(
        self,
        client: TestClient,
        scope: ImportScope,
        roster: dict[str, RosterEntry],
        grade_factory: t.Callable[..., GradeRecord],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
    ) -> None:
        grade_factory(key_for(roster["S001"], "regular_1"), "8")
        grade_factory(key_for(roster["S001"], "regular_3"), "6")
        grade_factory(key_for(roster["S001"], "final"), "9")

        response = client.get("/api/grades/overview", params=scope.model_dump(mode="json", by_alias=False))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert [s["student_code"] for s in data["students"]] == ["S001", "S002", "S003"]
        ada, alan, _ = data["students"]
        assert [None if v is None else D(v) for v in ada["regular"]] == [D("8"), None, D("6")]
        assert ada["midterm"] is None
        assert D(ada["final"]) == D("9")
        assert ada["is_final"] is False
        assert ada["updated_by"] is not None
        assert alan["regular"] == []
        assert alan["summary"] is None
        assert alan["update_time"] is None

    def test_final_flag(
        self,
        client: TestClient,
        scope: ImportScope,
        roster: dict[str, RosterEntry],
        grade_factory: t.Callable[..., GradeRecord],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
    ) -> None:
        grade_factory(key_for(roster["S002"], "midterm"), "7", is_final=True)

        response = client.get("/api/grades/overview", params=scope.model_dump(mode="json", by_alias=False))

        alan = next(s for s in response.json()["students"] if s["student_code"] == "S002")
        assert alan["is_final"] is True

    def test_unknown_period(self, client: TestClient, scope: ImportScope) -> None:
        params = scope.model_dump(mode="json", by_alias=False)
        params["period_id"] = str(PeriodID())

        response = client.get("/api/grades/overview", params=params)

        assert response.status_code == 404
