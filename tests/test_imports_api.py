"""Tests for the grade import API endpoints."""

from __future__ import annotations

import decimal
import typing as t

from fastapi.testclient import TestClient

from markbook.model import ImportScope, PeriodID, RosterEntry

D = decimal.Decimal


def body(scope: ImportScope, rows: list[dict[str, t.Any]]) -> dict[str, t.Any]:
    return {**scope.model_dump(mode="json"), "rows": rows}


class TestValidateImport(object):
    """Tests for POST /api/imports/validate."""

    def test_reports_issues_without_writing(
        self, client: TestClient, headers: dict[str, str], scope: ImportScope, roster: dict[str, RosterEntry]
    ) -> None:
        response = client.post(
            "/api/imports/validate",
            json=body(
                scope,
                [
                    {"rowNumber": 2, "studentCode": "S001", "regular": ["8", "7", "9"]},
                    {"rowNumber": 3, "studentCode": "S999", "regular": ["8", "7", "11"]},
                ],
            ),
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["statistics"]["totalRows"] == 2
        assert data["statistics"]["invalidRows"] == 1
        assert data["statistics"]["invalidGrades"] == 1
        kinds = {(e["rowNumber"], e["kind"]) for e in data["errors"]}
        assert kinds == {(3, "RosterError"), (3, "RangeError")}
        assert [r["studentCode"] for r in data["data"]] == ["S001"]

        overview = client.get("/api/grades/overview", params=scope.model_dump(mode="json", by_alias=False))
        assert all(s["regular"] == [] for s in overview.json()["students"])

    def test_requires_actor(self, client: TestClient, scope: ImportScope) -> None:
        response = client.post("/api/imports/validate", json=body(scope, []))

        assert response.status_code == 401

    def test_rejects_malformed_actor(self, client: TestClient, scope: ImportScope) -> None:
        response = client.post("/api/imports/validate", json=body(scope, []), headers={"X-Actor-ID": "somebody"})

        assert response.status_code == 401

    def test_unknown_period(self, client: TestClient, headers: dict[str, str], scope: ImportScope) -> None:
        payload = body(scope, [])
        payload["periodId"] = str(PeriodID())

        response = client.post("/api/imports/validate", json=payload, headers=headers)

        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"


class TestRunImport(object):
    """Tests for POST /api/imports."""

    def test_commits_and_summarizes(
        self, client: TestClient, headers: dict[str, str], scope: ImportScope, roster: dict[str, RosterEntry]
    ) -> None:
        response = client.post(
            "/api/imports",
            json=body(scope, [{"studentCode": "S001", "regular": ["8", "7", "9"], "midterm": "8", "final": 9}]),
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["validation"]["success"] is True
        commit = data["commit"]
        assert commit["success"] is True
        assert commit["importedCount"] == 1
        assert commit["ledger"][0]["status"] == "committed"
        assert set(commit["ledger"][0]["written"]) == {"regular_1", "regular_2", "regular_3", "midterm", "final"}

        overview = client.get("/api/grades/overview", params=scope.model_dump(mode="json", by_alias=False))
        ada = next(s for s in overview.json()["students"] if s["student_code"] == "S001")
        assert D(ada["summary"]) == D("8.4")

    def test_invalid_batch_is_not_committed(
        self, client: TestClient, headers: dict[str, str], scope: ImportScope, roster: dict[str, RosterEntry]
    ) -> None:
        response = client.post(
            "/api/imports",
            json=body(scope, [{"studentCode": "S001", "regular": ["8"]}, {"studentCode": "S404", "regular": ["8"]}]),
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["validation"]["success"] is False
        assert data["commit"] is None

    def test_midterm_change_becomes_proposal(
        self, client: TestClient, headers: dict[str, str], scope: ImportScope, roster: dict[str, RosterEntry]
    ) -> None:
        client.post("/api/imports", json=body(scope, [{"studentCode": "S002", "midterm": "7"}]), headers=headers)

        response = client.post(
            "/api/imports", json=body(scope, [{"studentCode": "S002", "midterm": "8"}]), headers=headers
        )

        commit = response.json()["commit"]
        assert commit["ledger"][0]["status"] == "proposed"
        assert len(commit["proposalIds"]) == 1
        assert commit["proposalIds"][0].startswith("proposal$")
