"""Pytest fixtures for Markbook integration tests.

The test environment runs against an in-memory SQLite database whose tables
are created once per session. Every test runs within a transaction that is
rolled back afterwards, so tests never see each other's rows.

Usage:
    def test_overview(client: TestClient, scope: ImportScope):
        response = client.get("/api/grades/overview", params=scope.model_dump(mode="json"))
        assert response.status_code == 200
"""

from __future__ import annotations

import datetime
import decimal
import os
import typing as t
from pathlib import Path

import pydantic as p
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import markbook
from markbook.core import MarkbookContainer, TimestampProvider
from markbook.grading import ApprovalGate, ImportPipeline
from markbook.model import ClassID, ComponentPeriod, DeploymentEnvironment, GradeComponent, GradeKey, GradeRecord, \
    GradingPeriod, ImportScope, PeriodID, RosterEntry, SemesterID, SubjectID, SummaryPeriod, UserID
from markbook.storage import grade as grade_storage
from markbook.storage import period as period_storage
from markbook.storage import roster as roster_storage
from markbook.storage.table import base

ActorHeader = "X-Actor-ID"


@pytest.fixture(scope="session")
def container() -> t.Generator[MarkbookContainer]:
    """Boot the DI container for the test session.

    Uses the Test environment, which selects an in-memory SQLite database,
    and creates the schema from the table metadata.
    """
    ct = MarkbookContainer()
    root = Path(os.path.dirname(markbook.__file__)).parent

    MarkbookContainer.boot(
        ct,
        debug=False,
        env=DeploymentEnvironment.Test,
        config_root=p.FileUrl(f"file://{root}/config"),
        override=(),
    )
    base.metadata.create_all(ct.storage().persistent().engine())

    yield ct

    ct.shutdown_resources()


@pytest.fixture(scope="session")
def app(container: MarkbookContainer) -> FastAPI:
    from markbook.core.config.web import WebSettings
    from markbook.web.main import _create_app  # pyright: ignore[reportPrivateUsage]

    container.wire(
        modules=[
            "markbook.web.main",
            "markbook.web.route.imports",
            "markbook.web.route.overrides",
            "markbook.web.route.grades",
        ]
    )
    return _create_app(config=WebSettings(**container.config.web()))


@pytest.fixture
def db_session(container: MarkbookContainer) -> t.Generator[Session]:
    """Provide a database session wrapped in a transaction.

    Uses join_transaction_mode="create_savepoint" so that session.begin()
    in the code under test creates savepoints within the outer transaction,
    which is rolled back when the test completes.
    """
    engine = container.storage().persistent().engine()

    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        autobegin=False,
        join_transaction_mode="create_savepoint",
    )

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def client(app: FastAPI, container: MarkbookContainer, db_session: Session) -> t.Generator[TestClient]:
    """Provide a TestClient whose requests share the test's transactional session."""
    container.storage().persistent().session.override(db_session)

    with TestClient(app) as test_client:
        yield test_client

    container.storage().persistent().session.reset_override()


@pytest.fixture
def actor() -> UserID:
    return UserID()


@pytest.fixture
def reviewer() -> UserID:
    return UserID()


@pytest.fixture
def headers(actor: UserID) -> dict[str, str]:
    return {ActorHeader: str(actor)}


@pytest.fixture
def semester_id() -> SemesterID:
    return SemesterID()


@pytest.fixture
def period_factory(db_session: Session, semester_id: SemesterID) -> t.Callable[..., GradingPeriod]:
    """Factory fixture for grading periods.

    Creates a component period unless `sources` is given, in which case a
    summary period over those periods is created.

    Usage:
        def test_something(period_factory):
            midterms = period_factory(name="Q1", required={"midterm"})
    """

    def create_period(
        name: str = "Quarter 1",
        required: t.Iterable[str] = (),
        regular_count: int | None = None,
        sources: t.Sequence[PeriodID] = (),
        semester: SemesterID | None = None,
    ) -> GradingPeriod:
        shape: ComponentPeriod | SummaryPeriod
        if sources:
            shape = SummaryPeriod(source_period_ids=tuple(sources))
        else:
            shape = ComponentPeriod(
                required=frozenset(GradeComponent(r) for r in required), regular_count=regular_count
            )
        with db_session.begin():
            return period_storage.create(
                semester_id=semester or semester_id, name=name, shape=shape, session=db_session
            )

    return create_period


@pytest.fixture
def test_period(period_factory: t.Callable[..., GradingPeriod]) -> GradingPeriod:
    return period_factory(name="Quarter 1", regular_count=3)


@pytest.fixture
def class_id() -> ClassID:
    return ClassID()


@pytest.fixture
def subject_id() -> SubjectID:
    return SubjectID()


@pytest.fixture
def scope(test_period: GradingPeriod, class_id: ClassID, subject_id: SubjectID) -> ImportScope:
    return ImportScope(period_id=test_period.period_id, class_id=class_id, subject_id=subject_id)


@pytest.fixture
def roster_factory(db_session: Session, class_id: ClassID) -> t.Callable[..., RosterEntry]:
    """Factory fixture for enrolling students in the test class."""

    def enroll(
        code: str,
        name: str | None = None,
        period_id: PeriodID | None = None,
        student_id: t.Any = None,
    ) -> RosterEntry:
        assert period_id is not None
        with db_session.begin():
            return roster_storage.create(
                class_id=class_id,
                period_id=period_id,
                student_code=code,
                full_name=name or f"Student {code}",
                student_id=student_id,
                session=db_session,
            )

    return enroll


@pytest.fixture
def roster(roster_factory: t.Callable[..., RosterEntry], test_period: GradingPeriod) -> dict[str, RosterEntry]:
    """Three students enrolled in the test class for the test period."""
    return {
        code: roster_factory(code, name, period_id=test_period.period_id)
        for code, name in (("S001", "Ada Lovelace"), ("S002", "Alan Turing"), ("S003", "Grace Hopper"))
    }


@pytest.fixture
def grade_factory(db_session: Session, actor: UserID) -> t.Callable[..., GradeRecord]:
    """Factory fixture for committed grade records, bypassing the import pipeline."""

    def create_grade(key: GradeKey, value: decimal.Decimal | str | None, *, is_final: bool = False) -> GradeRecord:
        with db_session.begin():
            record = grade_storage.create(
                key, value=None if value is None else decimal.Decimal(value), created_by=actor, session=db_session
            )
            if is_final:
                grade_storage.lock(
                    period_id=key.period_id, class_id=key.class_id, subject_id=key.subject_id, session=db_session
                )
                record = t.cast(GradeRecord, grade_storage.get(key, session=db_session))
        return record

    return create_grade


@pytest.fixture
def key_for(scope: ImportScope) -> t.Callable[[RosterEntry, str], GradeKey]:
    def make_key(entry: RosterEntry, component: str) -> GradeKey:
        return GradeKey(scope.period_id, entry.student_id, scope.subject_id, scope.class_id, GradeComponent(component))

    return make_key


@pytest.fixture
def pipeline(container: MarkbookContainer) -> ImportPipeline:
    return container.grading().pipeline()


@pytest.fixture
def approval(container: MarkbookContainer) -> ApprovalGate:
    return container.grading().approval()


@pytest.fixture
def utcnow() -> TimestampProvider:
    """Provide a timestamp provider for tests."""
    return lambda: datetime.datetime.now(datetime.UTC)
