"""Grade import API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from markbook.core import di
from markbook.grading import ImportPipeline
from markbook.model import ImportOutcome, UserID, ValidationResult

from ..dependencies import get_actor
from ..view import ImportRequest

router = APIRouter(prefix="/api/imports", tags=["imports"])


@router.post("/validate", operation_id="validate_import")
@di.inject
def validate_import(
    request: ImportRequest,
    actor: UserID = Depends(get_actor),
    pipeline: ImportPipeline = Depends(di.Provide["grading.pipeline"]),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> ValidationResult:
    """Validate a batch without writing anything."""
    with session.begin():
        return pipeline.validate(request.rows, request.scope, session=session)


@router.post("", operation_id="run_import")
@di.inject
def run_import(
    request: ImportRequest,
    actor: UserID = Depends(get_actor),
    pipeline: ImportPipeline = Depends(di.Provide["grading.pipeline"]),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> ImportOutcome:
    """Validate a batch and, when it is clean, commit it student by student.

    Changes to existing midterm or final values are not written; they come
    back as pending override proposals.
    """
    return pipeline.run(request.rows, request.scope, actor=actor, session=session)
