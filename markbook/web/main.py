"""Main entry point for the Markbook web application."""

import os

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from markbook.core import BootConfiguration, di, MarkbookContainer
from markbook.core.config.web import WebSettings
from markbook.grading import GradingError, JustificationRequired, NotFoundError, OverrideConflict, \
    ProposalStateError, RecordLockedError, StaleWriteError

from .route import router

ErrorStatus: dict[type[GradingError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ProposalStateError: status.HTTP_409_CONFLICT,
    OverrideConflict: status.HTTP_409_CONFLICT,
    StaleWriteError: status.HTTP_409_CONFLICT,
    RecordLockedError: status.HTTP_423_LOCKED,
    JustificationRequired: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def grading_error_handler(request: Request, exc: Exception) -> JSONResponse:
    code = next(
        (c for kind, c in ErrorStatus.items() if isinstance(exc, kind)),
        status.HTTP_400_BAD_REQUEST,
    )
    return JSONResponse(status_code=code, content={"detail": str(exc), "error": exc.__class__.__name__})


@di.inject
def _create_app(config: WebSettings = di.Provide["config.web", di.as_(WebSettings)]) -> FastAPI:
    app = FastAPI(
        title=config.title,
        description="Grade import, override review and grade overview",
        version="0.1.0",
    )
    app.state.actor_header = config.actor_header
    app.add_exception_handler(GradingError, grading_error_handler)
    app.include_router(router)
    return app


def create_app() -> FastAPI:
    """Factory function for uvicorn."""
    boot_vars = os.getenv("__Markbook_BOOT")
    if boot_vars:
        boot_cf = BootConfiguration.model_validate_json(boot_vars)
        ct = MarkbookContainer()
        MarkbookContainer.boot(ct, **dict(boot_cf))
        ct.wire(modules=["markbook.web.main"])
        return _create_app(config=WebSettings(**ct.config.web()))
    return _create_app()
