"""Route aggregation for the Markbook web application."""

from fastapi import APIRouter

from . import grades, imports, overrides

router = APIRouter()
router.include_router(imports.router)
router.include_router(overrides.router)
router.include_router(grades.router)
