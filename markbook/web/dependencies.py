"""FastAPI dependency providers for the Markbook web application."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from markbook.model import UserID


def get_actor(request: Request) -> UserID:
    """The acting user, as supplied by the upstream identity provider."""
    header: str = request.app.state.actor_header
    value = request.headers.get(header)
    if not value:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"{header} header is required")
    try:
        return UserID(value.strip())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"invalid {header}: {e}") from e
