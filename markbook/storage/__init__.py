import importlib
import sys
import types
import typing as t

from sqlalchemy.orm import Session, SessionTransaction

__all__ = [
    "Session",
    "SessionTransaction",
    # Repository modules
    "audit",
    "grade",
    "override",
    "period",
    "roster",
]

if t.TYPE_CHECKING:
    from . import audit, grade, override, period, roster


def __getattr__(name: str) -> types.ModuleType:
    if name in __all__:
        module = importlib.import_module(f"{__name__}.{name}")
        setattr(sys.modules[__name__], name, module)
        return module
    raise AttributeError(f"module {__name__} has no attribute {name}")


def transaction(session: Session) -> SessionTransaction:
    """Begin a transaction, or a savepoint when one is already open"""
    if session.in_transaction():
        return session.begin_nested()
    return session.begin()
