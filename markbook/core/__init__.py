import importlib
import sys
import typing as t

__all__ = [
    "BootConfiguration",
    "di",
    "LoggingProvider",
    "MarkbookContainer",
    "Settings",
    "TimestampProvider",
]


from . import di
from .config import Settings
from .provider import LoggingProvider, TimestampProvider

if t.TYPE_CHECKING:
    from .container import BootConfiguration, MarkbookContainer

# the containers import the grading services, which in turn import storage and
# therefore this package, so they are resolved on first access
_deferred = {"BootConfiguration", "MarkbookContainer"}


def __getattr__(name: str) -> t.Any:
    if name in _deferred:
        value = getattr(importlib.import_module(f"{__name__}.container"), name)
        setattr(sys.modules[__name__], name, value)
        return value
    raise AttributeError(f"module {__name__} has no attribute {name}")
