__all__ = [
    "BootConfiguration",
    "GradingContainer",
    "MarkbookContainer",
    "PersistentContainer",
    "StorageContainer",
]

from .grading import GradingContainer
from .markbook import BootConfiguration, MarkbookContainer
from .storage import PersistentContainer, StorageContainer
