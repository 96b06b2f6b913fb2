__all__ = [
    "GradingSettings",
    "LoggingSettings",
    "PersistentSettings",
    "PostgresqlSettings",
    "ServeSettings",
    "Settings",
    "SqliteSettings",
    "StorageSettings",
    "WebSettings",
]


from .grading import GradingSettings
from .logging import LoggingSettings
from .settings import Settings
from .storage import PersistentSettings, PostgresqlSettings, SqliteSettings, StorageSettings
from .web import ServeSettings, WebSettings
