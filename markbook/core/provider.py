import datetime
import inspect
import logging.config
import typing as t

TimestampProvider = t.Callable[..., datetime.datetime]

TRACE = 5


class MarkbookLogger(logging.Logger):
    """Logger with a TRACE level below DEBUG, used for per-cell import detail."""

    def trace(self, message: str, *args: t.Any, **kwargs: t.Any) -> None:
        if self.isEnabledFor(TRACE):
            self._log(TRACE, message, args, **kwargs)


class LoggingProvider(object):
    """Applies the dictConfig from the logging settings once, at container init."""

    def __init__(self, config: dict[str, t.Any], debug: bool):
        logging.setLoggerClass(MarkbookLogger)
        logging.addLevelName(TRACE, "TRACE")
        logging.config.dictConfig(config)
        self.capture_warnings(debug)

    @staticmethod
    def get_logger(name: str | None = None) -> MarkbookLogger:
        """Return the named logger, or the logger for the calling module."""
        if name is None:
            name = inspect.stack()[1].frame.f_globals["__name__"]
        return t.cast(MarkbookLogger, logging.getLogger(name))

    @staticmethod
    def capture_warnings(capture: bool) -> None:
        logging.captureWarnings(capture)
