import datetime
import logging
import logging.config
import sys
import typing as t

# every clock in the system is one of these; tests substitute a deterministic one
TimestampProvider = t.Callable[[], datetime.datetime]

TRACE = 5


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class TraceLogger(logging.Logger):
    def trace(self, msg: str, *args: t.Any, **kwargs: t.Any) -> None:
        if self.isEnabledFor(TRACE):
            self._log(TRACE, msg, args, **kwargs)


class LoggingProvider(object):
    """Owns process logging configuration for the lifetime of the container.

    Loggers created after construction are `TraceLogger` instances, so SQL
    and retry chatter can go out below DEBUG.
    """

    def __init__(self, config: dict[str, t.Any], debug: bool):
        logging.setLoggerClass(TraceLogger)
        logging.addLevelName(TRACE, "TRACE")
        logging.config.dictConfig(config)
        # surface DeprecationWarnings from the stack through logging
        logging.captureWarnings(debug)

    @staticmethod
    def get_logger(name: str | None = None, depth: int = 1) -> TraceLogger:
        """Logger for `name`, or for the calling module if omitted."""
        if name is None:
            name = sys._getframe(depth).f_globals["__name__"]  # pyright: ignore [reportPrivateUsage]
        return t.cast(TraceLogger, logging.getLogger(name))
