"""Schema for the ``logging`` section, which is handed to ``logging.config.dictConfig``.

Field aliases carry the key names dictConfig wants (``()`` for a formatter
factory, ``class`` for a handler), so the dumped section can be passed
through untouched.
"""

import pathlib
import typing as t

import pydantic as p

from .base import SectionSettings

LogLevel = t.Literal["NOTSET", "TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class FormatterSettings(SectionSettings):
    factory: t.Literal["gradebook.lib.logging.ExtraFormatter"] = p.Field(alias="()")
    # dotted or ext:// path of the formatter that renders the line before the extras
    base: str = "ext://colorlog.ColoredFormatter"
    format: str | None = None
    datefmt: str | None = None
    indent: bool = False
    log_colors: dict[LogLevel, str] = {}
    no_color: bool = False


class StreamHandlerSettings(SectionSettings):
    class_: t.Literal["colorlog.StreamHandler"] = p.Field(alias="class")
    formatter: str
    level: LogLevel = "NOTSET"
    stream: t.Literal["ext://sys.stderr", "ext://sys.stdout"] = "ext://sys.stderr"


class FileHandlerSettings(SectionSettings):
    """Daily rotated file, for long-running graders' workstations and batch hosts."""

    class_: t.Literal["logging.handlers.TimedRotatingFileHandler"] = p.Field(alias="class")
    formatter: str
    level: LogLevel = "NOTSET"
    filename: pathlib.Path
    when: str = "midnight"
    backupCount: int = 14


HandlerSettings = t.Annotated[StreamHandlerSettings | FileHandlerSettings, p.Field(discriminator="class_")]


class LoggerSettings(SectionSettings):
    level: LogLevel = "NOTSET"
    propagate: bool = True
    handlers: list[str] = []


class RootLoggerSettings(SectionSettings):
    level: LogLevel = "WARNING"
    handlers: list[str]


class LoggingSettings(SectionSettings):
    version: t.Literal[1] = 1
    disable_existing_loggers: bool = False
    formatters: dict[str, FormatterSettings]
    handlers: dict[str, HandlerSettings]
    root: RootLoggerSettings
    loggers: dict[str, LoggerSettings] = {}

    @p.model_validator(mode="after")
    def check_references(self) -> t.Self:
        for name, handler in self.handlers.items():
            if handler.formatter not in self.formatters:
                raise ValueError(f"handler {name!r} uses undefined formatter {handler.formatter!r}")
        loggers: dict[str, RootLoggerSettings | LoggerSettings] = {"root": self.root, **self.loggers}
        for name, logger in loggers.items():
            missing = set(logger.handlers) - set(self.handlers)
            if missing:
                raise ValueError(f"logger {name!r} uses undefined handlers {sorted(missing)}")
        return self
