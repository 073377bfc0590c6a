"""Log formatting that keeps structured context visible.

Services log with ``extra={...}``; `ExtraFormatter` renders whatever the base
formatter produces and appends those fields as a JSON object, identity keys
first, highlighted with pygments when the handler writes to a terminal.
"""

import inspect
import logging
import re
import textwrap
import typing as t

import pygments
from pygments.formatters import Terminal256Formatter
from pygments.lexers.data import JsonLexer  # pyright: ignore [reportMissingTypeStubs]
from pygments.style import Style

from gradebook.lib import json
from gradebook.lib.json import JSONValue

from .style import LogStyle

# attributes every record carries; anything else arrived through extra=
RecordAttributes = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "color_message"}

# ids lead so that lines about the same grade line up when scanning a log
LeadingKeys = ("grade_id", "learner_id", "module_id", "course_id", "snapshot_id", "audit_log_id")

_ansi_escape = re.compile(r"\x1b\[[0-9;]*m")


def record_extra(record: logging.LogRecord) -> dict[str, t.Any]:
    extra = {k: v for k, v in record.__dict__.items() if k not in RecordAttributes}
    leading = {k: extra[k] for k in LeadingKeys if k in extra}
    return leading | {k: extra[k] for k in sorted(extra) if k not in leading}


def encode_lenient(obj: t.Any) -> JSONValue:
    try:
        return json.encode(obj)
    except TypeError:
        return repr(obj)


class ExtraFormatter(logging.Formatter):
    def __init__(
        self,
        base: type[logging.Formatter],
        format: str | None = None,
        datefmt: str | None = None,
        indent: bool | None = False,
        pyg_style: type[Style] = LogStyle,
        style: t.Literal["%", "{", "$"] = "%",
        validate: bool = True,
        *,
        defaults: t.Any = None,
        **kwargs: t.Any,
    ):
        # remaining kwargs (log_colors, no_color) belong to the colorlog base
        self.base = base(format, datefmt=datefmt, style=style, validate=validate, defaults=defaults, **kwargs)
        self.pyg_style = pyg_style
        self.indent = indent
        self.handler: logging.Handler | None = None

    def format(self, record: logging.LogRecord) -> str:
        if self.handler is None:
            # dictConfig gives us no handle on our handler; Handler.format is our caller
            frame = inspect.currentframe()
            caller = frame.f_back.f_locals.get("self") if frame is not None and frame.f_back is not None else None
            if isinstance(caller, logging.Handler):
                self.handler = caller

        message = self.base.format(self.hang_continuation_lines(record))
        extra = record_extra(record)
        if not extra:
            return message

        rendered = json.dumps(extra, default=encode_lenient, indent=4 if self.indent else None)
        if self.colorize():
            rendered = pygments.highlight(  # pyright: ignore [reportUnknownMemberType]
                rendered, JsonLexer(), Terminal256Formatter(style=self.pyg_style)
            ).strip()
        return f"{message} {rendered}"

    def hang_continuation_lines(self, record: logging.LogRecord) -> logging.LogRecord:
        """Indent the lines of a multi-line message to start under its first line."""
        msg = record.getMessage()
        if "\n" not in msg:
            return record

        first, rest = msg.split("\n", 1)
        probe = logging.makeLogRecord(
            {**record.__dict__, "msg": first, "args": None, "exc_info": None, "exc_text": None}
        )
        width = max(_ansi_escape.sub("", self.base.format(probe)).rfind(first), 0)
        hung = first + "\n" + textwrap.indent(rest, " " * width)
        return logging.makeLogRecord({**record.__dict__, "msg": hung, "args": None})

    def colorize(self) -> bool:
        if getattr(self.base, "no_color", False):
            return False
        isatty = getattr(getattr(self.handler, "stream", None), "isatty", None)
        return bool(isatty is not None and isatty())

    def __getattr__(self, name: str) -> t.Any:
        return getattr(self.base, name)
