import importlib
import sys
import types
import typing as t

from sqlalchemy.orm import Session, SessionTransaction, sessionmaker

__all__ = [
    "Session",
    "SessionTransaction",
    "sessionmaker",
    # Repository modules
    "audit_log",
    "course_grade",
    "grade",
]

if t.TYPE_CHECKING:
    from . import audit_log, course_grade, grade


def __getattr__(name: str) -> types.ModuleType:
    if name in __all__:
        module = importlib.import_module(f"{__name__}.{name}")
        setattr(sys.modules[__name__], name, module)
        return module
    raise AttributeError(f"module {__name__} has no attribute {name}")
