__all__ = [
    "di",
    "GradebookContainer",
    "LoggingProvider",
    "Settings",
    "Secrets",
    "TimestampProvider",
]


from . import di
from .config import Secrets, Settings
from .container import GradebookContainer
from .provider import LoggingProvider, TimestampProvider
