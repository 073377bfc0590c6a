__all__ = [
    "AuditSettings",
    "GradingSettings",
    "LoggingSettings",
    "Secrets",
    "Settings",
    "StorageSettings",
]


from .grading import AuditSettings, GradingSettings
from .logging import LoggingSettings
from .secrets import Secrets
from .settings import Settings
from .storage import StorageSettings
