__all__ = ["GradebookContainer", "GradingContainer", "StorageContainer"]

from .gradebook import GradebookContainer
from .grading import GradingContainer
from .storage import StorageContainer
