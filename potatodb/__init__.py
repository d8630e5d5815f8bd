from .database import PotatoDB, create_database
from .errors import PotatoError, StorageError, ValidationError
from .farm import Farm
from .progress import console_printer
from .query import Predicate, QueryDocument
from .results import PotatoArray
from .update import Transform, UpdateDocument

__all__ = [
    "PotatoDB",
    "create_database",
    "Farm",
    "PotatoArray",
    "PotatoError",
    "ValidationError",
    "StorageError",
    "Predicate",
    "QueryDocument",
    "Transform",
    "UpdateDocument",
    "console_printer",
]
