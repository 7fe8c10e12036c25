# catalog/__init__.py
from .browse import Catalog
from .errors import CatalogDecodeError, CatalogError, CatalogStorageError
from .importer import ImportResult, ImportStatus, import_if_needed, reset_catalog
from .models import Category, Item

__all__ = [
    "Catalog",
    "Category",
    "CatalogDecodeError",
    "CatalogError",
    "CatalogStorageError",
    "ImportResult",
    "ImportStatus",
    "Item",
    "import_if_needed",
    "reset_catalog",
]
