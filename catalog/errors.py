# catalog/errors.py


class CatalogError(Exception):
    """Generic catalog error."""


class CatalogDecodeError(CatalogError):
    """Bundled catalog file is missing, malformed, or does not match the schema."""


class CatalogStorageError(CatalogError):
    """The catalog database could not be opened, read, or written."""
