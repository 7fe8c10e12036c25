import os
from typing import Optional

from catalog import storage
from catalog.browse import Catalog
from catalog.errors import CatalogStorageError
from catalog.importer import ImportStatus, import_if_needed, reset_catalog
from catalog.logger import get_logger

logger = get_logger(__name__)

MODE = os.getenv("MODE", "start").lower()  # "start" or "reset"


def run_startup(
    catalog_path: Optional[str] = None, db_path: Optional[str] = None
) -> int:
    result = import_if_needed(catalog_path, db_path)
    if result.status is ImportStatus.FAILED:
        logger.error(
            "Catalog import failed (%s): %s. The catalog will be empty until this is fixed.",
            result.error_kind, result.error,
        )
        return 1

    try:
        catalog = Catalog.load(db_path)
    except CatalogStorageError as e:
        logger.error("Failed to read catalog: %s", e)
        return 1

    if catalog.is_empty:
        logger.error("Catalog is empty (db=%s).", db_path or storage.DB_PATH)
        return 1

    for cat in catalog.categories:
        logger.debug("Category %d '%s': %d items", cat.id, cat.name, len(catalog.items_for(cat)))

    logger.info(
        "Catalog ready: %d categories, %d items (%s).",
        len(catalog.categories), len(catalog.items_by_id), result.status.value,
    )
    return 0


def run_reset(db_path: Optional[str] = None) -> int:
    try:
        reset_catalog(db_path)
    except CatalogStorageError as e:
        logger.error("Failed to reset catalog: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    try:
        if MODE == "reset":
            raise SystemExit(run_reset())
        raise SystemExit(run_startup())
    except Exception as e:
        logger.exception("Fatal startup error: %s", e)
        raise SystemExit(2)
