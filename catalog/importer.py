# catalog/importer.py
import json
import os
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from . import storage
from .errors import CatalogDecodeError, CatalogError, CatalogStorageError
from .logger import get_logger
from .models import CatalogFile, Category, CategoryRecord, Item, ItemRecord

logger = get_logger(__name__)

BUNDLED_CATALOG = Path(__file__).resolve().parent / "data" / "shopping.json"
CATALOG_PATH = os.getenv("CATALOG_PATH", str(BUNDLED_CATALOG))

_CENT = Decimal("0.01")
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ImportStatus(str, Enum):
    IMPORTED = "imported"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ImportResult:
    status: ImportStatus
    categories: int = 0
    items: int = 0
    error_kind: Optional[str] = None  # "decode" | "storage"
    error: Optional[CatalogError] = None

    @property
    def ok(self) -> bool:
        return self.status is not ImportStatus.FAILED


def _require(obj: Dict[str, Any], key: str, where: str) -> Any:
    if key not in obj:
        raise CatalogDecodeError(f"{where}: missing '{key}'")
    return obj[key]


def _as_int(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise CatalogDecodeError(f"{where}: expected integer, got {value!r}")
    if not INT64_MIN <= value <= INT64_MAX:
        raise CatalogDecodeError(f"{where}: {value} is outside the 64-bit integer range")
    return value


def _as_str(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise CatalogDecodeError(f"{where}: expected string, got {value!r}")
    return value


def price_to_cents(value: Any, where: str = "price") -> int:
    """Convert a JSON number in major units to integer cents (half-up)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CatalogDecodeError(f"{where}: expected number, got {value!r}")
    try:
        amount = Decimal(str(value))
        if not amount.is_finite() or amount < 0:
            raise CatalogDecodeError(
                f"{where}: price must be a non-negative number, got {value!r}"
            )
        cents = amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100
    except InvalidOperation as e:
        raise CatalogDecodeError(f"{where}: invalid number {value!r}") from e
    if cents > INT64_MAX:
        raise CatalogDecodeError(f"{where}: price {value!r} is too large")
    if cents / 100 != amount:
        logger.warning("%s: price %s rounded to %s.", where, value, cents / 100)
    return int(cents.to_integral_value())


def _decode_item(raw: Any, where: str) -> ItemRecord:
    if not isinstance(raw, dict):
        raise CatalogDecodeError(f"{where}: expected object")
    return ItemRecord(
        id=_as_int(_require(raw, "id", where), f"{where}.id"),
        name=_as_str(_require(raw, "name", where), f"{where}.name"),
        icon=_as_str(_require(raw, "icon", where), f"{where}.icon"),
        price_cents=price_to_cents(_require(raw, "price", where), f"{where}.price"),
    )


def _decode_category(raw: Any, where: str) -> CategoryRecord:
    if not isinstance(raw, dict):
        raise CatalogDecodeError(f"{where}: expected object")
    raw_items = _require(raw, "items", where)
    if not isinstance(raw_items, list):
        raise CatalogDecodeError(f"{where}.items: expected list")
    return CategoryRecord(
        id=_as_int(_require(raw, "id", where), f"{where}.id"),
        name=_as_str(_require(raw, "name", where), f"{where}.name"),
        items=[
            _decode_item(it, f"{where}.items[{i}]") for i, it in enumerate(raw_items)
        ],
    )


def decode_catalog(text: str) -> CatalogFile:
    """
    Decode the bundled catalog JSON.

    Expected shape:
      {"status": bool, "message": str, "error": str|null,
       "categories": [{"id", "name", "items": [{"id", "name", "icon", "price"}]}]}

    Raises CatalogDecodeError on malformed JSON, wrong types, negative prices
    or duplicate category/item ids.
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise CatalogDecodeError(f"Catalog is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise CatalogDecodeError("Catalog must be a JSON object.")

    status = _require(data, "status", "catalog")
    if not isinstance(status, bool):
        raise CatalogDecodeError(f"catalog.status: expected boolean, got {status!r}")
    message = _as_str(_require(data, "message", "catalog"), "catalog.message")
    error = data.get("error")
    if error is not None:
        error = _as_str(error, "catalog.error")

    raw_categories = _require(data, "categories", "catalog")
    if not isinstance(raw_categories, list):
        raise CatalogDecodeError("catalog.categories: expected list")

    categories = [
        _decode_category(c, f"categories[{i}]") for i, c in enumerate(raw_categories)
    ]

    seen_categories = set()
    seen_items = set()
    for cat in categories:
        if cat.id in seen_categories:
            raise CatalogDecodeError(f"Duplicate category id {cat.id}")
        seen_categories.add(cat.id)
        for it in cat.items:
            if it.id in seen_items:
                raise CatalogDecodeError(f"Duplicate item id {it.id}")
            seen_items.add(it.id)

    return CatalogFile(status=status, message=message, error=error, categories=categories)


def load_catalog_file(path: Optional[str] = None) -> CatalogFile:
    path = path or CATALOG_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise CatalogDecodeError(f"Failed to read catalog file {path}: {e}") from e
    return decode_catalog(text)


def to_records(catalog: CatalogFile) -> Tuple[List[Category], List[Item]]:
    """Flatten the decoded file into rows, linking each item to its category."""
    categories: List[Category] = []
    items: List[Item] = []
    for cat in catalog.categories:
        categories.append(Category(id=cat.id, name=cat.name))
        for it in cat.items:
            items.append(
                Item(
                    id=it.id,
                    name=it.name,
                    icon=it.icon,
                    price_cents=it.price_cents,
                    category_id=cat.id,
                )
            )
    return categories, items


def import_if_needed(
    catalog_path: Optional[str] = None, db_path: Optional[str] = None
) -> ImportResult:
    """
    Import the bundled catalog once.

    The loaded flag lives in the same database and is written in the same
    transaction as the rows, so a failed import leaves neither rows nor flag.
    Failures are logged and returned, never raised.
    """
    try:
        storage.ensure_db(db_path)
        if storage.is_data_loaded(db_path):
            logger.debug("Catalog already loaded; skipping import.")
            return ImportResult(status=ImportStatus.SKIPPED)
    except CatalogStorageError as e:
        logger.error("Catalog store unavailable: %s", e)
        return ImportResult(status=ImportStatus.FAILED, error_kind="storage", error=e)

    try:
        catalog = load_catalog_file(catalog_path)
    except CatalogDecodeError as e:
        logger.error("Failed to load catalog data: %s", e)
        return ImportResult(status=ImportStatus.FAILED, error_kind="decode", error=e)

    if not catalog.status:
        logger.warning(
            "Catalog file reports status=false (message=%r, error=%r); importing anyway.",
            catalog.message,
            catalog.error,
        )

    categories, items = to_records(catalog)
    try:
        n_categories, n_items = storage.save_catalog(categories, items, db_path)
    except CatalogStorageError as e:
        logger.error("Failed to save catalog: %s", e)
        return ImportResult(status=ImportStatus.FAILED, error_kind="storage", error=e)

    logger.info("Imported %d categories and %d items.", n_categories, n_items)
    return ImportResult(
        status=ImportStatus.IMPORTED, categories=n_categories, items=n_items
    )


def reset_catalog(db_path: Optional[str] = None):
    """Drop the imported catalog and clear the loaded flag to force a re-import."""
    storage.ensure_db(db_path)
    storage.clear_catalog(db_path)
    logger.info("Catalog cleared; next start will re-import.")
