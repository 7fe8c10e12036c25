# catalog/storage.py
import datetime
import os
import sqlite3
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

import pytz
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .errors import CatalogStorageError
from .logger import get_logger
from .models import Category, Item

logger = get_logger(__name__)

DB_PATH = os.path.expanduser(
    os.getenv("DB_PATH", "~/.shopping_catalog/catalog.sqlite3")
)
# seconds sqlite itself waits on a lock before raising "database is locked"
DB_TIMEOUT = float(os.getenv("DB_TIMEOUT", "5"))
DB_MAX_ATTEMPTS = int(os.getenv("DB_MAX_ATTEMPTS", "5"))

DATA_LOADED_KEY = "isDataLoaded"
IMPORTED_AT_KEY = "catalogImportedAt"

T = TypeVar("T")


def now_utc_iso() -> str:
    return datetime.datetime.now(tz=pytz.UTC).isoformat()


def _resolve(db_path: Optional[str]) -> str:
    return db_path or DB_PATH


def _is_transient(exc: BaseException) -> bool:
    if not isinstance(exc, sqlite3.OperationalError):
        return False
    msg = str(exc).lower()
    return "locked" in msg or "busy" in msg


def _log_retry(retry_state):
    logger.warning(
        "Catalog db busy (attempt %d): %s; retrying.",
        retry_state.attempt_number,
        retry_state.outcome.exception(),
    )


def _connect(db_path: str) -> sqlite3.Connection:
    parent = os.path.dirname(db_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    con = sqlite3.connect(db_path, timeout=DB_TIMEOUT)
    con.execute("PRAGMA foreign_keys = ON")
    return con


@retry(
    retry=retry_if_exception(_is_transient),
    wait=wait_exponential_jitter(multiplier=0.05, max=1),
    stop=stop_after_attempt(DB_MAX_ATTEMPTS),
    before_sleep=_log_retry,
    reraise=True,
)
def _transact(path: str, work: Callable[[sqlite3.Cursor], T]) -> T:
    """
    Run `work` in one transaction: commit on success, roll back on any error.
    A locked or busy database re-runs the whole unit from scratch.
    """
    con = _connect(path)
    try:
        result = work(con.cursor())
        con.commit()
        return result
    except BaseException:
        con.rollback()
        raise
    finally:
        con.close()


def _run(db_path: Optional[str], action: str, work: Callable[[sqlite3.Cursor], T]) -> T:
    path = _resolve(db_path)
    try:
        return _transact(path, work)
    except (sqlite3.Error, OSError, OverflowError) as e:
        raise CatalogStorageError(f"Failed to {action} ({path}): {e}") from e


def ensure_db(db_path: Optional[str] = None):
    def work(cur):
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS categories (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL
            )
        """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS items (
                id INTEGER PRIMARY KEY,
                category_id INTEGER NOT NULL REFERENCES categories(id),
                name TEXT NOT NULL,
                icon TEXT,
                price_cents INTEGER NOT NULL CHECK (price_cents >= 0)
            )
        """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_items_category ON items(category_id)"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT,
                updated_at TEXT
            )
        """
        )

    _run(db_path, "create catalog tables", work)


def _put_setting(cur: sqlite3.Cursor, key: str, value: Optional[str]):
    cur.execute(
        """
        INSERT INTO settings (key, value, updated_at) VALUES (?,?,?)
        ON CONFLICT(key) DO UPDATE SET
            value=excluded.value,
            updated_at=excluded.updated_at
    """,
        (key, value, now_utc_iso()),
    )


def get_setting(key: str, db_path: Optional[str] = None) -> Optional[str]:
    def work(cur):
        cur.execute("SELECT value FROM settings WHERE key=?", (key,))
        return cur.fetchone()

    row = _run(db_path, f"read setting {key}", work)
    return row[0] if row else None


def is_data_loaded(db_path: Optional[str] = None) -> bool:
    return get_setting(DATA_LOADED_KEY, db_path) == "1"


def set_data_loaded(value: bool, db_path: Optional[str] = None):
    _run(
        db_path,
        "write loaded flag",
        lambda cur: _put_setting(cur, DATA_LOADED_KEY, "1" if value else "0"),
    )


def clear_data_loaded(db_path: Optional[str] = None):
    set_data_loaded(False, db_path)


def save_catalog(
    categories: Iterable[Category],
    items: Iterable[Item],
    db_path: Optional[str] = None,
) -> Tuple[int, int]:
    """
    Persist the whole catalog and set the loaded flag in one transaction.
    Existing rows with the same id are overwritten.
    Returns (categories_written, items_written).
    """
    categories = list(categories)
    items = list(items)

    def work(cur):
        for cat in categories:
            cur.execute(
                """
                INSERT INTO categories (id, name) VALUES (?,?)
                ON CONFLICT(id) DO UPDATE SET name=excluded.name
            """,
                (cat.id, cat.name),
            )

        for it in items:
            cur.execute(
                """
                INSERT INTO items (id, category_id, name, icon, price_cents)
                VALUES (?,?,?,?,?)
                ON CONFLICT(id) DO UPDATE SET
                    category_id=excluded.category_id,
                    name=excluded.name,
                    icon=excluded.icon,
                    price_cents=excluded.price_cents
            """,
                (it.id, it.category_id, it.name, it.icon, it.price_cents),
            )

        _put_setting(cur, DATA_LOADED_KEY, "1")
        _put_setting(cur, IMPORTED_AT_KEY, now_utc_iso())

    _run(db_path, "save catalog", work)
    logger.debug("Saved %d categories and %d items.", len(categories), len(items))
    return len(categories), len(items)


def clear_catalog(db_path: Optional[str] = None):
    def work(cur):
        cur.execute("DELETE FROM items")
        cur.execute("DELETE FROM categories")
        _put_setting(cur, DATA_LOADED_KEY, "0")
        _put_setting(cur, IMPORTED_AT_KEY, None)

    _run(db_path, "clear catalog", work)


def _row_to_item(row) -> Item:
    item_id, category_id, name, icon, price_cents = row
    return Item(
        id=item_id,
        name=name,
        icon=icon or "",
        price_cents=price_cents,
        category_id=category_id,
    )


def _fetch_all(db_path: Optional[str], action: str, sql: str, params=()) -> list:
    def work(cur):
        cur.execute(sql, params)
        return cur.fetchall()

    return _run(db_path, action, work)


def get_categories(db_path: Optional[str] = None) -> List[Category]:
    rows = _fetch_all(
        db_path, "read categories", "SELECT id, name FROM categories ORDER BY id"
    )
    return [Category(id=cid, name=name) for cid, name in rows]


def get_items(db_path: Optional[str] = None) -> List[Item]:
    rows = _fetch_all(
        db_path,
        "read items",
        "SELECT id, category_id, name, icon, price_cents FROM items ORDER BY id",
    )
    return [_row_to_item(r) for r in rows]


def get_items_for_category(
    category_id: int, db_path: Optional[str] = None
) -> List[Item]:
    rows = _fetch_all(
        db_path,
        f"read items of category {category_id}",
        """
        SELECT id, category_id, name, icon, price_cents
        FROM items
        WHERE category_id=?
        ORDER BY id
    """,
        (category_id,),
    )
    return [_row_to_item(r) for r in rows]


def catalog_counts(db_path: Optional[str] = None) -> Tuple[int, int]:
    def work(cur):
        counts: Dict[str, int] = {}
        for table in ("categories", "items"):
            cur.execute(f"SELECT COUNT(*) FROM {table}")
            row = cur.fetchone()
            counts[table] = row[0] if row and row[0] is not None else 0
        return counts["categories"], counts["items"]

    return _run(db_path, "count catalog rows", work)
