import importlib
import sqlite3
import threading
import warnings

import pytest

from catalog import storage
from catalog.errors import CatalogStorageError
from catalog.models import Category, Item


@pytest.fixture
def fresh_db(db_path):
    storage.ensure_db(db_path)
    return db_path


def test_flag_defaults_to_false_and_persists(fresh_db):
    assert storage.is_data_loaded(fresh_db) is False
    storage.set_data_loaded(True, fresh_db)
    assert storage.is_data_loaded(fresh_db) is True
    storage.clear_data_loaded(fresh_db)
    assert storage.is_data_loaded(fresh_db) is False


def test_save_and_read_back(fresh_db):
    cats = [Category(2, "Dairy"), Category(1, "Snacks")]
    items = [
        Item(id=21, name="Yogurt", icon="y.png", price_cents=8525, category_id=2),
        Item(id=11, name="Soda", icon="s.png", price_cents=3000, category_id=1),
        Item(id=10, name="Chips", icon="c.png", price_cents=5000, category_id=1),
    ]
    assert storage.save_catalog(cats, items, fresh_db) == (2, 3)

    assert [c.name for c in storage.get_categories(fresh_db)] == ["Snacks", "Dairy"]
    snacks = storage.get_items_for_category(1, fresh_db)
    assert [it.id for it in snacks] == [10, 11]
    assert snacks[0].price_cents == 5000
    assert snacks[0].icon == "c.png"
    assert storage.is_data_loaded(fresh_db)


def test_save_is_all_or_nothing_on_constraint_violation(fresh_db):
    cats = [Category(1, "Snacks")]
    items = [
        Item(id=10, name="Chips", price_cents=5000, category_id=1),
        Item(id=11, name="Broken", price_cents=-1, category_id=1),
    ]
    with pytest.raises(CatalogStorageError):
        storage.save_catalog(cats, items, fresh_db)

    assert storage.catalog_counts(fresh_db) == (0, 0)
    assert storage.is_data_loaded(fresh_db) is False


def test_item_must_reference_existing_category(fresh_db):
    with pytest.raises(CatalogStorageError):
        storage.save_catalog([], [Item(id=1, name="Orphan", category_id=99)], fresh_db)
    assert storage.catalog_counts(fresh_db) == (0, 0)


def test_resave_overwrites_rows(fresh_db):
    storage.save_catalog([Category(1, "Snacks")], [Item(id=10, name="Chips", price_cents=5000, category_id=1)], fresh_db)
    storage.save_catalog([Category(1, "Snacks & Co")], [Item(id=10, name="Chips", price_cents=5500, category_id=1)], fresh_db)
    assert storage.catalog_counts(fresh_db) == (1, 1)
    assert storage.get_items(fresh_db)[0].price_cents == 5500
    assert storage.get_categories(fresh_db)[0].name == "Snacks & Co"


def test_clear_catalog(fresh_db):
    storage.save_catalog([Category(1, "Snacks")], [Item(id=10, name="Chips", category_id=1)], fresh_db)
    storage.clear_catalog(fresh_db)
    assert storage.catalog_counts(fresh_db) == (0, 0)
    assert storage.get_setting(storage.IMPORTED_AT_KEY, fresh_db) is None


def test_reads_before_ensure_db_raise_storage_error(db_path):
    with pytest.raises(CatalogStorageError):
        storage.get_categories(db_path)


@pytest.fixture
def locked_db(fresh_db, monkeypatch):
    """Hold an exclusive lock on the catalog db from a second connection."""
    monkeypatch.setattr(storage, "DB_TIMEOUT", 0.05)
    holder = sqlite3.connect(fresh_db, isolation_level=None, check_same_thread=False)
    holder.execute("BEGIN EXCLUSIVE")
    yield fresh_db, holder
    if holder.in_transaction:
        holder.execute("ROLLBACK")
    holder.close()


def test_save_rides_out_a_briefly_held_lock(locked_db, caplog):
    db_path, holder = locked_db
    release = threading.Timer(0.3, lambda: holder.execute("COMMIT"))
    release.start()
    try:
        storage.save_catalog(
            [Category(1, "Snacks")],
            [Item(id=10, name="Chips", price_cents=5000, category_id=1)],
            db_path,
        )
    finally:
        release.join()

    assert storage.catalog_counts(db_path) == (1, 1)
    assert storage.is_data_loaded(db_path)
    assert "Catalog db busy" in caplog.text


def test_lock_never_released_surfaces_storage_error(locked_db):
    db_path, _ = locked_db
    with pytest.raises(CatalogStorageError, match="locked"):
        storage.clear_catalog(db_path)


def test_missing_table_is_not_retried(db_path, monkeypatch):
    calls = []
    real_connect = storage._connect

    def counting_connect(path):
        calls.append(path)
        return real_connect(path)

    monkeypatch.setattr(storage, "_connect", counting_connect)
    with pytest.raises(CatalogStorageError):
        storage.get_items(db_path)
    assert len(calls) == 1


def test_out_of_range_values_surface_as_storage_error(fresh_db):
    with pytest.raises(CatalogStorageError):
        storage.save_catalog([Category(2**63, "Huge")], [], fresh_db)
    assert storage.catalog_counts(fresh_db) == (0, 0)


def test_retry_policy_builds_without_deprecation_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        importlib.reload(storage)
