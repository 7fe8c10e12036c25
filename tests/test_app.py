import app
from catalog import storage


def test_startup_imports_and_reports_ready(snacks_path, db_path):
    assert app.run_startup(snacks_path, db_path) == 0
    assert storage.is_data_loaded(db_path)
    # second start is a skip, still healthy
    assert app.run_startup(snacks_path, db_path) == 0


def test_startup_surfaces_import_failure(write_catalog, db_path, caplog):
    bad = write_catalog("{broken")
    assert app.run_startup(bad, db_path) == 1
    assert "Catalog import failed" in caplog.text


def test_startup_with_empty_catalog_fails(write_catalog, db_path):
    empty = write_catalog({"status": True, "message": "", "error": None, "categories": []})
    assert app.run_startup(empty, db_path) == 1


def test_reset(snacks_path, db_path):
    app.run_startup(snacks_path, db_path)
    assert app.run_reset(db_path) == 0
    assert not storage.is_data_loaded(db_path)
