"""Pytest fixtures for catalog import and cart tests."""

import json

import pytest

from cart.store import CartStore
from catalog.models import Item

SNACKS_CATALOG = {
    "status": True,
    "message": "ok",
    "error": None,
    "categories": [
        {
            "id": 1,
            "name": "Snacks",
            "items": [
                {"id": 11, "name": "Soda", "icon": "soda.png", "price": 30.0},
                {"id": 10, "name": "Chips", "icon": "chips.png", "price": 50.0},
            ],
        }
    ],
}


@pytest.fixture
def write_catalog(tmp_path):
    """Write a catalog payload (dict or raw text) and return its path."""

    def _write(payload, name="shopping.json"):
        path = tmp_path / name
        text = payload if isinstance(payload, str) else json.dumps(payload)
        path.write_text(text, encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def snacks_path(write_catalog):
    return write_catalog(SNACKS_CATALOG)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "db" / "catalog.sqlite3")


@pytest.fixture
def chips():
    return Item(id=10, name="Chips", icon="chips.png", price_cents=5000, category_id=1)


@pytest.fixture
def soda():
    return Item(id=11, name="Soda", icon="soda.png", price_cents=3000, category_id=1)


@pytest.fixture
def store():
    return CartStore()
