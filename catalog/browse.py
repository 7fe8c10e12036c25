# catalog/browse.py
from typing import Dict, List, Optional

from . import storage
from .models import Category, Item


class Catalog:
    """
    Read-only view of the imported catalog.
    Built once from storage with explicit category -> item indexes.
    """

    def __init__(self, categories: List[Category], items: List[Item]):
        self._categories = sorted(categories, key=lambda c: c.id)
        self._categories_by_id: Dict[int, Category] = {c.id: c for c in self._categories}
        self.items_by_id: Dict[int, Item] = {it.id: it for it in items}
        self.category_items: Dict[int, List[int]] = {c.id: [] for c in self._categories}
        for it in sorted(items, key=lambda i: i.id):
            self.category_items.setdefault(it.category_id, []).append(it.id)

    @classmethod
    def load(cls, db_path: Optional[str] = None) -> "Catalog":
        return cls(storage.get_categories(db_path), storage.get_items(db_path))

    @property
    def categories(self) -> List[Category]:
        return list(self._categories)

    @property
    def is_empty(self) -> bool:
        return not self._categories

    def items_for(self, category: Category) -> List[Item]:
        return [self.items_by_id[iid] for iid in self.category_items.get(category.id, [])]

    def item(self, item_id: int) -> Item:
        return self.items_by_id[item_id]

    def category_of(self, item: Item) -> Category:
        return self._categories_by_id[item.category_id]

    def filter_categories(self, text: str) -> List[Category]:
        """Categories whose name, or any of whose item names, contain `text` (case-insensitive)."""
        needle = (text or "").strip().casefold()
        if not needle:
            return self.categories
        out = []
        for cat in self._categories:
            if needle in cat.name.casefold() or any(
                needle in it.name.casefold() for it in self.items_for(cat)
            ):
                out.append(cat)
        return out
