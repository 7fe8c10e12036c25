# catalog/models.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional


@dataclass(frozen=True)
class Category:
    id: int
    name: str


@dataclass(frozen=True)
class Item:
    """
    A catalog item as persisted after import.
    Prices are stored in cents; `price` gives the Decimal amount.
    Items compare by id only, so cart and favorites lookups survive re-reads.
    """
    id: int
    name: str = field(compare=False)
    icon: str = field(default="", compare=False)
    price_cents: int = field(default=0, compare=False)
    category_id: int = field(default=0, compare=False)

    @property
    def price(self) -> Decimal:
        return Decimal(self.price_cents) / 100


# Shapes of the bundled catalog file, before they are persisted.


@dataclass
class ItemRecord:
    id: int
    name: str
    icon: str
    price_cents: int


@dataclass
class CategoryRecord:
    id: int
    name: str
    items: List[ItemRecord] = field(default_factory=list)


@dataclass
class CatalogFile:
    status: bool
    message: str
    error: Optional[str]
    categories: List[CategoryRecord] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(len(c.items) for c in self.categories)
