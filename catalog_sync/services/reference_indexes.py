from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ..models.parsed_row import ProductKey

if TYPE_CHECKING:
    from ..db.catalog_store import CatalogStore

"""Reference indexes built once per import.

Both indexes are read-only snapshots of the catalog as it was when the import
transaction started. They are not refreshed while rows are created, so a SKU
inserted by row 5 is still "unknown" for row 9 of the same file; the store's
unique constraint is what catches that case.
"""

__all__ = [
    "CategoryIndex",
    "ExistingProductIndex",
    "ReferenceIndexes",
    "category_key",
    "build_category_index",
    "build_existing_product_index",
    "build_reference_indexes",
    "resolve_category",
]

logger = logging.getLogger(__name__)

CategoryIndex = Mapping[str, Any]
ExistingProductIndex = Mapping[str, ProductKey]


def category_key(name: str) -> str:
    return name.strip().lower()


def build_category_index(store: CatalogStore) -> CategoryIndex:
    """Lowercased category name -> category id."""
    index: dict[str, Any] = {}
    for category_id, name in store.fetch_categories():
        if name is None:
            continue
        key = category_key(name)
        if key in index:
            # Names differing only by case are ambiguous; the first one wins
            logger.warning("duplicate category name ignored name=%r id=%s", name, category_id)
            continue
        index[key] = category_id
    return MappingProxyType(index)


def build_existing_product_index(store: CatalogStore) -> ExistingProductIndex:
    """Exact SKU -> ProductKey for every product already in the catalog."""
    index: dict[str, ProductKey] = {}
    for product_id, sku, slug in store.fetch_product_keys():
        index[sku] = ProductKey(id=product_id, slug=slug)
    return MappingProxyType(index)


def resolve_category(index: CategoryIndex, name: str | None) -> Any | None:
    if not name:
        return None
    return index.get(category_key(name))


@dataclass(frozen=True)
class ReferenceIndexes:
    categories: CategoryIndex
    products: ExistingProductIndex

    @property
    def known_skus(self) -> frozenset[str]:
        return frozenset(self.products.keys())


def build_reference_indexes(store: CatalogStore) -> ReferenceIndexes:
    categories = build_category_index(store)
    products = build_existing_product_index(store)
    logger.debug("reference indexes built categories=%d products=%d", len(categories), len(products))
    return ReferenceIndexes(categories=categories, products=products)
