"""Catalog package exports."""

from .models import Catalog, CatalogItem, Category, Modifier
from .provider import (
    CatalogProvider,
    DEFAULT_ITEMS,
    DEFAULT_MODIFIERS,
    JsonCatalogProvider,
    StaticCatalogProvider,
    provider_for,
)

__all__ = [
    "Catalog",
    "CatalogItem",
    "Category",
    "Modifier",
    "CatalogProvider",
    "DEFAULT_ITEMS",
    "DEFAULT_MODIFIERS",
    "JsonCatalogProvider",
    "StaticCatalogProvider",
    "provider_for",
]
