"""Catalog package: product model and read-only lookup."""
from .models import Product
from .memory import Catalog, InMemoryCatalog, DEFAULT_PRODUCTS

__all__ = [
    "Product",
    "Catalog",
    "InMemoryCatalog",
    "DEFAULT_PRODUCTS",
]
