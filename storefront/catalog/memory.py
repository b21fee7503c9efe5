"""In-memory product catalog."""
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from storefront.logging import get_logger
from .models import Product

logger = get_logger(__name__)


# Lighting collection the storefront ships with
DEFAULT_PRODUCTS = [
    {"name": "Nova Pendant Light", "description": "Modern geometric pendant with LED",
     "slug": "nova-pendant-light", "price": "249.99", "category_id": 1, "rating": 4.8, "featured": True},
    {"name": "Orbital Chandelier", "description": "Circular modern design with 8 lights",
     "slug": "orbital-chandelier", "price": "399.99", "category_id": 2, "rating": 4.9, "featured": True},
    {"name": "Lunar Wall Sconce", "description": "Minimalist swing arm wall light",
     "slug": "lunar-wall-sconce", "price": "129.99", "category_id": 3, "rating": 4.7, "featured": True},
    {"name": "Astra Floor Lamp", "description": "Adjustable angle modern floor lamp",
     "slug": "astra-floor-lamp", "price": "179.99", "category_id": 4, "rating": 4.6, "featured": True},
    {"name": "Stellar Pendant", "description": "Star-inspired hanging light fixture",
     "slug": "stellar-pendant", "price": "219.99", "category_id": 1, "rating": 4.5, "featured": False},
    {"name": "Cosmos Chandelier", "description": "Galaxy-themed chandelier with multiple lights",
     "slug": "cosmos-chandelier", "price": "499.99", "category_id": 2, "rating": 4.8, "featured": False},
    {"name": "Eclipse Sconce", "description": "Modern wall light with ambient glow",
     "slug": "eclipse-sconce", "price": "149.99", "category_id": 3, "rating": 4.6, "featured": False},
    {"name": "Nebula Floor Lamp", "description": "Cloud-like diffused lighting floor lamp",
     "slug": "nebula-floor-lamp", "price": "239.99", "category_id": 4, "rating": 4.7, "featured": False},
]


class Catalog(ABC):
    """Read-only product lookup used by the cart core."""

    @abstractmethod
    async def get_product(self, product_id: int) -> Optional[Product]:
        """Return the product or None if it does not exist."""


class InMemoryCatalog(Catalog):
    """Dict-backed catalog. Ids are assigned in insertion order starting at 1."""

    def __init__(self, products: Optional[Iterable[dict]] = None):
        self._products: dict[int, Product] = {}
        self._next_id = 1
        for data in DEFAULT_PRODUCTS if products is None else products:
            self.add_product(data)

    def add_product(self, data: dict) -> Product:
        """Add a product, assigning an id unless one is given."""
        product_id = data.get("id") or self._next_id
        product = Product(**{**data, "id": product_id})
        self._products[product.id] = product
        self._next_id = max(self._next_id, product.id + 1)
        return product

    def remove_product(self, product_id: int) -> bool:
        """Drop a product (used to simulate catalog/cart drift)."""
        removed = self._products.pop(product_id, None) is not None
        if removed:
            logger.info("Product %s removed from catalog", product_id)
        return removed

    async def get_product(self, product_id: int) -> Optional[Product]:
        return self._products.get(product_id)

    def __len__(self) -> int:
        return len(self._products)
