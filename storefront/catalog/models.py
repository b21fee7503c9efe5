"""Catalog models - read-only product data consumed by the cart core."""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from storefront.services.money import to_decimal


class Product(BaseModel):
    """Product model."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    name: str
    description: str = ""
    slug: str = ""
    price: Decimal
    category_id: int
    image: Optional[str] = None
    rating: float = 5.0
    featured: bool = False

    @field_validator("price", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)

    @field_validator("price")
    @classmethod
    def price_not_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("price must be non-negative")
        return v

    def to_dict(self) -> dict:
        """Serialize for API responses (price as float)."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "slug": self.slug,
            "price": float(self.price),
            "category_id": self.category_id,
            "image": self.image,
            "rating": self.rating,
            "featured": self.featured,
        }
