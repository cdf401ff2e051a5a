"""Product catalog over the flat-file store."""

import logging
import math
from pathlib import Path
from typing import Optional

from errors import NotFoundError, ValidationError
from models import Product
from store import PRODUCTS_FILE, JsonStore, new_id

logger = logging.getLogger("shopease.catalog")

SORT_ORDERS = ("featured", "price-asc", "price-desc", "name-asc", "name-desc")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_product_fields(fields: dict, partial: bool = False) -> None:
    """Raise ValidationError for fields a Product may not hold."""
    if not isinstance(fields, dict):
        raise ValidationError("Product must be a JSON object")
    if not partial or "name" in fields:
        name = fields.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Name is required")
    if not partial or "price" in fields:
        price = fields.get("price")
        if not _is_number(price) or price < 0:
            raise ValidationError("Price must be a non-negative number")
    stock = fields.get("stock")
    if stock is not None and (not isinstance(stock, int) or isinstance(stock, bool) or stock < 0):
        raise ValidationError("Stock must be a non-negative integer")
    rating = fields.get("rating")
    if rating is not None and (not _is_number(rating) or not 0 <= rating <= 5):
        raise ValidationError("Rating must be between 0 and 5")


class CatalogService:
    def __init__(self, data_dir: Path):
        self.store = JsonStore(Path(data_dir) / PRODUCTS_FILE)

    def list_products(self) -> list[dict]:
        return self.store.load()

    def get_product(self, product_id: str) -> dict:
        products = self.store.load()
        index = self.store.find_index(products, product_id)
        if index == -1:
            raise NotFoundError("Product not found")
        return products[index]

    def get_snapshot(self, product_id: str) -> Product:
        """The product as a cart entry would embed it."""
        return Product.from_dict(self.get_product(product_id))

    def create_product(self, fields: dict) -> dict:
        validate_product_fields(fields)
        products = self.store.load()
        product = {k: v for k, v in fields.items() if k != "id"}
        product["id"] = new_id()
        products.append(product)
        self.store.save(products)
        logger.info("Created product %s (%s)", product["id"], product["name"])
        return product

    def update_product(self, product_id: str, fields: dict) -> dict:
        products = self.store.load()
        index = self.store.find_index(products, product_id)
        if index == -1:
            raise NotFoundError("Product not found")
        validate_product_fields(fields, partial=True)
        products[index] = {**products[index], **fields, "id": product_id}
        self.store.save(products)
        logger.info("Updated product %s", product_id)
        return products[index]

    def delete_product(self, product_id: str) -> None:
        products = self.store.load()
        index = self.store.find_index(products, product_id)
        if index == -1:
            raise NotFoundError("Product not found")
        products.pop(index)
        self.store.save(products)
        logger.info("Deleted product %s", product_id)

    def browse(self, category: Optional[str] = None, sort: str = "featured") -> list[dict]:
        """Category filter plus one of SORT_ORDERS for the storefront grid."""
        products = [
            p for p in self.store.load()
            if not category or p.get("category") == category
        ]
        if sort == "price-asc":
            return sorted(products, key=lambda p: p.get("price", 0))
        if sort == "price-desc":
            return sorted(products, key=lambda p: p.get("price", 0), reverse=True)
        if sort == "name-asc":
            return sorted(products, key=lambda p: str(p.get("name", "")).lower())
        if sort == "name-desc":
            return sorted(products, key=lambda p: str(p.get("name", "")).lower(), reverse=True)
        # featured first, otherwise catalog order (sorted is stable)
        return sorted(products, key=lambda p: not p.get("featured", False))

    def categories(self) -> list[str]:
        return sorted({p["category"] for p in self.store.load() if p.get("category")})

    def similar_products(self, product: dict, limit: int = 4) -> list[dict]:
        """Other products in the same category."""
        if not product.get("category"):
            return []
        return [
            p for p in self.store.load()
            if p.get("category") == product["category"] and p.get("id") != product.get("id")
        ][:limit]
