"""
Product catalog operations on top of the record store.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from megumi.db import ProductRecord
from megumi.errors import InvalidField, MissingField, NotFound
from megumi.store import RecordStore

# Request field name -> record attribute.
UPDATABLE_FIELDS = {
    "name": "name",
    "category": "category",
    "price": "price",
    "description": "description",
    "imageUrl": "image_url",
    "image_url": "image_url",
}

PRODUCT_NOT_FOUND = "Product not found."


def parse_price(value: Any) -> Optional[float]:
    """Coerce a submitted price to a non-negative float, or None when blank."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidField("Price must be a number.")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        price = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidField("Price must be a number.") from exc
    if math.isnan(price) or math.isinf(price) or price < 0:
        raise InvalidField("Price must be a non-negative number.")
    return price


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class CatalogService:
    def __init__(self, store: RecordStore):
        self.store = store

    def create(self, fields: dict) -> ProductRecord:
        name = fields.get("name")
        category = fields.get("category")
        if not name or not category:
            raise MissingField("Name and category are required.")

        product = ProductRecord(
            name=str(name),
            category=str(category),
            price=parse_price(fields.get("price")),
            description=_text(fields.get("description")),
            image_url=_text(fields.get("imageUrl", fields.get("image_url"))),
        )
        return self.store.products.insert(product)

    def list(self, category: Optional[str] = None) -> list[ProductRecord]:
        return self.store.products.find(category or None)

    def get(self, product_id: str) -> ProductRecord:
        product = self.store.products.get(product_id)
        if product is None:
            raise NotFound(PRODUCT_NOT_FOUND)
        return product

    def update(self, product_id: str, fields: dict) -> ProductRecord:
        changes: dict = {}
        for key, value in fields.items():
            attr = UPDATABLE_FIELDS.get(key)
            if attr is None:
                continue
            if attr in ("name", "category"):
                if not value:
                    raise InvalidField(f"{key} cannot be empty.")
                changes[attr] = str(value)
            elif attr == "price":
                changes[attr] = parse_price(value)
            else:
                changes[attr] = _text(value)

        product = self.store.products.update(product_id, changes)
        if product is None:
            raise NotFound(PRODUCT_NOT_FOUND)
        return product

    def delete(self, product_id: str) -> None:
        if not self.store.products.delete(product_id):
            raise NotFound(PRODUCT_NOT_FOUND)
