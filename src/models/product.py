# src/models/product.py

"""Product and catalog entry models for inter-module data flow."""

from dataclasses import dataclass
from typing import Any


@dataclass
class Product:
    """A single normalized item from the Youzan product listing."""

    id: Any
    title: str
    desc: str = ""
    product_url: str = ""
    image_url: str = ""
    price: Any = None
    alias: str = ""


@dataclass
class CatalogEntry:
    """A product as persisted in the local catalog file."""

    product: Product
    filename: str | None = None
    mini_program_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the camelCase keys the frontend reads."""
        p = self.product
        data: dict[str, Any] = {
            "id": p.id,
            "title": p.title,
            "desc": p.desc,
            "productUrl": p.product_url,
            "imageUrl": p.image_url,
        }
        if self.filename:
            data["filename"] = self.filename
        if p.alias:
            data["alias"] = p.alias
        if p.price is not None:
            data["price"] = p.price
        data["miniProgramUrl"] = self.mini_program_url
        return data
