# src/filters/product_normalizer.py

"""Map heterogeneous Youzan list items onto the Product model."""

import logging
import re
from collections.abc import Sequence
from typing import Any
from urllib.parse import parse_qs, urlparse

from src.config.settings import Settings
from src.models.product import Product

logger = logging.getLogger("drink_picker.filters")

_ALIAS_RE = re.compile(r"alias=([a-zA-Z0-9]+)")

ID_KEYS = ["id", "item_id", "goods_id"]
TITLE_KEYS = ["title", "name", "alias"]
DESC_KEYS = ["desc", "description"]
URL_KEYS = ["productUrl", "url", "detail_url"]
IMAGE_KEYS = ["imageUrl", "image", "image_url", "thumb_url"]
PRICE_KEYS = ["price", "price_display"]


def pick(obj: Any, keys: Sequence[str], default: Any = None) -> Any:
    """Return the value of the first key present and not ``None``."""
    if not isinstance(obj, dict):
        return default
    for key in keys:
        value = obj.get(key)
        if value is not None:
            return value
    return default


def alias_from_url(product_url: str) -> str:
    """Pull the ``alias`` query parameter out of a product URL."""
    if not product_url:
        return ""
    try:
        values = parse_qs(urlparse(product_url).query).get("alias")
        if values and values[0]:
            return values[0]
    except ValueError:
        pass
    match = _ALIAS_RE.search(product_url)
    return match.group(1) if match else ""


class ProductNormalizer:
    """Normalize raw listing items into :class:`Product` objects."""

    @staticmethod
    def normalize(raw: dict[str, Any]) -> Product:
        """Map one raw item, applying per-field aliases and defaults."""
        title = str(pick(raw, TITLE_KEYS, "")).strip()
        product_url = str(pick(raw, URL_KEYS, "") or "")
        alias = str(pick(raw, ["alias"], "") or "")
        if not alias:
            alias = alias_from_url(product_url)

        return Product(
            id=pick(raw, ID_KEYS),
            title=title or Settings.DEFAULT_TITLE,
            desc=str(pick(raw, DESC_KEYS, "") or ""),
            product_url=product_url,
            image_url=str(pick(raw, IMAGE_KEYS, "") or ""),
            price=pick(raw, PRICE_KEYS),
            alias=alias,
        )

    @classmethod
    def normalize_all(cls, items: list[Any]) -> list[Product]:
        """Normalize a page of items, skipping non-object entries."""
        products: list[Product] = []
        skipped = 0
        for item in items:
            if not isinstance(item, dict):
                skipped += 1
                continue
            products.append(cls.normalize(item))
        if skipped:
            logger.debug("Skipped %d non-object list items", skipped)
        return products
