# src/filters/product_validator.py

"""Product validation — drop items the catalog cannot show."""

import logging

from src.models.product import Product

logger = logging.getLogger("drink_picker.filters")


class ProductValidator:
    """Drop products missing the fields a catalog entry needs."""

    @staticmethod
    def validate(
        products: list[Product],
    ) -> tuple[list[Product], int]:
        """Drop products with an empty or whitespace image URL.

        Returns the valid products and the count of dropped items.
        """
        valid: list[Product] = []
        dropped = 0

        for product in products:
            if not product.image_url.strip():
                logger.warning(
                    "[skip] product %s has no image URL (title=%s)",
                    product.id,
                    product.title,
                )
                dropped += 1
                continue
            valid.append(product)

        if dropped:
            logger.info(
                "Validation dropped %d products without images",
                dropped,
            )

        return valid, dropped
