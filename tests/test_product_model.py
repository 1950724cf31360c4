# tests/test_product_model.py

"""Tests for the Product / CatalogEntry / SyncStatus dataclasses."""

import unittest

from src.models.product import CatalogEntry, Product
from src.models.sync_status import SyncOutcome, SyncStatus


class TestProductModel(unittest.TestCase):
    """Product dataclass unit tests."""

    def test_defaults(self) -> None:
        """Optional fields default to empty values."""
        product = Product(id=1, title="X")
        self.assertEqual(product.desc, "")
        self.assertEqual(product.product_url, "")
        self.assertEqual(product.image_url, "")
        self.assertIsNone(product.price)
        self.assertEqual(product.alias, "")

    def test_equality(self) -> None:
        """Two products with identical fields are equal."""
        a = Product(id=1, title="A", image_url="https://x/a.jpg")
        b = Product(id=1, title="A", image_url="https://x/a.jpg")
        self.assertEqual(a, b)


class TestCatalogEntry(unittest.TestCase):
    """CatalogEntry serialisation."""

    def _product(self, **overrides: object) -> Product:
        fields: dict[str, object] = {
            "id": 7,
            "title": "Stout",
            "desc": "Roasty",
            "product_url": "https://shop/x?alias=abc",
            "image_url": "https://img/stout.png",
            "alias": "abc",
        }
        fields.update(overrides)
        return Product(**fields)  # type: ignore[arg-type]

    def test_to_dict_uses_camel_case_keys(self) -> None:
        """Persisted keys match what the frontend reads."""
        data = CatalogEntry(
            self._product(), filename="Stout_7.png", mini_program_url="https://l"
        ).to_dict()
        self.assertEqual(
            list(data),
            [
                "id", "title", "desc", "productUrl", "imageUrl",
                "filename", "alias", "miniProgramUrl",
            ],
        )
        self.assertEqual(data["filename"], "Stout_7.png")
        self.assertEqual(data["miniProgramUrl"], "https://l")

    def test_failed_download_omits_filename(self) -> None:
        """No filename key when the image was not archived."""
        data = CatalogEntry(self._product()).to_dict()
        self.assertNotIn("filename", data)
        self.assertEqual(data["miniProgramUrl"], "")

    def test_price_and_alias_only_when_present(self) -> None:
        """Optional upstream fields are written only when known."""
        data = CatalogEntry(self._product(alias="", price=None)).to_dict()
        self.assertNotIn("alias", data)
        self.assertNotIn("price", data)

        priced = CatalogEntry(self._product(price="29.90")).to_dict()
        self.assertEqual(priced["price"], "29.90")


class TestSyncStatus(unittest.TestCase):
    """SyncStatus / SyncOutcome serialisation."""

    def test_initial_status(self) -> None:
        """A fresh status is idle with nothing recorded."""
        self.assertEqual(
            SyncStatus().to_dict(),
            {
                "inProgress": False,
                "lastRunAt": None,
                "lastSuccessAt": None,
                "lastError": None,
                "lastCount": None,
            },
        )

    def test_outcome_skip_shape(self) -> None:
        """Skips carry ok/count/reason only."""
        outcome = SyncOutcome(ok=False, reason="nothing")
        self.assertEqual(
            outcome.to_dict(), {"ok": False, "count": 0, "reason": "nothing"}
        )

    def test_outcome_success_shape(self) -> None:
        """Successes carry ok/count only."""
        self.assertEqual(
            SyncOutcome(ok=True, count=3).to_dict(), {"ok": True, "count": 3}
        )


if __name__ == "__main__":
    unittest.main()
