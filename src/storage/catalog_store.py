# src/storage/catalog_store.py

"""Persist and serve the local product catalog JSON."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from src.config.settings import Settings
from src.models.product import CatalogEntry

logger = logging.getLogger("drink_picker.catalog")

EMPTY_SKIP_REASON = "no valid products to write"


@dataclass
class WriteResult:
    """Outcome of a catalog write."""

    ok: bool
    count: int
    reason: str = ""


def _read_products_doc(path: Path) -> dict[str, Any] | None:
    """Load ``{"products": [...]}`` from *path*, or ``None``."""
    try:
        with open(path, encoding="utf-8") as f:
            doc = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.warning("Cannot read catalog %s: %s", path, exc)
        return None
    if isinstance(doc, dict) and isinstance(doc.get("products"), list):
        return doc
    logger.warning("Catalog %s has no products list", path)
    return None


class CatalogStore:
    """Full-replace JSON catalog with a bundled sample fallback."""

    def __init__(
        self,
        catalog_path: Path | None = None,
        sample_path: Path | None = None,
    ) -> None:
        self.catalog_path: Path = catalog_path or Settings.CATALOG_PATH
        self.sample_path: Path = sample_path or Settings.SAMPLE_CATALOG_PATH
        self.catalog_path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("CatalogStore initialised — catalog=%s", self.catalog_path)

    def write(self, entries: list[CatalogEntry]) -> WriteResult:
        """Replace the catalog with *entries*.

        An empty list is skipped so a transient upstream outage never
        clobbers a previously good catalog.
        """
        if not entries:
            logger.warning("Catalog write skipped: %s", EMPTY_SKIP_REASON)
            return WriteResult(ok=False, count=0, reason=EMPTY_SKIP_REASON)

        data = {"products": [e.to_dict() for e in entries]}
        fd, tmp_name = tempfile.mkstemp(
            dir=self.catalog_path.parent,
            prefix=f".{self.catalog_path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.catalog_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(
            "Wrote %d catalog entries to %s", len(entries), self.catalog_path
        )
        return WriteResult(ok=True, count=len(entries))

    def load(self) -> dict[str, Any]:
        """Persisted catalog if non-empty, else the sample, else empty."""
        doc = _read_products_doc(self.catalog_path)
        if doc is not None and doc["products"]:
            return doc

        sample = _read_products_doc(self.sample_path)
        if sample is not None:
            logger.debug("Serving sample catalog from %s", self.sample_path)
            return sample
        return {"products": []}

    def updated_at(self) -> int | None:
        """Catalog file mtime in epoch milliseconds, if it exists."""
        try:
            return int(self.catalog_path.stat().st_mtime * 1000)
        except FileNotFoundError:
            return None
