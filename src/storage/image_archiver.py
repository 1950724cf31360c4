# src/storage/image_archiver.py

"""Download product images into the local public/images directory."""

import hashlib
import os
import re
from pathlib import Path
from urllib.parse import urljoin, urlparse

from src.errors import DownloadError
from src.upstream.base_client import BaseClient, is_success

_KNOWN_EXTENSIONS = (".png", ".webp", ".jpeg", ".jpg")
_DEFAULT_EXTENSION = ".jpg"
_FILENAME_PREFIX_LIMIT = 40
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_\-]")


def infer_extension(url: str) -> str:
    """Image extension from the URL path, case-insensitive, default .jpg."""
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return _DEFAULT_EXTENSION
    for ext in _KNOWN_EXTENSIONS:
        if path.endswith(ext):
            return ext
    return _DEFAULT_EXTENSION


def sanitize_title(title: str | None) -> str:
    """ASCII-safe filename prefix derived from a product title."""
    safe = re.sub(r"\s+", "_", str(title or "product"))
    safe = _UNSAFE_CHARS.sub("", safe)
    return safe[:_FILENAME_PREFIX_LIMIT]


def filename_id(product_id: object, image_url: str) -> str:
    """Filename-safe product id.

    Ids lose every character outside ``[A-Za-z0-9_-]``.  A missing id, or
    one with nothing safe left, becomes a short hash of the image URL.
    """
    safe = "" if product_id is None else _UNSAFE_CHARS.sub("", str(product_id))
    if safe:
        return safe
    return hashlib.sha1(image_url.encode("utf-8")).hexdigest()[:12]


def build_filename(title: str | None, product_id: object, image_url: str) -> str:
    """Deterministic archive filename: ``<title-prefix>_<id><ext>``."""
    return (
        f"{sanitize_title(title)}_{filename_id(product_id, image_url)}"
        f"{infer_extension(image_url)}"
    )


class ImageArchiver(BaseClient):
    """Fetch images with a single redirect hop and skip existing files."""

    def __init__(self, images_dir: Path | None = None) -> None:
        super().__init__("archiver")
        self.images_dir: Path = images_dir or self.settings.IMAGES_DIR
        self.images_dir.mkdir(parents=True, exist_ok=True)

    def archive(self, image_url: str, destination: Path) -> bool:
        """Download *image_url* to *destination*.

        Returns ``True`` when a download happened and ``False`` when the
        file already existed.  Raises :class:`DownloadError` on a non-2xx
        final status or a network failure; no partial file is left behind.
        """
        if destination.exists():
            self.logger.debug("[skip] already archived %s", destination.name)
            return False

        try:
            resp = self.session.get(
                image_url,
                allow_redirects=False,
                timeout=self._request_timeout,
            )
            location = resp.headers.get("location") or resp.headers.get("Location")
            if 300 <= resp.status_code < 400 and location:
                target = urljoin(image_url, location)
                self.logger.debug("[archiver] redirect %s -> %s", image_url, target)
                resp = self.session.get(
                    target,
                    allow_redirects=False,
                    timeout=self._request_timeout,
                )
        except Exception as exc:
            raise DownloadError(f"Image request failed for {image_url}: {exc}") from exc

        if not is_success(resp.status_code):
            raise DownloadError(f"Image HTTP {resp.status_code} for {image_url}")

        partial = destination.with_name(destination.name + ".part")
        try:
            partial.write_bytes(resp.content)
            os.replace(partial, destination)
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise DownloadError(f"Cannot write {destination}: {exc}") from exc

        self.logger.info("[download] %s -> images/%s", image_url, destination.name)
        return True

    def archive_for(self, title: str, product_id: object, image_url: str) -> str:
        """Archive a product image and return its filename."""
        filename = build_filename(title, product_id, image_url)
        self.archive(image_url, self.images_dir / filename)
        return filename
