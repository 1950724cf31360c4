# src/upstream/catalog_fetcher.py

"""Fetch and paginate the Youzan product listing."""

import json
import re
from typing import Any
from urllib.parse import urlparse

from curl_cffi import requests as curl_requests

from src.errors import ConfigurationError, UpstreamFetchError
from src.filters.product_normalizer import ProductNormalizer, pick
from src.models.product import Product
from src.upstream.base_client import (
    BaseClient,
    is_success,
    parse_json,
    with_query,
)
from src.upstream.token_provider import TokenProvider


def extract_list(root: Any, list_fields: list[str]) -> list[Any]:
    """Return the page of items from an unwrapped response body.

    The root itself wins when it is an array; otherwise the first array
    among *list_fields*.  Unknown shapes yield an empty page.
    """
    if isinstance(root, list):
        return root
    if isinstance(root, dict):
        for name in list_fields:
            value = root.get(name)
            if isinstance(value, list):
                return value
    return []


def declared_total(root: Any, total_fields: list[str], fallback: int) -> int:
    """Upstream-declared item total, or *fallback* when absent/invalid."""
    try:
        total = int(pick(root, total_fields, 0) or 0)
    except (TypeError, ValueError):
        total = 0
    return total or fallback


class CatalogFetcher(BaseClient):
    """Pull every product from the configured listing endpoint.

    Auth goes in a bearer header or an ``access_token`` query parameter,
    depending on ``YOUZAN_AUTH_STYLE``.  Some Youzan APIs answer a bearer
    header with HTTP 200 and ``err_code`` 4201; the call is then repeated
    once with query-parameter auth, which is also used for later pages.
    """

    def __init__(self, token_provider: TokenProvider | None = None) -> None:
        super().__init__("fetcher")
        self.token_provider = token_provider or TokenProvider()
        self._err_code_re = re.compile(
            rf'"err_code"\s*:\s*{self.settings.AUTH_STYLE_ERR_CODE}\b'
        )

    def _check_endpoint(self, endpoint: str) -> None:
        """Warn about non-HTTPS or non-official listing endpoints."""
        parts = urlparse(endpoint)
        if not parts.scheme or not parts.netloc:
            self.logger.warning(
                "[fetcher] YOUZAN_PRODUCTS_ENDPOINT is not a valid URL: %s",
                endpoint,
            )
            return
        if parts.scheme != "https":
            self.logger.warning(
                "[fetcher] YOUZAN_PRODUCTS_ENDPOINT is not https"
            )
        if parts.hostname != self.settings.OFFICIAL_HOST:
            self.logger.warning(
                "[fetcher] YOUZAN_PRODUCTS_ENDPOINT host %s is not %s "
                "(fine when it is a proxy)",
                parts.hostname,
                self.settings.OFFICIAL_HOST,
            )

    def _load_payload(
        self, method: str,
    ) -> tuple[dict[str, Any] | None, int, int]:
        """Parse the JSON payload template for non-GET listing calls.

        Returns the template (``None`` when there is none) plus the
        starting page number and page size.
        """
        page_no = self.settings.DEFAULT_PAGE_NO
        page_size = self.settings.DEFAULT_PAGE_SIZE
        raw = self.settings.PRODUCTS_PAYLOAD_JSON
        if method == "GET" or not raw.strip():
            return None, page_no, page_size
        try:
            template = json.loads(raw)
        except ValueError:
            self.logger.warning(
                "[fetcher] cannot parse YOUZAN_PRODUCTS_PAYLOAD_JSON, "
                "sending without payload"
            )
            return None, page_no, page_size
        if not isinstance(template, dict):
            self.logger.warning(
                "[fetcher] YOUZAN_PRODUCTS_PAYLOAD_JSON is not an object, "
                "sending without payload"
            )
            return None, page_no, page_size
        try:
            page_no = int(pick(template, ["page_no", "pageNo"], page_no)) or page_no
            page_size = (
                int(pick(template, ["page_size", "pageSize"], page_size))
                or page_size
            )
        except (TypeError, ValueError):
            pass
        return template, page_no, page_size

    def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any] | None,
    ) -> curl_requests.Response:
        kwargs: dict[str, Any] = {
            "headers": headers,
            "timeout": self._request_timeout,
        }
        if payload is not None:
            kwargs["json"] = payload
        return self.session.request(method, url, **kwargs)

    def _page_items(self, resp: curl_requests.Response) -> tuple[list[Any], Any]:
        body = parse_json(resp.text)
        if body is None:
            self.logger.warning("[fetcher] response body is not JSON")
        root = self.unwrap(body)
        return extract_list(root, self.settings.LIST_FIELDS), root

    def _raise_for_status(
        self, resp: curl_requests.Response, page: int | None = None,
    ) -> None:
        """Raise on a non-2xx listing response.

        A 401 drops the cached token so the next attempt refreshes it.
        """
        if is_success(resp.status_code):
            return
        if resp.status_code == 401:
            self.logger.warning("[fetcher] listing rejected token, invalidating")
            self.token_provider.invalidate()
        suffix = f" on page {page}" if page is not None else ""
        raise UpstreamFetchError(f"Products HTTP {resp.status_code}{suffix}")

    def fetch_all(self) -> list[Product]:
        """Fetch every page and return normalized products."""
        endpoint = self.settings.PRODUCTS_ENDPOINT
        if not endpoint:
            raise ConfigurationError("Missing YOUZAN_PRODUCTS_ENDPOINT")
        self._check_endpoint(endpoint)

        token = self.token_provider.get_token()
        method = self.settings.HTTP_METHOD
        auth_style = self.settings.AUTH_STYLE

        url = endpoint
        headers: dict[str, str] = {}
        if auth_style == "query":
            url = with_query(endpoint, access_token=token)
        else:
            headers["Authorization"] = f"Bearer {token}"

        template, page_no, page_size = self._load_payload(method)

        def payload_for(page: int) -> dict[str, Any] | None:
            if template is None:
                return None
            return {**template, "page_no": page, "page_size": page_size}

        self.logger.info(
            "[fetcher] fetch products: url=%s, method=%s, auth=%s, paged=%s",
            endpoint,
            method,
            auth_style,
            template is not None,
        )
        resp = self._send(method, url, headers, payload_for(page_no))
        self._log_response("response", resp)

        if resp.status_code == 200 and self._err_code_re.search(resp.text or ""):
            self.logger.warning(
                "[fetcher] retry with query auth due to err_code=%d",
                self.settings.AUTH_STYLE_ERR_CODE,
            )
            url = with_query(endpoint, access_token=token)
            headers = {}
            resp = self._send(method, url, headers, payload_for(page_no))
            self._log_response("response(retry)", resp)

        self._raise_for_status(resp)

        items, root = self._page_items(resp)
        total = declared_total(root, self.settings.TOTAL_FIELDS, len(items))
        all_items: list[Any] = list(items)
        pages_fetched = 1

        if template is not None:
            current = page_no
            while (
                len(all_items) < total
                and pages_fetched < self.settings.MAX_PAGES
            ):
                current += 1
                resp = self._send(method, url, headers, payload_for(current))
                pages_fetched += 1
                self._raise_for_status(resp, current)
                page, _ = self._page_items(resp)
                if not page:
                    break
                all_items.extend(page)
            if (
                pages_fetched >= self.settings.MAX_PAGES
                and len(all_items) < total
            ):
                self.logger.warning(
                    "[fetcher] stopped at page cap %d (%d/%d items)",
                    self.settings.MAX_PAGES,
                    len(all_items),
                    total,
                )

        self.logger.info(
            "[fetcher] mapped list count=%d (declared total=%d, pages=%d)",
            len(all_items),
            total,
            pages_fetched,
        )
        return ProductNormalizer.normalize_all(all_items)
