# src/upstream/base_client.py

"""Shared HTTP plumbing for the Youzan open-platform clients."""

import json
import logging
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from curl_cffi import requests as curl_requests

from src.config.logging_config import preview_text
from src.config.settings import Settings


def with_query(url: str, **params: str) -> str:
    """Return *url* with *params* set in its query string."""
    parts = urlparse(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update(params)
    return urlunparse(parts._replace(query=urlencode(query)))


def parse_json(text: str | None) -> Any:
    """Decode a JSON body, returning ``None`` when it is not JSON."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def is_success(status_code: int) -> bool:
    """True for 2xx statuses."""
    return 200 <= status_code < 300


class BaseClient:
    """Base class for clients that talk to the Youzan open platform.

    Holds one curl_cffi session per client.  Network exceptions are not
    caught here; each client decides whether a failure is fatal
    (auth, listing) or degradable (deep links).
    """

    def __init__(self, client_name: str) -> None:
        self.client_name = client_name
        self.logger = logging.getLogger(f"drink_picker.{client_name}")
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> curl_requests.Response:
        """POST *payload* as JSON and return the raw response."""
        return self.session.post(
            url,
            headers={"Content-Type": "application/json", **(headers or {})},
            json=payload,
            timeout=self._request_timeout,
        )

    def _log_response(
        self, label: str, resp: curl_requests.Response,
    ) -> None:
        """Log status, content type and a one-line body preview."""
        self.logger.debug(
            "[%s] %s: http=%d, content-type=%s, bodyPreview=%s",
            self.client_name,
            label,
            resp.status_code,
            resp.headers.get("content-type", "n/a"),
            preview_text(resp.text),
        )

    @staticmethod
    def unwrap(body: Any) -> Any:
        """Strip the optional ``data`` envelope from a response body."""
        if isinstance(body, dict) and body.get("data"):
            return body["data"]
        return body
