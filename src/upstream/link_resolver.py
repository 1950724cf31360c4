# src/upstream/link_resolver.py

"""Best-effort mini-program deep links for catalog products."""

from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from typing import Any
from urllib.parse import quote

from src.upstream.base_client import BaseClient, parse_json, with_query
from src.upstream.token_provider import TokenProvider

_PAGE_TITLE_LIMIT = 20


@dataclass
class LinkResult:
    """Outcome of one resolution strategy."""

    url: str = ""
    ok: bool = False


Strategy = Callable[[str, str, str], LinkResult]


class LinkResolver(BaseClient):
    """Resolve a shareable mini-program link for a product alias.

    Resolution builds the in-app page path first, then walks an ordered
    list of strategies and stops at the first one reporting ``ok``:

    1. temporary short link (ok only for the success ``url_type``)
    2. permanent short link (same rule)
    3. channel link, temporary then permanent, permanent preferred

    Every upstream call is best-effort.  Errors become "no link from
    this step" and :meth:`resolve_link` returns ``""`` when nothing works.
    """

    def __init__(self, token_provider: TokenProvider | None = None) -> None:
        super().__init__("links")
        self.token_provider = token_provider or TokenProvider()

    # ── Upstream plumbing ────────────────────────────────

    def _call(
        self, endpoint: str, token: str, payload: dict[str, Any],
    ) -> dict[str, Any]:
        """POST with query-param auth and return ``data`` (or ``{}``)."""
        try:
            resp = self._post_json(
                with_query(endpoint, access_token=token), payload
            )
            body = parse_json(resp.text)
            self.logger.debug(
                "[links] %s: http=%d, ok=%s, url_type=%s",
                endpoint,
                resp.status_code,
                isinstance(body, dict) and body.get("success") is True,
                self._field(body, "url_type") or "n/a",
            )
        except Exception as exc:
            self.logger.warning(
                "[links] call to %s failed: %s", endpoint, exc,
                exc_info=True,
            )
            return {}
        data = body.get("data") if isinstance(body, dict) else None
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _field(body: Any, name: str) -> str:
        if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
            return ""
        value = body["data"].get(name)
        return value if isinstance(value, str) else ""

    @staticmethod
    def _first_str(data: dict[str, Any], keys: list[str]) -> str:
        for key in keys:
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
        return ""

    # ── Steps ────────────────────────────────────────────

    def fallback_page_url(self, alias: str) -> str:
        """Hand-built goods detail path for *alias*."""
        return f"{self.settings.GOODS_PAGE_PATH}?alias={quote(str(alias))}"

    def _page_url(self, token: str, alias: str, title: str) -> str:
        data = self._call(
            self.settings.PAGE_URL_ENDPOINT,
            token,
            {"alias": alias, "page_title": title},
        )
        page_url = self._first_str(data, ["page_url", "path"])
        if page_url:
            return page_url
        self.logger.debug(
            "[links] page url endpoint gave nothing for %s, using fallback",
            alias,
        )
        return self.fallback_page_url(alias)

    def _short_link(
        self, token: str, page_url: str, title: str, *, permanent: bool,
    ) -> LinkResult:
        data = self._call(
            self.settings.SHORT_LINK_ENDPOINT,
            token,
            {
                "page_url": page_url,
                "page_title": title,
                "is_permanent": permanent,
            },
        )
        url = self._first_str(data, ["short_link", "link", "url"])
        ok = bool(url) and data.get("url_type") == self.settings.LINK_SUCCESS_TYPE
        return LinkResult(url=url, ok=ok)

    def _channel_link(self, token: str, page_url: str, title: str) -> LinkResult:
        links: dict[bool, str] = {}
        for permanent in (False, True):
            data = self._call(
                self.settings.CHANNEL_LINK_ENDPOINT,
                token,
                {
                    "page_url": page_url,
                    "page_title": title,
                    "is_permanent": permanent,
                },
            )
            links[permanent] = self._first_str(data, ["mini_program_url"])
        url = links[True] or links[False]
        return LinkResult(url=url, ok=bool(url))

    def strategies(self) -> list[tuple[str, Strategy]]:
        """Ordered resolution strategies after the page path is known."""
        return [
            ("short_link.temporary", partial(self._short_link, permanent=False)),
            ("short_link.permanent", partial(self._short_link, permanent=True)),
            ("channel_link", self._channel_link),
        ]

    # ── Public API ───────────────────────────────────────

    def resolve_link(self, alias: str, title: str) -> str:
        """Return a deep link for *alias*, or ``""`` if none resolves."""
        if not alias:
            return ""
        try:
            token = self.token_provider.get_token()
        except Exception as exc:
            self.logger.warning(
                "[links] no token, skipping link for %s: %s", alias, exc
            )
            return ""

        page_title = str(title or self.settings.DEFAULT_TITLE)[:_PAGE_TITLE_LIMIT]
        page_url = self._page_url(token, alias, page_title)
        for name, strategy in self.strategies():
            result = strategy(token, page_url, page_title)
            if result.ok:
                self.logger.info(
                    "[links] %s resolved via %s: %s", alias, name, result.url
                )
                return result.url
            self.logger.debug("[links] %s: %s gave no usable link", alias, name)

        self.logger.warning("[links] no link resolved for %s", alias)
        return ""
