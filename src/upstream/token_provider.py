# src/upstream/token_provider.py

"""Youzan access-token exchange with an in-process cache."""

import threading
import time
from dataclasses import dataclass
from typing import Any

from src.config.logging_config import mask_token
from src.errors import ConfigurationError, UpstreamAuthError
from src.upstream.base_client import BaseClient, is_success, parse_json


@dataclass
class TokenCache:
    """Current token plus observability counters (never persisted)."""

    token: str = ""
    obtained_at: float = 0.0
    expires_at: float = 0.0
    hits: int = 0
    refreshes: int = 0


class TokenProvider(BaseClient):
    """Obtain and cache a bearer token from the Youzan auth endpoint.

    A cached token is reused while ``now < expires_at - margin``.  Refresh
    is single-flight: callers arriving while another thread refreshes
    wait for it and reuse its token instead of issuing their own request.
    """

    def __init__(self) -> None:
        super().__init__("auth")
        self.cache = TokenCache()
        self._refresh_lock = threading.Lock()

    def _is_fresh(self, now: float) -> bool:
        margin = self.settings.TOKEN_SAFETY_MARGIN
        return bool(self.cache.token) and now < self.cache.expires_at - margin

    def get_token(self) -> str:
        """Return a valid access token, refreshing it when needed."""
        now = time.time()
        if self._is_fresh(now):
            return self._hit(now)

        with self._refresh_lock:
            now = time.time()
            if self._is_fresh(now):
                return self._hit(now)

            token, expires_in = self._request_token()
            ttl = expires_in if expires_in else self.settings.TOKEN_TTL_SECONDS
            self.cache.token = token
            self.cache.obtained_at = now
            self.cache.expires_at = now + ttl
            self.cache.refreshes += 1
            self.logger.info(
                "[auth] token refreshed: %s, ttl=%ds, hits=%d, refreshes=%d",
                mask_token(token),
                ttl,
                self.cache.hits,
                self.cache.refreshes,
            )
            return token

    def _hit(self, now: float) -> str:
        self.cache.hits += 1
        self.logger.debug(
            "[auth] token cache hit: left=%ds, hits=%d, refreshes=%d",
            max(0, int(self.cache.expires_at - now)),
            self.cache.hits,
            self.cache.refreshes,
        )
        return self.cache.token

    def _request_token(self) -> tuple[str, int | None]:
        """Exchange client credentials for a token.

        Returns the token and the upstream-declared TTL in seconds, if any.
        """
        client_id = self.settings.CLIENT_ID
        client_secret = self.settings.CLIENT_SECRET
        grant_id = self.settings.GRANT_ID
        if not client_id or not client_secret or not grant_id:
            raise ConfigurationError(
                "Missing YOUZAN_CLIENT_ID / YOUZAN_CLIENT_SECRET / "
                "YOUZAN_GRANT_ID"
            )

        authorize_type = self.settings.AUTHORIZE_TYPE
        self.logger.info(
            "[auth] request token: authorize_type=%s, client_id_len=%d, "
            "grant_id=%s",
            authorize_type,
            len(client_id),
            grant_id,
        )
        resp = self._post_json(
            self.settings.AUTH_URL,
            {
                "authorize_type": authorize_type,
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_id": grant_id,
            },
        )
        if not is_success(resp.status_code):
            raise UpstreamAuthError(f"Youzan token HTTP {resp.status_code}")

        body: Any = parse_json(resp.text)
        data = body.get("data") if isinstance(body, dict) else None
        if (
            not isinstance(body, dict)
            or not body.get("success")
            or not isinstance(data, dict)
            or not data.get("access_token")
        ):
            message = body.get("message") if isinstance(body, dict) else None
            raise UpstreamAuthError(
                f"Youzan token error: {message or 'unknown'}"
            )

        expires = data.get("expires_in", data.get("expire_in"))
        expires_in = (
            int(expires)
            if isinstance(expires, (int, float)) and expires > 0
            else None
        )
        return str(data["access_token"]), expires_in

    def invalidate(self) -> None:
        """Drop the cached token so the next call refreshes."""
        self.cache.token = ""
        self.cache.expires_at = 0.0

    def snapshot(self) -> dict[str, Any]:
        """Cache counters for the status endpoint (token itself omitted)."""
        left = max(0, int(self.cache.expires_at - time.time()))
        return {
            "cached": bool(self.cache.token),
            "expiresIn": left if self.cache.token else 0,
            "hits": self.cache.hits,
            "refreshes": self.cache.refreshes,
        }
