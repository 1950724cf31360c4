# src/config/settings.py

"""Central configuration for the drink_picker catalog service."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()
load_dotenv(Path(__file__).resolve().parent.parent.parent / "scripts" / ".env")


def _env_int(name: str, default: int) -> int:
    """Read an integer env var, falling back on blanks and junk."""
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    """Read a float env var, falling back on blanks and junk."""
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


class Settings:
    """Central configuration for the drink_picker catalog service."""

    # --- Youzan credentials ---
    CLIENT_ID: str = os.getenv("YOUZAN_CLIENT_ID", "")
    CLIENT_SECRET: str = os.getenv("YOUZAN_CLIENT_SECRET", "")
    GRANT_ID: str = os.getenv("YOUZAN_GRANT_ID", "")  # kdt_id
    AUTHORIZE_TYPE: str = os.getenv("YOUZAN_AUTHORIZE_TYPE", "silent")
    TOKEN_TTL_SECONDS: int = _env_int("YOUZAN_TOKEN_TTL_SECONDS", 1800)
    TOKEN_SAFETY_MARGIN: float = 60.0   # Seconds shaved off every TTL

    # --- Youzan endpoints ---
    OFFICIAL_HOST: str = "open.youzanyun.com"
    AUTH_URL: str = os.getenv(
        "YOUZAN_AUTH_URL", "https://open.youzanyun.com/auth/token"
    )
    PRODUCTS_ENDPOINT: str = os.getenv("YOUZAN_PRODUCTS_ENDPOINT", "")
    PAGE_URL_ENDPOINT: str = os.getenv(
        "YOUZAN_PAGE_URL_ENDPOINT",
        "https://open.youzanyun.com/api/youzan.shop.weapp.page.url.create/1.0.0",
    )
    SHORT_LINK_ENDPOINT: str = os.getenv(
        "YOUZAN_SHORT_LINK_ENDPOINT",
        "https://open.youzanyun.com/api/youzan.weapp.short.link.create/1.0.0",
    )
    CHANNEL_LINK_ENDPOINT: str = os.getenv(
        "YOUZAN_CHANNEL_LINK_ENDPOINT",
        "https://open.youzanyun.com/api/youzan.users.channel.app.link.get/1.0.0",
    )
    LINK_SUCCESS_TYPE: str = os.getenv("YOUZAN_LINK_SUCCESS_TYPE", "short_link")
    GOODS_PAGE_PATH: str = "packages/goods/detail/index"

    # --- Listing call ---
    HTTP_METHOD: str = os.getenv("YOUZAN_HTTP_METHOD", "GET").upper()
    AUTH_STYLE: str = os.getenv("YOUZAN_AUTH_STYLE", "header").lower()
    PRODUCTS_PAYLOAD_JSON: str = os.getenv("YOUZAN_PRODUCTS_PAYLOAD_JSON", "")
    DEFAULT_PAGE_NO: int = 1
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGES: int = 100                # Hard cap on page fetches
    AUTH_STYLE_ERR_CODE: int = 4201     # Upstream rejects header auth
    LIST_FIELDS: list[str] = ["products", "items", "list", "records"]
    TOTAL_FIELDS: list[str] = ["count", "total", "total_count"]
    DEFAULT_TITLE: str = "商品"

    # --- HTTP ---
    REQUEST_TIMEOUT: int = _env_int("HTTP_TIMEOUT", 15)
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    PREVIEW_LIMIT: int = 400            # Chars of response body in logs

    # --- Sync scheduling ---
    SYNC_INTERVAL_MINUTES: int = max(1, _env_int("SYNC_INTERVAL_MINUTES", 30))
    SYNC_INITIAL_DELAY: float = 1.0     # Seconds after startup
    SYNC_RETRIES: int = _env_int("SYNC_RETRIES", 2)
    SYNC_RETRY_BASE_DELAY: float = _env_float("SYNC_RETRY_BASE_DELAY", 0.5)
    EVENT_QUEUE_SIZE: int = 32          # Per-subscriber backlog

    # --- AI text generation ---
    ARK_API_KEY: str = os.getenv("ARK_API_KEY", "")
    ARK_API_BASE: str = os.getenv(
        "ARK_API_BASE",
        "https://ark.cn-beijing.volces.com/api/v3/chat/completions",
    )
    ARK_MODEL: str = os.getenv("ARK_MODEL", "doubao-pro-128k")

    # --- Service ---
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = _env_int("PORT", 3001)
    ALLOWED_ORIGINS: list[str] = [
        o.strip()
        for o in os.getenv("ALLOWED_ORIGINS", "").split(",")
        if o.strip()
    ] or ["*"]

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    PUBLIC_DIR: Path = BASE_DIR / "public"
    IMAGES_DIR: Path = PUBLIC_DIR / "images"
    DATA_DIR: Path = PUBLIC_DIR / "data"
    CATALOG_PATH: Path = DATA_DIR / "youzan_local.json"
    SAMPLE_CATALOG_PATH: Path = BASE_DIR / "src" / "data" / "youzan_sample.json"
    LOGS_DIR: Path = BASE_DIR / "logs"
