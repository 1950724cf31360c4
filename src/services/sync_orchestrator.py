# src/services/sync_orchestrator.py

"""Orchestrates catalog sync runs: fetch, archive, link, persist."""

import asyncio
import contextlib
import logging
import time
from typing import Any

from src.config.settings import Settings
from src.errors import ConfigurationError, DownloadError
from src.filters.product_validator import ProductValidator
from src.models.product import CatalogEntry, Product
from src.models.sync_status import SyncOutcome, SyncStatus
from src.services.event_broker import EventBroker
from src.storage.catalog_store import CatalogStore
from src.storage.image_archiver import ImageArchiver
from src.upstream.catalog_fetcher import CatalogFetcher
from src.upstream.link_resolver import LinkResolver
from src.upstream.token_provider import TokenProvider

logger = logging.getLogger("drink_picker.orchestrator")

ALREADY_RUNNING_REASON = "sync already in progress"
UPSTREAM_EMPTY_REASON = "upstream returned empty products, skip write"

EVENT_COMPLETE = "sync-complete"
EVENT_ERROR = "sync-error"


def _now_ms() -> int:
    return int(time.time() * 1000)


class SyncOrchestrator:
    """Coordinates one catalog sync at a time.

    ``status.in_progress`` is checked and set before the first ``await``,
    so on a single event loop overlapping triggers are dropped rather
    than queued.  Blocking client work runs in worker threads.
    """

    def __init__(
        self,
        token_provider: TokenProvider | None = None,
        fetcher: CatalogFetcher | None = None,
        resolver: LinkResolver | None = None,
        archiver: ImageArchiver | None = None,
        store: CatalogStore | None = None,
        broker: EventBroker | None = None,
    ) -> None:
        self.settings = Settings()
        self.token_provider = token_provider or TokenProvider()
        self.fetcher = fetcher or CatalogFetcher(self.token_provider)
        self.resolver = resolver or LinkResolver(self.token_provider)
        self.archiver = archiver or ImageArchiver()
        self.store = store or CatalogStore()
        self.broker = broker or EventBroker()
        self.status = SyncStatus()
        self._scheduler: asyncio.Task[None] | None = None

    # ── Pipeline ─────────────────────────────────────────

    def _build_entry(self, product: Product) -> CatalogEntry:
        """Archive the image and resolve the deep link for one product.

        A failed download still yields an entry, just without a filename.
        """
        filename: str | None = None
        try:
            filename = self.archiver.archive_for(
                product.title, product.id, product.image_url
            )
        except DownloadError as exc:
            logger.warning(
                "[error] download failed for product %s: %s", product.id, exc
            )

        link = ""
        if product.alias:
            link = self.resolver.resolve_link(product.alias, product.title)
        return CatalogEntry(
            product=product, filename=filename, mini_program_url=link
        )

    async def _run_pipeline(self) -> SyncOutcome:
        products = await asyncio.to_thread(self.fetcher.fetch_all)
        if not products:
            logger.warning("Upstream returned no products")
            return SyncOutcome(ok=False, reason=UPSTREAM_EMPTY_REASON)

        valid, _ = ProductValidator.validate(products)
        entries: list[CatalogEntry] = []
        for product in valid:
            entries.append(await asyncio.to_thread(self._build_entry, product))

        result = await asyncio.to_thread(self.store.write, entries)
        return SyncOutcome(ok=result.ok, count=result.count, reason=result.reason)

    def _record(self, outcome: SyncOutcome) -> None:
        """Update status and notify subscribers about a finished run."""
        now = _now_ms()
        if outcome.ok:
            self.status.last_success_at = now
            self.status.last_error = None
            self.status.last_count = outcome.count
            logger.info("Sync ok: wrote %d entries", outcome.count)
            self.broker.publish(EVENT_COMPLETE, {"count": outcome.count, "at": now})
            return
        message = outcome.error or outcome.reason
        self.status.last_error = message
        logger.warning("Sync finished without writing: %s", message)
        self.broker.publish(EVENT_ERROR, {"error": message, "at": now})

    async def _run_with_retries(self, retries: int) -> SyncOutcome:
        attempt = 0
        while True:
            try:
                outcome = await self._run_pipeline()
            except ConfigurationError as exc:
                logger.error("Sync misconfigured: %s", exc)
                outcome = SyncOutcome(ok=False, error=str(exc))
            except Exception as exc:
                message = str(exc) or exc.__class__.__name__
                logger.error(
                    "Sync attempt %d failed: %s", attempt + 1, message,
                    exc_info=True,
                )
                if attempt < retries:
                    self.status.last_error = message
                    delay = self.settings.SYNC_RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning("Retrying sync in %.1fs", delay)
                    await asyncio.sleep(delay)
                    attempt += 1
                    continue
                outcome = SyncOutcome(ok=False, error=message)
            self._record(outcome)
            return outcome

    async def run(self, retries: int | None = None) -> SyncOutcome:
        """Run one sync unless another is already active.

        Retries failed runs with exponential backoff up to *retries*
        extra attempts (``SYNC_RETRIES`` by default).
        """
        if self.status.in_progress:
            logger.info("Sync trigger dropped: %s", ALREADY_RUNNING_REASON)
            return SyncOutcome(ok=False, reason=ALREADY_RUNNING_REASON)

        self.status.in_progress = True
        self.status.last_run_at = _now_ms()
        self.status.last_error = None
        budget = self.settings.SYNC_RETRIES if retries is None else retries
        logger.info("Sync start (retry budget=%d)", budget)
        try:
            return await self._run_with_retries(budget)
        finally:
            self.status.in_progress = False

    # ── Status ───────────────────────────────────────────

    def snapshot(self) -> dict[str, Any]:
        """Status payload: file freshness, run state and token cache."""
        updated_at = self.store.updated_at()
        return {
            "synced": updated_at is not None,
            "updatedAt": updated_at,
            **self.status.to_dict(),
            "token": self.token_provider.snapshot(),
        }

    # ── Scheduling ───────────────────────────────────────

    async def _schedule_loop(self) -> None:
        await asyncio.sleep(self.settings.SYNC_INITIAL_DELAY)
        interval = self.settings.SYNC_INTERVAL_MINUTES * 60
        while True:
            await self.run()
            await asyncio.sleep(interval)

    def start_scheduler(self) -> bool:
        """Start the periodic sync task if a products endpoint is set."""
        if not self.settings.PRODUCTS_ENDPOINT:
            logger.warning("Sync scheduler disabled: missing YOUZAN_PRODUCTS_ENDPOINT")
            return False
        if self._scheduler is not None and not self._scheduler.done():
            return True
        self._scheduler = asyncio.create_task(self._schedule_loop())
        logger.info(
            "Sync scheduler started (every %d min)",
            self.settings.SYNC_INTERVAL_MINUTES,
        )
        return True

    async def stop_scheduler(self) -> None:
        """Cancel the periodic sync task, if any."""
        if self._scheduler is None:
            return
        self._scheduler.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._scheduler
        self._scheduler = None
        logger.info("Sync scheduler stopped")
