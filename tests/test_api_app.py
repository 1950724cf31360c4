# tests/test_api_app.py

"""Tests for the FastAPI service routes."""

import tempfile
import unittest
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from src.api.app import create_app
from src.config.settings import Settings
from src.models.sync_status import SyncOutcome
from src.services.event_broker import EventBroker, format_sse
from src.services.sync_orchestrator import UPSTREAM_EMPTY_REASON


class TestApiApp(unittest.TestCase):
    """Route contracts against a mocked orchestrator and intro writer."""

    def setUp(self) -> None:
        tmp_dir = Path(tempfile.mkdtemp())
        self.images_dir = tmp_dir / "images"
        patcher = patch.multiple(
            Settings,
            IMAGES_DIR=self.images_dir,
            DATA_DIR=tmp_dir / "data",
            ALLOWED_ORIGINS=["*"],
        )
        patcher.start()
        self.addCleanup(patcher.stop)

        self.orch = MagicMock()
        self.orch.run = AsyncMock(return_value=SyncOutcome(ok=True, count=3))
        self.orch.stop_scheduler = AsyncMock()
        self.orch.store.load.return_value = {"products": [{"id": 1}]}
        self.orch.snapshot.return_value = {"synced": True, "inProgress": False}
        self.writer = MagicMock()
        self.writer.intro.return_value = "短介绍"
        self.writer.pro_intro.return_value = "专业介绍"
        self.app = create_app(
            orchestrator=self.orch, intro_writer=self.writer, run_scheduler=False
        )
        self.client = TestClient(self.app)

    # ── Catalog & sync ───────────────────────────────────

    def test_get_products(self) -> None:
        resp = self.client.get("/api/youzan/products")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"products": [{"id": 1}]})

    def test_get_products_error(self) -> None:
        self.orch.store.load.side_effect = OSError("disk gone")
        resp = self.client.get("/api/youzan/products")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "disk gone"})

    def test_sync_success(self) -> None:
        resp = self.client.post("/api/youzan/sync")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"ok": True, "count": 3})
        self.orch.run.assert_awaited_once()

    def test_sync_skip_is_not_an_error(self) -> None:
        self.orch.run.return_value = SyncOutcome(ok=False, reason=UPSTREAM_EMPTY_REASON)
        resp = self.client.post("/api/youzan/sync")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json(), {"ok": False, "count": 0, "reason": UPSTREAM_EMPTY_REASON}
        )

    def test_sync_failure(self) -> None:
        self.orch.run.return_value = SyncOutcome(ok=False, error="Token error")
        resp = self.client.post("/api/youzan/sync")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "Token error"})

    def test_sync_status(self) -> None:
        resp = self.client.get("/api/youzan/sync/status")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"synced": True, "inProgress": False})

    def test_sync_status_error(self) -> None:
        self.orch.snapshot.side_effect = RuntimeError("boom")
        resp = self.client.get("/api/youzan/sync/status")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "boom"})

    # ── AI passthrough ───────────────────────────────────

    def test_intro(self) -> None:
        resp = self.client.post("/api/ai/intro", json={"name": " IPA "})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"text": "短介绍"})
        self.writer.intro.assert_called_once_with("IPA")

    def test_intro_missing_name(self) -> None:
        for body in ({}, {"name": "   "}):
            resp = self.client.post("/api/ai/intro", json=body)
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json(), {"error": "missing name"})
        self.writer.intro.assert_not_called()

    def test_intro_upstream_failure(self) -> None:
        self.writer.intro.side_effect = ConnectionError("ark down")
        resp = self.client.post("/api/ai/intro", json={"name": "IPA"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "ark down"})

    def test_pro_intro(self) -> None:
        resp = self.client.post(
            "/api/ai/pro-intro",
            json={"name": "Stout", "desc": " 烘焙 ", "url": "https://shop/1"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"text": "专业介绍"})
        self.writer.pro_intro.assert_called_once_with("Stout", "烘焙", "https://shop/1")

    def test_pro_intro_missing_name(self) -> None:
        resp = self.client.post("/api/ai/pro-intro", json={"desc": "x"})
        self.assertEqual(resp.status_code, 400)

    # ── Static & CORS ────────────────────────────────────

    def test_serves_archived_images(self) -> None:
        (self.images_dir / "IPA_1.png").write_bytes(b"\x89PNG")
        resp = self.client.get("/images/IPA_1.png")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.content, b"\x89PNG")

    def test_cors_preflight(self) -> None:
        resp = self.client.options(
            "/api/youzan/products",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "GET",
            },
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["access-control-allow-origin"], "*")


class TestSyncEvents(unittest.IsolatedAsyncioTestCase):
    """The event-stream route against a real broker."""

    def setUp(self) -> None:
        tmp_dir = Path(tempfile.mkdtemp())
        patcher = patch.multiple(
            Settings, IMAGES_DIR=tmp_dir / "images", DATA_DIR=tmp_dir / "data"
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.orch = MagicMock()
        self.orch.broker = EventBroker()
        app = create_app(
            orchestrator=self.orch, intro_writer=MagicMock(), run_scheduler=False
        )
        self.endpoint = next(
            route.endpoint
            for route in app.routes
            if getattr(route, "path", "") == "/api/youzan/sync/events"
        )

    async def _open(self, *disconnected: bool) -> Any:
        request = MagicMock()
        request.is_disconnected = AsyncMock(side_effect=list(disconnected))
        response = await self.endpoint(request)
        self.assertEqual(response.media_type, "text/event-stream")
        return response.body_iterator

    async def test_stream_delivers_published_frames(self) -> None:
        stream = await self._open(False, True)
        self.assertEqual(self.orch.broker.subscriber_count, 1)
        self.assertEqual(await anext(stream), ":ok\n\n")

        self.orch.broker.publish("sync-complete", {"count": 2, "at": 1})
        self.assertEqual(
            await anext(stream), format_sse("sync-complete", {"count": 2, "at": 1})
        )

        with self.assertRaises(StopAsyncIteration):
            await anext(stream)
        self.assertEqual(self.orch.broker.subscriber_count, 0)

    async def test_client_close_unsubscribes(self) -> None:
        stream = await self._open(False)
        self.assertEqual(await anext(stream), ":ok\n\n")
        await stream.aclose()
        self.assertEqual(self.orch.broker.subscriber_count, 0)

    async def test_idle_stream_sends_keepalive(self) -> None:
        stream = await self._open(False, True)
        self.assertEqual(await anext(stream), ":ok\n\n")
        with patch("src.api.app._KEEPALIVE_SECONDS", 0.01):
            self.assertEqual(await anext(stream), ":keepalive\n\n")
        await stream.aclose()
        self.assertEqual(self.orch.broker.subscriber_count, 0)


class TestLifespan(unittest.TestCase):
    """Scheduler start/stop is tied to the app lifespan."""

    def test_scheduler_follows_lifespan(self) -> None:
        tmp_dir = Path(tempfile.mkdtemp())
        orch = MagicMock()
        orch.stop_scheduler = AsyncMock()
        with patch.multiple(
            Settings, IMAGES_DIR=tmp_dir / "images", DATA_DIR=tmp_dir / "data"
        ):
            app = create_app(orchestrator=orch, intro_writer=MagicMock())
            with TestClient(app):
                orch.start_scheduler.assert_called_once()
                orch.stop_scheduler.assert_not_awaited()
        orch.stop_scheduler.assert_awaited_once()

    def test_scheduler_disabled(self) -> None:
        tmp_dir = Path(tempfile.mkdtemp())
        orch = MagicMock()
        orch.stop_scheduler = AsyncMock()
        with patch.multiple(
            Settings, IMAGES_DIR=tmp_dir / "images", DATA_DIR=tmp_dir / "data"
        ):
            app = create_app(
                orchestrator=orch, intro_writer=MagicMock(), run_scheduler=False
            )
            with TestClient(app):
                pass
        orch.start_scheduler.assert_not_called()


if __name__ == "__main__":
    unittest.main()
