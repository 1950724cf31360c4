# src/api/app.py

"""FastAPI service: catalog, sync control, events and AI blurbs."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from src.config.settings import Settings
from src.services.intro_writer import IntroWriter
from src.services.sync_orchestrator import SyncOrchestrator

logger = logging.getLogger("drink_picker.api")

_KEEPALIVE_SECONDS = 15.0


class IntroRequest(BaseModel):
    name: str = ""


class ProIntroRequest(BaseModel):
    name: str = ""
    desc: str = ""
    url: str = ""


def _error(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def create_app(
    orchestrator: SyncOrchestrator | None = None,
    intro_writer: IntroWriter | None = None,
    run_scheduler: bool = True,
) -> FastAPI:
    """Build the service application around one orchestrator."""
    orch = orchestrator or SyncOrchestrator()
    writer = intro_writer or IntroWriter()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if run_scheduler:
            orch.start_scheduler()
        try:
            yield
        finally:
            await orch.stop_scheduler()

    app = FastAPI(title="drink_picker", version="1.0", lifespan=lifespan)
    app.state.orchestrator = orch
    app.add_middleware(
        CORSMiddleware,
        allow_origins=Settings.ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Catalog & sync ───────────────────────────────────

    @app.get("/api/youzan/products")
    async def get_products() -> JSONResponse:
        try:
            doc = await asyncio.to_thread(orch.store.load)
        except Exception as exc:
            logger.error("Catalog load failed: %s", exc, exc_info=True)
            return _error(str(exc) or "unknown error")
        return JSONResponse(doc)

    @app.post("/api/youzan/sync")
    async def post_sync() -> JSONResponse:
        logger.info("On-demand sync requested")
        outcome = await orch.run()
        if outcome.error:
            return _error(outcome.error)
        return JSONResponse(outcome.to_dict())

    @app.get("/api/youzan/sync/status")
    async def get_sync_status() -> JSONResponse:
        try:
            return JSONResponse(orch.snapshot())
        except Exception as exc:
            logger.error("Status failed: %s", exc, exc_info=True)
            return _error(str(exc) or "unknown error")

    @app.get("/api/youzan/sync/events")
    async def sync_events(request: Request) -> StreamingResponse:
        queue = orch.broker.subscribe()

        async def stream() -> AsyncIterator[str]:
            try:
                yield ":ok\n\n"
                while not await request.is_disconnected():
                    try:
                        frame = await asyncio.wait_for(
                            queue.get(), timeout=_KEEPALIVE_SECONDS
                        )
                    except asyncio.TimeoutError:
                        yield ":keepalive\n\n"
                        continue
                    yield frame
            finally:
                orch.broker.unsubscribe(queue)

        return StreamingResponse(
            stream(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    # ── AI passthrough ───────────────────────────────────

    @app.post("/api/ai/intro")
    async def ai_intro(body: IntroRequest) -> JSONResponse:
        name = body.name.strip()
        if not name:
            return _error("missing name", 400)
        try:
            text = await asyncio.to_thread(writer.intro, name)
        except Exception as exc:
            logger.error("AI intro failed for %s: %s", name, exc, exc_info=True)
            return _error(str(exc) or "unknown error")
        return JSONResponse({"text": text})

    @app.post("/api/ai/pro-intro")
    async def ai_pro_intro(body: ProIntroRequest) -> JSONResponse:
        name = body.name.strip()
        if not name:
            return _error("missing name", 400)
        try:
            text = await asyncio.to_thread(
                writer.pro_intro, name, body.desc.strip(), body.url.strip()
            )
        except Exception as exc:
            logger.error("AI pro-intro failed for %s: %s", name, exc, exc_info=True)
            return _error(str(exc) or "unknown error")
        return JSONResponse({"text": text})

    # ── Static files ─────────────────────────────────────

    Settings.IMAGES_DIR.mkdir(parents=True, exist_ok=True)
    Settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    app.mount("/images", StaticFiles(directory=Settings.IMAGES_DIR), name="images")
    app.mount("/data", StaticFiles(directory=Settings.DATA_DIR), name="data")

    return app
