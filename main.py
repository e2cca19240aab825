import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from prometheus_client import make_asgi_app

from models.capture_request import CaptureRequest, CaptureResponse, PeerMessage, PriorityUpdate
from services.capture.capture_service import CaptureService
from services.capture.exceptions import ConfigError, PageCaptureError, StoreError

ServiceFactory = Callable[[], CaptureService]


def create_app(service_factory: Optional[ServiceFactory] = None) -> FastAPI:
    """
    Build the HTTP API around a ``CaptureService``.

    ``service_factory`` lets tests inject a service wired to an in‑memory
    store and a mocked HTTP transport.
    """
    factory = service_factory or CaptureService

    # ------------------------------------------------------------------
    # FastAPI App Lifecycle
    # ------------------------------------------------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            logger.info("Initializing capture service...")
            app.state.capture = await factory().open()

            yield

            logger.info("Shutting down capture service...")
            await app.state.capture.close()

        except Exception as e:
            logger.exception(f"Application lifecycle error: {str(e)}")
            raise

    app = FastAPI(
        title="pagecapture",
        description="Local page capture, link indexing and search API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def add_timing_header(request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    @app.exception_handler(PageCaptureError)
    async def capture_exception_handler(request: Request, exc: PageCaptureError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        status_code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if isinstance(exc, (StoreError, ConfigError))
            else status.HTTP_400_BAD_REQUEST
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "error": {
                    "code": exc.__class__.__name__,
                    "message": str(exc),
                    "status": status_code,
                }
            },
        )

    # Prometheus metrics endpoint
    app.mount("/metrics", make_asgi_app())

    @app.get("/health")
    async def health_check(request: Request):
        service: CaptureService = request.app.state.capture
        return {
            "status": "healthy",
            "database": service.db.status().model_dump(),
            "timestamp": time.time(),
        }

    # ------------------------------------------------------------------
    # Capture & queue control
    # ------------------------------------------------------------------
    @app.post("/capture", response_model=CaptureResponse)
    async def capture_url(body: CaptureRequest, request: Request):
        service: CaptureService = request.app.state.capture
        accepted = await service.submit_checked(body.url, body.priority)
        return CaptureResponse(accepted=accepted, url=body.url, queue_length=len(service.queue))

    @app.get("/queue")
    async def list_queue(request: Request):
        service: CaptureService = request.app.state.capture
        return {
            "items": [item.to_dict() for item in service.queue.items()],
            "stats": service.queue.stats().model_dump(by_alias=True),
        }

    @app.post("/queue/start")
    async def start_queue(request: Request):
        return {"started": request.app.state.capture.start()}

    @app.post("/queue/stop")
    async def stop_queue(request: Request):
        return {"stopped": request.app.state.capture.stop()}

    @app.delete("/queue")
    async def clear_queue(request: Request):
        return {"removed": request.app.state.capture.queue.clear()}

    @app.delete("/queue/{item_id}")
    async def remove_queue_item(item_id: str, request: Request):
        if not request.app.state.capture.queue.remove(item_id):
            raise HTTPException(status_code=404, detail=f"Queue item {item_id} not found")
        return {"removed": item_id}

    @app.patch("/queue/{item_id}")
    async def change_queue_priority(item_id: str, body: PriorityUpdate, request: Request):
        if not request.app.state.capture.queue.change_priority(item_id, body.priority):
            raise HTTPException(status_code=404, detail=f"Queue item {item_id} not found")
        return {"id": item_id, "priority": body.priority.value}

    # ------------------------------------------------------------------
    # Statistics, search & peer protocol
    # ------------------------------------------------------------------
    @app.get("/stats")
    async def get_stats(request: Request):
        stats = await request.app.state.capture.get_stats()
        return stats.to_dict()

    @app.get("/history")
    async def get_history(request: Request, limit: int = Query(default=50, ge=1, le=1000)):
        entries = await request.app.state.capture.page_store.get_history(limit)
        return [entry.model_dump(by_alias=True) for entry in entries]

    @app.get("/search")
    async def search(request: Request, q: str = Query(default="")):
        hits = await request.app.state.capture.search(q)
        return {"query": q, "count": len(hits), "results": [hit.to_dict() for hit in hits]}

    @app.post("/peer/message")
    async def peer_message(body: PeerMessage, request: Request):
        reply = await request.app.state.capture.peer.handle_message(body.model_dump(exclude_none=True))
        return reply or {}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000)
