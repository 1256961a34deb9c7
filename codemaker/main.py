"""
CodeMaker - page service API
FastAPI app serving the flat /pages RPC endpoint on top of SQLite.

Run server:
uvicorn codemaker.main:create_app --factory --host 0.0.0.0 --port 8000
"""
import contextvars
import logging
import os
import time
import uuid
from typing import Optional

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from codemaker import __version__
from codemaker.adapters.sqlite import SqliteAdapter
from codemaker.core.pages import PageService
from codemaker.routers import pages as pages_router
from codemaker.settings import Settings, get_settings

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)
request_start_time_var = contextvars.ContextVar('request_start_time', default=None)

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    store = SqliteAdapter.from_url(settings.db_url)
    logger.info(f"🔧 Storage: {settings.db_url} (debug={settings.debug})")

    app = FastAPI(
        title="CodeMaker API",
        description="Page layout, sync and lock service for QR-marked paper pages",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.settings = settings
    app.state.storage_adapter = store
    app.state.page_service = PageService(
        store=store,
        grid_scale=settings.grid_scale,
        minimum_paper_size=settings.minimum_paper_size,
        duplicate_audio_areas=settings.duplicate_audio_areas,
    )

    # ========== Request Tracing Middleware ==========
    @app.middleware("http")
    async def request_tracing_middleware(request, call_next):
        """Add request_id and timing to all requests."""
        request_id = str(uuid.uuid4())[:8]
        request_id_var.set(request_id)
        request_start_time_var.set(time.time())

        response = await call_next(request)

        latency = time.time() - request_start_time_var.get()
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({round(latency * 1000, 2)}ms)",
            extra={"request_id": request_id},
        )

        response.headers["X-Request-ID"] = request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_origins_list(),
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "fail", "reason": settings.default_error_message}
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        try:
            store.ping()
            return {"status": "healthy", "version": __version__}
        except Exception as e:
            logger.error(f"Health check failed: {str(e)}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "error": str(e)}
            )

    app.include_router(pages_router.router)
    return app


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(create_app(), host="0.0.0.0", port=port, log_level="info")
