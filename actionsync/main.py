"""
Main FastAPI application for the meeting action-item sync.
Handles request logging middleware, lifespan events, and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from actionsync.config import settings
from actionsync.routers import actions, anchors, health

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup helpers
# ---------------------------------------------------------------------------

def _check_configuration() -> None:
    """Log which settings and files are missing.  Never raises."""
    document = Path(settings.DOCUMENT_PATH)
    if document.is_file():
        logger.info("✓ Document: %s", document.resolve())
    else:
        logger.warning("⚠ Document not found: %s", document)

    if settings.ANCHOR_BOOKMARK:
        logger.info("✓ Anchor bookmark: %s", settings.ANCHOR_BOOKMARK)
    else:
        logger.warning("⚠ ANCHOR_BOOKMARK is not set — refresh will fail")

    if not settings.AI_API_KEY:
        logger.warning("⚠ AI_API_KEY is not set — refresh will fail")

    for name in ("LINEAR_API_KEY", "LINEAR_TEAM_ID", "LINEAR_PROJECT_ID"):
        if not getattr(settings, name):
            logger.warning("⚠ %s is not set — push will fail", name)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting action-item sync …")
    logger.info("=" * 60)

    _check_configuration()

    logger.info("=" * 60)
    logger.info("  Ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Action Sync API",
    description=(
        "Keeps the action-items section of a meeting-notes document up to date "
        "and pushes its items to Linear.\n\n"
        "Key endpoints:\n"
        "- `POST /api/actions/refresh` — rewrite the action-items section\n"
        "- `POST /api/actions/push` — create Linear issues for pending items\n"
        "- `GET  /api/anchors/current` — locate the anchor heading\n"
        "- `GET  /api/anchors/` — list all bookmarks\n"
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    if request.url.path not in ("/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Global exception handler
# ---------------------------------------------------------------------------

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "path": str(request.url.path),
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,   prefix="/api/health",  tags=["Health"])
app.include_router(actions.router,  prefix="/api/actions", tags=["Actions"])
app.include_router(anchors.router,  prefix="/api/anchors", tags=["Anchors"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root — returns basic service info."""
    return {
        "name": "Action Sync API",
        "version": "0.1.0",
        "description": "Meeting action items → Linear",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "refresh": "/api/actions/refresh",
            "push": "/api/actions/push",
            "anchors": "/api/anchors",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "actionsync.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
