"""FastAPI application serving prospect research to the CRM UI."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from prospect_research.web.deps import close_db, close_services, get_db, init_services
from prospect_research.web.routers.research import router as research_router
from prospect_research.web.routers.search import router as search_router
from prospect_research.web.routers.settings import router as settings_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown: open the DB, build backends, close the browser on exit."""
    logger.info("Starting prospect research API...")
    get_db()  # connects + runs migrations
    init_services()
    yield
    await close_services()
    close_db()
    logger.info("Prospect research API shut down.")


app = FastAPI(
    title="Prospect Research",
    description="Online research for CRM prospects via Playwright and Apify",
    lifespan=lifespan,
)

app.include_router(research_router, prefix="/api")
app.include_router(search_router, prefix="/api")
app.include_router(settings_router, prefix="/api")


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


@app.get("/api/health")
async def health():
    return {"status": "ok"}
