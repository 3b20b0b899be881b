"""
FastAPI status service for the scraper
"""

from fastapi import FastAPI
from api.routes import health, progress, runs
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.logging import setup_logging
from scraper.checkpoint import CheckpointStore
from scraper.loaders.jsonl_sink import JSONLSink
import logging

setup_logging()

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Jira Scraper Status API",
    description="Read-only view of scrape checkpoints, progress and run history",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

app.include_router(health.router)
app.include_router(progress.router)
app.include_router(runs.router)


@app.on_event("startup")
async def startup_event():
    """Open the checkpoint database and output directory"""
    logger.info("Starting Jira Scraper Status API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    store = CheckpointStore.from_url(settings.DATABASE_URL)
    await store.init()
    app.state.store = store
    app.state.sink = JSONLSink(settings.OUTPUT_DIR)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Jira Scraper Status API")
    store = getattr(app.state, "store", None)
    if store is not None:
        await store.dispose()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Jira Scraper Status API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "progress": "/progress",
            "runs": "/runs"
        },
        "collections": settings.projects
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
