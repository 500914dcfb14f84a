"""
FastAPI application for batch lead screening.
"""
from contextlib import asynccontextmanager
from typing import Optional
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..analysis.classifier import ClassifierClient
from ..core.config import Settings, settings as default_settings
from ..core.logging import logger
from ..storage.factory import create_store
from ..tasks.processor import BatchProcessor
from ..tasks.registry import TaskRegistry
from ..tasks.sweeper import CleanupSweeper
from .exceptions import exception_handlers
from .middleware import add_process_time_header
from .routes import analyze, checks, crawl, health, storage, tasks


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Build the application with its own registry, processor and store."""
    config = config or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create shared services on startup and tear them down on shutdown."""
        logger.info(f"Starting {config.APP_NAME} ({config.APP_ENV})")
        registry = TaskRegistry(config)
        classifier = ClassifierClient(config)
        processor = BatchProcessor(registry, classifier=classifier, config=config)
        sweeper = CleanupSweeper(registry, config.CLEANUP_INTERVAL)
        store = create_store(config)

        app.state.settings = config
        app.state.registry = registry
        app.state.classifier = classifier
        app.state.processor = processor
        app.state.store = store

        sweeper.start()
        try:
            yield
        finally:
            logger.info(f"Shutting down {config.APP_NAME}")
            await sweeper.stop()
            await processor.shutdown()
            await store.close()

    app = FastAPI(
        title=config.APP_NAME,
        description="Batch website crawling and target-customer classification",
        version=config.APP_VERSION,
        debug=config.DEBUG,
        lifespan=lifespan,
        exception_handlers=exception_handlers
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.middleware("http")(add_process_time_header)

    app.include_router(tasks.router, prefix=config.API_PREFIX, tags=["tasks"])
    app.include_router(analyze.router, prefix=config.API_PREFIX, tags=["analysis"])
    app.include_router(crawl.router, prefix=config.API_PREFIX, tags=["crawling"])
    app.include_router(checks.router, prefix=config.API_PREFIX, tags=["checks"])
    app.include_router(storage.router, prefix=config.API_PREFIX, tags=["storage"])
    app.include_router(health.router, prefix=config.API_PREFIX, tags=["health"])

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "version": config.APP_VERSION
        }

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": config.APP_NAME,
            "version": config.APP_VERSION,
            "docs": "/docs",
            "health": "/health"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lead_screener.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.DEBUG,
        log_level=default_settings.LOG_LEVEL.lower()
    )
