"""Storefront catalog API main application module.

This module initializes the FastAPI application and configures
core middleware, routers, and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import redis.asyncio as redis
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.health import router as health_router
from storefront.api.middleware import setup_middleware
from storefront.api.products import router as products_router
from storefront.catalog.repository import ProductRepository
from storefront.catalog.service import CatalogService
from storefront.catalog.subscribers import register_default_subscribers
from storefront.infrastructure.blob_store import SupabaseBlobStore
from storefront.infrastructure.cache import CacheService
from storefront.infrastructure.config import settings
from storefront.infrastructure.database import create_engine, create_session_factory
from storefront.infrastructure.event_bus import EventBus
from storefront.infrastructure.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build shared clients on startup and release them on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    configure_logging(settings.log_level, settings.log_json)
    logger.info(
        "Starting storefront catalog API",
        version=settings.api_version,
        debug=settings.debug,
    )

    engine = create_engine(settings.database_url, echo=settings.debug)
    session_factory = create_session_factory(engine)
    cache = CacheService(
        redis.from_url(settings.redis_url),
        key_prefix=settings.cache_key_prefix,
    )
    blob_store = SupabaseBlobStore(
        base_url=settings.supabase_url,
        service_key=settings.supabase_service_key,
        bucket=settings.storage_bucket,
        timeout=settings.storage_timeout,
    )
    event_bus = EventBus()
    register_default_subscribers(event_bus, settings.low_stock_threshold)

    app.state.session_factory = session_factory
    app.state.cache = cache
    app.state.event_bus = event_bus
    app.state.catalog_service = CatalogService(
        repository=ProductRepository(
            session_factory,
            recent_review_limit=settings.recent_review_limit,
        ),
        cache=cache,
        event_bus=event_bus,
        blob_store=blob_store,
        config=settings,
    )

    yield

    logger.info("Shutting down storefront catalog API")
    await event_bus.drain()
    await blob_store.close()
    await cache.close()
    await engine.dispose()


app = FastAPI(
    title="Storefront Catalog API",
    description="Product catalog for a multi-seller marketplace",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware (request ID, error handling)
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(products_router)
