from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import Settings, get_settings
from app.api import router as api_router
from app.db import build_engine, build_session_factory
from app.services.aggregator import MarketHistoryAggregator
from app.services.history_cache import CacheStore, HistoryCache, SqlCacheStore
from app.services.providers import AlphaVantageProvider


def create_app(
    settings: Optional[Settings] = None,
    *,
    cache_store: Optional[CacheStore] = None,
    provider: Optional[AlphaVantageProvider] = None,
) -> FastAPI:
    """Build the FastAPI application with all routers and middleware."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # One cache store, provider and aggregator per process.
        engine = None
        store = cache_store
        if store is None:
            engine = build_engine(settings)
            store = SqlCacheStore(build_session_factory(engine), engine)
            await store.create_schema()
        app.state.settings = settings
        app.state.aggregator = MarketHistoryAggregator(
            provider or AlphaVantageProvider.from_settings(settings),
            HistoryCache.from_settings(store, settings),
            settings,
        )
        try:
            yield
        finally:
            if engine is not None:
                await engine.dispose()

    app = FastAPI(title="Leverage Risk Dashboard API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router)
    return app
