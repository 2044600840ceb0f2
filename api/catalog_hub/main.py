# catalog_hub/main.py
# Catalog Hub - product type conversion, bundles and multi-channel merge
from __future__ import annotations
import logging
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from catalog_hub.settings import Settings, settings as default_settings
from catalog_hub.database import Database, get_database
from catalog_hub.logging_setup import setup_logging
from catalog_hub.routers.products import router as products_router
from catalog_hub.routers.bundles import router as bundles_router
from catalog_hub.routers.merge import router as merge_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the API.

    Pass ``database`` to run against an already created store (tests);
    otherwise one is built from settings when the lifespan starts.
    """
    settings = settings or default_settings

    # ---------------------------------------------------------
    # Lifespan: Database init/cleanup
    # ---------------------------------------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        owns_database = app.state.database is None
        if owns_database:
            app.state.database = Database.from_settings(settings)
        if settings.DB_CREATE_ALL:
            await app.state.database.create_all()
        logger.info("Database ready: %s", app.state.database.engine.url.render_as_string(hide_password=True))
        yield
        if owns_database:
            await app.state.database.dispose()
            app.state.database = None
            logger.info("Database disconnected")

    # ---------------------------------------------------------
    # FastAPI app + CORS
    # ---------------------------------------------------------
    app = FastAPI(
        title="Catalog Hub API",
        version="1.0.0",
        description="Product type conversion, bundle consistency and multi-channel merge",
        lifespan=lifespan,
    )
    app.state.database = database
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(products_router)
    app.include_router(bundles_router)
    app.include_router(merge_router)

    @app.get("/health")
    async def health(db: Database = Depends(get_database)):
        return await db.check_health()

    return app


# ---------------------------------------------------------
# Logging setup
# ---------------------------------------------------------
setup_logging(default_settings)

app = create_app()
