import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from release_catalog import __version__
from release_catalog.api.catalog import catalog_error_handler, router as catalog_router
from release_catalog.core.config import Settings, load_settings
from release_catalog.domain.errors import CatalogError, Unavailable
from release_catalog.storage.entity_store import EntityStore
from release_catalog.storage.sqlite_store import SqliteEntityStore

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level_number, format=LOG_FORMAT)
    logging.getLogger().setLevel(settings.log_level_number)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[EntityStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    ``store`` defaults to a SQLite store at ``settings.db_path``. Tests pass
    their own store instead.
    """
    if settings is None:
        settings = load_settings()
    if store is None:
        store = SqliteEntityStore(
            settings.db_path,
            pool_size=settings.pool_size,
            pool_timeout=settings.pool_timeout_seconds,
            seed_defaults=settings.seed_default_repositories,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            store.initialize()
        except Unavailable as e:
            # Keep serving; every lookup and /health will report the outage.
            logger.error(f"Catalog store could not be initialized: {e}")
        yield
        store.close()

    app = FastAPI(
        title="Release Catalog",
        version=__version__,
        description="Read-only catalog of repositories, channels, releases and artifacts.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store

    app.add_exception_handler(CatalogError, catalog_error_handler)

    @app.get("/health")
    def health() -> JSONResponse:
        """Report whether the catalog store answers queries."""
        store.ping()
        return JSONResponse(content={"status": "ok"})

    app.include_router(catalog_router, prefix="/catalog", tags=["catalog"])
    logger.info(f"Catalog app created with database {settings.db_path}")
    return app


def run() -> None:
    """Console entry point: load settings and serve with uvicorn."""
    import uvicorn

    settings = load_settings()
    configure_logging(settings)
    uvicorn.run(
        create_app(settings),
        host=settings.bind_host,
        port=settings.bind_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
