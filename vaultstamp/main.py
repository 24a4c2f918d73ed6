"""FastAPI entrypoint for the vault stamping service."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from .api.dependencies import get_document_store, get_settings
from .api.routers import health, stamp
from .domain.stamping.runtime import build_stamp_watcher
from .infra.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    if not settings.watcher.enabled:
        yield
        return
    store = get_document_store()
    watcher = build_stamp_watcher(settings, store=store)
    application.state.stamp_watcher = watcher
    logger.info("stamp_watcher_attached", extra={"vault_root": str(store.root)})
    try:
        with watcher:
            yield
    finally:
        store.close()


def create_app() -> FastAPI:
    """Instantiate the FastAPI app and register routers."""

    settings = get_settings()
    configure_logging(settings.logging)
    application = FastAPI(title="vaultstamp", version="0.1.0", lifespan=_lifespan)
    for router in (health.router, stamp.router):
        application.include_router(router)
    return application


app = create_app()
