"""FastAPI host for the live refresh pipeline."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from matchpulse.config import Settings, get_settings
from matchpulse.etl.base import SnapshotSource
from matchpulse.routes.live import router as live_router
from matchpulse.runtime import build_live_context
from matchpulse.telemetry import init_sentry

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, source: Optional[SnapshotSource] = None) -> FastAPI:
    """
    App factory.

    The live context is built per app and started in the lifespan, so tests
    can pass their own settings and snapshot source.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info("Starting matchpulse live pipeline...")
        ctx = build_live_context(settings, source=source)
        app.state.live = ctx
        ctx.start()
        try:
            yield
        finally:
            logger.info("Shutting down live pipeline...")
            await ctx.close()

    app = FastAPI(title="matchpulse", lifespan=lifespan)
    app.include_router(live_router)
    return app


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx logs every request, apscheduler every job run
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


_settings = get_settings()
_configure_logging(_settings)
init_sentry(_settings)

app = create_app(_settings)
