"""
Token refresh worker — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI

from api.routes import router as refresh_router
from config.settings import config
from connectors.registry import build_default_registry
from core.scheduler import TokenRefreshScheduler
from core.state import SchedulerState

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "sqlalchemy.engine", "asyncio"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Token Refresh Worker",
        version="1.0.0",
        description="Keeps OAuth access tokens fresh across providers.",
    )

    app.include_router(refresh_router, prefix="/api/v1/token-refresh")

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.on_event("startup")
    async def on_startup():
        from database.session import async_session_factory

        logger.info("Registering providers…")
        registry = build_default_registry(config, async_session_factory)
        if not len(registry):
            logger.warning("No providers configured; sweeps will be empty")

        state = SchedulerState.from_settings(registry, config)
        scheduler = TokenRefreshScheduler(state)
        app.state.token_refresh_scheduler = scheduler
        scheduler.start()

        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        scheduler = getattr(app.state, "token_refresh_scheduler", None)
        if scheduler is None:
            return
        scheduler.stop()
        await scheduler.drain()
        scheduler.state.close()
        app.state.token_refresh_scheduler = None

        from database.session import engine

        await engine.dispose()

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
