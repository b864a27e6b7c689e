"""Placed job service - FastAPI application."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import errors
from app.api.v1 import health as health_api
from app.api.v1 import jobs as jobs_api
from app.api.v1 import judge as judge_api
from app.api.v1.health import router as health_root_router
from app.api.v1.router import v1_router
from app.collaborators.base import Collaborators
from app.config import settings
from app.container import Container, build_container
from app.idempotency import route as idempotency_route
from app.storage.registry import Stores

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

logger = logging.getLogger(__name__)


def _wire(container: Optional[Container]) -> None:
    """Point the API modules at the container's services (None unwires)."""
    jobs_api.set_gateway(container.gateway if container else None)
    jobs_api.set_artifacts(container.artifacts if container else None)
    judge_api.set_gateway(container.gateway if container else None)
    health_api.set_dispatcher(container.dispatcher if container else None)
    idempotency_route.set_service(container.idempotency if container else None)


async def purge_expired(container: Container) -> None:
    """Drop expired idempotency records and artifact directories."""
    keys = await container.idempotency.purge_expired()
    dirs = await asyncio.to_thread(container.artifacts.cleanup_expired)
    if keys or dirs:
        logger.info("Purged %d idempotency key(s), %d artifact dir(s)", keys, dirs)


def create_app(
    stores: Optional[Stores] = None,
    collaborators: Optional[Collaborators] = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        logger.info("Starting Placed job service on port %s", settings.api_port)
        container = build_container(settings, stores=stores, collaborators=collaborators)
        app.state.container = container

        await container.dispatcher.start()
        logger.info("Job dispatcher started with %d worker(s)", container.dispatcher.worker_count)
        _wire(container)
        await container.executor.recover_unfinished(container.dispatcher)

        stop_event = asyncio.Event()

        async def periodic_purge() -> None:
            while not stop_event.is_set():
                try:
                    await purge_expired(container)
                except Exception as exc:
                    logger.warning("Periodic purge failed: %s", exc)
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=settings.purge_interval_seconds)
                except asyncio.TimeoutError:
                    continue

        purge_task = asyncio.create_task(periodic_purge())

        yield

        logger.info("Shutting down Placed job service")
        stop_event.set()
        if not purge_task.done():
            purge_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await purge_task
        await container.dispatcher.stop()
        _wire(None)

    app = FastAPI(
        title="Placed Job Service",
        description="Background jobs, idempotent requests and multi-judge evaluation",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    errors.register_exception_handlers(app)

    app.include_router(health_root_router, tags=["health"])  # GET /health at root
    app.include_router(v1_router)  # All /api/v1/* endpoints
    return app


app = create_app()
