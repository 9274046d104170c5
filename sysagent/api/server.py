"""FastAPI server exposing the aggregate status report."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sysagent import __version__
from sysagent.api.status_routes import status_router
from sysagent.checks.registry import CheckRegistry
from sysagent.config import Settings
from sysagent.health.engine import DispatchEngine
from sysagent.health.status import StatusService
from sysagent.providers.base import ProviderSet

logger = logging.getLogger(__name__)


def build_service(settings: Settings) -> StatusService:
    """Wire registry, providers and engine from settings.

    Raises ``ConfigError`` for bad services, volumes or config file, so the
    process fails before it starts listening.
    """
    registry = CheckRegistry.build(
        services=settings.services,
        volumes=settings.volumes,
        config_path=settings.config,
        threshold=settings.volume_threshold,
    )
    providers = ProviderSet.default(timeout=settings.timeout)
    providers.validate(registry.requests)
    engine = DispatchEngine(providers, max_concurrency=settings.concurrency, timeout=settings.timeout)
    return StatusService(registry, engine)


def create_app(settings: Settings, service: StatusService | None = None) -> FastAPI:
    """Build the app; ``service`` is built from settings when not given."""
    status_service = service or build_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Serving %d checks, %d volumes (concurrency=%d, timeout=%ss)",
            len(status_service.registry.requests), len(status_service.registry.volumes),
            settings.concurrency, settings.timeout,
        )
        yield
        status_service.close()
        logger.info("Status service stopped")

    app = FastAPI(title="sys-agent", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.status_service = status_service
    app.include_router(status_router)
    return app
