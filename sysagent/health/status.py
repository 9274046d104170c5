"""Status service — one full report cycle per call."""

from __future__ import annotations

import asyncio
import logging

from sysagent.checks.registry import CheckRegistry
from sysagent.health.engine import DispatchEngine
from sysagent.health.volumes import read_host, read_volumes
from sysagent.models import AggregateReport

logger = logging.getLogger(__name__)


class StatusService:
    """Combines the dispatch engine with volume and host stats.

    Nothing is cached: every ``report()`` re-reads the volumes and re-runs
    every check.
    """

    def __init__(self, registry: CheckRegistry, engine: DispatchEngine, with_host: bool = True) -> None:
        self.registry = registry
        self.engine = engine
        self.with_host = with_host

    async def report(self) -> AggregateReport:
        loop = asyncio.get_running_loop()
        # local stats are quick; keep them off the event loop anyway
        volumes = await loop.run_in_executor(None, read_volumes, self.registry.volumes)
        host = await loop.run_in_executor(None, read_host) if self.with_host else None
        report = await self.engine.run_all(self.registry.requests, volumes=volumes, host=host)
        if not report.overall_ok:
            logger.info("Status degraded: %s", ", ".join(report.failed()))
        return report

    def close(self) -> None:
        self.engine.close()
