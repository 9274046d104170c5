"""Dispatch engine — runs all checks concurrently and folds the results.

Provider calls block on network or local I/O, so each one runs on its own
daemon thread, started only once the check holds a concurrency slot. At most
``max_concurrency`` checks are in flight; each deadline counts from the moment
its thread starts, and a check that misses it is reported as ``timeout``
while its thread is left to finish in the background. Results are
slotted by input index, so output order never depends on completion order.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Sequence
from dataclasses import replace

from sysagent import __version__
from sysagent.checks.registry import CheckRequest, ConfigError
from sysagent.models import AggregateReport, CheckResult, HostInfo, VolumeEntry
from sysagent.providers.base import Provider, ProviderError, ProviderSet, elapsed_ms

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "timeout"
STATUS_PROVIDER_ERROR = 500
STATUS_TIMEOUT = 504


class DispatchEngine:
    """Bounded-concurrency executor for check requests.

    The engine holds no per-batch state; ``run_all`` may be called
    concurrently from several requests, each batch getting its own gate.
    """

    def __init__(
        self,
        providers: ProviderSet,
        max_concurrency: int,
        timeout: float,
        version: str = __version__,
    ) -> None:
        if max_concurrency < 1:
            raise ConfigError(f"max concurrency must be at least 1, got {max_concurrency}")
        if timeout <= 0:
            raise ConfigError(f"check timeout must be positive, got {timeout}")
        self.providers = providers
        self.max_concurrency = max_concurrency
        self.timeout = timeout
        self.version = version
        self._lock = threading.Lock()
        self._abandoned: set[threading.Thread] = set()

    async def run_all(
        self,
        requests: Sequence[CheckRequest],
        volumes: Sequence[VolumeEntry] = (),
        host: HostInfo | None = None,
    ) -> AggregateReport:
        """Run every request and return the aggregate report.

        Raises ``ConfigError`` before starting anything if a request's kind
        has no provider. Every other failure becomes a failed result.
        """
        self.providers.validate(requests)

        t0 = time.perf_counter()
        gate = asyncio.Semaphore(self.max_concurrency)
        slots: list[CheckResult | None] = [None] * len(requests)

        async def run_slot(index: int, request: CheckRequest) -> None:
            async with gate:
                slots[index] = await self._run_one(request)

        await asyncio.gather(*(run_slot(i, r) for i, r in enumerate(requests)))

        # _run_one never raises for a failing check, so every slot is filled
        results = tuple(r for r in slots if r is not None)
        if len(results) != len(requests):
            raise RuntimeError(f"{len(requests) - len(results)} checks produced no result")
        report = AggregateReport(results=results, volumes=tuple(volumes), version=self.version, host=host)
        logger.debug(
            "Batch done: %d checks, %d failed, ok=%s (%dms)",
            len(results), sum(not r.ok for r in results), report.overall_ok, elapsed_ms(t0),
        )
        return report

    async def _run_one(self, request: CheckRequest) -> CheckResult:
        """Run one provider call with a deadline, never raising for check failures."""
        provider = self.providers.require(request.kind)
        kind = request.kind.value
        t0 = time.perf_counter()
        thread, future = self._start_call(provider, request)
        try:
            result = await asyncio.wait_for(future, timeout=self.timeout)
        except asyncio.TimeoutError:
            self._abandon(thread)
            logger.warning("Check %s timed out after %ss", request.name, self.timeout)
            return CheckResult.failure(
                request.name, TIMEOUT_ERROR, status_code=STATUS_TIMEOUT,
                response_time_ms=elapsed_ms(t0), kind=kind,
            )
        except ProviderError as e:
            logger.warning("Check %s failed: %s", request.name, e.message)
            return CheckResult.failure(
                request.name, e.message, status_code=STATUS_PROVIDER_ERROR,
                response_time_ms=elapsed_ms(t0), kind=kind,
            )
        except Exception as e:
            logger.exception("Check %s crashed", request.name)
            return CheckResult.failure(
                request.name, f"{type(e).__name__}: {e}", status_code=STATUS_PROVIDER_ERROR,
                response_time_ms=elapsed_ms(t0), kind=kind,
            )

        if not isinstance(result, CheckResult):
            logger.error("Check %s returned %r instead of a result", request.name, type(result).__name__)
            return CheckResult.failure(
                request.name, f"invalid provider result: {type(result).__name__}",
                status_code=STATUS_PROVIDER_ERROR, response_time_ms=elapsed_ms(t0), kind=kind,
            )
        if not result.ok:
            logger.warning("Check %s is down: status %d", request.name, result.status_code)
        return replace(result, name=request.name, kind=kind)

    def _start_call(
        self, provider: Provider, request: CheckRequest,
    ) -> tuple[threading.Thread, asyncio.Future[CheckResult]]:
        """Start the provider call on a fresh thread, so its deadline runs from now."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[CheckResult] = loop.create_future()

        def call() -> None:
            result, error = None, None
            try:
                result = provider.status(request)
            except Exception as e:
                error = e
            try:
                loop.call_soon_threadsafe(_settle, future, result, error)
            except RuntimeError:
                # loop closed, the batch that wanted this result is gone
                logger.debug("Dropped late result of check %s", request.name)

        thread = threading.Thread(target=call, name=f"check-{request.name}", daemon=True)
        thread.start()
        return thread, future

    def _abandon(self, thread: threading.Thread) -> None:
        with self._lock:
            self._abandoned = {t for t in self._abandoned if t.is_alive()}
            self._abandoned.add(thread)

    def abandoned(self) -> int:
        """Timed-out provider calls that are still running."""
        with self._lock:
            return sum(t.is_alive() for t in self._abandoned)

    def close(self) -> None:
        """Abandoned calls are daemon threads and are not waited for."""
        left = self.abandoned()
        if left:
            logger.warning("Closing engine with %d timed-out checks still running", left)


async def run_all(
    requests: Sequence[CheckRequest],
    providers: ProviderSet,
    max_concurrency: int,
    timeout: float,
    volumes: Sequence[VolumeEntry] = (),
) -> AggregateReport:
    """One-shot helper: run a batch on a throwaway engine."""
    engine = DispatchEngine(providers, max_concurrency, timeout)
    try:
        return await engine.run_all(requests, volumes)
    finally:
        engine.close()


def _settle(future: asyncio.Future[CheckResult], result: CheckResult | None, error: Exception | None) -> None:
    if future.done():  # cancelled by the deadline
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)  # type: ignore[arg-type]
