"""Shared test fixtures."""

from __future__ import annotations

import threading
import time

import pytest

from sysagent.checks.registry import CheckKind, CheckRequest
from sysagent.models import CheckResult
from sysagent.providers.base import Provider, ProviderError, ProviderSet


class ScriptedProvider(Provider):
    """Behaves as told by the request options.

    ``delay`` seconds to sleep, ``code`` status to return, ``fail`` to raise
    ``ProviderError``, ``crash`` to raise an unexpected exception.
    """

    kind = CheckKind.HTTP

    def __init__(self) -> None:
        super().__init__(timeout=5.0)
        self._lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: list[str] = []

    def status(self, request: CheckRequest) -> CheckResult:
        t0 = time.perf_counter()
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            self.calls.append(request.name)
        try:
            time.sleep(float(request.options.get("delay", 0)))
            if "fail" in request.options:
                raise ProviderError(request.name, request.options["fail"])
            if "crash" in request.options:
                raise RuntimeError(request.options["crash"])
            return self.result(request, int(request.options.get("code", 200)), {"status": "ok"}, t0)
        finally:
            with self._lock:
                self.in_flight -= 1


def scripted(name: str, **options: object) -> CheckRequest:
    return CheckRequest(
        name=name,
        kind=CheckKind.HTTP,
        target=f"http://{name}.test/health",
        options={k: str(v) for k, v in options.items()},
    )


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def providers(provider: ScriptedProvider) -> ProviderSet:
    return ProviderSet([provider])
