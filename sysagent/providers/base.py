"""Provider contract — one implementation per check kind.

A provider turns a ``CheckRequest`` into a ``CheckResult``. Transport and
protocol failures are raised as ``ProviderError``; a resource that answers
but is unhealthy is a normal result with a non-2xx status code.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from sysagent.checks.registry import CheckKind, CheckRequest, ConfigError
from sysagent.models import CheckResult

logger = logging.getLogger(__name__)

STATUS_OK = 200
STATUS_FAILED = 417  # resource answered but its state fails the check
STATUS_ERROR = 500


class ProviderError(Exception):
    """Raised when a provider can't reach or understand its resource."""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        self.message = message
        super().__init__(f"{name}: {message}")


class Provider(ABC):
    """Base class for check providers. Instances are shared across threads."""

    kind: CheckKind

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout

    @abstractmethod
    def status(self, request: CheckRequest) -> CheckResult:
        """Check one resource, raise ``ProviderError`` on transport failure."""

    def result(
        self,
        request: CheckRequest,
        status_code: int,
        body: dict[str, Any],
        started: float,
    ) -> CheckResult:
        return CheckResult.from_status(
            name=request.name,
            status_code=status_code,
            body=body,
            response_time_ms=elapsed_ms(started),
            kind=self.kind.value,
        )


def elapsed_ms(started: float) -> int:
    """Milliseconds since a ``time.perf_counter()`` reading."""
    return int((time.perf_counter() - started) * 1000)


class ProviderSet(Mapping[CheckKind, Provider]):
    """Immutable mapping of check kind to provider."""

    def __init__(self, providers: Iterable[Provider]) -> None:
        self._providers: dict[CheckKind, Provider] = {}
        for p in providers:
            self._providers[p.kind] = p

    def __getitem__(self, kind: CheckKind) -> Provider:
        return self._providers[kind]

    def __iter__(self) -> Iterator[CheckKind]:
        return iter(self._providers)

    def __len__(self) -> int:
        return len(self._providers)

    def require(self, kind: CheckKind) -> Provider:
        """Look up a provider, failing with ``ConfigError`` if none is registered."""
        provider = self._providers.get(kind)
        if provider is None:
            raise ConfigError(f"no provider registered for check kind {kind.value!r}")
        return provider

    def validate(self, requests: Iterable[CheckRequest]) -> None:
        for r in requests:
            self.require(r.kind)

    @classmethod
    def default(cls, timeout: float) -> ProviderSet:
        """All built-in providers sharing one timeout."""
        from sysagent.providers.certificate import CertificateProvider
        from sysagent.providers.docker import DockerProvider
        from sysagent.providers.file import FileProvider
        from sysagent.providers.http import HTTPProvider
        from sysagent.providers.mongo import MongoProvider
        from sysagent.providers.mysql import MysqlProvider
        from sysagent.providers.nginx import NginxProvider
        from sysagent.providers.program import ProgramProvider
        from sysagent.providers.rmq import RMQProvider

        providers = cls([
            HTTPProvider(timeout=timeout),
            MongoProvider(timeout=timeout),
            MysqlProvider(timeout=timeout),
            DockerProvider(timeout=timeout),
            ProgramProvider(timeout=timeout),
            NginxProvider(timeout=timeout),
            CertificateProvider(timeout=timeout),
            FileProvider(timeout=timeout),
            RMQProvider(timeout=timeout),
        ])
        logger.debug("Providers ready: %s (timeout=%ss)", sorted(k.value for k in providers), timeout)
        return providers
