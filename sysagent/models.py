"""Result models shared by providers, the dispatch engine and the API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


@dataclass(frozen=True)
class CheckResult:
    """Result of a single check execution."""

    name: str
    ok: bool
    status_code: int
    body: dict[str, Any] = field(default_factory=dict, hash=False)
    response_time_ms: int = 0
    error: str | None = None
    kind: str = ""

    @classmethod
    def from_status(
        cls,
        name: str,
        status_code: int,
        body: dict[str, Any] | None = None,
        response_time_ms: int = 0,
        kind: str = "",
    ) -> CheckResult:
        """Build a result whose ``ok`` follows the status code."""
        return cls(
            name=name,
            ok=is_success(status_code),
            status_code=status_code,
            body=body or {},
            response_time_ms=response_time_ms,
            kind=kind,
        )

    @classmethod
    def failure(
        cls,
        name: str,
        error: str,
        status_code: int = 500,
        response_time_ms: int = 0,
        kind: str = "",
    ) -> CheckResult:
        return cls(
            name=name,
            ok=False,
            status_code=status_code,
            body={"error": error},
            response_time_ms=response_time_ms,
            error=error,
            kind=kind,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "ok": self.ok,
            "statusCode": self.status_code,
            "body": self.body,
            "responseTimeMillis": self.response_time_ms,
            "error": self.error,
        }


@dataclass(frozen=True)
class VolumeEntry:
    """Disk usage of one configured volume.

    A volume that could not be read carries ``-1`` in every numeric field and
    the reason in ``error``.
    """

    name: str
    path: str
    used_percent: float
    total_bytes: int
    free_bytes: int
    threshold: float = 100.0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and 0 <= self.used_percent < self.threshold

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "usedPercent": self.used_percent,
            "totalBytes": self.total_bytes,
            "freeBytes": self.free_bytes,
            "threshold": self.threshold,
            "ok": self.ok,
            "error": self.error,
        }


@dataclass(frozen=True)
class HostInfo:
    """Informational host metrics, never part of the verdict."""

    hostname: str
    procs: int
    cpu_percent: float
    mem_percent: float
    loads: tuple[float, float, float]
    uptime_seconds: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "hostname": self.hostname,
            "procs": self.procs,
            "cpuPercent": self.cpu_percent,
            "memPercent": self.mem_percent,
            "loads": {"one": self.loads[0], "five": self.loads[1], "fifteen": self.loads[2]},
            "uptimeSeconds": self.uptime_seconds,
        }


@dataclass(frozen=True)
class AggregateReport:
    """Combined, ordered results of one report cycle."""

    results: tuple[CheckResult, ...]
    volumes: tuple[VolumeEntry, ...]
    version: str
    host: HostInfo | None = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def overall_ok(self) -> bool:
        return all(r.ok for r in self.results) and all(v.ok for v in self.volumes)

    def failed(self) -> list[str]:
        """Names of failed checks and volumes, in report order."""
        return [r.name for r in self.results if not r.ok] + [v.name for v in self.volumes if not v.ok]

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "volumes": [v.to_dict() for v in self.volumes],
            "host": self.host.to_dict() if self.host else None,
            "overallOk": self.overall_ok,
            "version": self.version,
            "generatedAt": self.generated_at.isoformat(),
        }
