"""Docker provider — container states from the Docker engine API.

Targets: ``docker:///var/run/docker.sock`` talks to the unix socket,
``docker://host:2375`` to a TCP endpoint. The ``containers`` option lists
required containers separated by ``:``; any of them missing or not running
fails the check.
"""

from __future__ import annotations

import time
from typing import Any
from urllib.parse import urlsplit

import httpx

from sysagent.checks.registry import CheckKind, CheckRequest
from sysagent.models import CheckResult
from sysagent.providers.base import STATUS_FAILED, STATUS_OK, Provider, ProviderError

DEFAULT_SOCKET = "/var/run/docker.sock"


class DockerProvider(Provider):
    kind = CheckKind.DOCKER

    def __init__(self, timeout: float = 5.0, transport: httpx.BaseTransport | None = None) -> None:
        super().__init__(timeout)
        self._transport = transport

    def status(self, request: CheckRequest) -> CheckResult:
        base_url, transport = self._endpoint(request)
        t0 = time.perf_counter()
        try:
            with httpx.Client(base_url=base_url, timeout=self.timeout, transport=transport) as client:
                resp = client.get("/containers/json", params={"all": "true"})
            resp.raise_for_status()
            containers = resp.json()
        except httpx.HTTPError as e:
            raise ProviderError(request.name, f"docker request failed: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise ProviderError(request.name, f"docker response is not json: {e}") from e
        if not isinstance(containers, list):
            raise ProviderError(request.name, "docker response is not a container list")

        required = [c for c in request.options.get("containers", "").split(":") if c]
        code, body = summarize(containers, required)
        return self.result(request, code, body, t0)

    def _endpoint(self, request: CheckRequest) -> tuple[str, httpx.BaseTransport | None]:
        u = urlsplit(request.target)
        if u.hostname:
            return f"http://{u.netloc}", self._transport
        transport = self._transport or httpx.HTTPTransport(uds=u.path or DEFAULT_SOCKET)
        return "http://docker", transport


def summarize(containers: list[dict[str, Any]], required: list[str]) -> tuple[int, dict[str, Any]]:
    """Status code and body for a ``/containers/json`` listing."""
    info: dict[str, dict[str, Any]] = {}
    running = healthy = unhealthy = 0
    for c in containers:
        names = c.get("Names") or [c.get("Id", "")[:12]]
        name = names[0].lstrip("/")
        state = c.get("State", "")
        status = c.get("Status", "")
        is_healthy = "(healthy)" in status
        is_unhealthy = "(unhealthy)" in status
        running += int(state == "running")
        healthy += int(is_healthy)
        unhealthy += int(is_unhealthy)
        info[name] = {
            "name": name,
            "state": state,
            "status": status,
            "ok": state == "running" and not is_unhealthy,
        }

    missing = [n for n in required if not info.get(n, {}).get("ok")]
    body: dict[str, Any] = {
        "containers": info,
        "total": len(info),
        "running": running,
        "healthy": healthy,
        "unhealthy": unhealthy,
        "required": "failed" if missing else "ok",
    }
    if missing:
        body["failed"] = missing
        return STATUS_FAILED, body
    return STATUS_OK, body
