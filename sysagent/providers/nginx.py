"""Nginx provider — fetch and parse the ``stub_status`` page.

Example page::

    Active connections: 291
    server accepts handled requests
     16630948 16630948 31070465
    Reading: 6 Writing: 179 Waiting: 106
"""

from __future__ import annotations

import re
import time

import httpx

from sysagent.checks.registry import CheckKind, CheckRequest
from sysagent.models import CheckResult
from sysagent.providers.base import Provider, ProviderError

_ACTIVE = re.compile(r"Active connections:\s*(\d+)")
_COUNTERS = re.compile(r"^\s*(\d+)\s+(\d+)\s+(\d+)\s*$", re.MULTILINE)
_RWW = re.compile(r"Reading:\s*(\d+)\s+Writing:\s*(\d+)\s+Waiting:\s*(\d+)")


class NginxProvider(Provider):
    kind = CheckKind.NGINX

    def __init__(self, timeout: float = 5.0, transport: httpx.BaseTransport | None = None) -> None:
        super().__init__(timeout)
        self._transport = transport

    def status(self, request: CheckRequest) -> CheckResult:
        url = status_url(request)
        t0 = time.perf_counter()
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.get(url)
        except httpx.HTTPError as e:
            raise ProviderError(request.name, f"nginx status request failed: {type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            return self.result(request, resp.status_code, {"text": resp.text[:256]}, t0)
        try:
            body = parse_stub_status(resp.text)
        except ValueError as e:
            raise ProviderError(request.name, str(e)) from e
        return self.result(request, resp.status_code, body, t0)


def status_url(request: CheckRequest) -> str:
    """``nginx://host/status`` → ``http://host/status``."""
    scheme = request.options.get("scheme", "http")
    if request.target.startswith("nginx://"):
        return f"{scheme}://" + request.target[len("nginx://"):]
    return request.target


def parse_stub_status(text: str) -> dict[str, int]:
    active = _ACTIVE.search(text)
    counters = _COUNTERS.search(text)
    rww = _RWW.search(text)
    if not (active and counters and rww):
        raise ValueError(f"unexpected nginx status page: {text[:120]!r}")
    return {
        "active_connections": int(active.group(1)),
        "accepts": int(counters.group(1)),
        "handled": int(counters.group(2)),
        "requests": int(counters.group(3)),
        "reading": int(rww.group(1)),
        "writing": int(rww.group(2)),
        "waiting": int(rww.group(3)),
    }
