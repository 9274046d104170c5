"""HTTP(S) provider — GET the target URL and report its status code."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from sysagent.checks.registry import CheckKind, CheckRequest
from sysagent.models import CheckResult
from sysagent.providers.base import Provider, ProviderError

logger = logging.getLogger(__name__)

MAX_TEXT_BODY = 1024


class HTTPProvider(Provider):
    """GET with status code + latency; the JSON body is passed through."""

    kind = CheckKind.HTTP

    def __init__(self, timeout: float = 5.0, transport: httpx.BaseTransport | None = None) -> None:
        super().__init__(timeout)
        self._transport = transport

    def status(self, request: CheckRequest) -> CheckResult:
        t0 = time.perf_counter()
        try:
            with httpx.Client(
                timeout=self.timeout, follow_redirects=True, transport=self._transport,
            ) as client:
                resp = client.get(request.target)
        except httpx.TimeoutException as e:
            raise ProviderError(request.name, f"http request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(request.name, f"http request failed: {type(e).__name__}: {e}") from e

        logger.debug("http %s %s → %d", request.name, request.target, resp.status_code)
        return self.result(request, resp.status_code, response_body(resp), t0)


def response_body(resp: httpx.Response) -> dict[str, Any]:
    """JSON object bodies are kept as-is, anything else is wrapped as text."""
    try:
        body = resp.json()
    except ValueError:
        return {"text": resp.text[:MAX_TEXT_BODY]}
    if isinstance(body, dict):
        return body
    return {"data": body}
