"""TLS certificate provider — reports days until the peer certificate expires."""

from __future__ import annotations

import socket
import ssl
import time
from datetime import datetime, timezone
from urllib.parse import urlsplit

from sysagent.checks.registry import CheckKind, CheckRequest
from sysagent.models import CheckResult
from sysagent.providers.base import STATUS_FAILED, STATUS_OK, Provider, ProviderError

DEFAULT_WARN_DAYS = 14


class CertificateProvider(Provider):
    """Check TLS certificate expiry for ``cert://host[:port]`` or ``https://host``."""

    kind = CheckKind.CERTIFICATE

    def status(self, request: CheckRequest) -> CheckResult:
        hostname, port = cert_address(request)
        warn_days = int(request.options.get("warn_days", DEFAULT_WARN_DAYS))

        t0 = time.perf_counter()
        try:
            ctx = ssl.create_default_context()
            with socket.create_connection((hostname, port), timeout=self.timeout) as sock:
                with ctx.wrap_socket(sock, server_hostname=hostname) as ssock:
                    cert = ssock.getpeercert()
        except ssl.SSLCertVerificationError as e:
            # an expired certificate fails verification before we can read it
            if "expired" in str(e).lower():
                return self.result(request, STATUS_FAILED, {"status": "expired", "error": str(e)}, t0)
            raise ProviderError(request.name, f"certificate verification failed: {e}") from e
        except (OSError, ssl.SSLError) as e:
            raise ProviderError(request.name, f"TLS error: {type(e).__name__}: {e}") from e

        if not cert or "notAfter" not in cert:
            raise ProviderError(request.name, "no certificate returned")

        expiry = datetime.fromtimestamp(ssl.cert_time_to_seconds(cert["notAfter"]), tz=timezone.utc)
        return self.result(request, *expiry_status(expiry, warn_days), t0)


def cert_address(request: CheckRequest) -> tuple[str, int]:
    u = urlsplit(request.target)
    if not u.hostname:
        raise ProviderError(request.name, f"no host in {request.target!r}")
    return u.hostname, u.port or 443


def expiry_status(
    expiry: datetime, warn_days: int, now: datetime | None = None,
) -> tuple[int, dict[str, object]]:
    """Status code and body for a certificate expiring at ``expiry``."""
    now = now or datetime.now(timezone.utc)
    days_left = (expiry - now).days
    if expiry <= now:
        status, code = "expired", STATUS_FAILED
    elif days_left < warn_days:
        status, code = "expiring", STATUS_OK
    else:
        status, code = "ok", STATUS_OK
    return code, {"expire": expiry.isoformat(), "days_left": days_left, "status": status}
