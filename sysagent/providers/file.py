"""File provider — stat a local file."""

from __future__ import annotations

import os
import time
from datetime import datetime, timezone
from urllib.parse import unquote, urlsplit

from sysagent.checks.registry import CheckKind, CheckRequest
from sysagent.models import CheckResult
from sysagent.providers.base import STATUS_OK, Provider, ProviderError


class FileProvider(Provider):
    kind = CheckKind.FILE

    def status(self, request: CheckRequest) -> CheckResult:
        path = file_path(request.target)
        t0 = time.perf_counter()
        try:
            st = os.stat(path)
        except OSError as e:
            raise ProviderError(request.name, f"can't get file info for {path}: {e}") from e

        modified = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
        body = {
            "size": st.st_size,
            "modif_time": modified.isoformat(),
            "since_modif": int((time.time() - st.st_mtime) * 1000),  # ms
            "status": "found",
        }
        return self.result(request, STATUS_OK, body, t0)


def file_path(target: str) -> str:
    """``file:///tmp/x`` → ``/tmp/x``; ``file://tmp/x`` → ``tmp/x``."""
    u = urlsplit(target)
    if u.scheme != "file":
        return target
    return unquote(u.netloc + u.path)
