"""Program provider — run a local command and check its exit code."""

from __future__ import annotations

import logging
import subprocess
import sys
import time
from urllib.parse import unquote, urlsplit

from sysagent.checks.registry import CheckKind, CheckRequest
from sysagent.models import CheckResult
from sysagent.providers.base import STATUS_ERROR, STATUS_OK, Provider, ProviderError

logger = logging.getLogger(__name__)

MAX_OUTPUT = 1024


class ProgramProvider(Provider):
    """Run ``program://path?args=...`` through the shell with a timeout."""

    kind = CheckKind.PROGRAM

    def __init__(self, timeout: float = 5.0, with_shell: bool = True) -> None:
        super().__init__(timeout)
        self.with_shell = with_shell

    def status(self, request: CheckRequest) -> CheckResult:
        command = program_command(request)
        if self.with_shell:
            cmd = ["cmd", "/c", command] if sys.platform == "win32" else ["sh", "-c", command]
        else:
            cmd = command.split()

        t0 = time.perf_counter()
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                encoding="utf-8",
                errors="replace",
            )
        except subprocess.TimeoutExpired as e:
            raise ProviderError(request.name, f"program timed out after {self.timeout}s: {command}") from e
        except OSError as e:
            raise ProviderError(request.name, f"can't run {command}: {e}") from e

        logger.debug("program %s exited with %d", request.name, proc.returncode)
        body = {
            "command": command,
            "stdout": proc.stdout[:MAX_OUTPUT],
            "exit_code": proc.returncode,
            "status": "ok" if proc.returncode == 0 else "failed",
        }
        if proc.returncode != 0 and proc.stderr:
            body["stderr"] = proc.stderr[:MAX_OUTPUT]
        return self.result(request, STATUS_OK if proc.returncode == 0 else STATUS_ERROR, body, t0)


def program_command(request: CheckRequest) -> str:
    u = urlsplit(request.target)
    path = unquote(u.netloc + u.path) if u.scheme == "program" else request.target
    if not path:
        raise ProviderError(request.name, f"no program in {request.target!r}")
    args = request.options.get("args", "")
    return f"{path} {args}".strip()
