"""Volume and host reporters — local, synchronous system stats."""

from __future__ import annotations

import logging
import socket
import time
from collections.abc import Sequence

import psutil

from sysagent.checks.registry import VolumeDef
from sysagent.models import HostInfo, VolumeEntry

logger = logging.getLogger(__name__)


def read_volume(vol: VolumeDef) -> VolumeEntry:
    """Disk usage for one volume; a failed stat is reported, not retried."""
    try:
        usage = psutil.disk_usage(vol.path)
    except OSError as e:
        logger.warning("Volume %s (%s) unreadable: %s", vol.name, vol.path, e)
        return VolumeEntry(
            name=vol.name,
            path=vol.path,
            used_percent=-1,
            total_bytes=-1,
            free_bytes=-1,
            threshold=vol.threshold,
            error=str(e),
        )

    entry = VolumeEntry(
        name=vol.name,
        path=vol.path,
        used_percent=round(usage.percent, 2),
        total_bytes=usage.total,
        free_bytes=usage.free,
        threshold=vol.threshold,
    )
    if not entry.ok:
        logger.warning("Volume %s usage %.1f%% over threshold %.1f%%", vol.name, usage.percent, vol.threshold)
    return entry


def read_volumes(volumes: Sequence[VolumeDef]) -> list[VolumeEntry]:
    return [read_volume(v) for v in volumes]


def read_host() -> HostInfo | None:
    """Host metrics for the report; ``None`` if psutil can't read them."""
    try:
        try:
            loads = tuple(round(x, 2) for x in psutil.getloadavg())
        except (AttributeError, OSError):
            loads = (0.0, 0.0, 0.0)
        return HostInfo(
            hostname=socket.gethostname(),
            procs=len(psutil.pids()),
            cpu_percent=psutil.cpu_percent(interval=None),
            mem_percent=psutil.virtual_memory().percent,
            loads=loads,  # type: ignore[arg-type]
            uptime_seconds=int(time.time() - psutil.boot_time()),
        )
    except (psutil.Error, OSError) as e:
        logger.warning("Host info unavailable: %s", e)
        return None
