"""Health subsystem — dispatch engine, volume/host reporters, status service."""

from sysagent.models import AggregateReport, CheckResult, HostInfo, VolumeEntry

from .engine import DispatchEngine, run_all
from .status import StatusService
from .volumes import read_host, read_volumes
