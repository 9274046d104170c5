from sysagent.checks.registry import (
    CheckKind,
    CheckRegistry,
    CheckRequest,
    ConfigError,
    VolumeDef,
    parse_service,
    parse_volume,
)

__all__ = [
    "CheckKind",
    "CheckRegistry",
    "CheckRequest",
    "ConfigError",
    "VolumeDef",
    "parse_service",
    "parse_volume",
]
