"""Check registry — builds the ordered list of checks and volumes.

Checks come from ``name:url`` strings (CLI flags / environment) and from the
optional YAML config file. The registry is built once at start-up and is
read-only afterwards; every problem found here is a ``ConfigError``.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any
from urllib.parse import parse_qsl, quote, urlsplit

import yaml

logger = logging.getLogger(__name__)

DEFAULT_VOLUME = "root:/"
DEFAULT_THRESHOLD = 90.0


class ConfigError(ValueError):
    """Raised for invalid check or volume configuration."""


# ── Data models ──────────────────────────────────────────────────────────────


class CheckKind(str, Enum):
    HTTP = "http"
    MONGO = "mongo"
    MYSQL = "mysql"
    DOCKER = "docker"
    PROGRAM = "program"
    NGINX = "nginx"
    CERTIFICATE = "certificate"
    FILE = "file"
    RMQ = "rmq"


# URL scheme → check kind
SCHEME_KINDS: dict[str, CheckKind] = {
    "http": CheckKind.HTTP,
    "https": CheckKind.HTTP,
    "mongodb": CheckKind.MONGO,
    "mysql": CheckKind.MYSQL,
    "docker": CheckKind.DOCKER,
    "program": CheckKind.PROGRAM,
    "nginx": CheckKind.NGINX,
    "cert": CheckKind.CERTIFICATE,
    "file": CheckKind.FILE,
    "rmq": CheckKind.RMQ,
}


@dataclass(frozen=True)
class CheckRequest:
    """A single configured check."""

    name: str
    kind: CheckKind
    target: str
    options: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        # freeze options so a request can be shared across threads
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))


@dataclass(frozen=True)
class VolumeDef:
    """A filesystem path to report disk usage for."""

    name: str
    path: str
    threshold: float = DEFAULT_THRESHOLD


# ── Registry ─────────────────────────────────────────────────────────────────


class CheckRegistry:
    """Validated, ordered checks and volumes."""

    def __init__(
        self,
        requests: Iterable[CheckRequest] = (),
        volumes: Iterable[VolumeDef] = (),
    ) -> None:
        self._requests = tuple(requests)
        self._volumes = tuple(volumes)
        _ensure_unique((r.name for r in self._requests), "check")
        _ensure_unique((v.name for v in self._volumes), "volume")

    @property
    def requests(self) -> tuple[CheckRequest, ...]:
        return self._requests

    @property
    def volumes(self) -> tuple[VolumeDef, ...]:
        return self._volumes

    @classmethod
    def build(
        cls,
        services: Sequence[str] = (),
        volumes: Sequence[str] = (),
        config_path: str | Path | None = None,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> CheckRegistry:
        """Merge command line / environment values with the config file.

        Services from flags come first, followed by the config file ones.
        Volumes from flags replace the config file volumes; with neither,
        the root filesystem is reported.
        """
        requests = [parse_service(s) for s in services]
        vols = [parse_volume(v, threshold) for v in volumes]

        if config_path:
            file_requests, file_volumes = load_config_file(Path(config_path), threshold)
            requests.extend(file_requests)
            if not vols:
                vols = file_volumes

        if not vols:
            vols = [parse_volume(DEFAULT_VOLUME, threshold)]

        registry = cls(requests, vols)
        logger.info(
            "Check registry built: %d checks, %d volumes",
            len(registry.requests), len(registry.volumes),
        )
        logger.debug("checks: %s", [f"{r.name}:{r.kind.value}" for r in registry.requests])
        return registry


def _ensure_unique(names: Iterable[str], what: str) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ConfigError(f"duplicate {what} name: {name!r}")
        seen.add(name)


# ── Parsers ──────────────────────────────────────────────────────────────────


def parse_service(value: str) -> CheckRequest:
    """Parse a ``name:url`` service string, e.g. ``site:https://example.com``."""
    name, sep, url = value.strip().partition(":")
    if not sep or not name or not url:
        raise ConfigError(f"invalid service format {value!r}, should be <name>:<url>")
    return request_from_url(name, url)


def request_from_url(name: str, url: str) -> CheckRequest:
    """Build a request whose kind is derived from the URL scheme."""
    scheme = urlsplit(url).scheme.lower()
    kind = SCHEME_KINDS.get(scheme)
    if kind is None:
        raise ConfigError(f"unsupported scheme {scheme!r} for check {name!r}")
    options = dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    return CheckRequest(name=name, kind=kind, target=url, options=options)


def parse_volume(value: str, threshold: float = DEFAULT_THRESHOLD) -> VolumeDef:
    """Parse a ``name:path`` volume string."""
    name, sep, path = value.strip().partition(":")
    if not sep or not name or not path:
        raise ConfigError(f"invalid volume format {value!r}, should be <name>:<path>")
    return VolumeDef(name=name, path=path, threshold=threshold)


def load_config_file(
    path: Path, threshold: float = DEFAULT_THRESHOLD,
) -> tuple[list[CheckRequest], list[VolumeDef]]:
    """Parse the YAML config file into requests and volumes."""
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"can't load config {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"config {path} must be a mapping")

    volumes = []
    for v in raw.get("volumes") or []:
        _require(v, ("name", "path"), "volume")
        try:
            vol_threshold = float(v.get("threshold", threshold))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"volume {v['name']!r} has invalid threshold {v.get('threshold')!r}") from e
        volumes.append(VolumeDef(name=str(v["name"]), path=str(v["path"]), threshold=vol_threshold))

    requests = []
    services = raw.get("services") or {}
    if not isinstance(services, dict):
        raise ConfigError("'services' must be a mapping of check kind to entries")
    for section, entries in services.items():
        parser = _SECTION_PARSERS.get(section)
        if parser is None:
            raise ConfigError(f"unknown services section {section!r}")
        for entry in entries or []:
            requests.append(parser(entry))

    logger.info("Loaded %s: %d checks, %d volumes", path, len(requests), len(volumes))
    return requests, volumes


def _require(entry: Any, keys: Sequence[str], what: str) -> None:
    if not isinstance(entry, dict):
        raise ConfigError(f"{what} entry must be a mapping, got {entry!r}")
    missing = [k for k in keys if not entry.get(k)]
    if missing:
        raise ConfigError(f"{what} entry {entry.get('name', '?')!r} missing {', '.join(missing)}")


def _parse_http(c: dict[str, Any]) -> CheckRequest:
    _require(c, ("name", "url"), "http")
    return CheckRequest(name=c["name"], kind=CheckKind.HTTP, target=c["url"])


def _parse_certificate(c: dict[str, Any]) -> CheckRequest:
    _require(c, ("name", "url"), "certificate")
    options = {}
    if "warn_days" in c:
        options["warn_days"] = str(c["warn_days"])
    return CheckRequest(name=c["name"], kind=CheckKind.CERTIFICATE, target=c["url"], options=options)


def _parse_file(c: dict[str, Any]) -> CheckRequest:
    _require(c, ("name", "path"), "file")
    return CheckRequest(name=c["name"], kind=CheckKind.FILE, target=f"file://{c['path']}")


def _parse_program(c: dict[str, Any]) -> CheckRequest:
    _require(c, ("name", "path"), "program")
    options = {}
    if c.get("args"):
        options["args"] = shlex.join(str(a) for a in c["args"])
    return CheckRequest(
        name=c["name"], kind=CheckKind.PROGRAM, target=f"program://{c['path']}", options=options,
    )


def _parse_nginx(c: dict[str, Any]) -> CheckRequest:
    _require(c, ("name", "status_url"), "nginx")
    u = urlsplit(c["status_url"])
    return CheckRequest(
        name=c["name"], kind=CheckKind.NGINX,
        target=u._replace(scheme="nginx").geturl(),
        options={"scheme": u.scheme or "http"},
    )


def _parse_docker(c: dict[str, Any]) -> CheckRequest:
    _require(c, ("name", "url"), "docker")
    u = urlsplit(c["url"])
    # unix:///var/run/docker.sock → docker:///var/run/docker.sock, tcp://h:p → docker://h:p
    target = u._replace(scheme="docker").geturl()
    if u.scheme == "unix":
        target = f"docker://{u.path}"
    options = {}
    if c.get("containers"):
        options["containers"] = ":".join(str(x) for x in c["containers"])
    return CheckRequest(name=c["name"], kind=CheckKind.DOCKER, target=target, options=options)


def _parse_rmq(c: dict[str, Any]) -> CheckRequest:
    _require(c, ("name", "url", "vhost", "queue"), "rmq")
    u = urlsplit(c["url"])
    creds = ""
    if c.get("user"):
        creds = quote(str(c["user"]), safe="") + ":" + quote(str(c.get("pass", "")), safe="") + "@"
    vhost = quote(str(c["vhost"]), safe="")
    queue = quote(str(c["queue"]), safe="")
    target = f"rmq://{creds}{u.netloc}/{vhost}/{queue}"
    return CheckRequest(
        name=c["name"], kind=CheckKind.RMQ, target=target, options={"scheme": u.scheme or "http"},
    )


def _parse_mongo(c: dict[str, Any]) -> CheckRequest:
    _require(c, ("name", "url"), "mongo")
    options = {}
    if c.get("oplog_max_delta"):
        options["oplogMaxDelta"] = str(c["oplog_max_delta"])
    return CheckRequest(name=c["name"], kind=CheckKind.MONGO, target=c["url"], options=options)


def _parse_mysql(c: dict[str, Any]) -> CheckRequest:
    _require(c, ("name", "url"), "mysql")
    return CheckRequest(name=c["name"], kind=CheckKind.MYSQL, target=c["url"])


_SECTION_PARSERS = {
    "http": _parse_http,
    "certificate": _parse_certificate,
    "file": _parse_file,
    "program": _parse_program,
    "nginx": _parse_nginx,
    "docker": _parse_docker,
    "rmq": _parse_rmq,
    "mongo": _parse_mongo,
    "mysql": _parse_mysql,
}
