"""MongoDB provider — connection, ping and replica-set health.

For a replica set the body carries the member states; the check fails when a
member is in an unexpected state or a secondary's oplog lags the primary by
more than ``oplogMaxDelta`` (query option, Go-style duration, default 1m).
"""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit

from pymongo import MongoClient
from pymongo.errors import OperationFailure, PyMongoError

from sysagent.checks.registry import CheckKind, CheckRequest
from sysagent.models import CheckResult
from sysagent.providers.base import STATUS_FAILED, STATUS_OK, Provider, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_OPLOG_MAX_DELTA = timedelta(minutes=1)
NO_REPLICATION_ENABLED = 76
HEALTHY_STATES = {"PRIMARY", "SECONDARY", "ARBITER"}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


class MongoProvider(Provider):
    kind = CheckKind.MONGO

    def status(self, request: CheckRequest) -> CheckResult:
        try:
            max_delta = parse_duration(request.options.get("oplogMaxDelta", ""), DEFAULT_OPLOG_MAX_DELTA)
        except ValueError as e:
            raise ProviderError(request.name, f"can't parse oplogMaxDelta: {e}") from e

        timeout_ms = int(self.timeout * 1000)
        t0 = time.perf_counter()
        client: MongoClient[dict[str, Any]] = MongoClient(
            connection_uri(request.target),
            appname="sys-agent",
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms,
        )
        try:
            client.admin.command("ping")
            rs = repl_status(client, max_delta)
        except (PyMongoError, ValueError) as e:
            raise ProviderError(request.name, f"mongo check failed: {e}") from e
        finally:
            client.close()
        logger.debug("mongo %s replica set: %s", request.name, "none" if rs is None else rs["status"])

        body: dict[str, Any] = {"status": "ok"}
        code = STATUS_OK
        if rs is not None:
            body["rs"] = rs
            if rs["status"] != "ok" or rs["optime"] != "ok":
                code = STATUS_FAILED
        return self.result(request, code, body, t0)


def connection_uri(target: str) -> str:
    """Drop our own query options so the driver doesn't reject them."""
    u = urlsplit(target)
    query = [(k, v) for k, v in parse_qsl(u.query, keep_blank_values=True) if k != "oplogMaxDelta"]
    return u._replace(query=urlencode(query)).geturl()


def repl_status(client: MongoClient[dict[str, Any]], max_delta: timedelta) -> dict[str, Any] | None:
    """Replica-set summary, ``None`` for a standalone server."""
    try:
        rs = client.admin.command("replSetGetStatus")
    except OperationFailure as e:
        if e.code == NO_REPLICATION_ENABLED or "NoReplicationEnabled" in str(e):
            return None
        raise

    members = [
        {"name": m.get("name", ""), "state": m.get("stateStr", ""), "optime": member_optime(m)}
        for m in rs.get("members", [])
    ]
    if not members:
        raise ValueError("replica set has no members")
    return summarize_members(rs.get("set", ""), int(rs.get("ok", 0)), members, max_delta)


def summarize_members(
    set_name: str, ok: int, members: list[dict[str, Any]], max_delta: timedelta,
) -> dict[str, Any]:
    primary = next((m for m in members if m["state"] == "PRIMARY"), members[0])
    status = optime = "ok"
    for m in members:
        if m["state"] not in HEALTHY_STATES:
            status = "failed"
        if (
            m["state"] == "SECONDARY"
            and m["optime"] is not None
            and primary["optime"] is not None
            and primary["optime"] - m["optime"] > max_delta
        ):
            optime = "failed"
    if ok != 1:
        status = "failed"

    return {
        "info": {
            "set": set_name,
            "ok": ok,
            "members": [
                {**m, "optime": m["optime"].isoformat() if m["optime"] else None} for m in members
            ],
        },
        "status": status,
        "optime": optime,
    }


def member_optime(member: dict[str, Any]) -> datetime | None:
    optime = member.get("optimeDate")
    if not isinstance(optime, datetime):
        doc = member.get("optime")
        ts = doc.get("ts") if isinstance(doc, dict) else doc  # pre-3.2 servers send a bare Timestamp
        optime = ts.as_datetime() if hasattr(ts, "as_datetime") else None
    if optime is not None and optime.tzinfo is None:
        optime = optime.replace(tzinfo=timezone.utc)
    return optime


def parse_duration(value: str, default: timedelta) -> timedelta:
    """Parse Go-style durations such as ``30s``, ``1m30s`` or ``500ms``."""
    value = value.strip()
    if not value:
        return default
    pos, seconds = 0, 0.0
    for m in _DURATION_PART.finditer(value):
        if m.start() != pos:
            break
        seconds += float(m.group(1)) * _UNITS[m.group(2)]
        pos = m.end()
    if pos != len(value):
        raise ValueError(f"invalid duration {value!r}")
    return timedelta(seconds=seconds)
