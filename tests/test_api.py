"""Tests for the status server."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import scripted
from sysagent.api.server import build_service, create_app
from sysagent.checks.registry import CheckRegistry, ConfigError
from sysagent.config import Settings
from sysagent.health.engine import DispatchEngine
from sysagent.health.status import StatusService


def _client(providers, requests, **settings) -> TestClient:
    engine = DispatchEngine(providers, max_concurrency=2, timeout=1.0)
    service = StatusService(CheckRegistry(requests), engine, with_host=False)
    return TestClient(create_app(Settings(**settings), service))


class TestStatusRoutes:
    def test_ping(self, providers) -> None:
        with _client(providers, []) as client:
            resp = client.get("/ping")
        assert resp.status_code == 200
        assert resp.text == "pong"

    def test_all_ok(self, providers) -> None:
        with _client(providers, [scripted("a"), scripted("b")]) as client:
            resp = client.get("/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["overallOk"] is True
        assert [r["name"] for r in data["results"]] == ["a", "b"]
        assert data["results"][0]["statusCode"] == 200
        assert "responseTimeMillis" in data["results"][0]
        assert data["volumes"] == []
        assert data["host"] is None

    def test_degraded_returns_fail_code(self, providers) -> None:
        with _client(providers, [scripted("a"), scripted("b", fail="refused")]) as client:
            resp = client.get("/status")
        assert resp.status_code == 503
        data = resp.json()
        assert data["overallOk"] is False
        assert data["results"][1]["error"] == "refused"

    def test_custom_codes(self, providers) -> None:
        with _client(providers, [scripted("a", code=500)], status_fail_code=500) as client:
            assert client.get("/status").status_code == 500

    def test_each_request_reruns_checks(self, provider, providers) -> None:
        with _client(providers, [scripted("a")]) as client:
            client.get("/status")
            client.get("/status")
        assert provider.calls == ["a", "a"]


class TestBuildService:
    def test_from_settings(self, tmp_path) -> None:
        f = tmp_path / "marker"
        f.write_text("x")
        service = build_service(Settings(services=[f"marker:file://{f}"], volumes=["tmp:/tmp"]))
        try:
            assert [r.name for r in service.registry.requests] == ["marker"]
            assert [v.name for v in service.registry.volumes] == ["tmp"]
        finally:
            service.close()

    def test_bad_service(self) -> None:
        with pytest.raises(ConfigError):
            build_service(Settings(services=["broken"]))
