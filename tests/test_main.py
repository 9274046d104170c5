"""Tests for the one-shot ``check`` command."""

from __future__ import annotations

import asyncio
import json

import pytest

from conftest import scripted
from sysagent.checks.registry import CheckRegistry
from sysagent.health.engine import DispatchEngine
from sysagent.health.status import StatusService
from sysagent.main import main, report_table, run_check


def _service(providers, requests) -> StatusService:
    engine = DispatchEngine(providers, max_concurrency=2, timeout=1.0)
    return StatusService(CheckRegistry(requests), engine, with_host=False)


class TestRunCheck:
    def test_json_output(self, providers, capsys) -> None:
        ok = run_check(_service(providers, [scripted("a")]), as_json=True)
        assert ok is True
        data = json.loads(capsys.readouterr().out)
        assert data["overallOk"] is True
        assert data["results"][0]["name"] == "a"

    def test_failure_verdict(self, providers) -> None:
        assert run_check(_service(providers, [scripted("a", fail="down")])) is False

    def test_table_rows(self, providers) -> None:
        service = _service(providers, [scripted("a"), scripted("b", code=503)])
        try:
            report = asyncio.run(service.report())
        finally:
            service.close()
        assert report_table(report).row_count == 2


class TestMain:
    def test_config_error_exits_1(self, monkeypatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc:
            main(["-s", "bad", "check"])
        assert exc.value.code == 1

    def test_invalid_setting_exits_1(self, monkeypatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc:
            main(["--concurrency", "0", "check"])
        assert exc.value.code == 1

    def test_check_exit_code(self, monkeypatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc:
            main(["-s", f"gone:file://{tmp_path}/nope", "-v", f"tmp:{tmp_path}", "check", "--json"])
        assert exc.value.code == 1

    def test_bad_volume_threshold_exits_1(self, monkeypatch, tmp_path, capsys) -> None:
        monkeypatch.chdir(tmp_path)
        config = tmp_path / "sys-agent.yml"
        config.write_text("volumes:\n  - {name: root, path: /, threshold: lots}\n")
        with pytest.raises(SystemExit) as exc:
            main(["-f", str(config), "check"])
        assert exc.value.code == 1
        assert "Configuration error" in capsys.readouterr().out
