"""Tests for settings loading."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sysagent.config import Settings
from sysagent.main import build_parser, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in ("CONFIG", "LISTEN", "VOLUMES", "SERVICES", "TIMEOUT", "CONCURRENCY", "DEBUG", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)  # no stray .env


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings()
        assert s.listen == "localhost:8080"
        assert s.timeout == 5.0
        assert s.concurrency == 4
        assert s.volumes == []
        assert (s.status_ok_code, s.status_fail_code) == (200, 503)
        assert (s.host, s.port) == ("localhost", 8080)

    def test_env_lists(self, monkeypatch) -> None:
        monkeypatch.setenv("SERVICES", "a:http://a.test, b:file:///tmp/b")
        monkeypatch.setenv("VOLUMES", "root:/,data:/data")
        s = Settings()
        assert s.services == ["a:http://a.test", "b:file:///tmp/b"]
        assert s.volumes == ["root:/", "data:/data"]

    def test_zero_concurrency_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(concurrency=0)

    def test_bad_listen_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(listen="localhost")

    def test_listen_without_host(self) -> None:
        assert Settings(listen=":9000").host == "0.0.0.0"

    def test_debug_forces_level(self) -> None:
        assert Settings(debug=True, log_level="warning").effective_log_level == "DEBUG"

    def test_frozen(self) -> None:
        s = Settings()
        with pytest.raises(ValidationError):
            s.timeout = 1.0


class TestCLIOverrides:
    def test_flags_override_env(self, monkeypatch) -> None:
        monkeypatch.setenv("CONCURRENCY", "8")
        monkeypatch.setenv("TIMEOUT", "3")
        args = build_parser().parse_args(["--concurrency", "2", "-s", "a:http://a.test", "-s", "b:http://b.test"])
        s = load_settings(args)
        assert s.concurrency == 2
        assert s.timeout == 3.0
        assert s.services == ["a:http://a.test", "b:http://b.test"]

    def test_subcommands(self) -> None:
        args = build_parser().parse_args(["-v", "root:/", "check", "--json"])
        assert args.command == "check"
        assert args.json is True
        assert args.volumes == ["root:/"]
        assert build_parser().parse_args([]).command is None
