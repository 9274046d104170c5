"""Tests for the volume and host reporters."""

from __future__ import annotations

from collections import namedtuple
from unittest.mock import patch

import psutil

from sysagent.checks.registry import VolumeDef
from sysagent.health.volumes import read_host, read_volume, read_volumes

Usage = namedtuple("Usage", "total used free percent")


class TestReadVolume:
    @patch("sysagent.health.volumes.psutil.disk_usage")
    def test_under_threshold(self, mock_usage) -> None:
        mock_usage.return_value = Usage(total=1000, used=421, free=579, percent=42.1)
        entry = read_volume(VolumeDef("root", "/", threshold=90))
        mock_usage.assert_called_once_with("/")
        assert entry.ok
        assert entry.used_percent == 42.1
        assert entry.total_bytes == 1000
        assert entry.free_bytes == 579

    @patch("sysagent.health.volumes.psutil.disk_usage")
    def test_over_threshold(self, mock_usage) -> None:
        mock_usage.return_value = Usage(total=1000, used=950, free=50, percent=95.0)
        entry = read_volume(VolumeDef("data", "/data", threshold=90))
        assert not entry.ok
        assert entry.error is None

    @patch("sysagent.health.volumes.psutil.disk_usage", side_effect=FileNotFoundError("no such path"))
    def test_unreadable(self, _mock) -> None:
        entry = read_volume(VolumeDef("gone", "/nope"))
        assert not entry.ok
        assert entry.used_percent == -1
        assert entry.total_bytes == -1
        assert "no such path" in entry.error
        assert entry.to_dict()["usedPercent"] == -1

    def test_real_root(self) -> None:
        [entry] = read_volumes([VolumeDef("root", "/", threshold=100.1)])
        assert entry.total_bytes > 0
        assert 0 <= entry.used_percent <= 100


class TestReadHost:
    def test_reads_metrics(self) -> None:
        host = read_host()
        assert host is not None
        assert host.hostname
        assert host.procs > 0
        assert set(host.to_dict()["loads"]) == {"one", "five", "fifteen"}

    @patch("sysagent.health.volumes.psutil.boot_time", side_effect=psutil.AccessDenied())
    def test_psutil_failure(self, _mock) -> None:
        assert read_host() is None
