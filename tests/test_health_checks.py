"""Tests for telemetry_core.health.checks module."""

from __future__ import annotations

import importlib.util
import os
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import psutil
import pytest

from telemetry_core.exceptions import ValidationError
from telemetry_core.health import (
    ApplicationHealthCheck,
    CpuHealthCheck,
    HealthCheck,
    HealthStatus,
    MemoryHealthCheck,
    UptimeHealthCheck,
    get_default_health_checks,
)
from telemetry_core.version import __version__


HAS_PYTEST_ASYNCIO = importlib.util.find_spec("pytest_asyncio") is not None
asyncio_test = pytest.mark.skipif(
    not HAS_PYTEST_ASYNCIO, reason="pytest-asyncio not installed"
)

MB = 1024 * 1024


def _mock_psutil(*, rss_mb=100, total_mb=1000, create_time=0.0, cpu_times=None):
    mock = MagicMock()
    process = mock.Process.return_value
    process.memory_info.return_value = SimpleNamespace(rss=rss_mb * MB, vms=2 * rss_mb * MB)
    process.create_time.return_value = create_time
    if cpu_times is not None:
        process.cpu_times.side_effect = cpu_times
    mock.virtual_memory.return_value = SimpleNamespace(total=total_mb * MB)
    return mock


class TestMemoryHealthCheck:
    """Tests for MemoryHealthCheck."""

    @asyncio_test
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("rss_mb", "expected"),
        [
            (500, HealthStatus.UP),
            (750, HealthStatus.UP),
            (800, HealthStatus.DEGRADED),
            (900, HealthStatus.DEGRADED),
            (950, HealthStatus.DOWN),
        ],
    )
    async def test_thresholds(self, rss_mb, expected):
        """Test status follows usage against the thresholds."""
        with patch("telemetry_core.health.checks.psutil", _mock_psutil(rss_mb=rss_mb)):
            check = MemoryHealthCheck()
            result = await check.check()
        assert result.status is expected

    @asyncio_test
    @pytest.mark.asyncio
    async def test_details(self):
        """Test details and message."""
        with patch("telemetry_core.health.checks.psutil", _mock_psutil(rss_mb=250)):
            result = await MemoryHealthCheck().check()
        assert result.message == "Memory usage: 25.0%"
        assert result.details["usage_percent"] == pytest.approx(25.0)
        assert result.details["heap_total_mb"] == pytest.approx(1000)
        assert result.details["heap_used_mb"] == pytest.approx(250)
        assert result.details["rss_mb"] == pytest.approx(250)
        assert result.details["vms_mb"] == pytest.approx(500)

    @asyncio_test
    @pytest.mark.asyncio
    async def test_custom_thresholds(self):
        """Test custom thresholds."""
        with patch("telemetry_core.health.checks.psutil", _mock_psutil(rss_mb=300)):
            result = await MemoryHealthCheck(
                "mem", down_threshold=50, degraded_threshold=20
            ).check()
        assert result.status is HealthStatus.DEGRADED

    def test_invalid_thresholds(self):
        """Test degraded above down is rejected."""
        with pytest.raises(ValidationError):
            MemoryHealthCheck(down_threshold=50, degraded_threshold=60)

    @asyncio_test
    @pytest.mark.asyncio
    async def test_real_process(self):
        """Test against the running process."""
        result = await MemoryHealthCheck().check()
        assert result.details["rss_mb"] > 0
        assert 0 <= result.details["usage_percent"] <= 100

    @asyncio_test
    @pytest.mark.asyncio
    async def test_measures_share_of_host_memory(self):
        """Test usage is process RSS over total system memory."""
        result = await MemoryHealthCheck().check()
        system_total_mb = psutil.virtual_memory().total / (1024 * 1024)
        assert result.details["heap_total_mb"] == pytest.approx(system_total_mb)
        assert result.details["heap_used_mb"] == result.details["rss_mb"]
        assert result.details["usage_percent"] == pytest.approx(
            result.details["rss_mb"] / system_total_mb * 100
        )


class TestCpuHealthCheck:
    """Tests for CpuHealthCheck."""

    @staticmethod
    async def _run(busy_seconds: float, **kwargs):
        cpu_times = [
            SimpleNamespace(user=10.0, system=5.0),
            SimpleNamespace(user=10.0 + busy_seconds, system=5.0),
        ]
        clock = MagicMock()
        clock.perf_counter.side_effect = [100.0, 101.0]
        with (
            patch("telemetry_core.health.checks.psutil", _mock_psutil(cpu_times=cpu_times)),
            patch("telemetry_core.health.checks.time", clock),
        ):
            check = CpuHealthCheck(sample_window_seconds=0.001, **kwargs)
            return await check.check()

    @asyncio_test
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("busy_seconds", "expected"),
        [
            (0.1, HealthStatus.UP),
            (0.6, HealthStatus.UP),
            (0.7, HealthStatus.DEGRADED),
            (0.9, HealthStatus.DOWN),
        ],
    )
    async def test_thresholds(self, busy_seconds, expected):
        """Test status follows CPU percent over the window."""
        result = await self._run(busy_seconds)
        assert result.status is expected

    @asyncio_test
    @pytest.mark.asyncio
    async def test_details(self):
        """Test details carry the measured window."""
        result = await self._run(0.25)
        assert result.details["cpu_percent"] == pytest.approx(25.0)
        assert result.details["user_time"] == pytest.approx(0.25)
        assert result.details["system_time"] == pytest.approx(0.0)
        assert result.details["sample_window_seconds"] == pytest.approx(1.0)
        assert result.message == "CPU usage: 25.00%"

    def test_invalid_window(self):
        """Test non-positive sample windows are rejected."""
        with pytest.raises(ValidationError):
            CpuHealthCheck(sample_window_seconds=0)

    @asyncio_test
    @pytest.mark.asyncio
    async def test_real_process(self):
        """Test against the running process."""
        result = await CpuHealthCheck(sample_window_seconds=0.01).check()
        assert result.details["cpu_percent"] >= 0


class TestUptimeHealthCheck:
    """Tests for UptimeHealthCheck."""

    @asyncio_test
    @pytest.mark.asyncio
    async def test_uptime(self):
        """Test uptime is computed from the process start time."""
        clock = MagicMock()
        clock.time.return_value = 7200.0
        with (
            patch("telemetry_core.health.checks.psutil", _mock_psutil(create_time=0.0)),
            patch("telemetry_core.health.checks.time", clock),
        ):
            result = await UptimeHealthCheck().check()
        assert result.status is HealthStatus.UP
        assert result.details["uptime_seconds"] == 7200.0
        assert result.details["uptime_hours"] == 2.0
        assert result.details["start_time"] == "1970-01-01T00:00:00+00:00"


class TestApplicationHealthCheck:
    """Tests for ApplicationHealthCheck."""

    @asyncio_test
    @pytest.mark.asyncio
    async def test_details(self):
        """Test runtime identity details."""
        result = await ApplicationHealthCheck().check()
        assert result.is_up
        assert result.details["version"] == __version__
        assert result.details["pid"] == os.getpid()
        assert {"python_version", "platform", "arch"} <= set(result.details)

    @asyncio_test
    @pytest.mark.asyncio
    async def test_custom_version(self):
        """Test the reported version is configurable."""
        result = await ApplicationHealthCheck(version="9.9.9").check()
        assert result.details["version"] == "9.9.9"


class TestDefaultHealthChecks:
    """Tests for get_default_health_checks."""

    def test_defaults(self):
        """Test the default set and protocol conformance."""
        checks = get_default_health_checks()
        assert [check.name for check in checks] == ["memory", "uptime", "cpu", "application"]
        assert all(isinstance(check, HealthCheck) for check in checks)
