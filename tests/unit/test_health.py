"""
Unit tests for health checks.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from mdb_gateway.core.connection import ConnectionState
from mdb_gateway.observability import (
    HealthChecker,
    HealthCheckResult,
    HealthStatus,
    check_connection_state,
    check_mongodb_health,
)


def result(status):
    async def check():
        return HealthCheckResult(name=status.value, status=status, message="")

    return check


@pytest.mark.unit
class TestHealthChecker:
    """Test aggregation of check results."""

    @pytest.mark.asyncio
    async def test_no_checks_is_unknown(self):
        """Test that an empty checker reports unknown."""
        report = await HealthChecker().check_all()
        assert report["status"] == "unknown"
        assert report["checks"] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "statuses,expected",
        [
            ([HealthStatus.HEALTHY, HealthStatus.HEALTHY], "healthy"),
            ([HealthStatus.HEALTHY, HealthStatus.DEGRADED], "degraded"),
            ([HealthStatus.DEGRADED, HealthStatus.UNHEALTHY], "unhealthy"),
            ([HealthStatus.HEALTHY, HealthStatus.UNKNOWN], "unknown"),
        ],
    )
    async def test_overall_status(self, statuses, expected):
        """Test that the worst status wins."""
        checker = HealthChecker()
        for status in statuses:
            checker.register_check(result(status))
        assert (await checker.check_all())["status"] == expected

    @pytest.mark.asyncio
    async def test_raising_check_is_unknown(self):
        """Test that a check raising an error is reported as unknown."""

        async def broken():
            raise RuntimeError("no client")

        checker = HealthChecker()
        checker.register_check(broken)
        report = await checker.check_all()

        assert report["checks"][0]["name"] == "broken"
        assert report["checks"][0]["status"] == "unknown"
        assert "no client" in report["checks"][0]["message"]


@pytest.mark.unit
class TestMongoDBHealth:
    """Test the MongoDB ping check."""

    @pytest.mark.asyncio
    async def test_missing_client(self):
        """Test that a missing client is unhealthy."""
        assert (await check_mongodb_health(None)).status == HealthStatus.UNHEALTHY

    @pytest.mark.asyncio
    async def test_ping_success(self, mock_mongo_client):
        """Test that a successful ping is healthy."""
        check = await check_mongodb_health(mock_mongo_client, timeout_seconds=2.0)
        assert check.status == HealthStatus.HEALTHY
        assert check.details == {"timeout_seconds": 2.0}

    @pytest.mark.asyncio
    async def test_ping_failure(self):
        """Test that a failing ping is unhealthy."""
        client = MagicMock()
        client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))
        check = await check_mongodb_health(client)
        assert check.status == HealthStatus.UNHEALTHY
        assert "no servers" in check.message

    @pytest.mark.asyncio
    async def test_ping_timeout(self):
        """Test that a slow ping times out as unhealthy."""

        async def slow(*args):
            await asyncio.sleep(1)

        client = MagicMock()
        client.admin.command = slow
        check = await check_mongodb_health(client, timeout_seconds=0.01)
        assert check.status == HealthStatus.UNHEALTHY
        assert "timed out" in check.message


@pytest.mark.unit
class TestConnectionStateHealth:
    """Test the connection state check."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "state,expected",
        [
            (ConnectionState.READY, HealthStatus.HEALTHY),
            (ConnectionState.CONNECTING, HealthStatus.DEGRADED),
            (ConnectionState.FAILED, HealthStatus.UNHEALTHY),
            (ConnectionState.CLOSED, HealthStatus.UNHEALTHY),
        ],
    )
    async def test_state_mapping(self, state, expected):
        """Test that each connection state maps to a health status."""
        manager = MagicMock()
        manager.state = state
        manager.last_error = None
        assert (await check_connection_state(manager)).status == expected

    @pytest.mark.asyncio
    async def test_last_error_reported(self):
        """Test that the last connection error appears in the details."""
        manager = MagicMock()
        manager.state = ConnectionState.FAILED
        manager.last_error = ConnectionError("heartbeat lost")
        check = await check_connection_state(manager)
        assert check.details == {"state": "failed", "last_error": "heartbeat lost"}
