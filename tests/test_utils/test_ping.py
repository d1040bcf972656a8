"""Tests for host connectivity checking."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dispatch_mcp.models import Host
from dispatch_mcp.utils.ping import check_host_online, check_hosts_online


@pytest.mark.asyncio
async def test_check_host_online_success() -> None:
    writer = MagicMock()
    writer.wait_closed = AsyncMock()

    with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_open:
        mock_open.return_value = (MagicMock(), writer)
        assert await check_host_online("10.0.0.1", 22) is True

    mock_open.assert_called_once_with("10.0.0.1", 22)
    writer.close.assert_called_once()


@pytest.mark.asyncio
async def test_check_host_online_refused() -> None:
    with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_open:
        mock_open.side_effect = ConnectionRefusedError()
        assert await check_host_online("10.0.0.1", 22) is False


@pytest.mark.asyncio
async def test_check_host_online_timeout() -> None:
    async def hang(*args: object) -> None:
        await asyncio.sleep(10)

    with patch("asyncio.open_connection", side_effect=hang):
        assert await check_host_online("10.0.0.1", 22, timeout=0.01) is False


@pytest.mark.asyncio
async def test_check_hosts_online_uses_connection_target() -> None:
    hosts = [
        Host(name="remote", address="10.0.0.1", port=2222),
        Host(name="local", address="me.example.com", port=2200, is_localhost=True),
    ]

    with patch(
        "dispatch_mcp.utils.ping.check_host_online", new_callable=AsyncMock
    ) as mock_check:
        mock_check.side_effect = [True, False]
        result = await check_hosts_online(hosts, timeout=1.0)

    assert result == {"remote": True, "local": False}
    assert [c.args for c in mock_check.call_args_list] == [
        ("10.0.0.1", 2222, 1.0),
        ("127.0.0.1", 22, 1.0),
    ]


@pytest.mark.asyncio
async def test_check_hosts_online_empty() -> None:
    assert await check_hosts_online([]) == {}
