"""Shared fixtures: sample hosts and an in-memory remote transport."""

import pytest

from dispatch_mcp.models import Host, HostRole
from dispatch_mcp.services.registry import HostRegistry
from tests.fakes import FakeTransport


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def hosts() -> list[Host]:
    """One coordinator and two workers."""
    return [
        Host(name="dsvm1", address="10.0.0.1", role=HostRole.COORDINATOR, user="azureuser"),
        Host(name="dsvm2", address="10.0.0.2", user="azureuser"),
        Host(name="dsvm3", address="10.0.0.3", user="azureuser"),
    ]


@pytest.fixture
def registry(hosts: list[Host]) -> HostRegistry:
    return HostRegistry(hosts)
