"""Tests for collaborator protocols."""

from dispatch_mcp.models import Host
from dispatch_mcp.protocols import (
    CostEstimator,
    ProvisioningService,
    RemoteTransport,
    SSHConnectionPool,
)
from dispatch_mcp.services.pool import ConnectionPool
from dispatch_mcp.services.transport import SSHTransport
from tests.fakes import FakeTransport


class PerHourRate:
    def __init__(self, per_hour: float) -> None:
        self.per_hour = per_hour

    def estimate(self, host: Host, interval: float) -> float:
        return self.per_hour * interval / 3600


def test_connection_pool_satisfies_protocol() -> None:
    assert isinstance(ConnectionPool(), SSHConnectionPool)


def test_ssh_transport_satisfies_protocol() -> None:
    assert isinstance(SSHTransport(ConnectionPool()), RemoteTransport)


def test_fake_transport_satisfies_protocol() -> None:
    assert isinstance(FakeTransport(), RemoteTransport)


def test_cost_estimator_protocol() -> None:
    estimator = PerHourRate(3.6)

    assert isinstance(estimator, CostEstimator)
    assert estimator.estimate(Host(name="a", address="a"), 3600) == 3.6


def test_unrelated_object_is_not_a_provider() -> None:
    assert not isinstance(object(), ProvisioningService)
