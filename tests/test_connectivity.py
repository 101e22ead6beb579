"""
Tests for the network gate
"""

from types import SimpleNamespace

import pytest

from davsync.workers import connectivity
from davsync.workers.connectivity import ConnectivityChecker, has_active_interface


def addr(address):
    return SimpleNamespace(address=address)


@pytest.fixture
def interfaces(monkeypatch):
    """Controls what psutil reports: {name: (address, isup)}"""
    state = {"lo": ("127.0.0.1", True), "eth0": ("192.168.1.10", True)}
    monkeypatch.setattr(connectivity.psutil, "net_if_addrs",
                        lambda: {name: [addr(a)] for name, (a, _) in state.items()})
    monkeypatch.setattr(connectivity.psutil, "net_if_stats",
                        lambda: {name: SimpleNamespace(isup=up) for name, (_, up) in state.items()})
    return state


class FakeConnection:
    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False


@pytest.fixture
def probes(monkeypatch):
    """Records TCP probes; set probes.fail to simulate an unreachable server"""
    record = SimpleNamespace(targets=[], fail=False)

    def create_connection(target, timeout=None):
        record.targets.append(target)
        if record.fail:
            raise ConnectionRefusedError("refused")
        return FakeConnection()

    monkeypatch.setattr(connectivity.socket, "create_connection", create_connection)
    return record


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_loopback_only_is_offline(interfaces):
    assert has_active_interface()
    interfaces["eth0"] = ("192.168.1.10", False)
    assert not has_active_interface()


def test_connected_when_server_answers(interfaces, probes):
    checker = ConnectivityChecker("dav.example.com", 443)
    assert checker.is_connected()
    assert probes.targets == [("dav.example.com", 443)]


def test_offline_skips_probe(interfaces, probes):
    interfaces["eth0"] = ("192.168.1.10", False)
    assert not ConnectivityChecker("dav.example.com", 443).is_connected()
    assert probes.targets == []


def test_unreachable_server(interfaces, probes):
    probes.fail = True
    assert not ConnectivityChecker("dav.example.com", 443).is_connected()


def test_successful_probe_is_cached(interfaces, probes):
    clock = FakeClock()
    checker = ConnectivityChecker("dav.example.com", 443, clock=clock)
    assert checker.is_connected()
    assert checker.is_connected()
    assert len(probes.targets) == 1

    clock.now = connectivity.PROBE_VALIDITY_SECONDS
    assert checker.is_connected()
    assert len(probes.targets) == 2

    checker.update_target("other.example.com", 8443)
    assert checker.is_connected()
    assert probes.targets[-1] == ("other.example.com", 8443)
