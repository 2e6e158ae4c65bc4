"""
Shared fixtures: keep every test away from the real config file and DNS.
"""

import socket

import pytest

from ip_tally.utils import config_loader


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the implicit config file somewhere empty."""
    monkeypatch.delenv(config_loader.CONFIG_ENV, raising=False)
    monkeypatch.setattr(config_loader, "DEFAULT_CONFIG_PATH", tmp_path / "no-such-config.yaml")


@pytest.fixture
def fake_dns(monkeypatch):
    """Replace reverse lookups with a fixed table; unknown addresses fail like a real miss."""
    hosts = {}

    def gethostbyaddr(address):
        if address not in hosts:
            raise socket.herror(1, "Unknown host")
        return hosts[address], [], [address]

    monkeypatch.setattr(socket, "gethostbyaddr", gethostbyaddr)
    return hosts


@pytest.fixture
def log_file(tmp_path):
    """Write lines to a log file and return its path as a string."""
    def write(lines, name="access.log"):
        path = tmp_path / name
        path.write_text("".join(lines))
        return str(path)
    return write
