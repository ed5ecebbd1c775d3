"""Fixtures for CLI tests.

Disables Rich console styling and swaps the real transport for the
in-memory one so commands run without a network.
"""

from __future__ import annotations

import logging

import pytest

from socket_infra.websocket.testing import FakeTransport


@pytest.fixture(autouse=True)
def disable_rich_colors(monkeypatch):
    """Disable Rich colors/styling for consistent CLI output in CI."""
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.setenv("TERM", "dumb")


@pytest.fixture(autouse=True)
def restore_root_logger():
    """`listen` configures logging against the runner's stderr; undo it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def cli_transport(monkeypatch):
    """Install a FakeTransport as the default transport and return it."""
    import socket_infra.websocket.client as client_module

    transport = FakeTransport()
    monkeypatch.setattr(client_module, "default_transport", lambda: transport)
    return transport
