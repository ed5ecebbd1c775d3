from __future__ import annotations


class SocketInfraError(Exception):
    """Base class for every error raised by socket-infra."""
