"""Integration tests for socket-infra.

These tests start a real websockets server on 127.0.0.1 (ephemeral port)
and drive the client through the default transport. No external services
are needed.

Run integration tests:
    pytest tests/integration -v

Skip integration tests:
    pytest -m "not integration"
"""
