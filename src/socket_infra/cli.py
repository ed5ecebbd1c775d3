from __future__ import annotations

import asyncio
from typing import List, Optional

import typer

from socket_infra.logging import flush, setup_logging
from socket_infra.websocket import (
    Closed,
    ConnectionFailedError,
    Errored,
    LifecycleEvent,
    MessageReceived,
    Opened,
    ReconnectFailed,
    Reconnecting,
    ReconnectionPolicy,
    SendFailedError,
    websocket_connect,
)

app = typer.Typer(no_args_is_help=True, add_completion=False)


@app.callback()
def main() -> None:
    """socket-infra command line tools."""


def _render(payload) -> str:
    if isinstance(payload, bytes):
        return f"<{len(payload)} bytes> {payload.hex()}"
    return str(payload)


def format_event(event: LifecycleEvent) -> str:
    if isinstance(event, Opened):
        return "[open]"
    if isinstance(event, Closed):
        return f"[close] code={event.code} reason={event.reason!r}"
    if isinstance(event, Errored):
        return f"[error] {event.reason}"
    if isinstance(event, MessageReceived):
        return f"[message] {_render(event.payload)}"
    if isinstance(event, Reconnecting):
        return f"[reconnecting] attempt={event.attempt} delay={event.delay:.2f}s"
    if isinstance(event, ReconnectFailed):
        return f"[reconnect_failed] attempt={event.attempt}"
    return repr(event)


async def _listen(
    url: str,
    subprotocols: List[str],
    policy: ReconnectionPolicy,
    open_timeout: float,
    send: List[str],
    count: Optional[int],
    events: bool,
) -> None:
    async with websocket_connect(
        url, subprotocols or None, reconnection=policy, open_timeout=open_timeout
    ) as ws:
        for text in send:
            ws.send(text)

        received = 0
        if events:
            async for event in ws.events:
                typer.echo(format_event(event))
                if isinstance(event, MessageReceived):
                    received += 1
                    if count is not None and received >= count:
                        break
        else:
            async for message in ws.messages:
                typer.echo(_render(message))
                received += 1
                if count is not None and received >= count:
                    break


@app.command("listen")
def listen(
    url: str = typer.Argument(..., help="WebSocket URL, e.g. wss://echo.example.com"),
    subprotocol: List[str] = typer.Option([], "--subprotocol", "-p", help="Subprotocol to offer (repeatable)"),
    send: List[str] = typer.Option([], "--send", "-s", help="Text message to send once connected (repeatable)"),
    count: Optional[int] = typer.Option(None, min=1, help="Exit after this many messages"),
    events: bool = typer.Option(False, "--events/--no-events", help="Print lifecycle events instead of bare messages"),
    reconnect: bool = typer.Option(False, "--reconnect/--no-reconnect", help="Reconnect after unexpected drops"),
    max_attempts: int = typer.Option(10, min=0, help="Reconnection attempts before giving up (0 = unlimited)"),
    initial_delay: float = typer.Option(1.0, min=0, help="First reconnection delay in seconds"),
    max_delay: float = typer.Option(30.0, min=0, help="Upper bound on reconnection delay in seconds"),
    jitter: bool = typer.Option(True, "--jitter/--no-jitter", help="Randomize reconnection delays by +/-25%"),
    open_timeout: float = typer.Option(10.0, min=0.001, help="Seconds to wait for each handshake"),
    log_level: Optional[str] = typer.Option(None, help="Log level (defaults to LOG_LEVEL or env-based)"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON formatted logs"),
):
    """Connect to URL and print what arrives until the connection ends."""
    setup_logging(level=log_level, fmt="json" if json_logs else None)
    try:
        policy = ReconnectionPolicy(
            enabled=reconnect,
            initial_delay=initial_delay,
            max_delay=max_delay,
            max_attempts=max_attempts,
            jitter=jitter,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        asyncio.run(_listen(url, subprotocol, policy, open_timeout, send, count, events))
    except (ConnectionFailedError, SendFailedError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        flush()
