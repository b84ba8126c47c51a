from __future__ import annotations

import json
import sys
import time
from typing import Optional

import typer
from loguru import logger

from tracking_runtime import (
    ChangeEvent,
    DynamicTokenRepository,
    ResourceError,
    Severity,
    SocketEventSink,
    TransportError,
)
from trackctl.config import get_settings

app = typer.Typer(help="Tracking runtime operational CLI (tokens, socket sink)")
tokens_app = typer.Typer(help="Inspect and watch token repositories")
app.add_typer(tokens_app, name="tokens")


def url_arg() -> Optional[str]:
    return typer.Argument(
        None, envvar="TOKEN_REPOSITORY_URL", help="Token repository URL, resource or file path"
    )


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="loguru level for stderr"),
):
    level = (log_level or get_settings().LOG_LEVEL).upper()
    logger.remove()
    logger.add(sys.stderr, level=level)


def _open_repository(url: Optional[str], refresh_ms: int = 0) -> DynamicTokenRepository:
    url = url or get_settings().TOKEN_REPOSITORY_URL
    if not url:
        logger.error("No token repository URL given (argument or TOKEN_REPOSITORY_URL)")
        sys.exit(2)
    repo = DynamicTokenRepository(url, refresh_ms=refresh_ms)
    try:
        repo.open()
    except ResourceError as e:
        logger.error(f"Failed to open token repository: {e}")
        sys.exit(1)
    return repo


def _event_json(event: ChangeEvent) -> str:
    return json.dumps(
        {
            "kind": event.kind.value,
            "key": event.key,
            "value": event.value,
            "error": str(event.cause) if event.cause is not None else None,
        },
        default=str,
    )


# ---------------------------
# Tokens
# ---------------------------


@tokens_app.command("show")
def show(
    url: Optional[str] = url_arg(),
    as_json: bool = typer.Option(False, "--json", help="Print a JSON object instead of key=value"),
):
    """Print every token in the repository."""
    repo = _open_repository(url)
    try:
        entries = {key: repo.get(key) for key in sorted(repo.get_keys())}
    finally:
        repo.close()

    if as_json:
        typer.echo(json.dumps(entries, indent=2, default=str))
        return
    for key, value in entries.items():
        typer.echo(f"{key}={value}")


@tokens_app.command("get")
def get(
    key: str = typer.Argument(..., help="Token name"),
    url: Optional[str] = typer.Option(None, "--url", envvar="TOKEN_REPOSITORY_URL"),
):
    """Print one token; exits 1 when it is not set."""
    repo = _open_repository(url)
    try:
        value = repo.get(key)
    finally:
        repo.close()

    if value is None:
        logger.warning(f"Token not set: {key}")
        sys.exit(1)
    typer.echo(value)


@tokens_app.command("watch")
def watch(
    url: Optional[str] = url_arg(),
    refresh_ms: int = typer.Option(1000, "--refresh-ms", min=1, help="Polling interval"),
    duration: Optional[float] = typer.Option(
        None, "--duration", min=0, help="Stop after N seconds (default: until Ctrl-C)"
    ),
):
    """Stream change events as JSON lines while the repository is reloaded."""
    url = url or get_settings().TOKEN_REPOSITORY_URL
    if not url:
        logger.error("No token repository URL given (argument or TOKEN_REPOSITORY_URL)")
        sys.exit(2)

    repo = DynamicTokenRepository(url, refresh_ms=refresh_ms)
    repo.add_listener(lambda event: typer.echo(_event_json(event)))
    try:
        repo.open()
    except ResourceError as e:
        logger.error(f"Failed to open token repository: {e}")
        sys.exit(1)

    logger.info(f"Watching {url} every {refresh_ms}ms")
    deadline = None if duration is None else time.monotonic() + duration
    try:
        while deadline is None or time.monotonic() < deadline:
            time.sleep(0.1)
    except KeyboardInterrupt:
        pass
    finally:
        repo.close()


# ---------------------------
# Sink
# ---------------------------


@app.command("send")
def send(
    message: str = typer.Argument(..., help="Message to send"),
    host: Optional[str] = typer.Option(None, "--host", envvar="SOCKET_SINK_HOST"),
    port: Optional[int] = typer.Option(None, "--port", envvar="SOCKET_SINK_PORT"),
    severity: str = typer.Option("INFO", "--severity", help="Severity name"),
    timeout: float = typer.Option(5.0, "--timeout", help="Connect timeout (seconds)"),
):
    """Send one message line through a socket sink."""
    settings = get_settings()
    try:
        level = Severity.parse(severity)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(2)

    sink = SocketEventSink(
        host or settings.SOCKET_SINK_HOST,
        port or settings.SOCKET_SINK_PORT,
        connect_timeout=timeout,
    )
    failures: list[BaseException] = []
    sink.add_failure_listener(lambda _ctx, cause: failures.append(cause))

    try:
        sink.open()
    except TransportError as e:
        logger.error(f"Failed to connect: {e}")
        sys.exit(1)
    try:
        sink.log_message(level, message)
    finally:
        sink.close()

    if failures:
        logger.error(f"Send failed: {failures[0]}")
        sys.exit(1)
    logger.success(f"Sent to {sink.address[0]}:{sink.address[1]}")
    typer.echo("ok")


if __name__ == "__main__":
    app()
