"""Command line interface for the StepsOS server and event feed."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import httpx
import typer

from stepsos.client import StreamClient
from stepsos.config import StepsOSConfig, load_config
from stepsos.contracts import StreamEvent
from stepsos.exceptions import StreamConnectionError
from stepsos.transports import get_transport

app = typer.Typer(help="CLI for StepsOS executions")

execution_app = typer.Typer(help="Commands for submitting and inspecting executions")
app.add_typer(execution_app, name="execution")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def _api_url(config: StepsOSConfig, api_url: Optional[str]) -> str:
    return api_url or f"http://{config.server.host}:{config.server.port}"


def _client(api_url: str) -> httpx.Client:
    return httpx.Client(base_url=api_url, timeout=10.0)


def _request(api_url: str, method: str, path: str, **kwargs) -> httpx.Response:
    client = _client(api_url)
    try:
        return client.request(method, path, **kwargs)
    except httpx.HTTPError as e:
        typer.secho(f"Cannot reach StepsOS at {api_url}: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    finally:
        client.close()


@app.callback()
def main() -> None:
    """StepsOS CLI entry point."""
    pass


@app.command("serve")
def serve(
    host: Optional[str] = None,
    port: Optional[int] = None,
    config_path: Optional[str] = typer.Option(None, "--config", help="YAML config file"),
    log_level: str = "info",
) -> None:
    """
    Run the HTTP API and the websocket event feed.

    Example:
        stepsos serve --port 8080
    """
    import uvicorn

    from stepsos.api import create_app

    _configure_logging(log_level)
    config = load_config(config_path)
    if host:
        config.server.host = host
    if port:
        config.server.port = port

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=log_level.lower(),
    )


@execution_app.command("submit")
def execution_submit(
    source: str = typer.Argument(..., help="JSON file with the submission, or '-' for stdin"),
    api_url: Optional[str] = None,
) -> None:
    """
    Submit an execution and print its id.

    The file may hold an envelope ({executionId?, workflowId?, input}),
    a bare payload, or a replay request ({executionId, replay: true}).

    Example:
        stepsos execution submit upload.json
    """
    text = sys.stdin.read() if source == "-" else Path(source).read_text()
    try:
        body = json.loads(text)
    except json.JSONDecodeError as e:
        typer.secho(f"Invalid JSON: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    response = _request(
        _api_url(load_config(), api_url),
        "POST",
        "/execute",
        content=json.dumps(body),
        headers={"content-type": "application/json"},
    )
    result = response.json()
    if not result.get("accepted"):
        typer.secho(f"Execution rejected: {result.get('error')}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Execution accepted: {result['executionId']}")


@execution_app.command("list")
def execution_list(api_url: Optional[str] = None) -> None:
    """List all executions with their current status."""
    response = _request(_api_url(load_config(), api_url), "GET", "/executions")
    executions = response.json().get("executions", [])
    if not executions:
        typer.echo("No executions found")
        return
    for execution in executions:
        typer.echo(f"{execution['id']}\t{execution['status']}")


@execution_app.command("show")
def execution_show(execution_id: str, api_url: Optional[str] = None) -> None:
    """
    Show one execution with its step-by-step history.

    Example:
        stepsos execution show exec_1a2b
        # Output: Execution exec_1a2b: failed
        #         - entry: completed
        #         - validate: failed (Unsupported fileType: application/pdf)
        #         - process: skipped
    """
    response = _request(_api_url(load_config(), api_url), "GET", f"/executions/{execution_id}")
    if response.status_code == 404:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    execution = response.json()
    typer.echo(f"Execution {execution['id']}: {execution['status']}")
    if execution.get("rejectionReason"):
        typer.echo(f"Rejected: {execution['rejectionReason']}")
    typer.echo(f"Input: {json.dumps(execution.get('input'))}")
    for step in execution.get("steps", []):
        line = f"- {step['name']}: {step['status']}"
        if step.get("error"):
            line += f" ({step['error']})"
        typer.echo(line)


def _print_event(event: StreamEvent) -> None:
    typer.echo(f"{event.timestamp}\t{event.event}\t{json.dumps(event.data)}")


async def _watch(config: StepsOSConfig, lifespan: Optional[float]) -> None:
    client = StreamClient.from_config(config)
    client.subscribe_state(lambda state: typer.echo(f"[{state}]", err=True))
    client.subscribe(_print_event)
    try:
        await client.connect()
    except StreamConnectionError as e:
        typer.echo(f"Initial connection failed: {e}; retrying in background", err=True)
    try:
        if lifespan is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(lifespan)
    finally:
        await client.disconnect()


@app.command("watch")
def watch(
    url: Optional[str] = typer.Option(None, help="Event feed URL"),
    lifespan: Optional[float] = typer.Option(None, help="Stop after this many seconds"),
) -> None:
    """Print every event from the feed until interrupted."""
    config = load_config()
    if url:
        config.stream.url = url
    try:
        asyncio.run(_watch(config, lifespan))
    except KeyboardInterrupt:
        typer.echo("Stopped")


async def _check_feed(config: StepsOSConfig) -> bool:
    client = StreamClient(
        get_transport(config=config),
        config.stream.url,
        max_attempts=0,
        connect_timeout=config.stream.connect_timeout,
    )
    try:
        await client.connect()
    except StreamConnectionError:
        return False
    await client.disconnect()
    return True


@app.command("check")
def check(api_url: Optional[str] = None) -> None:
    """Verify the API and the event feed are reachable."""
    config = load_config()
    url = _api_url(config, api_url)

    client = _client(url)
    try:
        api_ok = client.get("/executions").is_success
    except httpx.HTTPError:
        api_ok = False
    finally:
        client.close()
    typer.echo("API endpoints working" if api_ok else "API endpoints failed")

    feed_ok = asyncio.run(_check_feed(config))
    typer.echo("Event feed working" if feed_ok else "Event feed failed")

    if not (api_ok and feed_ok):
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
