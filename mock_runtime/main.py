"""CLI entrypoint for inspecting and exercising handler configurations."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from .config import build_server, load_config
from .errors import ConfigError, MockRuntimeError
from .logging_utils import configure_logging
from .output_config import get_log_format
from .request import create_request

app = typer.Typer(help="Resolve requests against declarative mock handler configurations.")


def _parse_headers(pairs: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in pairs:
        if ":" not in item:
            raise typer.BadParameter("Headers must use Name:value format")
        name, value = item.split(":", 1)
        name = name.strip()
        if not name:
            raise typer.BadParameter("Header name cannot be empty")
        headers[name] = value.strip()
    return headers


def _load(config: Path):
    try:
        return load_config(config)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc), param_hint="CONFIG") from exc


@app.command()
def handlers(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Handler configuration (YAML or JSON)."),
) -> None:
    """Print the handlers declared by a configuration file."""

    configure_logging("warning", get_log_format(None))
    server = build_server(_load(config), quiet=True)
    server.print_handlers(Console(soft_wrap=True))


@app.command()
def resolve(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Handler configuration (YAML or JSON)."),
    url: str = typer.Option(..., "--url", "-u", help="Absolute or relative request URL."),
    method: str = typer.Option("GET", "--method", "-X", help="Request method."),
    header: list[str] = typer.Option([], "--header", "-H", help="Request header as Name:value (repeatable)."),
    body: Optional[str] = typer.Option(None, "--body", "-d", help="Raw request body."),
    log_level: str = typer.Option("warning", help="Log level for runtime diagnostics."),
    log_format: Optional[str] = typer.Option(None, help="Log format: console, plain or json."),
) -> None:
    """Resolve one request and print the mocked response as JSON."""

    configure_logging(log_level, get_log_format(log_format))
    server = build_server(_load(config))
    request = create_request(method, url, _parse_headers(header), body)

    with server:
        try:
            response = server.handle_sync(request)
        except MockRuntimeError as exc:
            typer.secho(str(exc), fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc

    if response is None:
        typer.secho(f"No mocked response for {request.method} {request.url}", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(response.as_serializable(), indent=2))


def run() -> None:
    """Console_scripts hook."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
