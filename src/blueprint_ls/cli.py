from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from blueprint_ls import __version__
from blueprint_ls.config import server_config
from blueprint_ls.plugins import discover_collaborators
from blueprint_ls.server import create_server

app = typer.Typer(add_completion=False)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"unknown log level: {level}")
    logging.basicConfig(level=numeric, format=_LOG_FORMAT)


@app.command()
def serve(
    tcp: bool = typer.Option(False, "--tcp", help="Listen on TCP instead of stdio."),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(2087, "--port"),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    log_level: str = typer.Option("WARNING", "--log-level"),
    collaborators: Optional[list[str]] = typer.Option(
        None,
        "--collaborators",
        help="module:attribute factory returning Collaborators; may repeat.",
    ),
) -> None:
    """Run the blueprint language server."""
    _configure_logging(log_level)
    try:
        provided = discover_collaborators(factories=collaborators)
    except (ImportError, AttributeError, TypeError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--collaborators") from exc
    server = create_server(
        validator=provided.validator,
        registries=provided.registries,
        child_loader=provided.child_loader,
        config=server_config(root=root, config_path=config),
    )
    if tcp:
        server.start_tcp(host, port)
    else:
        server.start_io()


@app.command()
def version() -> None:
    """Print the package version."""
    typer.echo(__version__)
