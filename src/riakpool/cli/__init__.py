"""riakc: command line access to a Riak cluster."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

import typer

from riakpool.cli import counter, objects
from riakpool.client import RiakClient
from riakpool.config import RiakConfig

app = typer.Typer(
    name="riakc",
    help="riakc: get, put, delete, and modify Riak objects over HTTP.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    nodes: list[str] = []
    client_id: str | None = None
    json_output: bool = False
    debug: bool = False
    client_factory: Callable[[RiakConfig], RiakClient] | None = None


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        try:
            from importlib.metadata import version

            v = version("riakpool")
        except Exception:
            v = "unknown"
        print(f"riakc {v}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    node: Optional[list[str]] = typer.Option(
        None,
        "--node",
        "-n",
        help="Riak node host:port (repeatable; default from RIAKPOOL_NODES or 127.0.0.1:8098)",
    ),
    client_id: Optional[str] = typer.Option(
        None,
        "--client-id",
        envvar="RIAKPOOL_CLIENT_ID",
        help="Value sent as X-Riak-ClientId",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output"),
    debug: bool = typer.Option(False, "--debug", help="Log an activity trace to stderr"),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all riakc commands."""
    state.nodes = list(node or [])
    state.client_id = client_id
    state.json_output = json_output
    state.debug = debug
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s [%(levelname)s] %(message)s")
    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


app.command(name="get")(objects.get_cmd)
app.command(name="put")(objects.put_cmd)
app.command(name="delete")(objects.delete_cmd)
app.command(name="append")(objects.append_cmd)
app.command(name="incr")(counter.incr_cmd)


def main() -> None:
    """Entry point for the riakc CLI."""
    app()
