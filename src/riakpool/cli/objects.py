"""riakc get/put/delete/append: single-object commands."""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

import typer

from riakpool.cli import _exitcodes as ec
from riakpool.cli._client import open_client, parse_value
from riakpool.cli._output import print_error, print_result
from riakpool.client import RiakClient
from riakpool.errors import ConfigurationError, RiakError
from riakpool.options import RequestOptions
from riakpool.values import Result


def _run(action: Callable[[RiakClient], Result]) -> None:
    from riakpool.cli import state

    try:
        client = open_client()
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)

    try:
        result = action(client)
    except RiakError as e:
        print_error(str(e))
        raise typer.Exit(ec.STORE_ERROR)
    finally:
        client.close()
    print_result(result, json_mode=state.json_output)


def get_cmd(
    bucket: str = typer.Argument(..., help="Bucket name"),
    key: str = typer.Argument(..., help="Object key"),
    raw: bool = typer.Option(False, "--raw", help="Do not JSON-decode the value"),
    r: Optional[int] = typer.Option(None, "--r", help="Read quorum"),
    no_retry: bool = typer.Option(False, "--no-retry", help="Do not retry a 404 once"),
) -> None:
    """Fetch one object."""
    options = RequestOptions(parse=not raw, r_val=r, retry_not_found=not no_retry)
    _run(lambda client: client.get(bucket, key, options))


def put_cmd(
    bucket: str = typer.Argument(..., help="Bucket name"),
    key: str = typer.Argument(..., help="Object key"),
    value: str = typer.Argument(..., help="Value (JSON unless --raw)"),
    raw: bool = typer.Option(False, "--raw", help="Store the value as a plain string"),
    w: Optional[int] = typer.Option(None, "--w", help="Write quorum"),
    return_body: bool = typer.Option(False, "--return-body", help="Ask for the stored body back"),
) -> None:
    """Store one object, overwriting any existing value."""
    options = RequestOptions(parse=not raw, w_val=w, return_body=return_body)
    if raw:
        options = options.with_headers({"Content-Type": "text/plain"})
    _run(lambda client: client.put(bucket, key, parse_value(value, parse=not raw), options))


def delete_cmd(
    bucket: str = typer.Argument(..., help="Bucket name"),
    key: str = typer.Argument(..., help="Object key"),
) -> None:
    """Delete one object."""
    _run(lambda client: client.delete(bucket, key))


def append_cmd(
    bucket: str = typer.Argument(..., help="Bucket name"),
    key: str = typer.Argument(..., help="Object key"),
    value: str = typer.Argument(..., help="Element to append (JSON)"),
) -> None:
    """Append an element to the list stored at a key (no-op if already present)."""
    _run(lambda client: client.append(bucket, key, parse_value(value, parse=True)))
