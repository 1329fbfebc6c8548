"""Output formatting helpers for the CLI."""

from __future__ import annotations

import json
import sys

from riakpool.values import Result


def print_result(result: Result, *, json_mode: bool = False) -> None:
    """Print a Result as JSON or as a status line followed by the value."""
    if json_mode:
        data = {
            "status": result.status,
            "vclock": result.response.vclock,
            "value": result.value,
        }
        print(json.dumps(data, indent=2, default=str))
        return

    print(f"status: {result.status}")
    if result.value is None:
        return
    if isinstance(result.value, str):
        print(result.value)
    else:
        print(json.dumps(result.value, indent=2, default=str))


def print_error(msg: str) -> None:
    """Print an error message to stderr."""
    print(f"Error: {msg}", file=sys.stderr)
