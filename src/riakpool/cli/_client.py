"""CLI helpers for building a RiakClient from options and environment."""

from __future__ import annotations

import json
import os
from typing import Any

from riakpool.client import RiakClient
from riakpool.config import RiakConfig


def config_from_env() -> RiakConfig:
    """Build client config from CLI state, falling back to the environment."""
    from riakpool.cli import state

    config = RiakConfig()
    nodes = state.nodes or [
        n.strip() for n in os.getenv("RIAKPOOL_NODES", "").split(",") if n.strip()
    ]
    if nodes:
        config.nodes = nodes
    config.client_id = state.client_id or os.getenv("RIAKPOOL_CLIENT_ID")
    config.pool_name = os.getenv("RIAKPOOL_POOL_NAME", config.pool_name)
    config.debug = state.debug
    return config


def open_client() -> RiakClient:
    """Open a client using global CLI options."""
    from riakpool.cli import state

    if state.client_factory is not None:
        return state.client_factory(config_from_env())
    return RiakClient(config_from_env())


def parse_value(raw: str, *, parse: bool) -> Any:
    """Interpret a command-line value as JSON, or keep it as a string."""
    if not parse:
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        return raw
