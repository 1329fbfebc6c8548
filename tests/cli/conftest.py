"""Shared fixtures for CLI tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest
from typer.testing import CliRunner

from riakpool import RiakClient, RiakConfig
from riakpool.cli import app, state
from riakpool.retry import RetryPolicy
from riakpool.transport import HttpxTransport

if TYPE_CHECKING:
    from click.testing import Result


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_configs(fake_riak, observer, monkeypatch):
    """Route CLI clients to FakeRiak and record the config each one was built with."""
    monkeypatch.delenv("RIAKPOOL_CLIENT_ID", raising=False)
    monkeypatch.delenv("RIAKPOOL_NODES", raising=False)
    configs: list[RiakConfig] = []

    def factory(config: RiakConfig) -> RiakClient:
        configs.append(config)
        policy = RetryPolicy(observer, not_found_retries=config.not_found_retries)
        transport = HttpxTransport(
            config,
            retry_filter=policy.decide,
            observer=observer,
            http_client=httpx.Client(transport=httpx.MockTransport(fake_riak)),
            sleep=lambda _seconds: None,
        )
        return RiakClient(config, transport=transport, observer=observer)

    state.client_factory = factory
    yield configs
    state.client_factory = None


def invoke(runner: CliRunner, args: list[str], client_id: str | None = "cli-test") -> "Result":
    """Invoke the CLI with a client id ahead of the subcommand."""
    prefix = ["--client-id", client_id] if client_id else []
    return runner.invoke(app, [*prefix, *args])
