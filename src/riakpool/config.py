"""Configuration for the riakpool client."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RiakConfig:
    """Configuration for a RiakClient and its connection pool."""

    nodes: list[str] = field(default_factory=lambda: ["127.0.0.1:8098"])
    client_id: str | None = None
    pool_name: str = "riak_user"
    namespace: str = "riak"
    max_attempts: int = 5
    not_found_retries: int = 1
    backoff_base_s: float = 0.05
    backoff_max_s: float = 2.0
    check_interval_ms: int = 10000
    request_timeout_s: float = 10.0
    slow_request_ms: int = 300
    debug: bool = False
