"""Observability hooks: metrics, pool health, and retry events."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger("riakpool.metrics")


def path_root(path: str) -> str:
    """Collapse a request path to the segment used in metric keys.

    ``/riak/<bucket>/<key>`` maps to the bucket; solr and map/reduce paths
    map to ``solr`` and ``mapred``.
    """
    parts = path.split("?", 1)[0].split("/")
    if len(parts) > 1 and parts[1] in ("solr", "mapred"):
        return parts[1]
    if len(parts) > 2:
        return parts[2]
    return parts[-1]


@runtime_checkable
class Observer(Protocol):
    """Receiver for events the client emits but does not depend on."""

    def on_metric(self, kind: str, key: str, value: float) -> None: ...

    def on_health_change(self, node: str, healthy: bool) -> None: ...

    def on_retry(self, reason: str, path: str, message: str) -> None: ...


class LoggingObserver:
    """Default observer that writes every event to the ``riakpool.metrics`` logger."""

    def on_metric(self, kind: str, key: str, value: float) -> None:
        logger.debug("metric: %s, %s=%s", kind, key, value)

    def on_health_change(self, node: str, healthy: bool) -> None:
        logger.info("riak pool health %s %s", node, "healthy" if healthy else "unhealthy")

    def on_retry(self, reason: str, path: str, message: str) -> None:
        if reason != "filter":
            logger.warning("riak retry path: %s reason: %s", path, message)
