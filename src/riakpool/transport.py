"""Pooled HTTP transport: node selection, health checks, and retries."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_random_exponential,
)

from riakpool.config import RiakConfig
from riakpool.descriptor import RequestDescriptor
from riakpool.errors import TransportError
from riakpool.observer import Observer, path_root
from riakpool.values import Response

logger = logging.getLogger(__name__)

Completion = Callable[[Exception | None, Response | None, bytes | None], None]
RetryFilter = Callable[[RequestDescriptor, Response, bytes], bool]


@runtime_checkable
class Transport(Protocol):
    """Verb methods the request lifecycle dispatches through.

    Each call eventually invokes ``on_complete(error, response, body)``.
    """

    def get(self, descriptor: RequestDescriptor, on_complete: Completion) -> None: ...

    def put(self, descriptor: RequestDescriptor, on_complete: Completion) -> None: ...

    def post(self, descriptor: RequestDescriptor, on_complete: Completion) -> None: ...

    def delete(self, descriptor: RequestDescriptor, on_complete: Completion) -> None: ...

    def close(self) -> None: ...


@dataclass
class _Node:
    address: str
    healthy: bool = True
    failed_at: float = 0.0

    @property
    def base_url(self) -> str:
        if "://" in self.address:
            return self.address.rstrip("/")
        return f"http://{self.address}"


@dataclass
class _Attempt:
    response: Response
    retry: bool


class HttpxTransport:
    """Transport over a shared ``httpx.Client`` with round-robin node selection.

    After every response the injected ``retry_filter`` decides whether to
    re-send. Network failures mark the node unhealthy and are retried on the
    next node. Both kinds of retry share the ``max_attempts`` ceiling; when a
    filtered retry runs out of attempts the last response is returned as-is.
    """

    def __init__(
        self,
        config: RiakConfig,
        *,
        retry_filter: RetryFilter,
        observer: Observer,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not config.nodes:
            raise ValueError("at least one node is required")
        self._config = config
        self._retry_filter = retry_filter
        self._observer = observer
        self._sleep = sleep
        self._nodes = [_Node(address) for address in config.nodes]
        self._next = 0
        self._lock = threading.Lock()
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=config.request_timeout_s)

    # --- Verb methods ---

    def get(self, descriptor: RequestDescriptor, on_complete: Completion) -> None:
        self._dispatch(_with_method(descriptor, "GET"), on_complete)

    def put(self, descriptor: RequestDescriptor, on_complete: Completion) -> None:
        self._dispatch(_with_method(descriptor, "PUT"), on_complete)

    def post(self, descriptor: RequestDescriptor, on_complete: Completion) -> None:
        self._dispatch(_with_method(descriptor, "POST"), on_complete)

    def delete(self, descriptor: RequestDescriptor, on_complete: Completion) -> None:
        self._dispatch(_with_method(descriptor, "DELETE"), on_complete)

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    # --- Node selection and health ---

    def _pick_node(self) -> _Node:
        for _ in range(len(self._nodes)):
            candidate = self._next_candidate()
            if candidate is None:
                break
            node, needs_probe = candidate
            if not needs_probe or self._probe(node):
                return node
        with self._lock:
            # Nothing is healthy; keep trying in order rather than failing outright.
            node = self._nodes[self._next]
            self._next = (self._next + 1) % len(self._nodes)
            return node

    def _next_candidate(self) -> tuple[_Node, bool] | None:
        """Take the next healthy node, or claim an unhealthy one that is due a ping.

        Claiming stamps ``failed_at`` so other threads skip the node while
        this one probes it outside the lock.
        """
        with self._lock:
            now = time.monotonic()
            count = len(self._nodes)
            for offset in range(count):
                node = self._nodes[(self._next + offset) % count]
                due = (now - node.failed_at) * 1000.0 >= self._config.check_interval_ms
                if node.healthy or due:
                    self._next = (self._next + offset + 1) % count
                    if node.healthy:
                        return node, False
                    node.failed_at = now
                    return node, True
            return None

    def _probe(self, node: _Node) -> bool:
        try:
            resp = self._http.get(f"{node.base_url}/ping")
        except httpx.HTTPError as e:
            logger.debug("riak ping %s failed: %s", node.address, e)
            return False
        if resp.status_code != 200:
            return False
        self._set_health(node, True)
        return True

    def _set_health(self, node: _Node, healthy: bool) -> None:
        with self._lock:
            if node.healthy == healthy:
                return
            node.healthy = healthy
            if not healthy:
                node.failed_at = time.monotonic()
        self._observer.on_health_change(node.address, healthy)
        self._observer.on_metric("counter", "riak_pool_health_change", 1)

    # --- Request dispatch ---

    def _send_once(self, descriptor: RequestDescriptor) -> _Attempt:
        node = self._pick_node()
        root = path_root(descriptor.path)
        started = time.monotonic()
        try:
            resp = self._http.request(
                descriptor.method,
                f"{node.base_url}{descriptor.path}",
                headers=descriptor.headers,
                content=descriptor.body,
            )
        except httpx.TransportError:
            duration_ms = (time.monotonic() - started) * 1000.0
            self._observer.on_metric(
                "histogram",
                f"LB_fail_{self._config.pool_name}|{descriptor.method}|{root}",
                duration_ms,
            )
            logger.error(
                "riak error %s%s took %.0fms", node.address, descriptor.path, duration_ms
            )
            self._set_health(node, False)
            raise

        duration_ms = (time.monotonic() - started) * 1000.0
        self._observer.on_metric(
            "histogram",
            f"LB_Pool_{self._config.pool_name}|{descriptor.method}|{root}",
            duration_ms,
        )
        if duration_ms > self._config.slow_request_ms:
            logger.info(
                "timing_stats %s%s took %.0fms", node.address, descriptor.path, duration_ms
            )

        response = Response(status=resp.status_code, headers=resp.headers, body=resp.content)
        return _Attempt(response, self._retry_filter(descriptor, response, response.body))

    def _before_sleep(self, descriptor: RequestDescriptor, state: RetryCallState) -> None:
        outcome = state.outcome
        if outcome is None:
            return
        if outcome.failed:
            exc = outcome.exception()
            reason = type(exc).__name__
            message = str(exc)
        else:
            reason = "filter"
            message = f"status {outcome.result().response.status}"
        root = path_root(descriptor.path)
        self._observer.on_retry(reason, root, message)
        self._observer.on_metric("counter", f"riak_retry_path|{root}", 1)
        self._observer.on_metric("counter", f"riak_retry_reason|{reason}", 1)

    def _dispatch(self, descriptor: RequestDescriptor, on_complete: Completion) -> None:
        def _give_up(state: RetryCallState) -> _Attempt:
            assert state.outcome is not None
            if state.outcome.failed:
                exc = state.outcome.exception()
                assert exc is not None
                raise exc
            attempt: _Attempt = state.outcome.result()
            logger.warning(
                "Retry budget exhausted for %s %s after %s attempts (status=%s)",
                descriptor.method,
                descriptor.path,
                state.attempt_number,
                attempt.response.status,
            )
            return attempt

        retrying = Retrying(
            retry=retry_if_exception_type(httpx.TransportError)
            | retry_if_result(lambda attempt: attempt.retry),
            stop=stop_after_attempt(max(1, self._config.max_attempts)),
            wait=wait_random_exponential(
                multiplier=self._config.backoff_base_s, max=self._config.backoff_max_s
            ),
            sleep=self._sleep,
            before_sleep=lambda state: self._before_sleep(descriptor, state),
            retry_error_callback=_give_up,
            reraise=True,
        )

        try:
            attempt = retrying(self._send_once, descriptor)
        except httpx.HTTPError as e:
            error = TransportError(descriptor.method, descriptor.path, str(e))
            error.__cause__ = e
            on_complete(error, None, None)
            return
        on_complete(None, attempt.response, attempt.response.body)


def _with_method(descriptor: RequestDescriptor, method: str) -> RequestDescriptor:
    descriptor.method = method
    return descriptor
