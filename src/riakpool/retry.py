"""Retry policy consulted by the transport after every response."""

from __future__ import annotations

import logging

from riakpool.descriptor import RequestDescriptor
from riakpool.observer import Observer, path_root
from riakpool.values import Response

logger = logging.getLogger(__name__)


class RetryPolicy:
    """Decide whether a response is transient and the request should be re-sent.

    Rules, first match wins:

    1. 500 on any method is retried.
    2. 403 on a PUT is retried (a pre-commit hook can reject writes while a
       node is still starting).
    3. 404 on a GET that opted into not-found retries is retried until
       ``not_found_retries`` extra attempts have been spent.
    4. A non-404 after an earlier 404 counts as a recovery.

    The 500 and 403 rules never give up on their own; the transport's
    attempt ceiling bounds them.
    """

    def __init__(self, observer: Observer, *, not_found_retries: int = 1) -> None:
        if not_found_retries < 0:
            raise ValueError("not_found_retries must be >= 0")
        self._observer = observer
        self.not_found_retries = not_found_retries

    def decide(self, descriptor: RequestDescriptor, response: Response, body: bytes) -> bool:
        descriptor.attempts += 1
        descriptor.last_body_empty = len(body) == 0
        status = response.status
        method = descriptor.method.upper()

        if status == 500:
            logger.warning(
                "riak retry %s retrying on 500 status: %s",
                descriptor.path,
                body[:200].decode("utf-8", "replace"),
            )
            self._observer.on_metric("counter", "riak_retry_filter|500", 1)
            return True

        if method == "PUT" and status == 403:
            logger.warning("riak retry %s retrying PUT on 403 status", descriptor.path)
            self._observer.on_metric("counter", "riak_retry_filter|403_PUT", 1)
            return True

        if descriptor.retry_not_found and method == "GET" and status == 404:
            descriptor.not_found += 1
            if descriptor.not_found <= self.not_found_retries:
                self._observer.on_metric("counter", "riak_retry_filter|404_GET", 1)
                return True
            return False

        if descriptor.not_found:
            self._observer.on_metric(
                "counter", f"riak_retry_recover|{path_root(descriptor.path)}", 1
            )

        return False
