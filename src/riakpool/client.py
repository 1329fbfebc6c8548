"""RiakClient: object-level operations over the pooled HTTP transport."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from concurrent.futures import Future
from typing import Any
from urllib.parse import quote

import httpx

from riakpool.config import RiakConfig
from riakpool.descriptor import RequestDescriptor, object_path
from riakpool.errors import ConfigurationError, DecodeError
from riakpool.lifecycle import RequestLifecycle, fmt_bk
from riakpool.mutation import Mutator, ReadModifyWrite, append_mutator, replace_mutator
from riakpool.observer import LoggingObserver, Observer
from riakpool.options import RequestOptions, coerce_options
from riakpool.retry import RetryPolicy
from riakpool.transport import HttpxTransport, Transport
from riakpool.values import Response, Result, classify

logger = logging.getLogger(__name__)

OptionsLike = RequestOptions | Mapping[str, Any] | None


class RiakClient:
    """Client for a Riak cluster reachable over HTTP.

    Owns the client id sent on every request, the retry policy, and the
    transport. Each operation returns one ``Result`` or raises one
    ``RiakError``.
    """

    def __init__(
        self,
        config: RiakConfig,
        *,
        transport: Transport | None = None,
        observer: Observer | None = None,
    ) -> None:
        if not config.client_id:
            raise ConfigurationError("client_id must be specified")
        self.config = config
        self.observer: Observer = observer or LoggingObserver()
        self.retry_policy = RetryPolicy(
            self.observer, not_found_retries=config.not_found_retries
        )
        self.transport: Transport = transport or HttpxTransport(
            config,
            retry_filter=self.retry_policy.decide,
            observer=self.observer,
        )

    def __enter__(self) -> RiakClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self.transport.close()

    def headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        out = {
            "X-Riak-ClientId": str(self.config.client_id),
            "Connection": "keep-alive",
        }
        if extra:
            out.update(extra)
        return out

    # --- Single-request operations ---

    def _run(
        self,
        method: str,
        bucket: str,
        key: str,
        options: RequestOptions,
        *,
        body: Any = None,
        has_body: bool = False,
    ) -> Result:
        if self.config.debug:
            logger.info(
                "riak request %s %s options: %s",
                method,
                fmt_bk(bucket, key),
                options.model_dump(exclude={"resolver"}),
            )
        lifecycle = RequestLifecycle(
            self, method, bucket, key, options, body=body, has_body=has_body
        )
        return lifecycle.start().result()

    def get(self, bucket: str, key: str, options: OptionsLike = None) -> Result:
        return self._run("get", bucket, key, coerce_options(options))

    def put(self, bucket: str, key: str, value: Any, options: OptionsLike = None) -> Result:
        """Store ``value``.

        Answers 204, or 200 with the stored body when ``return_body`` is set.
        ``Content-Type`` defaults to ``application/json``.
        """
        opts = coerce_options(options)
        headers = dict(opts.http_headers)
        if not any(name.lower() == "content-type" for name in headers):
            headers["Content-Type"] = "application/json"
        return self._run("put", bucket, key, opts.with_headers(headers), body=value, has_body=True)

    # --- Read-modify-write ---

    def modify(
        self, bucket: str, key: str, mutator: Mutator, options: OptionsLike = None
    ) -> Result:
        """Read the key, apply ``mutator``, and write the result back.

        ``mutator`` receives the stored value (``Absent()`` for a missing key)
        and returns a new value, a ``Mutation``, or None for no change.
        """
        if not callable(mutator):
            raise ConfigurationError("mutator must be callable")
        if self.config.debug:
            logger.info("riak modify %s", fmt_bk(bucket, key))
        return ReadModifyWrite(self, bucket, key, mutator, coerce_options(options)).run()

    def replace(self, bucket: str, key: str, value: Any, options: OptionsLike = None) -> Result:
        opts = coerce_options(options)
        if self.config.debug:
            logger.info("riak replace %s = %r", fmt_bk(bucket, key), value)
        return self.modify(bucket, key, replace_mutator(value, opts.http_headers or None), opts)

    def append(self, bucket: str, key: str, value: Any, options: OptionsLike = None) -> Result:
        """Add ``value`` to the list stored at the key.

        A missing key starts a new list. A value already in the list is a
        no-op. A stored value that is not a list raises IntegrityError.
        """
        bk = fmt_bk(bucket, key)
        if self.config.debug:
            logger.info("riak append %s += %r", bk, value)
        return self.modify(
            bucket, key, append_mutator(value, bk, self.config.debug), options
        )

    # --- Raw requests ---

    def _raw(self, method: str, descriptor: RequestDescriptor) -> Response:
        future: Future[Response] = Future()

        def on_complete(
            error: Exception | None, response: Response | None, body: bytes | None
        ) -> None:
            if future.done():
                logger.warning("riak callback dup %s %s", method, descriptor.path)
                return
            if error is not None:
                logger.error("riak %s err %s path: %s", method, error, descriptor.path)
                future.set_exception(error)
                return
            assert response is not None
            future.set_result(response)

        getattr(self.transport, method)(descriptor, on_complete)
        return future.result()

    def delete(self, bucket: str, key: str) -> Result:
        if self.config.debug:
            logger.info("riak del %s", fmt_bk(bucket, key))
        # Riak drops keep-alive connections after DELETE.
        descriptor = RequestDescriptor(
            method="DELETE",
            path=object_path(self.config.namespace, bucket, key),
            headers=httpx.Headers(self.headers({"Connection": "close"})),
            retry_not_found=False,
        )
        return Result(self._raw("delete", descriptor))

    def post(self, path: str, body: str | bytes) -> Result:
        """POST a raw body (e.g. a map/reduce job) and JSON-decode a 200 reply."""
        if self.config.debug:
            logger.info("riak post %s", path)
        content = body.encode("utf-8") if isinstance(body, str) else body
        descriptor = RequestDescriptor(
            method="POST",
            path=path,
            headers=httpx.Headers(self.headers({"Content-Type": "application/json"})),
            body=content,
            retry_not_found=False,
        )
        return self._json_result(self._raw("post", descriptor), path)

    def index(self, bucket: str, index: str, begin: Any, end: Any = None) -> Result:
        """Query a secondary index for an exact value or a ``begin..end`` range."""
        path = f"/buckets/{quote(bucket, safe='')}/index/{quote(index, safe='')}/"
        path += quote(str(begin), safe="")
        if end is not None and end != "":
            path += "/" + quote(str(end), safe="")
        descriptor = RequestDescriptor(
            method="GET",
            path=path,
            headers=httpx.Headers(self.headers()),
            retry_not_found=False,
        )
        return self._json_result(self._raw("get", descriptor), path)

    def _json_result(self, response: Response, path: str) -> Result:
        text = response.body.decode("utf-8", "replace")
        if response.status != 200 or not text:
            logger.warning("riak %s non-200 statusCode: %s, body: %s", path, response.status, text)
            return Result(response, {"error": f"non-JSON: {text}"})
        try:
            value = json.loads(text)
        except ValueError as e:
            logger.warning("riak JSON err %s", text[:200])
            raise DecodeError(path, text) from e
        return Result(response, value, classify(value))

