"""Request lifecycle: one object-level get/put from dispatch to a single outcome."""

from __future__ import annotations

import enum
import json
import logging
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any

import httpx

from riakpool.descriptor import RequestDescriptor, object_path
from riakpool.errors import (
    ConfigurationError,
    DecodeError,
    ProtocolError,
    ResolutionError,
    RiakError,
    TransportError,
    UnexpectedStatus,
)
from riakpool.multipart import decode_multipart, is_multipart, parse_boundary
from riakpool.options import RequestOptions
from riakpool.values import Resolution, Response, Result, Sibling, classify

if TYPE_CHECKING:
    from riakpool.client import RiakClient

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("get", "put", "post", "delete")


class State(enum.Enum):
    BUILT = "built"
    DISPATCHED = "dispatched"
    SIBLINGS_DETECTED = "siblings_detected"
    RESOLVER_INVOKED = "resolver_invoked"
    RESOLVED_WRITE_DISPATCHED = "resolved_write_dispatched"
    DONE = "done"


def fmt_bk(bucket: str, key: str) -> str:
    return f'bucket_key="{bucket}/{key}"'


def _body_text(body: bytes) -> str:
    return body.decode("utf-8", "replace")


class RequestLifecycle:
    """State machine for a single get or put against one key.

    ``start()`` builds the descriptor, hands it to the transport, and returns
    a future that is settled exactly once. A 300 response moves the machine
    through sibling decoding and the caller's resolver; if the resolver asks
    for the chosen value to be saved, a conditional PUT carrying the captured
    vclock is dispatched with its own completion, which settles the future.

    A completion that arrives after its request was already handled is
    logged and dropped.
    """

    def __init__(
        self,
        client: RiakClient,
        method: str,
        bucket: str,
        key: str,
        options: RequestOptions,
        *,
        body: Any = None,
        has_body: bool = False,
    ) -> None:
        method = method.lower()
        if method not in SUPPORTED_METHODS:
            raise ConfigurationError(f"method {method!r} is not supported by the transport")

        self.client = client
        self.method = method
        self.bucket = bucket
        self.key = key
        self.options = options
        self.bk = fmt_bk(bucket, key)
        self.state = State.BUILT
        self.vclock: str | None = None
        self.future: Future[Result] = Future()
        self._resolution: Resolution | None = None

        self.body: bytes | None = None
        if has_body:
            self.body = self._encode(body)

    # --- Encoding ---

    def _encode(self, value: Any) -> bytes:
        if self.options.parse:
            return json.dumps(value).encode("utf-8")
        if isinstance(value, bytes):
            return value
        return str(value).encode("utf-8")

    def _decode(self, raw: str) -> Any:
        if not self.options.parse:
            return raw
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.error(
                "riak req Error parsing response body from %s, body: %s", self.bk, raw[:200]
            )
            raise DecodeError(self.bk, raw) from e

    # --- Settlement ---

    def _settle(self, result: Result) -> None:
        if self.future.done():
            logger.warning("riak callback dup already called callback for %s", self.bk)
            return
        self.state = State.DONE
        self.future.set_result(result)

    def _fail(self, error: BaseException) -> None:
        if self.future.done():
            logger.warning("riak callback dup already called callback for %s", self.bk)
            return
        self.state = State.DONE
        self.future.set_exception(error)

    # --- Dispatch ---

    def _descriptor(
        self,
        *,
        method: str,
        headers: dict[str, str],
        body: bytes | None,
        return_body: bool,
    ) -> RequestDescriptor:
        path = object_path(
            self.client.config.namespace,
            self.bucket,
            self.key,
            r_val=self.options.r_val,
            w_val=self.options.w_val,
            return_body=return_body,
        )
        return RequestDescriptor(
            method=method.upper(),
            path=path,
            headers=httpx.Headers(headers),
            body=body,
            retry_not_found=self.options.retry_not_found,
        )

    def start(self) -> Future[Result]:
        if self.state is not State.BUILT:
            raise RuntimeError(f"lifecycle for {self.bk} already started")
        descriptor = self._descriptor(
            method=self.method,
            headers=self.client.headers(self.options.http_headers),
            body=self.body,
            return_body=self.options.return_body,
        )
        if self.client.config.debug:
            logger.info("riak request %s %s path: %s", self.method, self.bk, descriptor.path)
        self.state = State.DISPATCHED
        getattr(self.client.transport, self.method)(descriptor, self.on_response)
        return self.future

    # --- Response handling ---

    def on_response(
        self, error: Exception | None, response: Response | None, body: bytes | None
    ) -> None:
        if self.state is not State.DISPATCHED:
            logger.warning("riak callback dup late response for %s dropped", self.bk)
            return
        try:
            self._handle_response(error, response, body or b"")
        except Exception as e:
            # Resolver errors included: they surface through the future.
            self._fail(e)

    def _handle_response(
        self, error: Exception | None, response: Response | None, body: bytes
    ) -> None:
        if error is not None:
            logger.error("riak response error %s, %s %s", error, self.method, self.bk)
            if not isinstance(error, RiakError):
                error = TransportError(self.method.upper(), self.bk, str(error))
            raise error
        assert response is not None

        if response.status == 304:
            self._settle(Result(response, _body_text(body)))
            return

        if len(body) == 0:
            if self.client.config.debug:
                logger.info("riak req empty %s statusCode: %s", self.bk, response.status)
            self._settle(Result(response, {"error": "empty body: "}))
            return

        if response.status == 300:
            if self.options.resolver is None:
                raise ConfigurationError("need options.resolver function to resolve sibling values")
            logger.info("riak req siblings got siblings for %s %s", self.method, self.bk)
            self.state = State.SIBLINGS_DETECTED
            self._on_siblings(response, body)
            return

        text = _body_text(body)
        if self.options.parse and response.status != 200:
            # Riak errors are plain text.
            self._settle(Result(response, {"body": text, "statusCode": response.status}))
            return

        value = self._decode(text)
        self._settle(Result(response, value, classify(value)))

    def _on_siblings(self, response: Response, body: bytes) -> None:
        content_type = response.headers.get("content-type")
        if not is_multipart(content_type):
            logger.error(
                "siblings missing sibling response is not multipart for %s %s",
                self.method,
                self.bk,
            )
            raise ProtocolError("sibling response did not come back as multipart")

        parts = decode_multipart(parse_boundary(content_type), _body_text(body))
        if len(parts) <= 1:
            logger.error(
                "riak get siblings didn't get multiple sibling values for %s", self.bk
            )
        siblings = [Sibling(headers, self._decode(part)) for headers, part in parts]

        self.vclock = response.vclock
        self.state = State.RESOLVER_INVOKED
        assert self.options.resolver is not None
        self._handle_resolved(self.options.resolver(siblings))

    def _handle_resolved(self, resolution: Resolution | None) -> None:
        if resolution is None or resolution.value is None:
            raise ResolutionError()
        self._resolution = resolution

        headers = self.client.headers(resolution.headers)
        if self.vclock is not None:
            headers["X-Riak-Vclock"] = self.vclock

        if not resolution.save:
            logger.info("riak resolve siblings skip %s", self.bk)
            self._settle(
                Result(
                    Response(status=200, headers=httpx.Headers(headers), synthetic=True),
                    resolution.value,
                    classify(resolution.value),
                )
            )
            return

        if self.options.parse and not any(name.lower() == "content-type" for name in headers):
            headers["Content-Type"] = "application/json"
        descriptor = self._descriptor(
            method="put",
            headers=headers,
            body=self._encode(resolution.value),
            return_body=True,
        )
        logger.info("riak resolve siblings save %s with vclock %s", self.bk, self.vclock)
        self.state = State.RESOLVED_WRITE_DISPATCHED
        self.client.transport.put(descriptor, self._on_resolved_write)

    def _on_resolved_write(
        self, error: Exception | None, response: Response | None, body: bytes | None
    ) -> None:
        if self.future.done():
            logger.warning("riak callback dup resolved write for %s dropped", self.bk)
            return
        assert self._resolution is not None
        value = self._resolution.value
        if error is not None:
            logger.error("riak resolve more after resolving %s we got %s", self.bk, error)
            if not isinstance(error, RiakError):
                error = TransportError("PUT", self.bk, str(error))
            self._fail(error)
            return
        assert response is not None
        logger.info(
            "riak resolve more after resolving %s we got response %s", self.bk, response.status
        )
        if response.status not in (200, 204):
            self._fail(UnexpectedStatus(response.status, "sibling resolution write"))
            return
        self._settle(Result(response, value, classify(value)))
