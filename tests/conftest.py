"""Shared test fixtures for riakpool tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote

import httpx
import pytest

from riakpool import RiakClient, RiakConfig
from riakpool.descriptor import RequestDescriptor
from riakpool.retry import RetryPolicy
from riakpool.transport import HttpxTransport
from riakpool.values import Response

# --- Helpers ---


def multipart_body(boundary: str, parts: list[tuple[dict[str, str], str]]) -> str:
    """Build a Riak-style multipart/mixed body."""
    out = ""
    for headers, body in parts:
        out += f"\r\n--{boundary}\r\n"
        out += "".join(f"{name}: {value}\r\n" for name, value in headers.items())
        out += f"\r\n{body}"
    out += f"\r\n--{boundary}--\r\n"
    return out


def make_response(
    status: int,
    body: str | bytes = b"",
    headers: dict[str, str] | None = None,
) -> Response:
    raw = body.encode("utf-8") if isinstance(body, str) else body
    return Response(status=status, headers=httpx.Headers(headers or {}), body=raw)


def sibling_response(values: list[Any], vclock: str = "vc-siblings") -> Response:
    boundary = "YinLMzyUR9feB17okMytgKsylvh"
    parts = [
        ({"Content-Type": "application/json", "Etag": f"e{i}"}, json.dumps(v))
        for i, v in enumerate(values)
    ]
    body = multipart_body(boundary, parts)
    return make_response(
        300,
        body,
        {
            "Content-Type": f"multipart/mixed; boundary={boundary}",
            "X-Riak-Vclock": vclock,
        },
    )


@dataclass
class RecordingObserver:
    """Observer that keeps every event for assertions."""

    metrics: list[tuple[str, str, float]] = field(default_factory=list)
    health: list[tuple[str, bool]] = field(default_factory=list)
    retries: list[tuple[str, str, str]] = field(default_factory=list)

    def on_metric(self, kind: str, key: str, value: float) -> None:
        self.metrics.append((kind, key, value))

    def on_health_change(self, node: str, healthy: bool) -> None:
        self.health.append((node, healthy))

    def on_retry(self, reason: str, path: str, message: str) -> None:
        self.retries.append((reason, path, message))

    def counters(self) -> list[str]:
        return [key for kind, key, _ in self.metrics if kind == "counter"]


class ScriptedTransport:
    """Transport that replays scripted responses and honours the retry filter.

    Methods listed in ``deliver_twice`` invoke the completion a second time,
    as a misbehaving pool might.
    """

    def __init__(
        self,
        responses: list[Response | Exception],
        *,
        max_attempts: int = 5,
        deliver_twice: set[str] | None = None,
    ) -> None:
        self.responses = list(responses)
        self.max_attempts = max_attempts
        self.deliver_twice = deliver_twice or set()
        self.retry_filter: Callable[[RequestDescriptor, Response, bytes], bool] | None = None
        self.dispatched: list[RequestDescriptor] = []
        self.closed = False

    def _dispatch(self, method: str, descriptor: RequestDescriptor, on_complete: Any) -> None:
        descriptor.method = method
        self.dispatched.append(descriptor)
        attempts = 0
        while True:
            item = self.responses.pop(0)
            attempts += 1
            if isinstance(item, Exception):
                on_complete(item, None, None)
                return
            if (
                self.retry_filter is not None
                and attempts < self.max_attempts
                and self.retry_filter(descriptor, item, item.body)
            ):
                continue
            on_complete(None, item, item.body)
            if method in self.deliver_twice:
                on_complete(None, item, item.body)
            return

    def get(self, descriptor: RequestDescriptor, on_complete: Any) -> None:
        self._dispatch("GET", descriptor, on_complete)

    def put(self, descriptor: RequestDescriptor, on_complete: Any) -> None:
        self._dispatch("PUT", descriptor, on_complete)

    def post(self, descriptor: RequestDescriptor, on_complete: Any) -> None:
        self._dispatch("POST", descriptor, on_complete)

    def delete(self, descriptor: RequestDescriptor, on_complete: Any) -> None:
        self._dispatch("DELETE", descriptor, on_complete)

    def close(self) -> None:
        self.closed = True


class FakeRiak:
    """In-memory Riak HTTP endpoint for ``httpx.MockTransport``.

    Queued responses in ``scripted`` are served first. Objects are kept per
    (bucket, key) with a vclock that changes on every write. A key given
    siblings answers GET with 300 until a PUT carrying the sibling vclock.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}
        self.siblings: dict[tuple[str, str], dict[str, Any]] = {}
        self.indexes: dict[tuple[str, str, str], list[str]] = {}
        self.requests: list[httpx.Request] = []
        self.scripted: list[httpx.Response | Exception] = []
        self._clock = 0

    def add_siblings(
        self, bucket: str, key: str, values: list[Any], vclock: str = "vc-siblings"
    ) -> None:
        self.siblings[(bucket, key)] = {"values": values, "vclock": vclock}

    def _next_vclock(self) -> str:
        self._clock += 1
        return f"vc{self._clock}"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.scripted:
            item = self.scripted.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        raw_path, _, query = request.url.raw_path.decode("ascii").partition("?")
        segments = [unquote(s) for s in raw_path.split("/")]
        if raw_path == "/ping":
            return httpx.Response(200, text="OK")
        if raw_path == "/mapred":
            return httpx.Response(200, json=[["bucket_1", "key_1"]])
        if segments[1] == "buckets" and segments[3] == "index":
            keys = self.indexes.get((segments[2], segments[4], segments[5]), [])
            return httpx.Response(200, json={"keys": keys})

        bucket, key = segments[2], segments[3]
        ident = (bucket, key)

        if request.method == "GET":
            if ident in self.siblings:
                sib = self.siblings[ident]
                resp = sibling_response(sib["values"], sib["vclock"])
                return httpx.Response(300, headers=dict(resp.headers), content=resp.body)
            if ident not in self.objects:
                return httpx.Response(404, text="not found\n")
            obj = self.objects[ident]
            return httpx.Response(
                200,
                headers={"Content-Type": obj["content_type"], "X-Riak-Vclock": obj["vclock"]},
                content=obj["body"],
            )

        if request.method == "PUT":
            sib = self.siblings.get(ident)
            if sib is not None and request.headers.get("x-riak-vclock") == sib["vclock"]:
                del self.siblings[ident]
            obj = {
                "body": request.content,
                "content_type": request.headers.get("content-type", "application/octet-stream"),
                "vclock": self._next_vclock(),
                "vclock_in": request.headers.get("x-riak-vclock"),
            }
            self.objects[ident] = obj
            if "returnbody=true" in query:
                return httpx.Response(
                    200,
                    headers={"Content-Type": obj["content_type"], "X-Riak-Vclock": obj["vclock"]},
                    content=obj["body"],
                )
            return httpx.Response(204)

        if request.method == "DELETE":
            if self.objects.pop(ident, None) is None:
                return httpx.Response(404, text="not found\n")
            return httpx.Response(204)

        return httpx.Response(405)


# --- Fixtures ---


@pytest.fixture
def config() -> RiakConfig:
    return RiakConfig(nodes=["riak1:8098", "riak2:8098"], client_id="test-client")


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def fake_riak() -> FakeRiak:
    return FakeRiak()


@pytest.fixture
def http_transport(config, observer, fake_riak) -> HttpxTransport:
    policy = RetryPolicy(observer, not_found_retries=config.not_found_retries)
    transport = HttpxTransport(
        config,
        retry_filter=policy.decide,
        observer=observer,
        http_client=httpx.Client(transport=httpx.MockTransport(fake_riak)),
        sleep=lambda _seconds: None,
    )
    yield transport
    transport._http.close()


@pytest.fixture
def client(config, observer, http_transport) -> RiakClient:
    """RiakClient talking to FakeRiak through the real HttpxTransport."""
    c = RiakClient(config, transport=http_transport, observer=observer)
    yield c
    c.close()


@pytest.fixture
def scripted_client(config, observer) -> Callable[..., tuple[RiakClient, ScriptedTransport]]:
    """Factory for a client over a ScriptedTransport wired to the client's retry policy."""

    def _make(
        responses: list[Response | Exception], **kwargs: Any
    ) -> tuple[RiakClient, ScriptedTransport]:
        transport = ScriptedTransport(responses, **kwargs)
        c = RiakClient(config, transport=transport, observer=observer)
        transport.retry_filter = c.retry_policy.decide
        return c, transport

    return _make
