"""Integration tests against a live Riak node."""

from __future__ import annotations

import os
import uuid

import pytest

from riakpool import RiakClient, RiakConfig

pytestmark = pytest.mark.riak


@pytest.fixture
def live_client() -> RiakClient:
    if os.getenv("RIAKPOOL_RIAK_TEST") != "1":
        pytest.skip("Riak integration tests disabled (set RIAKPOOL_RIAK_TEST=1)")

    nodes = os.getenv("RIAKPOOL_NODES", "127.0.0.1:8098").split(",")
    config = RiakConfig(nodes=[n.strip() for n in nodes], client_id="riakpool-it")
    client = RiakClient(config)
    yield client
    client.close()


@pytest.fixture
def bucket() -> str:
    return f"riakpool_it_{uuid.uuid4().hex[:8]}"


def test_put(live_client, bucket) -> None:
    result = live_client.put(bucket, "key_0", "some string full of juicy data")
    assert result.status == 204


def test_return_body(live_client, bucket) -> None:
    message = "some string full of juicy data"
    result = live_client.put(bucket, "key_1", message, {"return_body": True})
    assert result.status == 200
    assert result.value == message


def test_get(live_client, bucket) -> None:
    message = "blah blah blah blah riak is cool blah blah"
    assert live_client.put(bucket, "key_2", message).status == 204
    result = live_client.get(bucket, "key_2")
    assert result.status == 200
    assert result.value == message


def test_modify(live_client, bucket) -> None:
    assert live_client.put(bucket, "key_3", {"counter": 0}).status == 204

    def increment(current):
        doc = current.unwrap() or {}
        doc["counter"] = doc.get("counter", 0) + 1
        return doc

    result = live_client.modify(bucket, "key_3", increment)
    assert result.status == 204
    assert result.value["counter"] == 1


def test_replace(live_client, bucket) -> None:
    assert live_client.put(bucket, "key_4", "OLD VAL").status == 204
    result = live_client.replace(bucket, "key_4", "NEW VAL")
    assert result.status == 204
    assert result.value == "NEW VAL"
    assert live_client.get(bucket, "key_4").value == "NEW VAL"


def test_append(live_client, bucket) -> None:
    assert live_client.put(bucket, "key_5", [1, 2, 3, 4]).status == 204
    assert live_client.append(bucket, "key_5", 5).status == 204
    result = live_client.get(bucket, "key_5")
    assert result.status == 200
    assert result.value == [1, 2, 3, 4, 5]


def test_index(live_client, bucket) -> None:
    options = {"http_headers": {"x-riak-index-id_int": "1"}}
    assert live_client.put(bucket, "key_6", "indexed", options).status == 204
    result = live_client.index(bucket, "id_int", "1")
    assert result.status == 200
    assert result.value == {"keys": ["key_6"]}


def test_delete(live_client, bucket) -> None:
    live_client.put(bucket, "key_7", "short lived")
    assert live_client.delete(bucket, "key_7").status == 204
    assert live_client.get(bucket, "key_7").status == 404
