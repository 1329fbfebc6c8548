"""Read-modify-write: a GET, a caller mutation, and a vclock-conditioned PUT."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from riakpool.errors import IntegrityError, ServerError, UnexpectedStatus
from riakpool.lifecycle import fmt_bk
from riakpool.options import RequestOptions
from riakpool.values import (
    Absent,
    ListValue,
    Mutation,
    Response,
    Result,
    StoredValue,
    classify,
)

if TYPE_CHECKING:
    from riakpool.client import RiakClient

logger = logging.getLogger(__name__)

Mutator = Callable[[StoredValue], Any]


class Phase(enum.Enum):
    READING = "reading"
    MUTATING = "mutating"
    WRITING = "writing"
    DONE = "done"


class ReadModifyWrite:
    """Run one modify against a key.

    The read's vclock is attached to the write only when the read returned
    200, so a write to a key that did not exist carries no causality token.
    The write is always sent without ``returnbody`` and must answer 204.
    """

    def __init__(
        self,
        client: RiakClient,
        bucket: str,
        key: str,
        mutator: Mutator,
        options: RequestOptions,
    ) -> None:
        self.client = client
        self.bucket = bucket
        self.key = key
        self.mutator = mutator
        self.options = options
        self.bk = fmt_bk(bucket, key)
        self.phase = Phase.READING

    def run(self) -> Result:
        if self.phase is not Phase.READING:
            raise RuntimeError(f"modify for {self.bk} already ran")
        read = self.client.get(self.bucket, self.key, self.options)

        if read.status == 404:
            current: StoredValue = Absent()
        elif read.status == 200:
            current = read.stored
        else:
            logger.warning("riak modify error %s statusCode %s", self.bk, read.status)
            self.phase = Phase.DONE
            raise ServerError(read.status)

        self.phase = Phase.MUTATING
        mutation = self.mutator(current)
        original = read.value if read.status == 200 else None

        if mutation is None:
            if self.client.config.debug:
                logger.info("riak modify no change %s", self.bk)
            self.phase = Phase.DONE
            return Result(Response(status=204, synthetic=True), original, current)
        if not isinstance(mutation, Mutation):
            mutation = Mutation(mutation)

        headers = dict(mutation.headers or {})
        if read.status == 200 and read.response.vclock is not None:
            headers["X-Riak-Vclock"] = read.response.vclock

        self.phase = Phase.WRITING
        write_options = self.options.model_copy(
            update={"http_headers": headers, "return_body": False}
        )
        written = self.client.put(self.bucket, self.key, mutation.value, write_options)
        self.phase = Phase.DONE
        if written.status != 204:
            raise UnexpectedStatus(written.status, "modify write")

        return Result(written.response, mutation.value, classify(mutation.value))


def replace_mutator(value: Any, headers: dict[str, str] | None = None) -> Mutator:
    """Mutator that overwrites whatever is stored."""

    def mutator(current: StoredValue) -> Mutation:
        return Mutation(value, headers)

    return mutator


def _same(a: Any, b: Any) -> bool:
    # JSON keeps true and 1 apart even though Python compares them equal.
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    return a == b


def append_mutator(value: Any, bk: str = "", debug: bool = False) -> Mutator:
    """Mutator that adds ``value`` to a stored list unless it is already there."""

    def mutator(current: StoredValue) -> Mutation | None:
        if isinstance(current, Absent):
            items: list[Any] = []
        elif isinstance(current, ListValue):
            items = list(current.items)
        else:
            logger.error("riak append err got non-array value to append: %r", current)
            raise IntegrityError(f"cannot append to non-list value at {bk}")

        if any(_same(item, value) for item in items):
            if debug:
                logger.info("riak append dup %s already have value %r", bk, value)
            return None

        items.append(value)
        if debug:
            logger.info("riak append %s appending %r", bk, items)
        return Mutation(items)

    return mutator

