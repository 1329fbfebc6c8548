"""Response envelopes, sibling records, and the stored-value variant."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx


@dataclass
class Response:
    """One HTTP response as seen by the request lifecycle.

    ``synthetic`` is set on envelopes the client fabricates itself (a sibling
    resolution that was not written back, or a modify that made no change).
    Callers should not need to look at it.
    """

    status: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: bytes = b""
    synthetic: bool = False

    @property
    def vclock(self) -> str | None:
        return self.headers.get("x-riak-vclock")


@dataclass(frozen=True)
class Absent:
    """No value is stored under the key."""

    def unwrap(self) -> None:
        return None


@dataclass(frozen=True)
class Scalar:
    """A string, number, boolean, or JSON null."""

    value: Any

    def unwrap(self) -> Any:
        return self.value


@dataclass(frozen=True)
class ListValue:
    """A JSON array."""

    items: tuple[Any, ...]

    def unwrap(self) -> list[Any]:
        return list(self.items)


@dataclass(frozen=True)
class Document:
    """A JSON object."""

    fields: dict[str, Any]

    def unwrap(self) -> dict[str, Any]:
        return dict(self.fields)


StoredValue = Absent | Scalar | ListValue | Document


def classify(value: Any) -> StoredValue:
    """Tag a decoded value with its shape."""
    if isinstance(value, list):
        return ListValue(tuple(value))
    if isinstance(value, dict):
        return Document(value)
    return Scalar(value)


@dataclass
class Result:
    """Outcome of one logical operation: the response and its decoded value."""

    response: Response
    value: Any = None
    stored: StoredValue = field(default_factory=Absent)

    @property
    def status(self) -> int:
        return self.response.status


@dataclass
class Sibling:
    """One conflicting version from a multipart sibling response."""

    headers: dict[str, str]
    value: Any


@dataclass
class Resolution:
    """A resolver's choice among siblings.

    ``save=False`` hands the value back to the caller without writing it to
    the store.
    """

    value: Any
    headers: dict[str, str] | None = None
    save: bool = True


@dataclass
class Mutation:
    """A mutator's new value plus optional header overrides for the write."""

    value: Any
    headers: dict[str, str] | None = None
