"""Request descriptors and object path construction."""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import quote, urlencode

import httpx


def object_path(
    namespace: str,
    bucket: str,
    key: str,
    *,
    r_val: int | None = None,
    w_val: int | None = None,
    return_body: bool = False,
) -> str:
    """Build ``/<namespace>/<bucket>/<key>[?query]`` with bucket and key URL-encoded."""
    path = f"/{namespace}/{quote(bucket, safe='')}/{quote(key, safe='')}"
    query: dict[str, str | int] = {}
    if r_val:
        query["r"] = r_val
    if w_val:
        query["w"] = w_val
    if return_body:
        query["returnbody"] = "true"
    if query:
        path = f"{path}?{urlencode(query)}"
    return path


@dataclass
class RequestDescriptor:
    """Everything the transport needs for one request, plus its retry state.

    A descriptor belongs to a single request lifecycle. The retry policy
    mutates ``attempts``, ``not_found`` and ``last_body_empty`` as responses
    come back.
    """

    method: str
    path: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: bytes | None = None
    retry_not_found: bool = True
    attempts: int = 0
    not_found: int = 0
    last_body_empty: bool = False
