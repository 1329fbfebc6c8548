"""Per-request options accepted by every client operation."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from riakpool.errors import ConfigurationError
from riakpool.values import Resolution, Sibling

Resolver = Callable[[list[Sibling]], Resolution | None]


class RequestOptions(BaseModel):
    """Options for get/put/modify/replace/append.

    ``r_val`` and ``w_val`` default to whatever quorum the server is
    configured with. ``parse`` controls JSON encoding of bodies; with it off
    values travel as raw strings. ``resolver`` is required for keys that can
    have siblings.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    r_val: int | None = Field(default=None, ge=1)
    w_val: int | None = Field(default=None, ge=1)
    return_body: bool = False
    retry_not_found: bool = True
    parse: bool = True
    resolver: Resolver | None = None
    http_headers: dict[str, str] = Field(default_factory=dict)

    def with_headers(self, headers: Mapping[str, str]) -> RequestOptions:
        return self.model_copy(update={"http_headers": dict(headers)})


def coerce_options(options: RequestOptions | Mapping[str, Any] | None) -> RequestOptions:
    """Accept a RequestOptions, a plain mapping, or None."""
    if options is None:
        return RequestOptions()
    if isinstance(options, RequestOptions):
        return options
    try:
        return RequestOptions.model_validate(dict(options))
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid request options: {e}") from e
