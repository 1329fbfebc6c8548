"""Decoder for the multipart/mixed bodies Riak returns for siblings."""

from __future__ import annotations

import re

from riakpool.errors import ProtocolError

# RFC 1341 boundary characters.
_BOUNDARY_RE = re.compile(r"boundary=\"?([\w'()+,\-./:=?]+)\"?")
_BLANK_LINE_RE = re.compile(r"\r?\n\r?\n")
_LINE_RE = re.compile(r"\r?\n")

_MIN_PART_LENGTH = 2


def parse_boundary(content_type: str | None) -> str:
    """Extract the boundary token from a multipart Content-Type header."""
    match = _BOUNDARY_RE.search(content_type or "")
    if match is None:
        raise ProtocolError(f"Couldn't find multipart boundary from: {content_type}")
    return match.group(1)


def is_multipart(content_type: str | None) -> bool:
    return (content_type or "").lower().startswith("multipart/mixed")


def decode_multipart(boundary: str, body: str) -> list[tuple[dict[str, str], str]]:
    """Split a multipart body into (headers, body) pairs in wire order.

    Delimiter lines are ``--boundary`` or ``--boundary--`` with CRLF or LF
    line endings. Header names are lower-cased. Raises ProtocolError when no
    part can be recovered.
    """
    delimiter = re.compile(rf"(?:^|\r?\n)--{re.escape(boundary)}(?:--)?[ \t]*(?:\r?\n|$)")
    parts: list[tuple[dict[str, str], str]] = []

    for fragment in delimiter.split(body):
        if len(fragment) < _MIN_PART_LENGTH:
            continue
        pieces = _BLANK_LINE_RE.split(fragment, maxsplit=1)
        header_block = pieces[0]
        part_body = pieces[1] if len(pieces) > 1 else ""

        headers: dict[str, str] = {}
        for line in _LINE_RE.split(header_block):
            name, sep, value = line.partition(": ")
            if not sep:
                continue
            headers[name.lower()] = value
        parts.append((headers, part_body))

    if not parts:
        raise ProtocolError(f"multipart message doesn't split properly: {body[:200]!r}")
    return parts
