"""
Header filtering for the reverse proxy.

Both directions work on ordered ``(name, value)`` lists so repeated headers
(``set-cookie``, ``vary``, ...) survive untouched. A pair that cannot be put
on the wire is skipped on its own; the remaining headers still go through.
"""

import logging
import re
from typing import Iterable, List, Optional, Tuple, Union

logger = logging.getLogger("uvicorn.error")

HeaderPart = Union[str, bytes]
RawHeaders = List[Tuple[bytes, bytes]]

# Regenerated by the outbound transport from the target URL and the body.
# The inbound body is already de-chunked, so chunked framing would be wrong too.
REQUEST_DENYLIST = {b"host", b"content-length", b"transfer-encoding"}

# The body is relayed whole, so the ASGI server frames it with content-length
RESPONSE_DENYLIST = {b"transfer-encoding"}

# RFC 9110 token characters
_TOKEN_RE = re.compile(rb"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
# Field values: visible ASCII, space, tab and obs-text; no CR, LF, NUL or other controls
_FIELD_VALUE_RE = re.compile(rb"[\t\x20-\x7e\x80-\xff]*")


def _to_bytes(part: HeaderPart) -> Optional[bytes]:
    if isinstance(part, bytes):
        return part
    try:
        return part.encode("latin-1")
    except (UnicodeEncodeError, AttributeError):
        return None


def to_wire(name: HeaderPart, value: HeaderPart) -> Optional[Tuple[bytes, bytes]]:
    """Convert a header pair to wire bytes, or ``None`` if it is not valid wire syntax."""
    raw_name = _to_bytes(name)
    raw_value = _to_bytes(value)
    if raw_name is None or raw_value is None:
        return None
    if not _TOKEN_RE.fullmatch(raw_name) or not _FIELD_VALUE_RE.fullmatch(raw_value):
        return None
    return raw_name, raw_value


def filter_request_headers(
    headers: Iterable[Tuple[HeaderPart, HeaderPart]],
) -> RawHeaders:
    """Copy inbound headers for the upstream, dropping ``host`` and ``content-length``."""
    forwarded: RawHeaders = []
    for name, value in headers:
        pair = to_wire(name, value)
        if pair is None:
            logger.debug(f"Dropping unconvertible request header {name!r}")
            continue
        if pair[0].lower() in REQUEST_DENYLIST:
            continue
        forwarded.append(pair)
    return forwarded


def filter_response_headers(
    headers: Iterable[Tuple[HeaderPart, HeaderPart]],
) -> RawHeaders:
    """Copy upstream headers for the client, lowercasing names for ASGI."""
    relayed: RawHeaders = []
    for name, value in headers:
        pair = to_wire(name, value)
        if pair is None:
            logger.debug(f"Dropping unconvertible response header {name!r}")
            continue
        raw_name = pair[0].lower()
        if raw_name in RESPONSE_DENYLIST:
            continue
        relayed.append((raw_name, pair[1]))
    return relayed
