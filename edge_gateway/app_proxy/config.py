from dataclasses import dataclass, field
from typing import Optional

import httpx

from edge_gateway.vars import API_PREFIX, HOST, PORT, PROXY_TIMEOUT, UPSTREAM_API_URL


def normalize_prefix(prefix: str) -> str:
    """Return the prefix with exactly one leading slash and no trailing slash."""
    prefix = prefix.strip().strip("/")
    return f"/{prefix}" if prefix else ""


def build_client(timeout: Optional[float] = PROXY_TIMEOUT) -> httpx.AsyncClient:
    """
    Create the outbound client shared by every forwarded request.

    A timeout of ``0`` or ``None`` disables the timeout entirely.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout or None),
        follow_redirects=False,
    )


@dataclass(frozen=True)
class ProxyConfig:
    """Startup configuration read by every request. Never mutated."""

    upstream_url: str = UPSTREAM_API_URL
    port: int = PORT
    host: str = HOST
    api_prefix: str = API_PREFIX
    client: httpx.AsyncClient = field(default_factory=build_client, compare=False)

    def __post_init__(self):
        # Frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "upstream_url", self.upstream_url.rstrip("/"))
        object.__setattr__(self, "api_prefix", normalize_prefix(self.api_prefix))
