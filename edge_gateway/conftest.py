import httpx
import pytest

from edge_gateway.app_proxy.config import ProxyConfig
from edge_gateway.static_assets.assets import StaticAssetSet
from edge_gateway.utils_tests.proxy_mocks import (
    INDEX_HTML,
    TEST_UPSTREAM_URL,
    RecordingUpstream,
)


@pytest.fixture
def upstream():
    """Upstream answering 200 {"ok":true} and recording what it receives."""
    return RecordingUpstream()


@pytest.fixture
def make_config():
    def _make(handler, api_prefix="/api", timeout=30.0) -> ProxyConfig:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            timeout=httpx.Timeout(timeout),
            follow_redirects=False,
        )
        return ProxyConfig(
            upstream_url=TEST_UPSTREAM_URL,
            port=3000,
            host="127.0.0.1",
            api_prefix=api_prefix,
            client=client,
        )

    return _make


@pytest.fixture
def static_assets():
    return StaticAssetSet(
        {
            "index.html": INDEX_HTML,
            "assets/app.js": b"console.log('dashboard');",
            "assets/style.css": b"body { margin: 0; }",
            "data.unknownext": b"opaque",
        }
    )
