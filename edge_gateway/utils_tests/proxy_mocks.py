from typing import Callable, List, Optional, Union

import httpx
from starlette.requests import Request

TEST_UPSTREAM_URL = "http://upstream.test:8080"

INDEX_HTML = b"<!doctype html><html><body>dashboard</body></html>"


def build_request(
    method: str = "GET",
    path: str = "/api/test",
    query_string: bytes = b"",
    headers: Optional[List[tuple]] = None,
    body: bytes = b"",
    raw_path: Optional[bytes] = None,
) -> Request:
    """Create a real Starlette request the way an ASGI server would hand it over."""
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "server": ("gateway.test", 3000),
        "root_path": "",
        "path": path,
        "raw_path": raw_path if raw_path is not None else path.encode("latin-1"),
        "query_string": query_string,
        "headers": [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or [])
        ],
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


class RawStream(httpx.AsyncByteStream):
    """Unread response body, handed out the way a network transport does."""

    def __init__(self, content: bytes):
        self._content = content

    async def __aiter__(self):
        if self._content:
            yield self._content


def upstream_response(
    status_code: int = 200,
    headers: Optional[Union[dict, List[tuple]]] = None,
    content: bytes = b"",
) -> httpx.Response:
    """Upstream reply with a streaming body and the content-length a server would send."""
    headers = httpx.Headers(headers or [])
    if content and "content-length" not in headers:
        headers["content-length"] = str(len(content))
    return httpx.Response(status_code, headers=headers, stream=RawStream(content))


class RecordingUpstream:
    """MockTransport handler that records every request it receives."""

    def __init__(self, responder: Optional[Callable] = None):
        self.requests: List[httpx.Request] = []
        self.responder = responder or (
            lambda request: upstream_response(
                200,
                headers=[("content-type", "application/json")],
                content=b'{"ok":true}',
            )
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def failing_upstream(exc_type: type) -> RecordingUpstream:
    """Upstream whose every exchange fails with the given httpx transport error."""

    def _raise(request: httpx.Request):
        raise exc_type("upstream exploded: secret internals", request=request)

    return RecordingUpstream(_raise)
