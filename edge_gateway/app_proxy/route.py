import logging
from urllib.parse import quote

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import Response
from opentelemetry import trace

from edge_gateway.app_proxy.config import ProxyConfig
from edge_gateway.app_proxy.headers import (
    filter_request_headers,
    filter_response_headers,
)

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Path characters left as they are when a decoded path is encoded again
_PATH_SAFE = "/:@!$&'()*+,;="


def matches_prefix(path: str, prefix: str) -> bool:
    """True when the path is the proxy prefix itself or lies below it."""
    if not prefix:
        return True
    return path == prefix or path.startswith(prefix + "/")


def _stripped_path(request: Request, prefix: str) -> bytes:
    """Percent-encoded inbound path with the proxy prefix removed."""
    # raw_path keeps the client's percent-encoding intact
    raw_path = request.scope.get("raw_path")
    if raw_path:
        raw_path = raw_path.split(b"?", 1)[0]
        if matches_prefix(raw_path.decode("latin-1"), prefix):
            return raw_path[len(prefix):]
    # Routing matched on the decoded path, e.g. /%61pi or /api%2Fx
    return quote(request.url.path[len(prefix):], safe=_PATH_SAFE).encode("ascii")


def get_request_target(request: Request, config: ProxyConfig) -> bytes:
    """
    Exact request target sent upstream.

    The upstream base path, the stripped inbound path and the raw query
    string are joined as bytes. httpcore puts this on the request line as
    it is, so nothing in it gets parsed or re-encoded.
    """
    base_path = httpx.URL(config.upstream_url).raw_path.split(b"?", 1)[0].rstrip(b"/")
    target = (base_path + _stripped_path(request, config.api_prefix)) or b"/"

    query_string = request.scope.get("query_string", b"")
    if query_string:
        target = target + b"?" + query_string
    return target


def get_target_url(request: Request, config: ProxyConfig) -> str:
    """Construct the upstream URL from the request path and raw query string."""
    path = _stripped_path(request, config.api_prefix).decode("latin-1")
    target_url = f"{config.upstream_url}{path}"

    query_string = request.scope.get("query_string", b"").decode("latin-1")
    if query_string:
        target_url = f"{target_url}?{query_string}"

    return target_url


def build_outbound_request(
    request: Request, body: bytes, config: ProxyConfig
) -> httpx.Request:
    """
    Translate the inbound request into the request sent upstream.

    The method is copied as-is, headers go through the denylist filter and
    the body is only attached when there is one. The ``target`` extension
    carries the request line bytes, the URL only picks the connection.
    """
    return httpx.Request(
        method=request.method,
        url=get_target_url(request, config),
        headers=filter_request_headers(request.headers.raw),
        content=body or None,
        extensions={
            "timeout": config.client.timeout.as_dict(),
            "target": get_request_target(request, config),
        },
    )


def build_client_response(upstream: httpx.Response, content: bytes) -> Response:
    """Relay the upstream status, headers and raw body to the client."""
    response = Response(content=content, status_code=upstream.status_code)
    relayed = filter_response_headers(upstream.headers.raw)

    if any(name == b"content-length" for name, _ in relayed):
        # The body is undecoded, so the upstream length still holds (and HEAD keeps it)
        response.raw_headers = relayed
    else:
        response.raw_headers = response.raw_headers + relayed
    return response


def bad_gateway() -> Response:
    return Response(status_code=502)


async def forward_to_target(request: Request, config: ProxyConfig) -> Response:
    """
    Forward an incoming request to the upstream API.

    Any transport failure (connect, DNS, TLS, timeout, broken read) turns
    into an empty 502. The failure detail goes to the log only.
    """
    with tracer.start_as_current_span("proxy_request") as span:
        span.set_attribute("proxy.method", request.method)
        body = await request.body()

        try:
            outbound = build_outbound_request(request, body, config)
            target_url = str(outbound.url)
            span.set_attribute("proxy.target_url", target_url)
            logger.debug(f"Proxying {request.method} {request.url.path} -> {target_url}")

            upstream = await config.client.send(outbound, stream=True)
            try:
                # aiter_raw keeps content-encoding and the relayed headers consistent
                content = b"".join([chunk async for chunk in upstream.aiter_raw()])
            finally:
                await upstream.aclose()

        except httpx.TimeoutException as e:
            logger.error(f"Proxy timeout for {request.method} {request.url.path}: {e!r}")
            span.set_attribute("proxy.error", "timeout")
            return bad_gateway()

        except httpx.ConnectError as e:
            logger.error(
                f"Failed to connect to upstream for {request.method} {request.url.path}: {e!r}"
            )
            span.set_attribute("proxy.error", "connection_failed")
            return bad_gateway()

        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Proxy error for {request.method} {request.url.path}: {e!r}")
            span.set_attribute("proxy.error", type(e).__name__)
            return bad_gateway()

        span.set_attribute("proxy.status_code", upstream.status_code)
        return build_client_response(upstream, content)


async def proxy_all(request: Request) -> Response:
    """Proxy one request under the prefix to the configured upstream."""
    return await forward_to_target(request, request.app.state.proxy_config)


class ProxyEndpoint:
    """
    ASGI endpoint for the prefix routes.

    Starlette limits plain function endpoints to GET and HEAD when no methods
    are given. An ASGI app gets no such default, so every method reaches the
    proxy, extension methods like PROPFIND included.
    """

    async def __call__(self, scope, receive, send) -> None:
        request = Request(scope, receive)
        response = await proxy_all(request)
        await response(scope, receive, send)


def register_proxy_routes(app: FastAPI, config: ProxyConfig) -> None:
    endpoint = ProxyEndpoint()
    if not config.api_prefix:
        app.add_route("/{path:path}", endpoint, include_in_schema=False)
        return
    app.add_route(config.api_prefix, endpoint, include_in_schema=False)
    app.add_route(f"{config.api_prefix}/{{path:path}}", endpoint, include_in_schema=False)
