from fastapi import FastAPI, Request
from fastapi.responses import Response

from edge_gateway.static_assets.assets import (
    INDEX_DOCUMENT,
    StaticAssetSet,
    content_type_for,
    resolve_asset_path,
)


def lookup_asset(
    assets: StaticAssetSet, request_path: str, spa_fallback: bool = False
) -> Response:
    """Build the response for a static path: the file, the index fallback, or an empty 404."""
    path = resolve_asset_path(request_path)
    content = assets.get(path)

    if content is None and spa_fallback and INDEX_DOCUMENT in assets:
        path = INDEX_DOCUMENT
        content = assets[path]

    if content is None:
        return Response(status_code=404)

    return Response(content=content, status_code=200, media_type=content_type_for(path))


async def serve_static(request: Request) -> Response:
    state = request.app.state
    return lookup_asset(state.static_assets, request.url.path, state.spa_fallback)


def register_static_routes(app: FastAPI) -> None:
    # Registered last so the proxy prefix and metrics routes take precedence
    app.add_route("/{path:path}", serve_static, include_in_schema=False)
