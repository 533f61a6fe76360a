from edge_gateway.static_assets.route import lookup_asset
from edge_gateway.utils_tests.proxy_mocks import INDEX_HTML


def test_root_serves_index(static_assets):
    response = lookup_asset(static_assets, "/")

    assert response.status_code == 200
    assert response.body == INDEX_HTML
    assert response.headers["content-type"].startswith("text/html")


def test_nested_asset(static_assets):
    response = lookup_asset(static_assets, "/assets/style.css")

    assert response.status_code == 200
    assert response.body == b"body { margin: 0; }"
    assert response.headers["content-type"].startswith("text/css")


def test_unknown_extension_falls_back_to_text(static_assets):
    response = lookup_asset(static_assets, "/data.unknownext")

    assert response.headers["content-type"].startswith("text/plain")
    assert response.body == b"opaque"


def test_missing_asset_is_empty_404(static_assets):
    response = lookup_asset(static_assets, "/does-not-exist")

    assert response.status_code == 404
    assert response.body == b""


def test_directory_path_is_not_listed_or_redirected(static_assets):
    response = lookup_asset(static_assets, "/assets/")

    assert response.status_code == 404


def test_spa_fallback_serves_index(static_assets):
    response = lookup_asset(static_assets, "/races/5", spa_fallback=True)

    assert response.status_code == 200
    assert response.body == INDEX_HTML
    assert response.headers["content-type"].startswith("text/html")


def test_spa_fallback_without_index_is_404():
    from edge_gateway.static_assets.assets import StaticAssetSet

    response = lookup_asset(StaticAssetSet({"a.txt": b"a"}), "/missing", spa_fallback=True)

    assert response.status_code == 404
