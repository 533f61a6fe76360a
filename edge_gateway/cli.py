"""
Command line entry point.

Usage:
    edge-gateway [--upstream-api http://localhost:8080] [--port 3000]

Every flag falls back to its environment variable (see ``edge_gateway.vars``).
"""

import argparse
import os
from typing import Optional, Sequence
from urllib.parse import urlsplit

import uvicorn

from edge_gateway import vars as settings
from edge_gateway.app_proxy.config import ProxyConfig, build_client
from edge_gateway.server import create_app
from edge_gateway.static_assets.assets import load_assets


def upstream_url(value: str) -> str:
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise argparse.ArgumentTypeError(
            f"invalid upstream URL {value!r}: expected http(s)://host[:port]"
        )
    return value


def port_number(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port {value!r}")
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def static_directory(value: str) -> str:
    if value and not os.path.isdir(value):
        raise argparse.ArgumentTypeError(f"static directory not found: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edge-gateway",
        description="Forward API requests to an upstream and serve the bundled frontend.",
        epilog='Example: edge-gateway --upstream-api="http://localhost:8000" --port=4000',
    )
    parser.add_argument(
        "--upstream-api",
        "--velocidrone-api",
        dest="upstream_api",
        type=upstream_url,
        default=settings.UPSTREAM_API_URL,
        help="Upstream API endpoint (default: %(default)s)",
    )
    parser.add_argument(
        "--port",
        type=port_number,
        default=settings.PORT,
        help="Server port (default: %(default)s)",
    )
    parser.add_argument(
        "--host",
        default=settings.HOST,
        help="Bind address (default: %(default)s)",
    )
    parser.add_argument(
        "--api-prefix",
        default=settings.API_PREFIX,
        help="Path prefix forwarded to the upstream (default: %(default)s)",
    )
    parser.add_argument(
        "--proxy-timeout",
        type=float,
        default=settings.PROXY_TIMEOUT,
        help="Upstream timeout in seconds, 0 disables it (default: %(default)s)",
    )
    parser.add_argument(
        "--static-dir",
        type=static_directory,
        default=settings.STATIC_DIR,
        help="Serve assets from this directory instead of the bundled ones",
    )
    parser.add_argument(
        "--spa-fallback",
        action="store_true",
        default=settings.SPA_FALLBACK,
        help="Serve index.html for unknown static paths",
    )
    parser.add_argument(
        "--metrics-path",
        default=settings.METRICS_PATH,
        help="Expose Prometheus metrics on this path (disabled when empty)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level (default: %(default)s)",
    )
    return parser


def build_config(args: argparse.Namespace) -> ProxyConfig:
    return ProxyConfig(
        upstream_url=args.upstream_api,
        port=args.port,
        host=args.host,
        api_prefix=args.api_prefix,
        client=build_client(args.proxy_timeout),
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    config = build_config(args)
    app = create_app(
        config=config,
        assets=load_assets(args.static_dir),
        spa_fallback=args.spa_fallback,
        metrics_path=args.metrics_path,
    )
    # uvicorn exits non-zero when the port cannot be bound
    uvicorn.run(app, host=config.host, port=config.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
