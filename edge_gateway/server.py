import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry import trace
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator

from edge_gateway.app_proxy.config import ProxyConfig
from edge_gateway.app_proxy.route import register_proxy_routes
from edge_gateway.static_assets.assets import StaticAssetSet, load_bundled_assets
from edge_gateway.static_assets.route import register_static_routes
from edge_gateway.vars import (
    METRICS_PATH,
    OTLP_ENDPOINT,
    OTLP_HEADERS,
    SERVICE_NAME,
    SPA_FALLBACK,
)

logger = logging.getLogger("uvicorn.error")

_tracing_configured = False


def configure_tracing(app: FastAPI) -> None:
    """Export spans over OTLP when an endpoint is configured; otherwise tracing stays a no-op."""
    global _tracing_configured
    if not OTLP_ENDPOINT:
        return

    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    # The global tracer provider can only be set once per process
    if not _tracing_configured:
        tracer_provider = TracerProvider(
            resource=Resource.create({"service.name": SERVICE_NAME})
        )
        otlp_exporter = OTLPSpanExporter(
            endpoint=OTLP_ENDPOINT,
            headers=(OTLP_HEADERS.split(",") if OTLP_HEADERS else None),
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        trace.set_tracer_provider(tracer_provider)
        _tracing_configured = True

    FastAPIInstrumentor.instrument_app(app)


def startup_banner(config: ProxyConfig, assets: StaticAssetSet) -> List[str]:
    return [
        f"Pointing to upstream API: {config.upstream_url}",
        f"Proxying {config.api_prefix or '/'} -> {config.upstream_url}",
        f"Serving {len(assets)} static assets",
        f"Server running on http://{config.host}:{config.port}",
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: ProxyConfig = app.state.proxy_config
    for line in startup_banner(config, app.state.static_assets):
        logger.info(line)
    yield
    await config.client.aclose()
    logger.info("Edge gateway shut down")


def create_app(
    config: Optional[ProxyConfig] = None,
    assets: Optional[StaticAssetSet] = None,
    spa_fallback: bool = SPA_FALLBACK,
    metrics_path: str = METRICS_PATH,
) -> FastAPI:
    """
    Build the gateway application.

    Routes are matched in registration order: metrics (when enabled), the
    proxy prefix, then the static catch-all.
    """
    app = FastAPI(
        title=SERVICE_NAME,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.proxy_config = config or ProxyConfig()
    app.state.static_assets = assets if assets is not None else load_bundled_assets()
    app.state.spa_fallback = spa_fallback

    # Answers preflights; the blanket middleware below covers everything else
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    @app.middleware("http")
    async def allow_any_origin(request: Request, call_next):
        response = await call_next(request)
        response.headers["access-control-allow-origin"] = "*"
        return response

    if metrics_path:
        instrumentator = Instrumentator(registry=CollectorRegistry())
        instrumentator.instrument(app).expose(
            app, endpoint=metrics_path, include_in_schema=False
        )

    configure_tracing(app)

    register_proxy_routes(app, app.state.proxy_config)
    register_static_routes(app)
    return app
