import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "edge-gateway")

UPSTREAM_API_URL = os.environ.get("UPSTREAM_API_URL", "http://localhost:8080")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3000"))
API_PREFIX = os.environ.get("API_PREFIX", "/api")
# Seconds; 0 waits on the upstream indefinitely
PROXY_TIMEOUT = float(os.environ.get("PROXY_TIMEOUT", "300"))

STATIC_DIR = os.environ.get("STATIC_DIR", "")
SPA_FALLBACK = os.environ.get("SPA_FALLBACK", "false").lower() == "true"

METRICS_PATH = os.environ.get("METRICS_PATH", "")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info").lower()

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
