"""Application configuration driven by environment variables.

All settings have sensible defaults for local development.
"""

import os

# ---------------------------------------------------------------------------
# Ranking gRPC server (the app backend connects to us on this address)
# ---------------------------------------------------------------------------

GRPC_SERVER_HOST: str = os.getenv("GRPC_SERVER_HOST", "0.0.0.0")
GRPC_SERVER_PORT: int = int(os.getenv("GRPC_SERVER_PORT", "50051"))

# Thread pool size for the gRPC server.  Each concurrent RPC occupies one
# thread, so this caps concurrent request handling.
GRPC_MAX_WORKERS: int = int(os.getenv("GRPC_MAX_WORKERS", "10"))

# ---------------------------------------------------------------------------
# Backend document store (we connect to it as a gRPC client)
# ---------------------------------------------------------------------------

BACKEND_ADDRESS: str = os.getenv("BACKEND_ADDRESS", "localhost:50052")

# ---------------------------------------------------------------------------
# Profile catalogue cache
# ---------------------------------------------------------------------------

# How often (seconds) to refresh candidate profiles from the backend.
CATALOGUE_REFRESH_INTERVAL_SECONDS: int = int(
    os.getenv("CATALOGUE_REFRESH_INTERVAL_SECONDS", "300")
)

# ---------------------------------------------------------------------------
# Signal persistence
# ---------------------------------------------------------------------------

# How often (seconds) to flush newly recorded signals to the backend.
SIGNAL_PERSIST_INTERVAL_SECONDS: int = int(
    os.getenv("SIGNAL_PERSIST_INTERVAL_SECONDS", "30")
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
