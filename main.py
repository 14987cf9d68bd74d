"""Entry point: wires all components and starts the gRPC server."""

from __future__ import annotations

import logging
import signal
import sys
from concurrent import futures

import grpc

import config
from matching.catalogue import ProfileCatalogue
from matching.engine import MatchEngine
from matching.ledger_store import LedgerStore
from matching.service import MatchRankingServicer, register_servicer
from matching.wire import BackendStub

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_server(catalogue: ProfileCatalogue, ledger_store: LedgerStore) -> grpc.Server:
    """Construct and configure the gRPC server with all dependencies wired.

    Args:
        catalogue: The loaded :class:`~matching.catalogue.ProfileCatalogue`.
        ledger_store: The :class:`~matching.ledger_store.LedgerStore`.

    Returns:
        A configured but not-yet-started :class:`grpc.Server`.
    """
    engine = MatchEngine(catalogue=catalogue, ledger_store=ledger_store)
    servicer = MatchRankingServicer(engine=engine, ledger_store=ledger_store)

    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=config.GRPC_MAX_WORKERS)
    )
    register_servicer(servicer, server)
    server.add_insecure_port(f"{config.GRPC_SERVER_HOST}:{config.GRPC_SERVER_PORT}")
    return server


def main() -> None:
    """Initialise all components and start the gRPC server.

    Startup sequence:
    1. Connect to the backend as a gRPC client.
    2. Load the profile catalogue (blocks until the first fetch returns).
    3. Create the ledger store (user histories load lazily on first use).
    4. Start background threads (catalogue refresh, signal persistence).
    5. Register ``SIGTERM``/``SIGINT`` shutdown handlers.
    6. Build and start the ranking gRPC server.
    """
    logger.info("Connecting to backend at %s", config.BACKEND_ADDRESS)
    backend_channel = grpc.insecure_channel(config.BACKEND_ADDRESS)
    stub = BackendStub(backend_channel)

    logger.info("Loading profile catalogue from backend…")
    catalogue = ProfileCatalogue(
        stub=stub,
        refresh_interval_seconds=config.CATALOGUE_REFRESH_INTERVAL_SECONDS,
    )
    catalogue.refresh()
    logger.info("Catalogue loaded: %d profiles.", len(catalogue.get_all_profiles()))

    ledger_store = LedgerStore(stub=stub)

    catalogue.start_refresh_loop()
    ledger_store.start_persist_loop(config.SIGNAL_PERSIST_INTERVAL_SECONDS)

    server = build_server(catalogue, ledger_store)

    def handle_shutdown(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, flushing pending signals and shutting down…", sig_name)
        ledger_store.persist_pending()
        server.stop(grace=5)
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    server.start()
    logger.info(
        "Match ranking gRPC server listening on %s:%d",
        config.GRPC_SERVER_HOST,
        config.GRPC_SERVER_PORT,
    )
    server.wait_for_termination()


if __name__ == "__main__":
    main()
