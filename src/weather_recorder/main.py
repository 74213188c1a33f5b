"""
Service entry point: runs the HTTP API and the hourly poller.
"""
import argparse
import logging
import signal
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

import uvicorn

from .alerting import WebhookAlerter
from .api_client import OpenMeteoClient
from .config import Config, ConfigError
from .database import DatabaseError, MeasurementDatabase
from .poller import HourlyPoller, PollerError
from .server import create_app
from .utils import setup_logging


logger = logging.getLogger(__name__)


def load_config(path: str) -> Config:
    """
    Load configuration from ``path``, or from the environment if it does not exist.

    Raises:
        ConfigError: If the configuration is invalid
    """
    if Path(path).exists():
        return Config.load_from_file(path)

    print(f"{path} not found, reading configuration from environment")
    return Config.load_from_env()


def setup_signal_handlers(poller: HourlyPoller) -> None:
    """
    Setup signal handlers for graceful shutdown.

    Args:
        poller: HourlyPoller instance
    """
    def signal_handler(signum, frame):
        """Handle shutdown signals."""
        signal_name = signal.Signals(signum).name
        logger.info(f"Received {signal_name} signal")
        poller.stop()

    # Handle SIGINT (Ctrl+C) and SIGTERM (Docker stop)
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.debug("Signal handlers registered")


class ServerStartupError(Exception):
    """Raised when the HTTP server cannot start listening."""
    pass


def start_server(
    app, host: str, port: int, startup_timeout: float = 10.0
) -> Tuple[uvicorn.Server, threading.Thread]:
    """
    Run uvicorn for ``app`` on a daemon thread and wait until it is listening.

    uvicorn exits its thread when it cannot bind, so a dead thread before
    ``server.started`` means the socket could not be opened.

    Raises:
        ServerStartupError: If the server thread dies or does not start in time
    """
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_config=None))
    thread = threading.Thread(target=server.run, name="http-server", daemon=True)
    thread.start()

    deadline = time.monotonic() + startup_timeout
    while not server.started:
        if not thread.is_alive():
            raise ServerStartupError(f"Web server failed to start on {host}:{port}")
        if time.monotonic() >= deadline:
            server.should_exit = True
            raise ServerStartupError(
                f"Web server did not start on {host}:{port} within {startup_timeout}s"
            )
        thread.join(0.05)

    logger.info(f"Web server started on {host}:{port}")
    return server, thread


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the weather recorder service."""
    parser = argparse.ArgumentParser(description="Record hourly weather samples and serve averages")
    parser.add_argument("--config", default="config.yaml", help="Path to YAML configuration file")
    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1

    # Setup logging
    log_config = config.get_logging_config()
    setup_logging(
        log_file=log_config["file"],
        log_level=log_config["level"],
        log_format=log_config["format"],
    )

    logger.info("=" * 60)
    logger.info("Weather Recorder")
    logger.info("=" * 60)
    logger.debug(f"Configuration: {config.to_dict(sanitize=True)}")

    alerter = WebhookAlerter.from_config(config)

    # Storage failures at startup are fatal
    try:
        database = MeasurementDatabase(config.get("database.path"))
        database.initialize_schema()
    except (DatabaseError, OSError) as e:
        logger.exception(f"Failed to initialize database: {e}")
        alerter.notify(e, title="Error while opening the database")
        return 1

    client = OpenMeteoClient.from_config(config)
    poller = HourlyPoller(config, database, client, alerter)

    server_config = config.get_server_config()
    try:
        server, server_thread = start_server(
            create_app(config, database), server_config["host"], server_config["port"]
        )
    except ServerStartupError as e:
        logger.critical(f"Web server startup failed: {e}")
        alerter.notify(e, title="Error while starting the web server")
        return 1

    setup_signal_handlers(poller)

    try:
        poller.run()
        return 0
    except PollerError as e:
        logger.critical(f"Poller stopped on fatal error: {e}")
        return 1
    finally:
        server.should_exit = True
        server_thread.join(timeout=10)
        logger.info("Weather Recorder stopped")


if __name__ == "__main__":
    sys.exit(main())
