#!/usr/bin/env python3
"""
Main entry point for the order-relevance service.

This script loads configuration, sets up logging and serves the
REST API for relevant-order queries.
"""

import signal
import sys

from order_relevance.api.rest_api import create_app
from order_relevance.core.service import RelatedOrdersService
from order_relevance.utils.logger import setup_logging, get_logger
from order_relevance.config.settings import get_settings

logger = get_logger(__name__)


class RelevanceServer:
    """
    Main server class that owns the service and the REST app.
    """

    def __init__(self):
        """Initialize the server."""
        self.settings = get_settings()

        setup_logging(
            level=self.settings.log_level,
            log_file=self.settings.log_file
        )

        self.service = RelatedOrdersService.from_settings(self.settings)
        self.rest_app = create_app(service=self.service, settings=self.settings)

        logger.info(f"Order-relevance server initialized: {self.settings.to_dict()}")

    def start(self) -> None:
        """Start the REST server (blocks until shutdown)."""
        logger.info(f"Starting REST API server on {self.settings.rest_host}:{self.settings.rest_port}")
        try:
            self.rest_app.run(
                host=self.settings.rest_host,
                port=self.settings.rest_port,
                debug=self.settings.debug,
                use_reloader=False,
                threaded=True
            )
        finally:
            self.stop()

    def stop(self) -> None:
        """Stop the server."""
        logger.info("Stopping order-relevance server...")
        self.service.close()
        logger.info("Server stopped")


def signal_handler(signum, frame):
    """Handle shutdown signals."""
    logger.info(f"Received signal {signum}, shutting down...")
    sys.exit(0)


def main():
    """Main entry point."""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        server = RelevanceServer()
        server.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
