"""
Logging configuration for the relevance engine.

This module provides logging setup with console and rotating file handlers,
plus a structured logger for query lifecycle events.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> None:
    """
    Set up logging configuration for the relevance engine.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        max_file_size: Maximum log file size in bytes
        backup_count: Number of backup files to keep
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    # RPC and HTTP client libraries are chatty at INFO
    logging.getLogger('web3').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Level: {level}, File: {log_file or 'Console only'}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class RelevanceLogger:
    """
    Structured logger for relevance query events.

    Emits pipe-delimited lines that are easy to grep and parse.
    """

    def __init__(self, name: str = "order_relevance"):
        self.logger = logging.getLogger(name)
        self.query_logger = logging.getLogger(f"{name}.queries")
        self.chain_logger = logging.getLogger(f"{name}.chain")
        self.performance_logger = logging.getLogger(f"{name}.performance")

    def log_query_start(self, wallet: str, network: str) -> None:
        self.query_logger.info(f"QUERY_START|{wallet}|{network}")

    def log_query_result(self, wallet: str, holdings: int, orders_scanned: int, relevant: int, partial: bool) -> None:
        """Log a completed query."""
        self.query_logger.info(
            f"QUERY_DONE|{wallet}|holdings={holdings}|scanned={orders_scanned}|relevant={relevant}|partial={partial}"
        )

    def log_query_aborted(self, wallet: str, reason: str) -> None:
        self.query_logger.warning(f"QUERY_ABORT|{wallet}|{reason}")

    def log_contract_failure(self, contract_address: str, method: str, reason: str) -> None:
        self.chain_logger.warning(f"CONTRACT_FAIL|{contract_address}|{method}|{reason}")

    def log_malformed_order(self, order_id: str, reason: str) -> None:
        self.query_logger.warning(f"MALFORMED_ORDER|{order_id}|{reason}")

    def log_performance_metric(self, metric_name: str, value: float, unit: str = "ms") -> None:
        self.performance_logger.info(f"PERF_METRIC|{metric_name}|{value:.3f}|{unit}")

    def log_error(self, component: str, error: str, wallet: str = None) -> None:
        """Log error."""
        context = f"|{wallet}" if wallet else ""
        self.logger.error(f"ERROR|{component}|{error}{context}")
