"""
Utility modules for the relevance engine.

This module provides logging, query metrics, and other
utility functions.
"""

from .logger import setup_logging, get_logger, RelevanceLogger
from .performance import QueryMetrics, get_query_metrics, latency_stats, time_calls

__all__ = [
    "setup_logging",
    "get_logger",
    "RelevanceLogger",
    "QueryMetrics",
    "get_query_metrics",
    "latency_stats",
    "time_calls",
]
