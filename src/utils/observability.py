"""
Observability Module

Logging setup and Prometheus metrics for the request pipeline.
"""

import logging
import sys
from typing import Any, Dict
import structlog
from prometheus_client import Counter, Histogram, Gauge

from src.utils.security import mask_sensitive_data


logger = structlog.get_logger(__name__)


# Prometheus Metrics
PIPELINE_REQUESTS = Counter(
    "webtoon_requests_total",
    "Total webtoon API requests",
    ["route", "outcome"]
)

PIPELINE_LATENCY = Histogram(
    "webtoon_request_latency_seconds",
    "Webtoon request handling latency",
    ["route"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
)

RATE_LIMIT_CLIENTS = Gauge(
    "rate_limit_tracked_clients",
    "Number of clients with an open rate limit window"
)


def _mask_secrets(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Never let credentials reach a log sink."""
    return mask_sensitive_data(event_dict)


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structlog for the service."""
    level_value = logging.getLevelName(level.upper())
    if not isinstance(level_value, int):
        level_value = logging.INFO

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _mask_secrets,
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logger.debug("logging_configured", level=level.upper(), json=json_logs)


def record_request(route: str, outcome: str, duration: float) -> None:
    """Record one finished pipeline request."""
    PIPELINE_REQUESTS.labels(route=route, outcome=outcome).inc()
    PIPELINE_LATENCY.labels(route=route).observe(duration)
