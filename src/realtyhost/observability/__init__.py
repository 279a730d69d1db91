from realtyhost.observability.logging import configure_logging
from realtyhost.observability.metrics import (
    BEST_EFFORT_SKIPS,
    DOMAIN_OPERATIONS,
    PROVIDER_REQUEST_DURATION,
    PROVIDER_REQUESTS,
    generate_metrics,
    get_content_type,
)

__all__ = [
    # Logging
    "configure_logging",
    # Metrics
    "DOMAIN_OPERATIONS",
    "PROVIDER_REQUESTS",
    "PROVIDER_REQUEST_DURATION",
    "BEST_EFFORT_SKIPS",
    "generate_metrics",
    "get_content_type",
]
