from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

DOMAIN_OPERATIONS = Counter(
    "realtyhost_domain_operations_total",
    "Custom domain operations",
    ["operation", "outcome"],  # operation: provision/check_status/deprovision
)

PROVIDER_REQUESTS = Counter(
    "realtyhost_provider_requests_total",
    "Requests sent to external providers",
    ["provider", "status"],
)

BEST_EFFORT_SKIPS = Counter(
    "realtyhost_best_effort_skips_total",
    "Best-effort provisioning steps that were skipped",
    ["step"],
)

PROVIDER_REQUEST_DURATION = Histogram(
    "realtyhost_provider_request_seconds",
    "External provider request latency",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)


def generate_metrics() -> bytes:
    return generate_latest()


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST
