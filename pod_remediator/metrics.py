"""
Prometheus metrics for Pod Remediator
"""

from prometheus_client import Counter, Histogram, start_http_server

from .logger import get_logger

logger = get_logger(__name__)

CYCLES_TOTAL = Counter(
    'pod_remediator_cycles_total',
    'Total number of remediation cycles run'
)

PODS_DELETED_TOTAL = Counter(
    'pod_remediator_pods_deleted_total',
    'Total number of unhealthy pods deleted',
    ['namespace', 'phase']
)

DELETE_FAILURES_TOTAL = Counter(
    'pod_remediator_delete_failures_total',
    'Total number of failed pod deletions',
    ['namespace']
)

UNHEALTHY_REPLACEMENTS_TOTAL = Counter(
    'pod_remediator_unhealthy_replacements_total',
    'Replacement pods still unhealthy after a restart',
    ['namespace', 'phase']
)

NOTIFICATION_FAILURES_TOTAL = Counter(
    'pod_remediator_notification_failures_total',
    'Total number of notifications that could not be delivered'
)

CYCLE_DURATION_SECONDS = Histogram(
    'pod_remediator_cycle_duration_seconds',
    'Time spent listing and deleting pods in one cycle'
)


def start_metrics_server(port: int) -> None:
    """Expose metrics over HTTP; port 0 disables the endpoint"""
    if not port:
        return
    start_http_server(port)
    logger.info("Metrics server started", port=port)
