"""
Notification sinks for replacement pods that did not come back healthy
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from .errors import NotificationError
from .logger import get_logger
from .metrics import UNHEALTHY_REPLACEMENTS_TOTAL
from .policy import pod_phase

logger = get_logger(__name__)


@dataclass(frozen=True)
class NotificationMessage:
    namespace: str
    pod_name: str
    phase: Optional[str]
    reason: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_pod(cls, pod) -> "NotificationMessage":
        status = pod.status
        return cls(
            namespace=pod.metadata.namespace,
            pod_name=pod.metadata.name,
            phase=pod_phase(pod),
            reason=status.reason if status is not None else None,
            message=status.message if status is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class NotificationSender(ABC):
    """
    Delivers alerts about unhealthy replacement pods.

    Implementations must return in bounded time and raise NotificationError
    on delivery failure; the caller logs the failure and carries on.
    """

    @abstractmethod
    def send(self, message: NotificationMessage) -> None:
        raise NotImplementedError


class LogSender(NotificationSender):
    """Default sender: emits the alert as a structured log line"""

    def send(self, message: NotificationMessage) -> None:
        logger.info(
            "Sending alert",
            namespace=message.namespace,
            pod=message.pod_name,
            phase=message.phase,
            reason=message.reason,
            message=message.message,
        )


class PrometheusSender(NotificationSender):
    """Records alerts as Prometheus metrics, optionally pushed to a Pushgateway"""

    def __init__(self, pushgateway_url: Optional[str] = None,
                 job_name: str = "pod_remediator", cluster_name: str = "unknown",
                 timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.pushgateway_url = pushgateway_url.rstrip("/") if pushgateway_url else None
        self.job_name = job_name
        self.cluster_name = cluster_name
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, message: NotificationMessage) -> None:
        UNHEALTHY_REPLACEMENTS_TOTAL.labels(
            namespace=message.namespace,
            phase=message.phase or "Unknown"
        ).inc()

        if self.pushgateway_url:
            self._push_to_pushgateway(message)

        logger.info(
            "Prometheus alert recorded",
            namespace=message.namespace,
            pod=message.pod_name,
            phase=message.phase,
        )

    def _push_to_pushgateway(self, message: NotificationMessage) -> None:
        """Push metrics to Prometheus Pushgateway"""
        labels = (
            f'namespace="{_escape(message.namespace)}",'
            f'pod="{_escape(message.pod_name)}",'
            f'phase="{_escape(message.phase or "Unknown")}",'
            f'cluster="{_escape(self.cluster_name)}"'
        )
        metrics_data = (
            "# HELP pod_remediator_unhealthy_replacement Replacement pod still unhealthy after restart\n"
            "# TYPE pod_remediator_unhealthy_replacement gauge\n"
            f"pod_remediator_unhealthy_replacement{{{labels}}} 1\n"
            "# HELP pod_remediator_last_alert_timestamp Timestamp of the last alert for the pod\n"
            "# TYPE pod_remediator_last_alert_timestamp gauge\n"
            f'pod_remediator_last_alert_timestamp{{namespace="{_escape(message.namespace)}",'
            f'pod="{_escape(message.pod_name)}"}} {datetime.now(timezone.utc).timestamp()}\n'
        )

        # One group per pod; a PUT replaces only that pod's series
        url = (
            f"{self.pushgateway_url}/metrics/job/{quote(self.job_name, safe='')}"
            f"/namespace/{quote(message.namespace, safe='')}"
            f"/pod/{quote(message.pod_name, safe='')}"
        )
        try:
            response = self.session.put(url, data=metrics_data, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(f"failed to push to Pushgateway {url}: {e}") from e

        logger.debug(
            "Pushed metrics to Pushgateway",
            namespace=message.namespace,
            pod=message.pod_name,
        )


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def build_sender(pushgateway_url: Optional[str] = None, job_name: str = "pod_remediator",
                 cluster_name: str = "unknown") -> NotificationSender:
    """Pick the Prometheus sender when a Pushgateway is configured, else the log sender"""
    if pushgateway_url:
        return PrometheusSender(pushgateway_url, job_name=job_name, cluster_name=cluster_name)
    return LogSender()
