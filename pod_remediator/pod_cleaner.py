import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from threading import Event
from typing import Callable, Dict, List, Optional

from .config import PolicyConfig
from .errors import PodNotFoundError
from .kubernetes_client import build_label_selector
from .logger import CycleLogger, get_logger
from .metrics import (
    CYCLE_DURATION_SECONDS,
    CYCLES_TOTAL,
    DELETE_FAILURES_TOTAL,
    NOTIFICATION_FAILURES_TOTAL,
    PODS_DELETED_TOTAL,
)
from .notifications import LogSender, NotificationMessage, NotificationSender
from .policy import PolicyEvaluator, pod_phase

logger = get_logger(__name__)

# A replacement younger than this counts as freshly restarted
NEW_POD_AGE = timedelta(minutes=10)


@dataclass(frozen=True)
class DeletedPod:
    """What is kept of a deleted pod to find its replacements"""

    namespace: str
    name: str
    uid: Optional[str]
    phase: Optional[str]
    labels: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_pod(cls, pod) -> "DeletedPod":
        return cls(
            namespace=pod.metadata.namespace,
            name=pod.metadata.name,
            uid=pod.metadata.uid,
            phase=pod_phase(pod),
            labels=dict(pod.metadata.labels or {}),
        )

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class CycleResult:
    cycle_id: str
    processed: int = 0
    deleted: List[DeletedPod] = field(default_factory=list)
    notified: int = 0
    duration_seconds: float = 0.0
    list_failed: bool = False
    verified: bool = False
    cancelled: bool = False


class PodCleaner:
    """
    Runs remediation cycles: delete pods that break the health policy, wait,
    then alert on replacements that are still unhealthy.

    ``cache`` provides ``list_pods(label_selector=None, namespace=None)`` and
    ``get_pod(namespace, name)``; ``mutator`` provides ``delete_pod(namespace, name)``.
    Both raise PodNotFoundError for pods that no longer exist.
    """

    def __init__(self, cache, mutator, policy: PolicyConfig,
                 notifier: Optional[NotificationSender] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.cache = cache
        self.mutator = mutator
        self.policy = policy
        self.evaluator = PolicyEvaluator(policy)
        self.notifier = notifier or LogSender()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.cycle_logger = CycleLogger()

    def run_cycle(self, stop_event: Optional[Event] = None) -> CycleResult:
        """Run one list, delete, verify and notify pass"""
        stop_event = stop_event or Event()
        result = CycleResult(cycle_id=uuid.uuid4().hex[:8])
        self.cycle_logger.log_cycle_start(result.cycle_id)
        CYCLES_TOTAL.inc()
        start_time = time.monotonic()

        try:
            pods = self.cache.list_pods()
        except Exception as e:
            self.cycle_logger.log_error(e, "Error listing pods", cycle_id=result.cycle_id)
            result.list_failed = True
            return result

        for pod in pods:
            result.processed += 1
            if not self.evaluator.should_clean_pod(pod):
                continue
            deleted = self.clean_pod(pod)
            if deleted is not None:
                result.deleted.append(deleted)

        result.duration_seconds = time.monotonic() - start_time
        CYCLE_DURATION_SECONDS.observe(result.duration_seconds)
        self.cycle_logger.log_cycle_end(
            result.cycle_id,
            deleted=len(result.deleted),
            processed=result.processed,
            duration=result.duration_seconds,
            deleted_pods=[d.key for d in result.deleted],
        )

        if not result.deleted:
            return result

        delay = self.policy.check_delay_seconds
        logger.info("Waiting for pods to restart", cycle_id=result.cycle_id, delay_seconds=delay)
        if stop_event.wait(delay):
            logger.info("Cancelled before verifying restarted pods", cycle_id=result.cycle_id)
            result.cancelled = True
            return result

        replacements = self.verify_restarts(result.deleted)
        result.notified = self.check_new_pods(replacements)
        result.verified = True
        return result

    def clean_pod(self, pod) -> Optional[DeletedPod]:
        """Delete an unhealthy pod; returns what was deleted, or None if nothing was"""
        namespace, name = pod.metadata.namespace, pod.metadata.name
        phase = pod_phase(pod)
        self.cycle_logger.log_unhealthy(namespace, name, phase)

        # The listing may be stale; skip pods that are already gone
        try:
            self.cache.get_pod(namespace, name)
        except PodNotFoundError:
            self.cycle_logger.log_pod_skipped(namespace, name, "not found before delete")
            return None
        except Exception as e:
            logger.warning("Could not re-check pod before delete", namespace=namespace,
                           name=name, phase=phase, error=str(e))

        try:
            self.mutator.delete_pod(namespace, name)
        except PodNotFoundError:
            self.cycle_logger.log_pod_skipped(namespace, name, "already deleted")
            return None
        except Exception as e:
            DELETE_FAILURES_TOTAL.labels(namespace=namespace).inc()
            self.cycle_logger.log_error(e, "Failed to delete pod", namespace=namespace,
                                        name=name, phase=phase)
            return None

        PODS_DELETED_TOTAL.labels(namespace=namespace, phase=phase or "Unknown").inc()
        self.cycle_logger.log_pod_deleted(namespace, name, phase)
        return DeletedPod.from_pod(pod)

    def verify_restarts(self, deleted: List[DeletedPod]) -> Dict[str, object]:
        """Find pods sharing labels with the deleted ones, keyed by UID"""
        logger.info("Verifying restarted pods", count=len(deleted))
        deleted_uids = {d.uid for d in deleted if d.uid}
        unique_pods = {}

        for old_pod in deleted:
            if not old_pod.labels:
                self.cycle_logger.log_pod_skipped(old_pod.namespace, old_pod.name,
                                                  "no labels to find replacements")
                continue

            try:
                pods = self.cache.list_pods(
                    label_selector=build_label_selector(old_pod.labels),
                    namespace=old_pod.namespace,
                )
            except Exception as e:
                self.cycle_logger.log_error(e, "Failed to list pods for verification",
                                            namespace=old_pod.namespace, labels=old_pod.labels)
                continue

            for pod in pods:
                uid = pod.metadata.uid or f"{pod.metadata.namespace}/{pod.metadata.name}"
                if uid in deleted_uids:
                    continue
                unique_pods[uid] = pod

        return unique_pods

    def check_new_pods(self, pods: Dict[str, object]) -> int:
        """Notify about young replacements that are still unhealthy; returns the number notified"""
        now = self.clock()
        notified = 0

        for pod in pods.values():
            start_time = pod.status.start_time if pod.status is not None else None
            if start_time is None:
                continue
            if start_time.tzinfo is None:
                start_time = start_time.replace(tzinfo=timezone.utc)
            if now - start_time >= NEW_POD_AGE:
                continue
            if self.evaluator.is_healthy(pod_phase(pod)):
                continue

            message = NotificationMessage.from_pod(pod)
            try:
                self.notifier.send(message)
            except Exception as e:
                NOTIFICATION_FAILURES_TOTAL.inc()
                self.cycle_logger.log_error(e, "Failed to send notification",
                                            namespace=message.namespace, name=message.pod_name,
                                            phase=message.phase)
                continue
            notified += 1

        return notified
