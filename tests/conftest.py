"""
Shared fixtures: an in-memory cluster and pod builders
"""

import itertools
from datetime import datetime, timezone

import pytest
from kubernetes.client import V1ObjectMeta, V1Pod, V1PodStatus

from pod_remediator.config import PolicyConfig
from pod_remediator.errors import NotificationError, PodNotFoundError
from pod_remediator.notifications import NotificationSender

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

_uids = itertools.count(1)


def make_pod(namespace="default", name="pod", phase="Running", labels=None,
             uid=None, start_time=None, reason=None, message=None):
    return V1Pod(
        metadata=V1ObjectMeta(
            namespace=namespace,
            name=name,
            uid=uid or f"uid-{next(_uids)}",
            labels=labels,
        ),
        status=V1PodStatus(
            phase=phase,
            reason=reason,
            message=message,
            start_time=start_time,
        ),
    )


def _matches(pod, selector):
    if not selector:
        return True
    labels = pod.metadata.labels or {}
    for term in selector.split(","):
        key, value = term.split("=", 1)
        if labels.get(key) != value:
            return False
    return True


class FakeCluster:
    """Implements the cache and mutator interfaces over a dict of pods"""

    def __init__(self, pods=()):
        self.pods = {}
        for pod in pods:
            self.add(pod)
        self.deleted = []
        self.list_calls = []
        self.delete_errors = {}
        self.list_error = None
        self.missing_on_get = set()
        self.replacements = {}
        self.synced = True

    def add(self, pod):
        self.pods[(pod.metadata.namespace, pod.metadata.name)] = pod

    def replace_with(self, namespace, name, *new_pods):
        """Pods that appear once (namespace, name) is deleted"""
        self.replacements[(namespace, name)] = list(new_pods)

    def has_synced(self):
        return self.synced

    def list_pods(self, label_selector=None, namespace=None):
        self.list_calls.append((namespace, label_selector))
        if self.list_error is not None:
            raise self.list_error
        return [
            pod for (ns, _), pod in self.pods.items()
            if (namespace is None or ns == namespace) and _matches(pod, label_selector)
        ]

    def get_pod(self, namespace, name):
        if name in self.missing_on_get or (namespace, name) not in self.pods:
            raise PodNotFoundError(namespace, name)
        return self.pods[(namespace, name)]

    def delete_pod(self, namespace, name):
        error = self.delete_errors.get(name)
        if error is not None:
            raise error
        if (namespace, name) not in self.pods:
            raise PodNotFoundError(namespace, name)
        del self.pods[(namespace, name)]
        self.deleted.append((namespace, name))
        for pod in self.replacements.pop((namespace, name), []):
            self.add(pod)


class RecordingSender(NotificationSender):
    def __init__(self, fail=False):
        self.messages = []
        self.fail = fail

    def send(self, message):
        self.messages.append(message)
        if self.fail:
            raise NotificationError("alert endpoint unavailable")


@pytest.fixture
def policy():
    return PolicyConfig(
        excluded_namespaces=frozenset(["kube-system"]),
        healthy_statuses=frozenset(["Running"]),
        check_delay_seconds=0,
    )


@pytest.fixture
def sender():
    return RecordingSender()
