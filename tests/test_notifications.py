"""
Test notification senders
"""

from unittest.mock import MagicMock

import pytest
import requests
from prometheus_client import REGISTRY

from pod_remediator.errors import NotificationError
from pod_remediator.notifications import (
    LogSender,
    NotificationMessage,
    PrometheusSender,
    build_sender,
)

from conftest import NOW, make_pod


@pytest.fixture
def message():
    return NotificationMessage(
        namespace="default",
        pod_name="web-app-pod",
        phase="Failed",
        reason="CrashLoopBackOff",
        message="Container restarting too frequently",
    )


def test_message_from_pod():
    pod = make_pod("production", "database-pod", "Pending", start_time=NOW,
                   reason="ImagePullBackOff", message="Failed to pull image")

    message = NotificationMessage.from_pod(pod)

    assert message.to_dict() == {
        "namespace": "production",
        "pod_name": "database-pod",
        "phase": "Pending",
        "reason": "ImagePullBackOff",
        "message": "Failed to pull image",
    }


def test_log_sender_never_fails(message):
    LogSender().send(message)


def test_build_sender_selects_by_pushgateway():
    assert isinstance(build_sender(None), LogSender)
    sender = build_sender("http://localhost:9091/", job_name="test_job", cluster_name="minikube")
    assert isinstance(sender, PrometheusSender)
    assert sender.pushgateway_url == "http://localhost:9091"


def test_prometheus_sender_counts_alert_without_pushgateway(message):
    labels = {"namespace": "default", "phase": "Failed"}
    before = REGISTRY.get_sample_value("pod_remediator_unhealthy_replacements_total", labels) or 0

    PrometheusSender().send(message)

    after = REGISTRY.get_sample_value("pod_remediator_unhealthy_replacements_total", labels)
    assert after == before + 1


def test_prometheus_sender_pushes_to_gateway(message):
    session = MagicMock()
    sender = PrometheusSender("http://localhost:9091", job_name="kubernetes_pod_cleaner_test",
                              cluster_name="minikube", session=session)

    sender.send(message)

    session.put.assert_called_once()
    args, kwargs = session.put.call_args
    assert args[0] == (
        "http://localhost:9091/metrics/job/kubernetes_pod_cleaner_test/namespace/default/pod/web-app-pod"
    )
    assert kwargs["timeout"] == 10.0
    assert ('pod_remediator_unhealthy_replacement{namespace="default",pod="web-app-pod",'
            'phase="Failed",cluster="minikube"} 1') in kwargs["data"]


def test_prometheus_sender_raises_on_push_failure(message):
    session = MagicMock()
    session.put.side_effect = requests.ConnectionError("connection refused")
    sender = PrometheusSender("http://localhost:9091", session=session)

    with pytest.raises(NotificationError, match="Pushgateway"):
        sender.send(message)


def test_prometheus_sender_raises_on_http_error(message):
    session = MagicMock()
    session.put.return_value.raise_for_status.side_effect = requests.HTTPError("502 Bad Gateway")
    sender = PrometheusSender("http://localhost:9091", session=session)

    with pytest.raises(NotificationError):
        sender.send(message)


def test_alerts_for_different_pods_go_to_separate_groups():
    session = MagicMock()
    sender = PrometheusSender("http://localhost:9091", job_name="pod_remediator", session=session)

    sender.send(NotificationMessage(namespace="default", pod_name="a2", phase="Failed"))
    sender.send(NotificationMessage(namespace="default", pod_name="b2", phase="Pending"))

    urls = [c.args[0] for c in session.put.call_args_list]
    bodies = [c.kwargs["data"] for c in session.put.call_args_list]
    assert urls == [
        "http://localhost:9091/metrics/job/pod_remediator/namespace/default/pod/a2",
        "http://localhost:9091/metrics/job/pod_remediator/namespace/default/pod/b2",
    ]
    assert 'pod="a2"' in bodies[0]
    assert 'pod="b2"' in bodies[1]


def test_grouping_key_segments_are_url_quoted():
    session = MagicMock()
    sender = PrometheusSender("http://localhost:9091", job_name="pods/cleaner", session=session)

    sender.send(NotificationMessage(namespace="team a", pod_name="web/0", phase="Failed"))

    assert session.put.call_args.args[0] == (
        "http://localhost:9091/metrics/job/pods%2Fcleaner/namespace/team%20a/pod/web%2F0"
    )
