from pod_remediator.config import PolicyConfig
from pod_remediator.policy import PolicyEvaluator

from conftest import make_pod


def test_scenario_a_failed_pod_outside_excluded_namespace_is_candidate(policy):
    evaluator = PolicyEvaluator(policy)
    assert evaluator.should_clean_pod(make_pod("default", "a", "Failed"))


def test_scenario_b_excluded_namespace_is_never_candidate(policy):
    evaluator = PolicyEvaluator(policy)
    assert not evaluator.should_clean_pod(make_pod("kube-system", "b", "Failed"))


def test_scenario_c_healthy_pod_is_not_candidate(policy):
    evaluator = PolicyEvaluator(policy)
    assert not evaluator.should_clean_pod(make_pod("default", "c", "Running"))


def test_status_matching_is_case_insensitive():
    evaluator = PolicyEvaluator(PolicyConfig(healthy_statuses=frozenset(["running", "INIT"])))
    assert evaluator.is_healthy("Running")
    assert evaluator.is_healthy("RUNNING")
    assert evaluator.is_healthy("Init")
    assert not evaluator.is_healthy("Pending")


def test_namespace_matching_is_case_sensitive(policy):
    evaluator = PolicyEvaluator(policy)
    assert evaluator.is_exempt_namespace("kube-system")
    assert not evaluator.is_exempt_namespace("Kube-System")


def test_missing_phase_is_unhealthy(policy):
    evaluator = PolicyEvaluator(policy)
    assert not evaluator.is_healthy(None)
    assert not evaluator.is_healthy("")
    assert evaluator.is_candidate("default", None)


def test_candidate_iff_not_exempt_and_not_healthy(policy):
    evaluator = PolicyEvaluator(policy)
    for namespace in ("default", "kube-system", "apps"):
        for phase in ("Running", "running", "Failed", "Pending", "Succeeded", "Unknown"):
            expected = namespace != "kube-system" and phase.lower() != "running"
            assert evaluator.is_candidate(namespace, phase) is expected, (namespace, phase)


def test_default_policy():
    evaluator = PolicyEvaluator(PolicyConfig.default())
    assert not evaluator.is_candidate("kube-system", "Failed")
    assert not evaluator.is_candidate("default", "Init")
    assert evaluator.is_candidate("default", "Pending")
