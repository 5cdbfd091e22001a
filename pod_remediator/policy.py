"""
Health policy evaluation for pods
"""

from typing import Optional

from .config import PolicyConfig


class PolicyEvaluator:
    """Decides whether a pod is exempt from remediation and whether it is healthy"""

    def __init__(self, policy: PolicyConfig):
        self.policy = policy
        self._healthy = frozenset(status.casefold() for status in policy.healthy_statuses)

    def is_exempt_namespace(self, namespace: Optional[str]) -> bool:
        return namespace in self.policy.excluded_namespaces

    def is_healthy(self, phase: Optional[str]) -> bool:
        """Phase matching is case-insensitive; a pod without a phase is never healthy"""
        if not phase:
            return False
        return phase.casefold() in self._healthy

    def is_candidate(self, namespace: Optional[str], phase: Optional[str]) -> bool:
        return not self.is_exempt_namespace(namespace) and not self.is_healthy(phase)

    def should_clean_pod(self, pod) -> bool:
        """Check if a pod should be deleted"""
        return self.is_candidate(pod.metadata.namespace, pod_phase(pod))


def pod_phase(pod) -> Optional[str]:
    status = pod.status
    return status.phase if status is not None else None
