"""
Configuration management for Pod Remediator
"""

import os
import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Optional

import yaml

from .errors import ConfigError

DEFAULT_EXCLUDED_NAMESPACES = ("kube-system",)
DEFAULT_HEALTHY_STATUSES = ("Running", "Init")
DEFAULT_CHECK_DELAY_SECONDS = 180

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600}

# Accepted spellings for each policy key; the first one is canonical.
_NAMESPACE_KEYS = ("excludeNamespaces", "excludedNamespaces")
_STATUS_KEYS = ("healthyStatuses", "healthyStatus", "excludePodStatus")
_DELAY_KEYS = ("checkDelaySeconds",)

# Marks a key absent from the document; an explicit null is an error
_MISSING = object()


@dataclass(frozen=True)
class PolicyConfig:
    """Immutable remediation policy, loaded once per run"""

    excluded_namespaces: FrozenSet[str] = frozenset(DEFAULT_EXCLUDED_NAMESPACES)
    # Phases that count as healthy; pods in these phases are never deleted.
    healthy_statuses: FrozenSet[str] = frozenset(DEFAULT_HEALTHY_STATUSES)
    check_delay_seconds: int = DEFAULT_CHECK_DELAY_SECONDS

    @classmethod
    def default(cls) -> "PolicyConfig":
        return cls()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PolicyConfig":
        """Build a policy from a parsed policy document"""
        if data is None:
            return cls.default()
        if not isinstance(data, dict):
            raise ConfigError("policy document must be a mapping")

        namespaces = _pick(data, _NAMESPACE_KEYS)
        statuses = _pick(data, _STATUS_KEYS)
        delay = _pick(data, _DELAY_KEYS)

        return cls(
            excluded_namespaces=frozenset(
                _string_list(namespaces, _NAMESPACE_KEYS[0])
                if namespaces is not _MISSING else DEFAULT_EXCLUDED_NAMESPACES
            ),
            healthy_statuses=frozenset(
                _string_list(statuses, _STATUS_KEYS[0])
                if statuses is not _MISSING else DEFAULT_HEALTHY_STATUSES
            ),
            check_delay_seconds=(
                _non_negative_int(delay, _DELAY_KEYS[0])
                if delay is not _MISSING else DEFAULT_CHECK_DELAY_SECONDS
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "excludeNamespaces": sorted(self.excluded_namespaces),
            "healthyStatuses": sorted(self.healthy_statuses),
            "checkDelaySeconds": self.check_delay_seconds,
        }


def _pick(data: Dict[str, Any], keys: Iterable[str]) -> Any:
    present = [key for key in keys if key in data]
    if len(present) > 1:
        raise ConfigError(f"policy keys {', '.join(present)} are aliases; set only one")
    return data[present[0]] if present else _MISSING


def _string_list(value: Any, key: str) -> list:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{key} must be a list of strings")
    return [item.strip() for item in value if item.strip()]


def _non_negative_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{key} must be a non-negative integer, got {value!r}")
    return value


def load_policy(path: Optional[str]) -> PolicyConfig:
    """Read the policy file at path, or return the default policy if no path is given"""
    if not path:
        return PolicyConfig.default()

    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as e:
        raise ConfigError(f"cannot read policy config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in policy config {path}: {e}") from e

    return PolicyConfig.from_dict(data)


def parse_duration(value: Any) -> float:
    """
    Parse an interval into seconds.

    Accepts plain numbers of seconds ("600", 600) and Go-style durations
    such as "10m", "1h30m" or "1.5s".
    """
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        if not text:
            raise ConfigError("empty duration")
        try:
            seconds = float(text)
        except ValueError:
            parts = _DURATION_PART.findall(text)
            if not parts or "".join(num + unit for num, unit in parts) != text:
                raise ConfigError(f"invalid duration {value!r}")
            seconds = sum(float(num) * _DURATION_UNITS[unit] for num, unit in parts)

    if seconds < 0:
        raise ConfigError(f"duration must not be negative, got {value!r}")
    return seconds


@dataclass
class Settings:
    """Process settings; explicit values win over environment variables"""

    # Kubernetes configuration
    kube_config_path: Optional[str] = None
    master_url: Optional[str] = None

    # Policy
    policy_config_path: Optional[str] = None

    # Scheduling configuration, seconds; 0 runs a single cycle
    cleaning_interval: Optional[float] = None
    sync_timeout: Optional[float] = None

    # Logging configuration
    log_level: Optional[str] = None
    log_format: Optional[str] = None

    # Metrics / alerting
    metrics_port: Optional[int] = None
    pushgateway_url: Optional[str] = None
    pushgateway_job: Optional[str] = None
    cluster_name: Optional[str] = None

    def __post_init__(self):
        """Fill unset values from the environment, then from defaults"""
        self.kube_config_path = self.kube_config_path or os.getenv("KUBECONFIG") or None
        self.master_url = self.master_url or os.getenv("KUBE_MASTER_URL") or None
        self.policy_config_path = self.policy_config_path or os.getenv("POLICY_CONFIG") or None

        if self.cleaning_interval is None:
            self.cleaning_interval = os.getenv("CLEANING_INTERVAL", "0")
        self.cleaning_interval = parse_duration(self.cleaning_interval)

        if self.sync_timeout is None:
            self.sync_timeout = os.getenv("CACHE_SYNC_TIMEOUT", "60")
        self.sync_timeout = parse_duration(self.sync_timeout)

        self.log_level = (self.log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
        self.log_format = (self.log_format or os.getenv("LOG_FORMAT", "json")).lower()
        if self.log_format not in ("json", "console"):
            raise ConfigError(f"log format must be json or console, got {self.log_format!r}")

        if self.metrics_port is None:
            try:
                self.metrics_port = int(os.getenv("METRICS_PORT", "0"))
            except ValueError as e:
                raise ConfigError(f"invalid METRICS_PORT: {e}") from e

        self.pushgateway_url = self.pushgateway_url or os.getenv("PROMETHEUS_PUSHGATEWAY_URL") or None
        self.pushgateway_job = self.pushgateway_job or os.getenv("PROMETHEUS_JOB_NAME", "pod_remediator")
        self.cluster_name = self.cluster_name or os.getenv("CLUSTER_NAME", "unknown")

    @property
    def one_shot(self) -> bool:
        return self.cleaning_interval == 0
