"""
Exception types for Pod Remediator
"""


class PodRemediatorError(Exception):
    """Base class for all Pod Remediator errors"""


class ConfigError(PodRemediatorError):
    """Policy file or process settings could not be loaded"""


class ClusterConnectionError(PodRemediatorError):
    """Kubernetes credentials could not be loaded or the client could not be built"""


class CacheSyncError(PodRemediatorError):
    """Pod cache did not report itself synced in time"""


class PodNotFoundError(PodRemediatorError):
    """The pod no longer exists in the cluster"""

    def __init__(self, namespace: str, name: str):
        super().__init__(f"pod {namespace}/{name} not found")
        self.namespace = namespace
        self.name = name


class NotificationError(PodRemediatorError):
    """A notification could not be delivered"""
