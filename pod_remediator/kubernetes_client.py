from typing import Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from .errors import ClusterConnectionError, PodNotFoundError
from .logger import get_logger

logger = get_logger(__name__)

# Upper bound on one readiness request; a stop signal is seen within it
SYNC_REQUEST_TIMEOUT = 5.0


def build_label_selector(labels: Dict[str, str]) -> str:
    """Build an equality label selector such as 'app=web,tier=frontend'"""
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))


class KubernetesClient:
    """
    Pod access backed by the Kubernetes API server.

    Serves both as the read side (list/get/has_synced) and the mutation side
    (delete) of the remediation cycle. Reads go straight to the API server,
    so the view is current as soon as the first read has succeeded.
    """

    def __init__(self, kube_config_path: Optional[str] = None,
                 master_url: Optional[str] = None, api: Optional[client.CoreV1Api] = None,
                 sync_request_timeout: float = SYNC_REQUEST_TIMEOUT):
        self._synced = False
        self.sync_request_timeout = sync_request_timeout

        if api is not None:
            self.v1 = api
            return

        try:
            if kube_config_path:
                logger.info("Loading kubeconfig", path=kube_config_path)
                config.load_kube_config(config_file=kube_config_path)
            else:
                try:
                    config.load_incluster_config()
                    logger.info("Loaded in-cluster Kubernetes configuration")
                except ConfigException:
                    config.load_kube_config()
                    logger.info("Loaded kubeconfig from default location")
        except (ConfigException, OSError) as e:
            raise ClusterConnectionError(
                f"Could not load Kubernetes configuration: {e}. "
                "Set --kubeconfig or KUBECONFIG, or run inside a cluster"
            ) from e

        configuration = client.Configuration.get_default_copy()
        if master_url:
            # Overrides the server in kubeconfig
            configuration.host = master_url
        self.v1 = client.CoreV1Api(client.ApiClient(configuration))

    def has_synced(self) -> bool:
        """True once the API server has answered a read"""
        if self._synced:
            return True
        try:
            self.v1.get_api_resources(_request_timeout=self.sync_request_timeout)
        except Exception as e:
            logger.debug("Kubernetes API not reachable yet", error=str(e))
            return False
        self._synced = True
        return True

    def list_pods(self, label_selector: Optional[str] = None,
                  namespace: Optional[str] = None) -> List[client.V1Pod]:
        """List pods, across all namespaces unless a namespace is given"""
        kwargs = {"watch": False}
        if label_selector:
            kwargs["label_selector"] = label_selector
        if namespace is None:
            pods = self.v1.list_pod_for_all_namespaces(**kwargs)
        else:
            pods = self.v1.list_namespaced_pod(namespace, **kwargs)
        self._synced = True
        return pods.items

    def get_pod(self, namespace: str, name: str) -> client.V1Pod:
        try:
            return self.v1.read_namespaced_pod(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                raise PodNotFoundError(namespace, name) from e
            raise

    def delete_pod(self, namespace: str, name: str) -> None:
        try:
            self.v1.delete_namespaced_pod(
                name=name,
                namespace=namespace,
                body=client.V1DeleteOptions(propagation_policy='Foreground')
            )
        except ApiException as e:
            if e.status == 404:
                raise PodNotFoundError(namespace, name) from e
            raise
