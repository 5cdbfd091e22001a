#!/usr/bin/env python3
"""
Kubernetes Pod Remediator - Main Application
"""

import argparse
import signal
import sys
from threading import Event

from dotenv import load_dotenv

from . import __version__
from .config import Settings, load_policy
from .errors import PodRemediatorError
from .kubernetes_client import SYNC_REQUEST_TIMEOUT, KubernetesClient
from .logger import CycleLogger, get_logger, setup_logging
from .metrics import start_metrics_server
from .notifications import build_sender
from .pod_cleaner import PodCleaner
from .scheduler import Scheduler


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog="pod-remediator",
        description="Delete unhealthy pods and alert when their replacements stay unhealthy"
    )
    p.add_argument("--kubeconfig", help="Path to a kubeconfig. Only required if out-of-cluster.")
    p.add_argument("--master", help="Address of the Kubernetes API server. Overrides any value in kubeconfig.")
    p.add_argument("--policy-config", help="Path to the policy configuration file (yaml)")
    p.add_argument("--cleaning-interval",
                   help="Interval between cycles (e.g. 600, 10m). 0 runs once and exits.")
    p.add_argument("--sync-timeout", help="How long to wait for the pod cache to sync (e.g. 60s)")
    p.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--log-format", choices=["json", "console"], help="Log output format")
    p.add_argument("--metrics-port", type=int, help="Serve Prometheus metrics on this port (0 disables)")
    return p.parse_args(argv)


def install_signal_handlers(stop_event: Event) -> None:
    """Set the stop event on SIGINT/SIGTERM"""
    logger = get_logger("main")

    def shutdown(signum, frame):
        logger.info("Received shutdown signal, stopping...", signal=signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)


def main(argv=None) -> int:
    """Main application entry point"""
    load_dotenv()
    args = parse_args(argv)

    try:
        settings = Settings(
            kube_config_path=args.kubeconfig,
            master_url=args.master,
            policy_config_path=args.policy_config,
            cleaning_interval=args.cleaning_interval,
            sync_timeout=args.sync_timeout,
            log_level=args.log_level,
            log_format=args.log_format,
            metrics_port=args.metrics_port,
        )
    except PodRemediatorError as e:
        setup_logging()
        get_logger("main").error("Invalid settings", error=str(e))
        return 1

    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("main")

    try:
        policy = load_policy(settings.policy_config_path)
        CycleLogger().log_startup(__version__, {
            "policy": policy.to_dict(),
            "cleaning_interval_seconds": settings.cleaning_interval,
            "policy_config": settings.policy_config_path,
        })

        request_timeout = SYNC_REQUEST_TIMEOUT
        if settings.sync_timeout:
            request_timeout = min(request_timeout, settings.sync_timeout)
        k8s_client = KubernetesClient(settings.kube_config_path, settings.master_url,
                                      sync_request_timeout=request_timeout)
        notifier = build_sender(settings.pushgateway_url, settings.pushgateway_job,
                                settings.cluster_name)
        start_metrics_server(settings.metrics_port)

        cleaner = PodCleaner(k8s_client, k8s_client, policy, notifier=notifier)
        scheduler = Scheduler(cleaner, k8s_client.has_synced,
                              interval=settings.cleaning_interval,
                              sync_timeout=settings.sync_timeout)

        stop_event = Event()
        install_signal_handlers(stop_event)
        scheduler.run(stop_event)

    except PodRemediatorError as e:
        logger.error("Error running cleaner", error=str(e), error_type=type(e).__name__)
        return 1
    except OSError as e:
        logger.error("Application failed to start", error=str(e))
        return 1

    logger.info("Pod Remediator exiting")
    return 0


if __name__ == "__main__":
    sys.exit(main())
