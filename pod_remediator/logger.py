"""
Logging configuration for Pod Remediator
"""

import logging
import sys
from typing import Any, Dict, Iterable, Optional

import structlog
from colorama import init as colorama_init

# Initialize colorama for cross-platform colored output
colorama_init()

# Chatty third-party loggers kept at WARNING
_NOISY_LOGGERS = ("kubernetes", "urllib3")


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Setup structured logging for the application"""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if log_format == "json"
            else structlog.dev.ConsoleRenderer(colors=True)
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)


class CycleLogger:
    """Specialized logger for remediation cycle events"""

    def __init__(self, name: str = "pod-remediator"):
        self.logger = get_logger(name)

    def log_startup(self, version: str, config_dict: Dict[str, Any]) -> None:
        """Log application startup"""
        self.logger.info(
            "Pod Remediator starting up",
            version=version,
            config=config_dict
        )

    def log_cycle_start(self, cycle_id: str) -> None:
        """Log the start of a remediation cycle"""
        self.logger.info(
            "Starting remediation cycle",
            cycle_id=cycle_id
        )

    def log_cycle_end(self, cycle_id: str, deleted: int, processed: int,
                      duration: float, deleted_pods: Iterable[str]) -> None:
        """Log the cycle summary"""
        self.logger.info(
            "Remediation cycle finished",
            cycle_id=cycle_id,
            deleted=deleted,
            processed=processed,
            duration_seconds=round(duration, 3),
        )
        pods = list(deleted_pods)
        if pods:
            self.logger.info("Deleted pods summary", cycle_id=cycle_id, pods=pods)

    def log_unhealthy(self, namespace: str, name: str, phase: Optional[str]) -> None:
        self.logger.info(
            "Found unhealthy pod",
            namespace=namespace,
            name=name,
            phase=phase
        )

    def log_pod_deleted(self, namespace: str, name: str, phase: Optional[str]) -> None:
        """Log when a pod is deleted"""
        self.logger.info(
            "Deleted pod",
            namespace=namespace,
            name=name,
            phase=phase
        )

    def log_pod_skipped(self, namespace: str, name: str, reason: str) -> None:
        """Log when a pod is skipped"""
        self.logger.debug(
            "Pod skipped",
            namespace=namespace,
            name=name,
            reason=reason
        )

    def log_error(self, error: Exception, context: str, **kwargs) -> None:
        """Log errors with context"""
        self.logger.error(
            context,
            error=str(error),
            error_type=type(error).__name__,
            **kwargs
        )
