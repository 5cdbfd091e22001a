"""
Pod Remediator - Kubernetes unhealthy pod cleanup and restart verification

Periodically deletes pods that violate a health policy, then checks that
their replacements came back healthy and raises an alert when they did not.
"""

__version__ = "1.0.0"
__author__ = "Pod Cleaner Team"
__email__ = "team@podcleaner.com"
