"""
Health and request metrics aggregation.
"""

from .monitor import AuthOutcome, HealthChecks, HealthMonitor, HealthReport, HealthStatus

__all__ = ["AuthOutcome", "HealthChecks", "HealthMonitor", "HealthReport", "HealthStatus"]
