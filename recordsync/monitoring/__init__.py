"""Prometheus metrics for reconciliation runs."""

from recordsync.monitoring.metrics import ReconciliationMetrics

__all__ = ["ReconciliationMetrics"]
