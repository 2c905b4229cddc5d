"""
Prometheus Metrics for Reconciliation Runs

Each ReconciliationMetrics instance owns its CollectorRegistry so batch runs
(and tests) never collide on the process-wide default registry. Batch jobs
have no scrape endpoint; results are pushed to a Pushgateway at the end of
the run.
"""

import logging
from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, push_to_gateway

logger = logging.getLogger(__name__)


class ReconciliationMetrics:
    """Prometheus metrics for reconciliation operations."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        # Collection run counter
        self.collection_runs_total = Counter(
            'recordsync_collection_runs_total',
            'Total number of collection reconciliation runs',
            ['collection', 'status'],
            registry=self.registry
        )

        # Records read per side
        self.records_processed_total = Counter(
            'recordsync_records_processed_total',
            'Total records read during reconciliation',
            ['collection', 'side'],
            registry=self.registry
        )

        self.duplicates_found_total = Counter(
            'recordsync_duplicates_found_total',
            'Total duplicate source records removed',
            ['collection'],
            registry=self.registry
        )

        self.changes_found_total = Counter(
            'recordsync_changes_found_total',
            'Total changes found by type',
            ['collection', 'change_type'],
            registry=self.registry
        )

        self.collection_duration_seconds = Histogram(
            'recordsync_collection_duration_seconds',
            'Duration of collection reconciliation in seconds',
            ['collection'],
            buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600],
            registry=self.registry
        )

        # Outstanding changes from the latest run
        self.pending_changes = Gauge(
            'recordsync_pending_changes',
            'Changes required by the latest run',
            ['collection', 'change_type'],
            registry=self.registry
        )

        logger.debug("ReconciliationMetrics initialized")

    def record_collection_run(
        self,
        collection: str,
        status: str,
        duration_seconds: float,
        source_records: int = 0,
        store_records: int = 0,
        duplicates: int = 0,
        counts: Optional[Dict[str, int]] = None
    ) -> None:
        """
        Record one collection run.

        Args:
            collection: Collection name
            status: Run status (success/failure)
            duration_seconds: Duration in seconds
            source_records: Records extracted from source files
            store_records: Records fetched from the store
            duplicates: Duplicate records removed
            counts: ChangeSet counts (additions, deletions, updates)
        """
        self.collection_runs_total.labels(collection=collection, status=status).inc()
        self.collection_duration_seconds.labels(collection=collection).observe(duration_seconds)

        self.records_processed_total.labels(collection=collection, side='source').inc(source_records)
        self.records_processed_total.labels(collection=collection, side='store').inc(store_records)
        self.duplicates_found_total.labels(collection=collection).inc(duplicates)

        if counts is not None:
            for change_type in ('additions', 'deletions', 'updates'):
                value = counts.get(change_type, 0)
                self.changes_found_total.labels(collection=collection, change_type=change_type).inc(value)
                self.pending_changes.labels(collection=collection, change_type=change_type).set(value)

        logger.debug(
            f"Recorded reconciliation metrics for {collection}: "
            f"status={status}, duration={duration_seconds:.3f}s, counts={counts}"
        )

    def push(self, gateway_url: str, job: str = 'recordsync') -> None:
        """Push the registry to a Prometheus Pushgateway."""
        push_to_gateway(gateway_url, job=job, registry=self.registry)
        logger.info(f"Pushed metrics to {gateway_url} (job={job})")
