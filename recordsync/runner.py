"""
Reconciliation Runner

Drives one reconciliation per configured collection:

    extract source files -> deduplicate -> fetch store snapshot
    -> reconcile -> write reports -> record metrics

Every collection runs inside its own error boundary and correlation context;
a failure is recorded in the run summary and the remaining collections still
run.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional, Sequence

from recordsync.config import AppConfig, CollectionConfig, StoreConfig
from recordsync.extract.workbook import WorkbookExtractor
from recordsync.monitoring.metrics import ReconciliationMetrics
from recordsync.reconciliation.comparer import FieldDiffer
from recordsync.reconciliation.deduplicator import Deduplicator
from recordsync.reconciliation.differ import Reconciler
from recordsync.reconciliation.errors import ReconciliationError, StoreError, UniquenessViolation
from recordsync.reconciliation.keys import KeyBuilder
from recordsync.reconciliation.models import CollectionResult, SourceFile
from recordsync.reporting.reporter import ReportWriter
from recordsync.stores.base import RecordStore
from recordsync.stores.factory import create_store, resolve_credentials
from recordsync.utils.correlation import CorrelationContext

logger = logging.getLogger(__name__)


class ReconciliationRunner:
    """
    Runs reconciliation for the collections of a configuration.

    Args:
        config: Loaded application configuration
        store_factory: Builds an unconnected store from a StoreConfig
        credentials_resolver: Fills in store credentials once per run
        extractor: Workbook extractor (one over data_sheets_directory if omitted)
        reporter: Report writer (one over reports_directory if omitted)
        metrics: Prometheus metrics holder (a fresh registry if omitted)
        write_reports: Set False to skip writing report files
    """

    def __init__(
        self,
        config: AppConfig,
        store_factory: Callable[[StoreConfig], RecordStore] = create_store,
        credentials_resolver: Callable[[StoreConfig], StoreConfig] = resolve_credentials,
        extractor: Optional[WorkbookExtractor] = None,
        reporter: Optional[ReportWriter] = None,
        metrics: Optional[ReconciliationMetrics] = None,
        write_reports: bool = True
    ):
        self.config = config
        self.store_factory = store_factory
        self.credentials_resolver = credentials_resolver
        self.extractor = extractor or WorkbookExtractor(config.data_sheets_directory)
        self.reporter = reporter or ReportWriter(config.reports_directory)
        self.metrics = metrics or ReconciliationMetrics()
        self.write_reports = write_reports
        self._store_config: Optional[StoreConfig] = None

    def run(
        self,
        collection_names: Optional[Sequence[str]] = None,
        workers: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Reconcile the selected collections.

        Args:
            collection_names: Subset to run (all configured collections if omitted)
            workers: Parallel collections (config runtime.workers if omitted)

        Returns:
            Run summary with one entry per collection, in configuration order

        Raises:
            ConfigurationError: If a requested collection is not configured
        """
        if collection_names:
            collections = [self.config.get_collection(name) for name in collection_names]
        else:
            collections = list(self.config.collections)

        workers = max(1, workers or self.config.workers)
        started = time.time()

        self._store_config = self.credentials_resolver(self.config.store)

        logger.info(f"Starting reconciliation of {len(collections)} collections with {workers} workers")

        results: List[Optional[CollectionResult]] = [None] * len(collections)

        if workers == 1 or len(collections) <= 1:
            for index, collection in enumerate(collections):
                results[index] = self.reconcile_collection(collection)
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                future_map = {
                    executor.submit(self.reconcile_collection, collection): index
                    for index, collection in enumerate(collections)
                }
                for future in as_completed(future_map):
                    results[future_map[future]] = future.result()

        succeeded = sum(1 for result in results if result.success)
        failed = len(results) - succeeded

        logger.info(f"Reconciliation finished: {succeeded} succeeded, {failed} failed")

        return {
            "status": "success" if failed == 0 else "failed",
            "total": len(results),
            "succeeded": succeeded,
            "failed": failed,
            "duration_seconds": round(time.time() - started, 3),
            "collections": [result.to_dict() for result in results],
        }

    def reconcile_collection(self, collection: CollectionConfig) -> CollectionResult:
        """
        Reconcile a single collection inside its own error boundary.

        Never raises; failures are reported through CollectionResult.
        """
        result = CollectionResult(collection=collection.name, success=False)
        started = time.time()

        with CorrelationContext(prefix=collection.name):
            logger.info(f"Processing collection: {collection.name}")
            try:
                self._run_collection(collection, result)
                result.success = True

            except UniquenessViolation as e:
                logger.error(
                    f"Uniqueness violation in {collection.name}: key '{e.key}' "
                    f"on {e.key_spec} has {e.record_count} store records"
                )
                self._mark_failed(result, e)

            except ReconciliationError as e:
                logger.error(f"Reconciliation failed for {collection.name}: {e}")
                self._mark_failed(result, e)

            except Exception as e:
                logger.exception(f"Unexpected error reconciling {collection.name}: {e}")
                self._mark_failed(result, e)

            result.duration_seconds = time.time() - started

            report = result.duplicate_report
            counts = result.change_set.counts if result.change_set is not None else None
            self.metrics.record_collection_run(
                collection=collection.name,
                status="success" if result.success else "failure",
                duration_seconds=result.duration_seconds,
                source_records=report.total_records if report else 0,
                store_records=result.store_record_count,
                duplicates=report.duplicate_count if report else 0,
                counts=counts
            )

            logger.info(
                f"Finished collection {collection.name} in {result.duration_seconds:.2f}s "
                f"(success={result.success})",
                extra={'collection': collection.name, 'duration': result.duration_seconds, 'counts': counts}
            )

        return result

    def _run_collection(self, collection: CollectionConfig, result: CollectionResult) -> None:
        """Run the pipeline for one collection, filling in result as it goes."""
        source_files = self._extract(collection, result)
        if not source_files:
            raise ReconciliationError(
                f"No source files could be read for collection {collection.name}"
            )

        key_builder = KeyBuilder(empty_values=collection.empty_values)
        records = [record for source_file in source_files for record in source_file.records]

        duplicate_report = Deduplicator(key_builder).build_report(
            records,
            collection.dedup_keys,
            source_files
        )
        result.duplicate_report = duplicate_report

        with self.store_factory(self._store_config or self.config.store) as store:
            fetch = store.fetch_records(collection.name)
            if not fetch.success:
                raise StoreError(f"Failed to fetch records for {collection.name}: {fetch.error}")

            store_records = fetch.data
            result.store_record_count = len(store_records)

            reconciler = Reconciler(
                key_builder=key_builder,
                field_differ=FieldDiffer(key_builder, identity_fields=store.identity_fields)
            )
            change_set = reconciler.reconcile(
                duplicate_report.unique_records,
                store_records,
                collection.compare_keys,
                exact_match_fields=collection.exact_match_fields or None,
                collection=collection.name
            )

        result.change_set = change_set

        # Reports are written only once reconciliation has succeeded
        if self.write_reports:
            paths = self.reporter.write_duplicate_report(collection.name, duplicate_report)
            result.report_paths.extend(str(path) for path in paths)
            paths = self.reporter.write_change_set(
                collection.name,
                change_set,
                source_total=duplicate_report.unique_count,
                store_total=len(store_records)
            )
            result.report_paths.extend(str(path) for path in paths)

    def _extract(self, collection: CollectionConfig, result: CollectionResult) -> List[SourceFile]:
        source_files = []
        for file_mapping in collection.mapping:
            extraction = self.extractor.extract(file_mapping, collection.exclude_records)
            if not extraction.success:
                result.files_failed += 1
                logger.warning(
                    f"Skipping {file_mapping.filename} for {collection.name}: {extraction.error}"
                )
                continue

            result.files_read += 1
            source_files.append(SourceFile(
                filename=extraction.filename,
                records=tuple(extraction.records),
                sheet_name=extraction.sheet_name
            ))

        return source_files

    @staticmethod
    def _mark_failed(result: CollectionResult, error: Exception) -> None:
        result.success = False
        result.error = str(error)
        result.error_type = type(error).__name__
        # No report artifact for a failed collection
        result.change_set = None
