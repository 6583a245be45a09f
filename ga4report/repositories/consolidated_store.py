"""GA4 Reports: Consolidation Store Repository.

Merges executions into the cumulative store and persists it. The store is
read whole, mutated in memory, and rewritten whole; there is no locking, so
only one consolidation may run at a time (last writer wins).
"""

import csv
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ga4report.analyzer.execution_aggregator import (
    build_execution,
    parse_execution_filename,
)
from ga4report.config import settings
from ga4report.core.logging import get_logger
from ga4report.models.report_models import (
    ConsolidatedStore,
    Execution,
    SourceFileEntry,
    utc_now_iso,
)
from ga4report.reports.csv_report import list_report_files, read_report
from ga4report.storage import DocumentStorage, JsonFileStorage

logger = get_logger("repositories.consolidated_store")

# Errors that make a whole report file unreadable
FILE_READ_ERRORS = (OSError, UnicodeDecodeError, csv.Error)


class StoreNotFoundError(Exception):
    """Raised on the read path when no consolidated store exists yet."""

    def __init__(self, location: str):
        self.location = location
        super().__init__(f"Consolidated store not found: {location}")


class ConsolidationRepository:
    """Repository over the consolidated JSON document."""

    def __init__(self, storage: DocumentStorage, data_dir: str | Path | None = None):
        self.storage = storage
        self.data_dir = Path(data_dir or settings.data_dir)

    @property
    def location(self) -> str:
        return self.storage.location

    # ── Read Path ──

    def exists(self) -> bool:
        return self.storage.exists()

    def load_raw(self) -> Dict[str, Any]:
        """Return the persisted document verbatim."""
        if not self.storage.exists():
            raise StoreNotFoundError(self.location)
        return self.storage.read()

    def load(self) -> ConsolidatedStore:
        """Load the store for querying; a missing store is an error here."""
        return ConsolidatedStore.model_validate(self.load_raw())

    def stat(self) -> Dict[str, Any]:
        return self.storage.stat()

    def load_or_init(self) -> ConsolidatedStore:
        """Load the store, or start a fresh one if it is absent or unreadable."""
        if not self.storage.exists():
            logger.info("🆕 No consolidated store yet, starting a new one")
            return ConsolidatedStore()
        try:
            store = ConsolidatedStore.model_validate(self.storage.read())
        except (OSError, ValueError) as e:
            logger.error(f"❌ Could not load consolidated store, starting fresh: {e}")
            return ConsolidatedStore()
        logger.info(f"📂 Loaded consolidated store: {len(store.data)} executions")
        return store

    # ── Write Path ──

    def merge_execution(
        self, store: ConsolidatedStore, execution: Execution
    ) -> ConsolidatedStore:
        """Insert or overwrite one execution and recompute global metadata.

        ``distinct_urls`` is rebuilt from every stored execution on each call.
        """
        if execution.id in store.data:
            logger.info(f"Execution {execution.id} already exists, replacing", extra={"execution_id": execution.id})
        else:
            logger.info(f"✨ Adding execution {execution.id}", extra={"execution_id": execution.id})
        store.data[execution.id] = execution

        distinct: Dict[str, None] = {}
        for stored in store.data.values():
            for url in stored.urls:
                distinct.setdefault(url, None)

        meta = store.metadata
        meta.distinct_urls = list(distinct)
        meta.total_executions = len(store.data)
        meta.last_updated = utc_now_iso()

        entry = SourceFileEntry(
            file=execution.metadata.source_file,
            execution_id=execution.id,
            date=execution.metadata.date,
            time=execution.metadata.time,
            record_count=execution.metadata.total_urls,
        )
        for i, existing in enumerate(meta.source_files):
            if existing.execution_id == execution.id:
                meta.source_files[i] = entry
                break
        else:
            meta.source_files.append(entry)
        return store

    def persist(self, store: ConsolidatedStore) -> None:
        """Overwrite the backing document with the full store."""
        self.storage.write(store.model_dump(mode="json", by_alias=True))

    # ── Consolidation ──

    def execution_from_file(self, csv_path: str | Path) -> Execution:
        csv_path = Path(csv_path)
        info = parse_execution_filename(csv_path.name)
        if info.is_degraded:
            logger.warning(
                f"Using {info.execution_id!r} as execution id; re-importing {csv_path.name} "
                "later will give it a different timestamp",
                extra={"file": csv_path.name},
            )
        records = read_report(csv_path)
        return build_execution(records, csv_path.name, info)

    def consolidate_all(self, files: Optional[Iterable[str | Path]] = None) -> ConsolidatedStore:
        """Rebuild the store from scratch from every report file.

        Files are processed in filename order, which is chronological because
        execution ids embed ``YYYY-MM-DD_HH-MM``. An unreadable file is
        logged and skipped.
        """
        paths: List[Path] = (
            sorted((Path(f) for f in files), key=lambda p: p.name)
            if files is not None
            else list_report_files(self.data_dir)
        )
        store = ConsolidatedStore()
        if not paths:
            logger.warning(f"No report CSV files found in {self.data_dir}")
        else:
            logger.info(f"🔄 Consolidating {len(paths)} report files")

        for path in paths:
            try:
                execution = self.execution_from_file(path)
            except FILE_READ_ERRORS as e:
                logger.error(f"❌ Skipping {path.name}: {e}", extra={"file": path.name})
                continue
            self.merge_execution(store, execution)

        self.persist(store)
        logger.info(
            f"✅ Consolidation complete: {store.metadata.total_executions} executions, "
            f"{len(store.metadata.distinct_urls)} distinct URLs"
        )
        return store

    def consolidate_incremental(self, csv_path: str | Path) -> ConsolidatedStore:
        """Merge exactly one new report file into the persisted store."""
        csv_path = Path(csv_path)
        if not csv_path.is_file():
            raise FileNotFoundError(f"Report CSV not found: {csv_path}")

        store = self.load_or_init()
        execution = self.execution_from_file(csv_path)
        self.merge_execution(store, execution)
        self.persist(store)
        logger.info(
            f"✅ Store updated with {execution.id}: {store.metadata.total_executions} executions, "
            f"{len(store.metadata.distinct_urls)} distinct URLs",
            extra={"execution_id": execution.id},
        )
        return store


def get_store_repository() -> ConsolidationRepository:
    """Dependency: repository over the configured consolidated JSON file."""
    return ConsolidationRepository(
        JsonFileStorage(settings.consolidated_json), settings.data_dir
    )
