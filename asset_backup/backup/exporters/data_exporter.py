"""Data snapshot exporter (relational collections)."""

import time
from typing import List, Optional, Sequence

from ...exceptions import ConfigurationError
from ...registry import CollectionRegistry
from ..._utils import elapsed_ms, logger
from ..collector import CollectionProgress, SnapshotCollector
from ..models import BackupManifest, BackupStats, BackupType, ExportPayload
from ..utils import compute_entries_checksum, manifest_to_text

DATA_PREFIX = "data/"
DATA_METADATA_PATH = "data/metadata"


def data_entry_path(collection: str) -> str:
    return f"{DATA_PREFIX}{collection}"


class DataExporter:
    """Export a set of collections as tabular ``data/<name>`` entries."""

    def __init__(
        self,
        collector: SnapshotCollector,
        registry: CollectionRegistry,
        include_collections: Optional[Sequence[str]] = None,
        exclude_collections: Sequence[str] = (),
        format_version: str = "1.0.0",
        on_progress: Optional[CollectionProgress] = None,
    ):
        """Initialize exporter.

        Args:
            collector: Snapshot collector bound to the data client
            registry: Known collections; its full set is the default table set
            include_collections: Explicit table set, overrides the registry default
            exclude_collections: Names removed from the table set
            format_version: Written to the metadata manifest
            on_progress: Forwarded to the collector
        """
        self.collector = collector
        self.registry = registry
        self.include_collections = list(include_collections) if include_collections else None
        self.exclude_collections = set(exclude_collections)
        self.format_version = format_version
        self.on_progress = on_progress

    def table_set(self) -> List[str]:
        names = self.include_collections or self.registry.names()
        selected = []
        for name in names:
            if name in self.exclude_collections or name in selected:
                continue
            if name == "metadata":
                raise ConfigurationError("'metadata' is reserved and cannot be used as a collection name")
            selected.append(name)
        return selected

    async def export(self) -> ExportPayload:
        """Snapshot every selected collection.

        Collections that fail to read are still written, as comment-only
        error payloads.
        """
        started = time.perf_counter()
        names = self.table_set()
        if not names:
            raise ConfigurationError("No collections selected for data backup")

        logger.info(f"Exporting {len(names)} collections")
        snapshots = await self.collector.collect(names, self.on_progress)

        entries = {data_entry_path(name): snapshot.rendered_payload for name, snapshot in snapshots.items()}
        stats = BackupStats(
            collection_count=len(snapshots),
            total_rows=sum(snapshot.row_count for snapshot in snapshots.values()),
            duration_ms=elapsed_ms(started),
        )

        failed = [name for name, snapshot in snapshots.items() if not snapshot.succeeded]
        description = "Collection snapshots (csv)"
        if failed:
            description += f"; failed: {', '.join(failed)}"

        manifest = BackupManifest(
            backup_type=BackupType.DATA,
            entries=list(entries),
            stats=stats,
            format_version=self.format_version,
            checksum=compute_entries_checksum(entries),
            description=description,
        )
        entries[DATA_METADATA_PATH] = manifest_to_text(manifest)

        logger.info(f"Data export complete: {stats.collection_count} collections, {stats.total_rows} rows")
        return ExportPayload(
            backup_type=BackupType.DATA,
            entries=entries,
            metadata_path=DATA_METADATA_PATH,
            stats=stats,
        )
