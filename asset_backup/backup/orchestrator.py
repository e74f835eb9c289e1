"""Coordinate domain exporters into a single backup archive."""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..base import BaseDataClient, BaseSettingsStore
from ..config import BackupConfig, DataClientConfig
from ..exceptions import ArchiveError, ConfigurationError, UnknownBackupTypeError
from ..registry import CollectionRegistry
from .._utils import elapsed_ms, logger
from .archive import ArchiveManager
from .collector import CollectionProgress, SnapshotCollector
from .exporters import ConfigurationExporter, DataExporter, FunctionsExporter, SecurityExporter
from .models import BackupManifest, BackupResult, BackupStats, BackupType, ExportPayload
from .utils import build_filename, compute_entries_checksum, manifest_to_text

ROOT_MANIFEST_PATH = "backup-info"

# Order in which a full backup runs the domain exporters.
FULL_BACKUP_ORDER = (
    BackupType.DATA,
    BackupType.CONFIGURATION,
    BackupType.FUNCTIONS,
    BackupType.SECURITY,
)

ProgressCallback = Callable[[int, str], None]


@dataclass
class BackupOptions:
    """Per-run overrides; ``compress=None`` falls back to ``BackupConfig.compress``."""
    include_collections: Optional[List[str]] = None
    exclude_collections: List[str] = field(default_factory=list)
    compress: Optional[bool] = None
    download: bool = True


def _report(progress: Optional[ProgressCallback], percent: int, step: str) -> None:
    if progress is not None:
        progress(percent, step)


def _collection_progress(progress: Optional[ProgressCallback], low: int, high: int) -> Optional[CollectionProgress]:
    """Map collector progress ``(index, total, name)`` onto ``[low, high]`` percent."""
    if progress is None:
        return None

    def on_collection(index: int, total: int, name: str) -> None:
        percent = low + int((high - low) * index / max(total, 1))
        progress(percent, f"Backing up {name} ({index}/{total})")

    return on_collection


class BackupOrchestrator:
    """Run one exporter (selective backup) or all of them (full backup)."""

    def __init__(
        self,
        client: BaseDataClient,
        settings: BaseSettingsStore,
        archive: ArchiveManager,
        registry: Optional[CollectionRegistry] = None,
        backup_config: Optional[BackupConfig] = None,
        data_client_config: Optional[DataClientConfig] = None,
    ):
        self.client = client
        self.settings = settings
        self.archive = archive
        self.registry = registry or CollectionRegistry()
        self.backup_config = backup_config or BackupConfig()
        self.data_client_config = data_client_config or DataClientConfig()
        self.collector = SnapshotCollector(client, self.backup_config.page_size, registry=self.registry)

        self._producers: Dict[BackupType, Callable[[BackupOptions, Optional[CollectionProgress]], Any]] = {
            BackupType.DATA: self._data_exporter,
            BackupType.CONFIGURATION: self._configuration_exporter,
            BackupType.SECURITY: self._security_exporter,
            BackupType.FUNCTIONS: self._functions_exporter,
        }
        missing = set(BackupType) - set(self._producers) - {BackupType.FULL}
        if missing:
            raise ConfigurationError(f"No exporter registered for: {sorted(t.value for t in missing)}")

    def _data_exporter(self, options: BackupOptions, on_progress: Optional[CollectionProgress]) -> DataExporter:
        return DataExporter(
            self.collector,
            self.registry,
            include_collections=options.include_collections,
            exclude_collections=list(self.backup_config.exclude_collections) + list(options.exclude_collections),
            format_version=self.backup_config.format_version,
            on_progress=on_progress,
        )

    def _configuration_exporter(self, options: BackupOptions, on_progress: Optional[CollectionProgress]):
        return ConfigurationExporter(self.settings, self.data_client_config, self.backup_config.format_version)

    def _security_exporter(self, options: BackupOptions, on_progress: Optional[CollectionProgress]):
        return SecurityExporter(self.client, self.backup_config.security_record_limit, self.registry)

    def _functions_exporter(self, options: BackupOptions, on_progress: Optional[CollectionProgress]):
        return FunctionsExporter()

    async def _export(
        self,
        backup_type: BackupType,
        options: BackupOptions,
        on_progress: Optional[CollectionProgress] = None,
    ) -> ExportPayload:
        exporter = self._producers[backup_type](options, on_progress)
        return await exporter.export()

    async def run_selective(
        self,
        backup_type: Any,
        options: Optional[BackupOptions] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> BackupResult:
        """Back up a single domain.

        Args:
            backup_type: A ``BackupType`` or its value; ``full`` runs ``run_full``
            options: Per-run overrides
            progress: Called as ``(percent, step)``

        Returns:
            BackupResult; failures are reported with ``success=False``
        """
        options = options or BackupOptions()
        started = time.perf_counter()

        try:
            resolved = BackupType(backup_type)
        except ValueError:
            error = UnknownBackupTypeError(backup_type)
            logger.error(str(error))
            return BackupResult(success=False, error=str(error), duration_ms=elapsed_ms(started))

        if resolved == BackupType.FULL:
            return await self.run_full(options, progress)

        logger.info(f"Starting {resolved.value} backup")
        try:
            _report(progress, 5, f"Starting {resolved.value} backup")
            payload = await self._export(resolved, options, _collection_progress(progress, 5, 85))
            manifest = BackupManifest(
                backup_type=resolved,
                entries=list(payload.entries),
                stats=payload.stats,
                format_version=self.backup_config.format_version,
                checksum=compute_entries_checksum(payload.entries),
            )
            return self._finish(resolved, payload.entries, manifest, options, started, progress)
        except Exception as e:
            return self._failure(resolved, e, started)

    async def run_full(
        self,
        options: Optional[BackupOptions] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> BackupResult:
        """Back up every domain into one archive with a root ``backup-info`` manifest."""
        options = options or BackupOptions()
        started = time.perf_counter()
        logger.info("Starting full system backup")

        try:
            entries: Dict[str, Any] = {}
            stats = BackupStats()
            bands = {
                BackupType.DATA: (5, 60),
                BackupType.CONFIGURATION: (65, 65),
                BackupType.FUNCTIONS: (70, 70),
                BackupType.SECURITY: (75, 85),
            }

            for backup_type in FULL_BACKUP_ORDER:
                low, high = bands[backup_type]
                _report(progress, low, f"Creating {backup_type.value} backup")
                payload = await self._export(backup_type, options, _collection_progress(progress, low, high))

                duplicates = set(entries).intersection(payload.entries)
                if duplicates:
                    raise ArchiveError(f"Duplicate entry paths across exporters: {sorted(duplicates)}")
                entries.update(payload.entries)
                stats = stats.merge(payload.stats)

            stats = stats.model_copy(update={"duration_ms": elapsed_ms(started)})
            manifest = BackupManifest(
                backup_type=BackupType.FULL,
                entries=list(entries),
                stats=stats,
                format_version=self.backup_config.format_version,
                checksum=compute_entries_checksum(entries),
                description="Complete system backup including data (csv), configuration, functions and security data",
            )
            entries[ROOT_MANIFEST_PATH] = manifest_to_text(manifest)
            return self._finish(BackupType.FULL, entries, manifest, options, started, progress)
        except Exception as e:
            return self._failure(BackupType.FULL, e, started)

    def _finish(
        self,
        backup_type: BackupType,
        entries: Dict[str, Any],
        manifest: BackupManifest,
        options: BackupOptions,
        started: float,
        progress: Optional[ProgressCallback],
    ) -> BackupResult:
        compress = self.backup_config.compress if options.compress is None else options.compress
        extension = "tar.gz" if compress else "tar"
        filename = build_filename(backup_type, extension)

        _report(progress, 90, "Packing archive")
        blob, size = self.archive.pack(entries, compress=compress)
        if options.download:
            self.archive.download(blob, filename)
        _report(progress, 100, "Completed")

        duration_ms = elapsed_ms(started)
        logger.info(f"{backup_type.value} backup completed in {duration_ms}ms: {filename} ({size:,} bytes)")
        return BackupResult(
            success=True,
            backup_type=backup_type,
            filename=filename,
            size_bytes=size,
            duration_ms=duration_ms,
            manifest=manifest,
            archive=blob,
        )

    def _failure(self, backup_type: BackupType, error: Exception, started: float) -> BackupResult:
        duration_ms = elapsed_ms(started)
        message = str(error) or error.__class__.__name__
        logger.error(f"{backup_type.value} backup failed after {duration_ms}ms: {message}")
        return BackupResult(success=False, backup_type=backup_type, error=message, duration_ms=duration_ms)
