"""Backup and restore entry point wiring the engine components together."""

from typing import Any, Iterable, List, Optional

from ..base import BaseDataClient, BaseSettingsStore, FileSaver
from ..config import EngineConfig
from ..registry import CollectionRegistry
from .._storage import DirectoryFileSaver, StorageFactory
from .._utils import logger
from .archive import ArchiveManager
from .models import (
    BackupHistoryRecord,
    BackupOrigin,
    BackupResult,
    BackupType,
    CollectionStats,
    RestorePreviewItem,
    RestoreResult,
    RetentionClassification,
    RetentionPolicy,
    ValidationResult,
)
from .orchestrator import BackupOptions, BackupOrchestrator, ProgressCallback
from .restore import RestorePipeline
from .retention import BackupHistoryStore, RetentionManager, newest_first
from .validator import BackupValidator


class BackupManager:
    """Orchestrate backup, validation, restore and retention for one data store.

    Callers must not run two backup or restore operations against the same
    collections concurrently; nothing here serializes them.
    """

    def __init__(
        self,
        client: BaseDataClient,
        settings: BaseSettingsStore,
        config: Optional[EngineConfig] = None,
        file_saver: Optional[FileSaver] = None,
        registry: Optional[CollectionRegistry] = None,
    ):
        """Initialize backup manager.

        Args:
            client: Data client for the collections being backed up
            settings: Operator settings (retention policy, app settings, history)
            config: Engine configuration, defaults to ``EngineConfig()``
            file_saver: Receives finished archives; defaults to the configured download dir
            registry: Known collections, defaults to the built-in registry
        """
        self.config = config or EngineConfig()
        self.client = client
        self.settings = settings
        self.registry = registry or CollectionRegistry()

        self.archive = ArchiveManager(
            file_saver or DirectoryFileSaver(self.config.backup.download_dir),
            compression_level=self.config.backup.compression_level,
        )
        self.orchestrator = BackupOrchestrator(
            client,
            settings,
            self.archive,
            registry=self.registry,
            backup_config=self.config.backup,
            data_client_config=self.config.data_client,
        )
        self.validator = BackupValidator(self.archive)
        self.restore_pipeline = RestorePipeline(client, self.archive, self.registry, self.config.restore)
        self.history = BackupHistoryStore(settings)
        self.retention = RetentionManager(self.history, settings)

    @classmethod
    def from_config(cls, config: Optional[EngineConfig] = None, file_saver: Optional[FileSaver] = None) -> "BackupManager":
        """Build a manager with the data client and settings store named in ``config``."""
        config = config or EngineConfig.from_env()
        global_config = config.to_dict()
        client = StorageFactory.create_data_client(config.data_client.backend, global_config)
        settings = StorageFactory.create_settings_store(config.settings.backend, global_config)
        return cls(client, settings, config=config, file_saver=file_saver)

    async def perform_backup(
        self,
        backup_type: Any = BackupType.FULL,
        origin: BackupOrigin = BackupOrigin.MANUAL,
        options: Optional[BackupOptions] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> BackupResult:
        """Run a backup and record the attempt in history, whatever the outcome."""
        result = await self.orchestrator.run_selective(backup_type, options, progress)
        try:
            await self.history.record_result(result, origin)
        except Exception as e:
            logger.error(f"Failed to record backup history: {e}")
        return result

    def validate(self, blob: bytes, expected_type: Any = None) -> ValidationResult:
        return self.validator.validate(blob, expected_type)

    def preview_restore(self, blob: bytes) -> List[RestorePreviewItem]:
        return self.restore_pipeline.preview(blob)

    async def restore(
        self,
        blob: bytes,
        target_collections: Optional[Iterable[str]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> RestoreResult:
        return await self.restore_pipeline.restore(blob, target_collections, progress)

    async def get_backup_stats(self, names: Optional[Iterable[str]] = None) -> CollectionStats:
        """Exact row counts for the given collections, or every registered one."""
        names = list(names) if names is not None else self.registry.names()
        return await self.orchestrator.collector.collection_stats(names)

    async def list_history(self) -> List[BackupHistoryRecord]:
        """History records, newest first."""
        records = await self.history.load()
        return newest_first(records)

    async def delete_history(self, ids: Iterable[str]) -> int:
        return await self.retention.cleanup(ids)

    async def apply_retention(self, policy: Optional[RetentionPolicy] = None) -> RetentionClassification:
        return await self.retention.apply(policy)

    async def storage_used(self) -> int:
        return self.retention.storage_used(await self.history.load())

    async def close(self) -> None:
        await self.client.close()
        close_settings = getattr(self.settings, "close", None)
        if close_settings is not None:
            await close_settings()
