"""Backup and restore engine."""

from .archive import ArchiveManager
from .collector import SnapshotCollector
from .manager import BackupManager
from .models import (
    BackupHistoryRecord,
    BackupManifest,
    BackupOrigin,
    BackupResult,
    BackupType,
    CollectionSnapshot,
    CollectionStats,
    RestorePreviewItem,
    RestoreResult,
    RetentionClassification,
    RetentionPolicy,
    ValidationResult,
)
from .orchestrator import BackupOptions, BackupOrchestrator
from .restore import RestorePipeline
from .retention import BackupHistoryStore, RetentionManager
from .validator import BackupValidator

__all__ = [
    "ArchiveManager",
    "SnapshotCollector",
    "BackupManager",
    "BackupHistoryRecord",
    "BackupManifest",
    "BackupOrigin",
    "BackupResult",
    "BackupType",
    "CollectionSnapshot",
    "CollectionStats",
    "RestorePreviewItem",
    "RestoreResult",
    "RetentionClassification",
    "RetentionPolicy",
    "ValidationResult",
    "BackupOptions",
    "BackupOrchestrator",
    "RestorePipeline",
    "BackupHistoryStore",
    "RetentionManager",
    "BackupValidator",
]
