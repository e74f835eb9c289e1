"""Data models for backup/restore operations."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .._utils import utc_now


class BackupType(str, Enum):
    FULL = "full"
    DATA = "data"
    CONFIGURATION = "configuration"
    SECURITY = "security"
    FUNCTIONS = "functions"


class BackupOrigin(str, Enum):
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class PreviewStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


class BackupStats(BaseModel):
    """Aggregate counters for one backup run."""

    collection_count: int = Field(0, ge=0, description="Number of collections exported")
    total_rows: int = Field(0, ge=0, description="Rows across all exported collections")
    duration_ms: int = Field(0, ge=0, description="Wall-clock time spent producing the payload")

    def merge(self, other: "BackupStats") -> "BackupStats":
        return BackupStats(
            collection_count=self.collection_count + other.collection_count,
            total_rows=self.total_rows + other.total_rows,
            duration_ms=self.duration_ms + other.duration_ms,
        )


class BackupManifest(BaseModel):
    """Backup archive manifest with entry list and statistics."""

    model_config = ConfigDict(frozen=True)

    backup_type: BackupType = Field(..., description="Domain(s) covered by the archive")
    generated_at: datetime = Field(default_factory=utc_now, description="Manifest creation timestamp")
    entries: List[str] = Field(..., description="Logical paths included in the archive")
    stats: BackupStats = Field(default_factory=BackupStats, description="Run statistics")
    format_version: str = Field("1.0.0", description="Archive format version")
    checksum: Optional[str] = Field(None, description="SHA-256 over entry paths and contents")
    description: Optional[str] = None

    @field_validator("entries")
    @classmethod
    def _entries_not_empty(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("manifest must list at least one entry")
        if len(set(value)) != len(value):
            raise ValueError("manifest entries must be unique")
        return value


class ArchiveEntry(BaseModel):
    path: str
    content: Any


class ArchiveEntryInfo(BaseModel):
    path: str
    size: int


class ArchiveInfo(BaseModel):
    total_files: int
    total_size: int
    entries: List[ArchiveEntryInfo] = Field(default_factory=list)


class CollectionSnapshot(BaseModel):
    """Extracted state of one collection; ``error`` is set when the read failed."""

    name: str
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    rendered_payload: str = ""
    row_count: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ExportPayload(BaseModel):
    """Entries contributed by one domain module."""

    backup_type: BackupType
    entries: Dict[str, Any] = Field(default_factory=dict)
    metadata_path: str
    stats: BackupStats = Field(default_factory=BackupStats)


class BackupResult(BaseModel):
    """Outcome of one backup run.

    ``backup_type`` is ``None`` only when the requested type was not recognised.
    The packed archive is carried in ``archive`` but left out of dumps.
    """

    success: bool
    backup_type: Optional[BackupType] = None
    duration_ms: int = 0
    filename: Optional[str] = None
    size_bytes: Optional[int] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)
    manifest: Optional[BackupManifest] = None
    archive: Optional[bytes] = Field(None, exclude=True, repr=False)


class ValidationResult(BaseModel):
    valid: bool
    detected_type: Optional[BackupType] = None
    errors: List[str] = Field(default_factory=list)


class RestorePreviewItem(BaseModel):
    collection_name: str
    display_name: str
    record_count: int = 0
    status: PreviewStatus
    error_message: Optional[str] = None


class RestoredCollection(BaseModel):
    collection_name: str
    count: int


class RestoreResult(BaseModel):
    """Outcome of a restore; on failure ``failed_collection`` names where it stopped."""

    success: bool
    message: str
    restored: List[RestoredCollection] = Field(default_factory=list)
    failed_collection: Optional[str] = None
    error: Optional[str] = None
    rolled_back: List[str] = Field(default_factory=list)
    duration_ms: int = 0


class BackupHistoryRecord(BaseModel):
    """One backup attempt, kept for operator visibility and retention."""

    id: str
    timestamp: datetime
    origin: BackupOrigin = BackupOrigin.MANUAL
    backup_type: Optional[BackupType] = None
    filename: Optional[str] = None
    size_bytes: Optional[int] = None
    duration_ms: int = 0
    succeeded: bool
    error: Optional[str] = None


class RetentionPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_age_days: int = Field(30, gt=0, description="Records older than this are expired")
    max_count: int = Field(10, gt=0, description="Records beyond this many newest are excess")


class RetentionClassification(BaseModel):
    expired: Set[str] = Field(default_factory=set)
    excess: Set[str] = Field(default_factory=set)

    @property
    def to_remove(self) -> Set[str]:
        return self.expired | self.excess


class CollectionStats(BaseModel):
    total_collections: int
    collection_counts: Dict[str, int] = Field(default_factory=dict)
    total_records: int = 0
    estimated_size_bytes: int = 0
