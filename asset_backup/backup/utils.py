"""Utility functions for backup/restore operations."""

import hashlib
import json
import uuid
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from .._utils import canonical_json, logger, utc_now
from .models import BackupManifest, BackupType

FULL_BACKUP_PREFIX = "full-system"


def generate_timestamp_slug(moment: Optional[datetime] = None) -> str:
    """Sortable, filename-safe UTC timestamp.

    Returns:
        Timestamp in format: YYYY-MM-DDTHH-MM-SS-mmmZ
    """
    moment = moment or utc_now()
    return moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{moment.microsecond // 1000:03d}Z"


def build_filename(backup_type: BackupType, extension: str, moment: Optional[datetime] = None) -> str:
    """Archive filename: ``{prefix}-backup-{timestamp}.{extension}``."""
    backup_type = BackupType(backup_type)
    prefix = FULL_BACKUP_PREFIX if backup_type == BackupType.FULL else backup_type.value
    return f"{prefix}-backup-{generate_timestamp_slug(moment)}.{extension}"


def generate_history_id() -> str:
    return f"backup_{uuid.uuid4().hex[:12]}"


def render_entry(content: Any) -> bytes:
    """Render an archive entry to bytes.

    Text is UTF-8 encoded, bytes pass through, anything else becomes
    canonical JSON.
    """
    if isinstance(content, bytes):
        return content
    if isinstance(content, str):
        return content.encode("utf-8")
    if hasattr(content, "model_dump"):
        content = content.model_dump(mode="json")
    return canonical_json(content).encode("utf-8")


def compute_entries_checksum(entries: Mapping[str, Any]) -> str:
    """Compute SHA-256 checksum of entry paths and contents.

    Entries are hashed in sorted path order so the result is independent of
    insertion order. Each path and content is prefixed with its byte length.

    Returns:
        SHA-256 checksum as hex string with 'sha256:' prefix
    """
    sha256 = hashlib.sha256()
    for path in sorted(entries):
        for part in (path.encode("utf-8"), render_entry(entries[path])):
            sha256.update(f"{len(part)}:".encode("ascii"))
            sha256.update(part)
    return f"sha256:{sha256.hexdigest()}"


def manifest_to_text(manifest: BackupManifest) -> str:
    return canonical_json(manifest.model_dump(mode="json"))


def load_manifest_text(text: str) -> BackupManifest:
    """Parse a serialized manifest entry.

    Raises:
        ValueError: if the text is not JSON or does not describe a manifest
    """
    data: Dict[str, Any] = json.loads(text)
    manifest = BackupManifest.model_validate(data)
    logger.debug(f"Manifest loaded: {manifest.backup_type.value}, {len(manifest.entries)} entries")
    return manifest
