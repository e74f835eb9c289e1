"""Backup type detection and structural validation of archives."""

import json
from typing import Any, Dict, List, Optional, Tuple

from .._utils import logger
from .archive import ArchiveManager
from .exporters.config_exporter import CONFIGURATION_PATH
from .exporters.data_exporter import DATA_METADATA_PATH
from .exporters.functions_exporter import FUNCTIONS_PATH
from .exporters.security_exporter import SECURITY_SUMMARY_PATH
from .models import BackupType, ValidationResult
from .orchestrator import ROOT_MANIFEST_PATH
from .utils import compute_entries_checksum, load_manifest_text

# Marker entries, checked in priority order.
TYPE_MARKERS: Tuple[Tuple[str, BackupType], ...] = (
    (ROOT_MANIFEST_PATH, BackupType.FULL),
    (DATA_METADATA_PATH, BackupType.DATA),
    (CONFIGURATION_PATH, BackupType.CONFIGURATION),
    (FUNCTIONS_PATH, BackupType.FUNCTIONS),
    (SECURITY_SUMMARY_PATH, BackupType.SECURITY),
)

_REQUIRED_KEYS: Dict[str, Tuple[str, ...]] = {
    CONFIGURATION_PATH: ("exported_at", "environment", "features", "settings", "version"),
    FUNCTIONS_PATH: ("functions", "count", "description"),
    SECURITY_SUMMARY_PATH: ("total_events", "total_sessions", "total_errors"),
}


def detect_type(entries: Dict[str, Any]) -> Optional[BackupType]:
    for path, backup_type in TYPE_MARKERS:
        if path in entries:
            return backup_type
    return None


class BackupValidator:
    """Inspect an archive without modifying it."""

    def __init__(self, archive: ArchiveManager):
        self.archive = archive

    def validate(self, blob: bytes, expected_type: Any = None) -> ValidationResult:
        """Detect the backup type and check the archive is complete.

        Args:
            blob: Candidate archive
            expected_type: Optional ``BackupType`` the caller expects

        Returns:
            ValidationResult; ``detected_type`` is reported even when it
            disagrees with ``expected_type``
        """
        try:
            entries = self.archive.unpack(blob)
        except Exception as e:
            logger.warning(f"Backup validation failed: {e}")
            return ValidationResult(valid=False, errors=[f"Validation failed: {e}"])

        errors: List[str] = []
        detected = detect_type(entries)
        if detected is None:
            errors.append("Unable to detect backup type")

        if expected_type is not None:
            try:
                expected = BackupType(expected_type)
            except ValueError:
                errors.append(f"Unknown expected backup type: {expected_type}")
            else:
                if detected is not None and detected != expected:
                    errors.append(f"Expected {expected.value} backup, but found {detected.value}")

        for path in (ROOT_MANIFEST_PATH, DATA_METADATA_PATH):
            if path in entries:
                errors.extend(self._check_manifest(path, entries))

        for path, keys in _REQUIRED_KEYS.items():
            if path in entries:
                errors.extend(self._check_document(path, entries[path], keys))

        result = ValidationResult(valid=not errors, detected_type=detected, errors=errors)
        logger.info(
            f"Backup validated: type={detected.value if detected else None}, "
            f"{len(entries)} entries, {len(errors)} errors"
        )
        return result

    def _check_manifest(self, path: str, entries: Dict[str, str]) -> List[str]:
        try:
            manifest = load_manifest_text(entries[path])
        except ValueError as e:
            return [f"Malformed manifest {path}: {e}"]

        errors = []
        expected_type = BackupType.FULL if path == ROOT_MANIFEST_PATH else BackupType.DATA
        if manifest.backup_type != expected_type:
            errors.append(
                f"Manifest {path} declares {manifest.backup_type.value}, expected {expected_type.value}"
            )

        missing = [entry for entry in manifest.entries if entry not in entries]
        errors.extend(f"Missing entry: {entry}" for entry in missing)

        if manifest.checksum and not missing:
            actual = compute_entries_checksum({entry: entries[entry] for entry in manifest.entries})
            if actual != manifest.checksum:
                errors.append(f"Checksum mismatch for {path}")
        return errors

    def _check_document(self, path: str, content: str, keys: Tuple[str, ...]) -> List[str]:
        try:
            document = json.loads(content)
        except ValueError as e:
            return [f"Malformed {path}: {e}"]
        if not isinstance(document, dict):
            return [f"Malformed {path}: expected an object"]
        absent = [key for key in keys if key not in document]
        if absent:
            return [f"Malformed {path}: missing {', '.join(absent)}"]
        return []
