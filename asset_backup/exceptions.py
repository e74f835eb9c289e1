"""Exception hierarchy for the backup engine."""

from typing import Optional


class BackupEngineError(Exception):
    """Base exception for backup/restore errors."""
    pass


class ConfigurationError(BackupEngineError):
    pass


class TabularDecodeError(BackupEngineError):
    """Raised when a tabular payload cannot be decoded.

    Carries the 1-based line number of the record that failed.
    """

    def __init__(self, line_number: int, message: str):
        self.line_number = line_number
        self.reason = message
        super().__init__(f"Line {line_number}: {message}")


class ArchiveError(BackupEngineError):
    """Raised when an archive cannot be packed, parsed or read."""
    pass


class DataClientError(BackupEngineError):
    def __init__(self, message: str, collection: Optional[str] = None):
        self.collection = collection
        super().__init__(f"{collection}: {message}" if collection else message)


class RestoreError(BackupEngineError):
    def __init__(self, collection: str, message: str):
        self.collection = collection
        super().__init__(f"Restore of {collection} failed: {message}")


class UnknownBackupTypeError(BackupEngineError):
    def __init__(self, backup_type: object):
        self.backup_type = backup_type
        super().__init__(f"Unknown backup type: {backup_type}")
