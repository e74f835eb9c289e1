"""Backup history tracking and retention policy enforcement."""

import json
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from pydantic import ValidationError

from ..base import BaseSettingsStore
from ..exceptions import ConfigurationError
from .._utils import logger, utc_now
from .models import (
    BackupHistoryRecord,
    BackupOrigin,
    BackupResult,
    RetentionClassification,
    RetentionPolicy,
)
from .utils import generate_history_id

HISTORY_KEY = "backupHistory"
RETENTION_DAYS_KEY = "backupRetentionDays"
MAX_BACKUPS_KEY = "backupMaxBackups"


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


def newest_first(history: Iterable[BackupHistoryRecord]) -> List[BackupHistoryRecord]:
    """Sort records newest first; naive timestamps are taken as UTC."""
    return sorted(history, key=lambda record: _aware(record.timestamp), reverse=True)


class BackupHistoryStore:
    """Backup attempts persisted as a JSON list in the settings store."""

    def __init__(self, settings: BaseSettingsStore):
        self.settings = settings

    async def load(self) -> List[BackupHistoryRecord]:
        """Load history, oldest first. Unreadable records are skipped."""
        raw = await self.settings.get(HISTORY_KEY)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Backup history is not valid JSON, ignoring it: {e}")
            return []
        if not isinstance(items, list):
            logger.warning("Backup history is not a list, ignoring it")
            return []

        records = []
        for item in items:
            try:
                records.append(BackupHistoryRecord.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed history record: {e.error_count()} errors")
        return records

    async def _save(self, records: Sequence[BackupHistoryRecord]) -> None:
        await self.settings.set(
            HISTORY_KEY, json.dumps([record.model_dump(mode="json") for record in records])
        )

    async def append(self, record: BackupHistoryRecord) -> None:
        records = await self.load()
        records.append(record)
        await self._save(records)
        logger.debug(f"History record appended: {record.id}")

    async def record_result(self, result: BackupResult, origin: BackupOrigin = BackupOrigin.MANUAL) -> BackupHistoryRecord:
        """Append a history record for a backup attempt, successful or not."""
        record = BackupHistoryRecord(
            id=generate_history_id(),
            timestamp=result.timestamp,
            origin=origin,
            backup_type=result.backup_type,
            filename=result.filename,
            size_bytes=result.size_bytes,
            duration_ms=result.duration_ms,
            succeeded=result.success,
            error=result.error,
        )
        await self.append(record)
        return record

    async def remove(self, ids: Iterable[str]) -> int:
        """Remove records by id; ids that are already gone are ignored.

        Returns:
            Number of records removed
        """
        doomed = set(ids)
        if not doomed:
            return 0
        records = await self.load()
        kept = [record for record in records if record.id not in doomed]
        removed = len(records) - len(kept)
        if removed:
            await self._save(kept)
        return removed

    async def clear(self) -> None:
        await self.settings.delete(HISTORY_KEY)


class RetentionManager:
    """Classify backup history against a retention policy and drive cleanup."""

    def __init__(self, history: BackupHistoryStore, settings: BaseSettingsStore):
        self.history = history
        self.settings = settings

    async def load_policy(self) -> RetentionPolicy:
        try:
            max_age_days = await self.settings.get_int(RETENTION_DAYS_KEY, 30)
            max_count = await self.settings.get_int(MAX_BACKUPS_KEY, 10)
            return RetentionPolicy(max_age_days=max_age_days, max_count=max_count)
        except ValueError as e:
            raise ConfigurationError(f"Invalid retention policy in settings: {e}") from e

    async def save_policy(self, policy: RetentionPolicy) -> None:
        await self.settings.set(RETENTION_DAYS_KEY, str(policy.max_age_days))
        await self.settings.set(MAX_BACKUPS_KEY, str(policy.max_count))

    def classify(
        self,
        history: Sequence[BackupHistoryRecord],
        policy: RetentionPolicy,
        now: Optional[datetime] = None,
    ) -> RetentionClassification:
        """Split history into expired (too old) and excess (beyond max_count).

        A record can be both.
        """
        now = _aware(now or utc_now())
        cutoff = now - timedelta(days=policy.max_age_days)

        ordered = newest_first(history)
        expired = {record.id for record in history if _aware(record.timestamp) < cutoff}
        excess = {record.id for record in ordered[policy.max_count:]}
        return RetentionClassification(expired=expired, excess=excess)

    async def cleanup(self, ids: Iterable[str]) -> int:
        removed = await self.history.remove(ids)
        if removed:
            logger.info(f"Retention cleanup removed {removed} history records")
        return removed

    async def apply(self, policy: Optional[RetentionPolicy] = None) -> RetentionClassification:
        """Classify the stored history and remove everything eligible."""
        policy = policy or await self.load_policy()
        classification = self.classify(await self.history.load(), policy)
        await self.cleanup(classification.to_remove)
        logger.info(
            f"Retention applied: {len(classification.expired)} expired, "
            f"{len(classification.excess)} excess"
        )
        return classification

    @staticmethod
    def storage_used(history: Iterable[BackupHistoryRecord]) -> int:
        return sum(record.size_bytes or 0 for record in history)
