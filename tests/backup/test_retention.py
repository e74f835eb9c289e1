"""Tests for backup history and retention."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from asset_backup.backup.models import (
    BackupHistoryRecord,
    BackupOrigin,
    BackupResult,
    BackupType,
    RetentionPolicy,
)
from asset_backup.backup.retention import HISTORY_KEY, BackupHistoryStore, RetentionManager
from asset_backup.exceptions import ConfigurationError

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _record(record_id, days_ago, size=100, succeeded=True):
    return BackupHistoryRecord(
        id=record_id,
        timestamp=NOW - timedelta(days=days_ago),
        backup_type=BackupType.FULL,
        size_bytes=size,
        succeeded=succeeded,
    )


@pytest.fixture
def history(memory_settings):
    return BackupHistoryStore(memory_settings)


@pytest.fixture
def retention(history, memory_settings):
    return RetentionManager(history, memory_settings)


class TestBackupHistoryStore:

    @pytest.mark.asyncio
    async def test_empty_history(self, history):
        assert await history.load() == []

    @pytest.mark.asyncio
    async def test_append_and_load(self, history, memory_settings):
        await history.append(_record("backup_a", 2))
        await history.append(_record("backup_b", 1))

        records = await history.load()
        assert [record.id for record in records] == ["backup_a", "backup_b"]
        assert json.loads(memory_settings.values[HISTORY_KEY])[0]["id"] == "backup_a"

    @pytest.mark.asyncio
    async def test_record_result_keeps_failures(self, history):
        failed = BackupResult(success=False, backup_type=BackupType.DATA, error="HTTP 500: boom", duration_ms=12)

        record = await history.record_result(failed, BackupOrigin.SCHEDULED)

        assert record.id.startswith("backup_")
        assert record.succeeded is False
        assert record.origin == BackupOrigin.SCHEDULED
        assert record.error == "HTTP 500: boom"
        assert (await history.load())[0] == record

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, history):
        for i in range(3):
            await history.append(_record(f"backup_{i}", i))

        assert await history.remove(["backup_0", "backup_2"]) == 2
        assert await history.remove(["backup_0", "backup_9"]) == 0
        assert [record.id for record in await history.load()] == ["backup_1"]

    @pytest.mark.asyncio
    async def test_corrupt_history_is_ignored(self, history, memory_settings):
        memory_settings.values[HISTORY_KEY] = "{broken"
        assert await history.load() == []

        memory_settings.values[HISTORY_KEY] = json.dumps({"not": "a list"})
        assert await history.load() == []

    @pytest.mark.asyncio
    async def test_malformed_records_are_skipped(self, history, memory_settings):
        good = _record("backup_ok", 1).model_dump(mode="json")
        memory_settings.values[HISTORY_KEY] = json.dumps([{"id": "no-timestamp"}, good])

        assert [record.id for record in await history.load()] == ["backup_ok"]

    @pytest.mark.asyncio
    async def test_clear(self, history, memory_settings):
        await history.append(_record("backup_a", 1))
        await history.clear()

        assert HISTORY_KEY not in memory_settings.values


class TestRetentionManager:

    def test_classify_expired_and_excess(self, retention):
        records = [_record(f"backup_{i}", days) for i, days in enumerate([1, 2, 3, 40, 50])]

        result = retention.classify(records, RetentionPolicy(max_age_days=30, max_count=2), now=NOW)

        assert result.expired == {"backup_3", "backup_4"}
        assert result.excess == {"backup_2", "backup_3", "backup_4"}
        assert result.to_remove == {"backup_2", "backup_3", "backup_4"}

    def test_classify_within_policy(self, retention):
        records = [_record("backup_a", 1), _record("backup_b", 29)]

        result = retention.classify(records, RetentionPolicy(), now=NOW)

        assert result.to_remove == set()

    def test_classify_naive_timestamps(self, retention):
        naive = BackupHistoryRecord(id="backup_naive", timestamp=datetime(2024, 1, 1), succeeded=True)

        result = retention.classify([naive], RetentionPolicy(max_age_days=30), now=NOW)

        assert result.expired == {"backup_naive"}

    @pytest.mark.asyncio
    async def test_policy_defaults_and_round_trip(self, retention):
        assert await retention.load_policy() == RetentionPolicy(max_age_days=30, max_count=10)

        await retention.save_policy(RetentionPolicy(max_age_days=7, max_count=3))
        assert await retention.load_policy() == RetentionPolicy(max_age_days=7, max_count=3)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["0", "-5", "soon"])
    async def test_invalid_policy_settings(self, retention, memory_settings, value):
        memory_settings.values["backupRetentionDays"] = value

        with pytest.raises(ConfigurationError, match="Invalid retention policy"):
            await retention.load_policy()

    def test_policy_bounds(self):
        with pytest.raises(ValueError):
            RetentionPolicy(max_count=0)

    @pytest.mark.asyncio
    async def test_apply_removes_eligible_records(self, retention, history):
        now = datetime.now(timezone.utc)
        for i, days in enumerate([0, 1, 2, 90]):
            await history.append(BackupHistoryRecord(
                id=f"backup_{i}", timestamp=now - timedelta(days=days), succeeded=True,
            ))

        result = await retention.apply(RetentionPolicy(max_age_days=30, max_count=2))

        assert result.to_remove == {"backup_2", "backup_3"}
        assert sorted(record.id for record in await history.load()) == ["backup_0", "backup_1"]

    @pytest.mark.asyncio
    async def test_cleanup_twice_is_harmless(self, retention, history):
        await history.append(_record("backup_a", 1))

        assert await retention.cleanup(["backup_a"]) == 1
        assert await retention.cleanup(["backup_a"]) == 0

    def test_storage_used(self):
        records = [_record("a", 1, size=100), _record("b", 1, size=250), BackupHistoryRecord(
            id="c", timestamp=NOW, succeeded=False,
        )]

        assert RetentionManager.storage_used(records) == 350
