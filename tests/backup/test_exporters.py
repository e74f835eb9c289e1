"""Tests for the domain exporters."""

import pytest

from asset_backup.backup.codec import decode, payload_error
from asset_backup.backup.collector import SnapshotCollector
from asset_backup.backup.exporters import (
    ConfigurationExporter,
    DataExporter,
    FunctionsExporter,
    SecurityExporter,
)
from asset_backup.backup.exporters.config_exporter import CONFIGURATION_PATH
from asset_backup.backup.exporters.data_exporter import DATA_METADATA_PATH
from asset_backup.backup.exporters.functions_exporter import BACKEND_FUNCTIONS, FUNCTIONS_PATH
from asset_backup.backup.exporters.security_exporter import SECURITY_SUMMARY_PATH
from asset_backup.backup.models import BackupType
from asset_backup.backup.utils import compute_entries_checksum, load_manifest_text
from asset_backup.config import DataClientConfig
from asset_backup.exceptions import ConfigurationError
from asset_backup.registry import CollectionRegistry
from tests.storage.base import FailingDataClient


@pytest.fixture
def client(staff_rows):
    return FailingDataClient(tables={"staff": staff_rows, "cbkh": [{"id": "k1", "name": "Tran"}]})


@pytest.fixture
def registry():
    return CollectionRegistry.from_names(["staff", "cbkh", "cbqln"])


class TestDataExporter:

    def test_table_set_defaults_to_registry(self, client, registry):
        exporter = DataExporter(SnapshotCollector(client), registry, exclude_collections=["cbqln"])
        assert exporter.table_set() == ["staff", "cbkh"]

    def test_table_set_explicit_and_deduplicated(self, client, registry):
        exporter = DataExporter(SnapshotCollector(client), registry, include_collections=["cbkh", "cbkh", "other"])
        assert exporter.table_set() == ["cbkh", "other"]

    def test_reserved_metadata_name(self, client, registry):
        exporter = DataExporter(SnapshotCollector(client), registry, include_collections=["metadata"])
        with pytest.raises(ConfigurationError, match="reserved"):
            exporter.table_set()

    @pytest.mark.asyncio
    async def test_empty_selection_is_rejected(self, client, registry):
        exporter = DataExporter(SnapshotCollector(client), registry, exclude_collections=registry.names())
        with pytest.raises(ConfigurationError, match="No collections selected"):
            await exporter.export()

    @pytest.mark.asyncio
    async def test_export_entries_and_manifest(self, client, registry, staff_rows):
        exporter = DataExporter(SnapshotCollector(client), registry, format_version="2.0.0")

        payload = await exporter.export()

        assert payload.backup_type == BackupType.DATA
        assert payload.metadata_path == DATA_METADATA_PATH
        assert set(payload.entries) == {"data/staff", "data/cbkh", "data/cbqln", DATA_METADATA_PATH}
        assert payload.stats.collection_count == 3
        assert payload.stats.total_rows == 3
        assert decode(payload.entries["data/staff"], CollectionRegistry().get("staff").fields) == staff_rows

        manifest = load_manifest_text(payload.entries[DATA_METADATA_PATH])
        assert manifest.backup_type == BackupType.DATA
        assert manifest.format_version == "2.0.0"
        assert manifest.entries == ["data/staff", "data/cbkh", "data/cbqln"]
        data_entries = {k: v for k, v in payload.entries.items() if k != DATA_METADATA_PATH}
        assert manifest.checksum == compute_entries_checksum(data_entries)

    @pytest.mark.asyncio
    async def test_failed_collection_is_written_as_error_payload(self, client, registry):
        client.fail("read_all", "cbkh")
        exporter = DataExporter(SnapshotCollector(client), registry)

        payload = await exporter.export()

        assert payload_error(payload.entries["data/cbkh"]) is not None
        manifest = load_manifest_text(payload.entries[DATA_METADATA_PATH])
        assert "failed: cbkh" in manifest.description
        assert "data/cbkh" in manifest.entries


class TestConfigurationExporter:

    @pytest.mark.asyncio
    async def test_defaults(self, memory_settings):
        exporter = ConfigurationExporter(
            memory_settings, DataClientConfig(url="https://x.supabase.co/rest/v1", project_id="x")
        )

        payload = await exporter.export()
        document = payload.entries[CONFIGURATION_PATH]

        assert payload.backup_type == BackupType.CONFIGURATION
        assert set(document) == {"exported_at", "environment", "features", "settings", "version"}
        assert document["environment"] == {
            "data_api_url": "https://x.supabase.co/rest/v1",
            "project_id": "x",
            "schema": "public",
        }
        assert all(document["features"].values())
        assert document["settings"] == {
            "theme": "light",
            "responsive": True,
            "autoBackupEnabled": False,
            "language": "vi-VN",
            "backupRetentionDays": 30,
            "backupMaxBackups": 10,
        }

    @pytest.mark.asyncio
    async def test_stored_settings_override_defaults(self, memory_settings):
        memory_settings.values.update({
            "theme": "dark",
            "autoBackupEnabled": "true",
            "backupMaxBackups": "5",
            "feature.pushNotifications": "false",
        })
        exporter = ConfigurationExporter(memory_settings, DataClientConfig(), format_version="1.2.0")

        document = (await exporter.export()).entries[CONFIGURATION_PATH]

        assert document["settings"]["theme"] == "dark"
        assert document["settings"]["autoBackupEnabled"] is True
        assert document["settings"]["backupMaxBackups"] == 5
        assert document["features"]["pushNotifications"] is False
        assert document["version"] == "1.2.0"


class TestSecurityExporter:

    @pytest.mark.asyncio
    async def test_summary_and_payloads(self):
        client = FailingDataClient(tables={
            "security_events": [{"id": f"e{i}", "created_at": f"2024-05-0{i + 1}"} for i in range(3)],
            "user_sessions": [{"id": "s1", "created_at": "2024-05-01"}],
            "system_errors": [],
        })
        exporter = SecurityExporter(client, record_limit=2)

        payload = await exporter.export()
        summary = payload.entries[SECURITY_SUMMARY_PATH]

        assert payload.metadata_path == SECURITY_SUMMARY_PATH
        assert summary["total_events"] == 2
        assert summary["total_sessions"] == 1
        assert summary["total_errors"] == 0
        assert summary["record_limit"] == 2
        assert [row["id"] for row in decode(payload.entries["security/security_events"])] == ["e2", "e1"]
        assert payload.entries["security/system_errors"] == "# system_errors - No data\n"
        assert payload.stats.total_rows == 3

    @pytest.mark.asyncio
    async def test_failed_read_degrades_to_empty(self):
        client = FailingDataClient(tables={"user_sessions": [{"id": "s1", "created_at": "x"}]})
        client.fail("read_recent", "security_events")

        payload = await SecurityExporter(client).export()

        assert payload.entries[SECURITY_SUMMARY_PATH]["total_events"] == 0
        assert payload.entries[SECURITY_SUMMARY_PATH]["total_sessions"] == 1
        assert ("read_recent", "system_errors") in client.calls

    @pytest.mark.asyncio
    async def test_json_fields_keep_scalar_values(self):
        events = [
            {"id": "e1", "event_data": "login from new device", "created_at": "2024-05-02"},
            {"id": "e2", "event_data": {"attempts": 3}, "created_at": "2024-05-01"},
        ]
        client = FailingDataClient(tables={"security_events": events})

        payload = await SecurityExporter(client).export()

        fields = CollectionRegistry().get("security_events").fields
        assert decode(payload.entries["security/security_events"], fields) == events


@pytest.mark.asyncio
async def test_functions_exporter():
    payload = await FunctionsExporter().export()
    document = payload.entries[FUNCTIONS_PATH]

    assert payload.backup_type == BackupType.FUNCTIONS
    assert document["functions"] == list(BACKEND_FUNCTIONS)
    assert document["count"] == 8
    assert set(document) == {"functions", "count", "description", "exported_at"}
