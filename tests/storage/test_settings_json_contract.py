"""Contract-based tests for the JSON file settings store."""

import json

import pytest
import pytest_asyncio

from asset_backup._storage.settings_json import JsonSettingsStore
from asset_backup.exceptions import ConfigurationError
from tests.storage.base import BaseSettingsStoreTestSuite, SettingsStoreContract


class TestJsonSettingsContract(BaseSettingsStoreTestSuite):

    @pytest_asyncio.fixture
    async def store(self, mock_global_config):
        yield JsonSettingsStore(namespace="settings", global_config=mock_global_config)

    @pytest.fixture
    def contract(self):
        return SettingsStoreContract(supports_persistence=True, supports_listing=True)


@pytest.mark.asyncio
async def test_values_persist_across_instances(mock_global_config):
    first = JsonSettingsStore(global_config=mock_global_config)
    await first.set("backupRetentionDays", "7")
    await first.set_json("backupHistory", [{"id": "backup_1"}])

    second = JsonSettingsStore(global_config=mock_global_config)
    assert await second.get("backupRetentionDays") == "7"
    assert await second.get_json("backupHistory") == [{"id": "backup_1"}]


@pytest.mark.asyncio
async def test_namespaces_are_isolated(mock_global_config):
    settings = JsonSettingsStore(namespace="settings", global_config=mock_global_config)
    features = JsonSettingsStore(namespace="features", global_config=mock_global_config)
    await settings.set("theme", "dark")

    assert await features.get("theme") is None
    with open(mock_global_config["settings_json_path"], encoding="utf-8") as f:
        assert json.load(f) == {"settings": {"theme": "dark"}}


@pytest.mark.asyncio
async def test_file_is_only_written_on_change(mock_global_config, temp_storage_dir):
    store = JsonSettingsStore(global_config=mock_global_config)
    await store.delete("missing")

    assert not (temp_storage_dir / "settings.json").exists()


def test_corrupt_file_raises_configuration_error(mock_global_config, temp_storage_dir):
    (temp_storage_dir / "settings.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Unreadable settings file"):
        JsonSettingsStore(global_config=mock_global_config)
