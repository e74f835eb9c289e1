"""Base test suites for collaborator implementations."""

from .settings_suite import BaseSettingsStoreTestSuite, SettingsStoreContract
from .data_client_suite import BaseDataClientTestSuite, DataClientContract
from .fixtures import (
    InMemorySettingsStore,
    FailingDataClient,
    memory_settings,
    mock_global_config,
    staff_rows,
    temp_storage_dir,
)

__all__ = [
    "BaseSettingsStoreTestSuite",
    "SettingsStoreContract",
    "BaseDataClientTestSuite",
    "DataClientContract",
    "InMemorySettingsStore",
    "FailingDataClient",
    "memory_settings",
    "mock_global_config",
    "staff_rows",
    "temp_storage_dir",
]
