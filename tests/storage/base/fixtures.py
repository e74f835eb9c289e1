"""Shared fixtures and test doubles for collaborator testing."""

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from asset_backup._storage.client_memory import InMemoryDataClient
from asset_backup.base import BaseSettingsStore, Row
from asset_backup.exceptions import DataClientError


@dataclass
class InMemorySettingsStore(BaseSettingsStore):
    """Settings store backed by a plain dict."""

    values: Dict[str, str] = field(default_factory=dict)

    async def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    async def set(self, key: str, value: str) -> None:
        self.values[key] = value

    async def delete(self, key: str) -> None:
        self.values.pop(key, None)


@dataclass
class FailingDataClient(InMemoryDataClient):
    """In-memory client that records calls and raises injected failures."""

    failures: Dict[Tuple[str, str], Exception] = field(default_factory=dict)
    calls: List[Tuple[str, str]] = field(default_factory=list)

    def fail(self, operation: str, collection: str, error: Optional[Exception] = None) -> None:
        self.failures[(operation, collection)] = error or DataClientError("injected failure", collection)

    def _check(self, operation: str, collection: str) -> None:
        self.calls.append((operation, collection))
        error = self.failures.get((operation, collection))
        if error is not None:
            raise error

    def writes(self) -> List[Tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("delete_all", "insert_many")]

    async def read_all(self, collection: str) -> List[Row]:
        self._check("read_all", collection)
        return await super().read_all(collection)

    async def read_recent(self, collection: str, order_by: str = "created_at", limit: int = 1000) -> List[Row]:
        self._check("read_recent", collection)
        return await super().read_recent(collection, order_by, limit)

    async def delete_all(self, collection: str) -> None:
        self._check("delete_all", collection)
        await super().delete_all(collection)

    async def insert_many(self, collection: str, rows: List[Row]) -> None:
        self._check("insert_many", collection)
        await super().insert_many(collection, rows)

    async def count_exact(self, collection: str) -> int:
        self._check("count_exact", collection)
        return await super().count_exact(collection)


@pytest.fixture
def temp_storage_dir():
    """Temporary directory for file-backed stores."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_global_config(temp_storage_dir):
    """Flattened engine config pointing at local/test endpoints."""
    return {
        "data_api_url": "http://postgrest.test",
        "data_api_key": "test-key",
        "data_api_schema": "public",
        "data_api_request_timeout": 5.0,
        "data_api_max_retries": 2,
        "data_api_page_size": 2,
        "settings_json_path": str(temp_storage_dir / "settings.json"),
        "redis_url": "redis://localhost:6379",
        "redis_prefix": "asset_backup_test",
    }


@pytest.fixture
def memory_settings():
    return InMemorySettingsStore()


@pytest.fixture
def staff_rows():
    """Two staff accounts with values that need quoting."""
    return [
        {
            "id": "11111111-1111-1111-1111-111111111111",
            "username": "alice",
            "staff_name": "Nguyen, Alice",
            "email": "alice@example.com",
            "role": "admin",
            "department": "QLN",
            "account_status": "active",
            "failed_login_attempts": 0,
            "created_at": "2024-05-01T02:00:00+00:00",
        },
        {
            "id": "22222222-2222-2222-2222-222222222222",
            "username": "bob",
            "staff_name": 'Bob "The Builder"',
            "email": None,
            "role": "user",
            "department": "CMT8",
            "account_status": "locked",
            "failed_login_attempts": 3,
            "created_at": "2024-05-02T02:00:00+00:00",
        },
    ]
