"""Abstract collaborators consumed by the backup engine."""

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

Row = Dict[str, Any]


@dataclass
class BaseDataClient:
    """Asynchronous access to the relational data store.

    Every operation may raise ``DataClientError``; the engine awaits each call
    in turn and imposes no timeout of its own.
    """

    global_config: dict = field(default_factory=dict)

    async def read_all(self, collection: str) -> List[Row]:
        """Return every row of a collection."""
        raise NotImplementedError

    async def read_recent(
        self,
        collection: str,
        order_by: str = "created_at",
        limit: int = 1000,
    ) -> List[Row]:
        """Return at most ``limit`` rows ordered by ``order_by`` descending."""
        raise NotImplementedError

    async def delete_all(self, collection: str) -> None:
        """Delete every row of a collection."""
        raise NotImplementedError

    async def insert_many(self, collection: str, rows: List[Row]) -> None:
        raise NotImplementedError

    async def count_exact(self, collection: str) -> int:
        raise NotImplementedError

    async def iter_pages(self, collection: str, page_size: int = 1000) -> AsyncIterator[List[Row]]:
        """Yield a collection's rows in pages of at most ``page_size``.

        Backends without native paging fall back to a single ``read_all``.
        """
        rows = await self.read_all(collection)
        for start in range(0, len(rows), page_size):
            yield rows[start:start + page_size]

    async def close(self) -> None:
        pass


@dataclass
class BaseSettingsStore:
    """Small key -> string store for operator preferences."""

    namespace: str = "settings"
    global_config: dict = field(default_factory=dict)

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def get_json(self, key: str, default: Any = None) -> Any:
        raw = await self.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    async def set_json(self, key: str, value: Any) -> None:
        await self.set(key, json.dumps(value, default=str))

    async def get_bool(self, key: str, default: bool = False) -> bool:
        raw = await self.get(key)
        if raw is None:
            return default
        return raw.strip().lower() == "true"

    async def get_int(self, key: str, default: int) -> int:
        raw = await self.get(key)
        if raw is None or not raw.strip():
            return default
        return int(raw)


class FileSaver(Protocol):
    """Host file-save primitive: receives a finished archive and a filename."""

    def save(self, blob: bytes, filename: str) -> None:
        ...
