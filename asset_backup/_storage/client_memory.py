"""In-process data client, used for tests and local runs."""

from dataclasses import dataclass, field
from typing import Dict, List

from ..base import BaseDataClient, Row
from ..exceptions import DataClientError
from .._utils import logger


@dataclass
class InMemoryDataClient(BaseDataClient):
    """Collections held as lists of dicts.

    With ``strict`` set, operations on a collection that was never created
    raise ``DataClientError`` like a real store would.
    """

    tables: Dict[str, List[Row]] = field(default_factory=dict)
    strict: bool = False

    def _rows(self, collection: str) -> List[Row]:
        if collection not in self.tables:
            if self.strict:
                raise DataClientError("relation does not exist", collection)
            self.tables[collection] = []
        return self.tables[collection]

    async def read_all(self, collection: str) -> List[Row]:
        return [dict(row) for row in self._rows(collection)]

    async def read_recent(self, collection: str, order_by: str = "created_at", limit: int = 1000) -> List[Row]:
        rows = sorted(
            self._rows(collection),
            key=lambda row: (row.get(order_by) is not None, row.get(order_by) if row.get(order_by) is not None else ""),
            reverse=True,
        )
        return [dict(row) for row in rows[:limit]]

    async def delete_all(self, collection: str) -> None:
        removed = len(self._rows(collection))
        self.tables[collection] = []
        logger.debug(f"Deleted {removed} rows from {collection}")

    async def insert_many(self, collection: str, rows: List[Row]) -> None:
        self._rows(collection).extend(dict(row) for row in rows)

    async def count_exact(self, collection: str) -> int:
        return len(self._rows(collection))
