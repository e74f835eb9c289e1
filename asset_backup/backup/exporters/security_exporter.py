"""Security log exporter (events, sessions, error log)."""

import time
from typing import Any, Dict, List, Optional

from ...base import BaseDataClient, Row
from ...registry import CollectionRegistry
from ..._utils import elapsed_ms, iso_now, logger
from ..codec import encode
from ..models import BackupStats, BackupType, ExportPayload

SECURITY_SUMMARY_PATH = "security/data"
SECURITY_COLLECTIONS = ("security_events", "user_sessions", "system_errors")

_SUMMARY_KEYS = {
    "security_events": "total_events",
    "user_sessions": "total_sessions",
    "system_errors": "total_errors",
}


class SecurityExporter:
    """Export the most recent rows of each security collection.

    A failed read degrades that collection to an empty payload.
    """

    def __init__(
        self,
        client: BaseDataClient,
        record_limit: int = 1000,
        registry: Optional[CollectionRegistry] = None,
    ):
        self.client = client
        self.record_limit = record_limit
        self.registry = registry or CollectionRegistry()

    async def _read(self, name: str) -> List[Row]:
        try:
            rows = await self.client.read_recent(name, order_by="created_at", limit=self.record_limit)
        except Exception as e:
            logger.warning(f"Security export of {name} degraded to empty: {e}")
            return []
        logger.debug(f"Read {len(rows)} rows from {name}")
        return rows

    async def export(self) -> ExportPayload:
        started = time.perf_counter()
        counts: Dict[str, int] = {}
        payloads: Dict[str, str] = {}

        for name in SECURITY_COLLECTIONS:
            rows = await self._read(name)
            counts[name] = len(rows)
            spec = self.registry.get(name)
            payloads[f"security/{name}"] = encode(rows, name, spec.fields if spec else None)

        summary: Dict[str, Any] = {key: counts[name] for name, key in _SUMMARY_KEYS.items()}
        summary.update({
            "collections": counts,
            "record_limit": self.record_limit,
            "exported_at": iso_now(),
        })

        entries: Dict[str, Any] = {SECURITY_SUMMARY_PATH: summary}
        entries.update(payloads)

        stats = BackupStats(
            collection_count=len(SECURITY_COLLECTIONS),
            total_rows=sum(counts.values()),
            duration_ms=elapsed_ms(started),
        )
        logger.info(
            f"Security export complete: {summary['total_events']} events, "
            f"{summary['total_sessions']} sessions, {summary['total_errors']} errors"
        )
        return ExportPayload(
            backup_type=BackupType.SECURITY,
            entries=entries,
            metadata_path=SECURITY_SUMMARY_PATH,
            stats=stats,
        )
