import json
import logging
import time
from datetime import date, datetime, timezone
from typing import Any

logger = logging.getLogger("asset-backup")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_now() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return str(value)


def compact_json(data: Any) -> str:
    """Single-line JSON used inside tabular fields."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=_json_default)


def canonical_json(data: Any) -> str:
    """Stable, human-readable JSON used for structured archive entries."""
    return json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True, default=_json_default)


def elapsed_ms(started: float) -> int:
    """Milliseconds since a ``time.perf_counter()`` reading."""
    return int((time.perf_counter() - started) * 1000)
