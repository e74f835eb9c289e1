"""Registry of the data collections known to the backup engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    JSON = "json"


@dataclass(frozen=True)
class FieldSpec:
    key: str
    type: FieldType = FieldType.TEXT


@dataclass(frozen=True)
class CollectionSpec:
    """A named collection and the typed fields used to decode its payloads.

    Only ``restorable`` collections are written back by the restore pipeline.
    """
    name: str
    display_name: str
    fields: Tuple[FieldSpec, ...] = ()
    primary_key: str = "id"
    restorable: bool = True


def _fields(**types: FieldType) -> Tuple[FieldSpec, ...]:
    return tuple(FieldSpec(key, field_type) for key, field_type in types.items())


T, N, B, D, J = FieldType.TEXT, FieldType.NUMBER, FieldType.BOOLEAN, FieldType.DATE, FieldType.JSON

_STAFF_DIRECTORY = _fields(id=T, ten_nv=T, email=T, created_at=D)

DEFAULT_COLLECTIONS: Tuple[CollectionSpec, ...] = (
    CollectionSpec("staff", "Staff", _fields(
        id=T, username=T, password=T, staff_name=T, email=T, role=T, department=T,
        account_status=T, failed_login_attempts=N, last_failed_login=D, locked_at=D,
        created_at=D, updated_at=D)),
    CollectionSpec("asset_transactions", "Asset transactions", _fields(
        id=T, staff_code=T, transaction_date=D, parts_day=T, room=T, transaction_type=T,
        asset_year=N, asset_code=N, note=T, created_at=D)),
    CollectionSpec("asset_reminders", "Asset reminders", _fields(
        id=T, ten_ts=T, ngay_den_han=D, cbqln=T, cbkh=T, is_sent=B, created_at=D)),
    CollectionSpec("sent_asset_reminders", "Sent asset reminders", _fields(
        id=T, ten_ts=T, ngay_den_han=D, cbqln=T, cbkh=T, is_sent=B, sent_date=D, created_at=D)),
    CollectionSpec("crc_reminders", "CRC reminders", _fields(
        id=T, loai_bt_crc=T, ngay_thuc_hien=D, ldpcrc=T, cbcrc=T, quycrc=T, is_sent=B,
        created_at=D)),
    CollectionSpec("sent_crc_reminders", "Sent CRC reminders", _fields(
        id=T, loai_bt_crc=T, ngay_thuc_hien=D, ldpcrc=T, cbcrc=T, quycrc=T, is_sent=B,
        sent_date=D, created_at=D)),
    CollectionSpec("other_assets", "Other assets", _fields(
        id=T, name=T, deposit_date=D, depositor=T, deposit_receiver=T, withdrawal_date=D,
        withdrawal_deliverer=T, withdrawal_receiver=T, notes=T, created_at=D, updated_at=D)),
    CollectionSpec("notifications", "Notifications", _fields(
        id=T, recipient_username=T, title=T, message=T, notification_type=T, is_read=B,
        is_seen=B, seen_at=D, related_data=J, created_at=D)),
    CollectionSpec("cbqln", "CB QLN", _STAFF_DIRECTORY),
    CollectionSpec("cbkh", "CB KH", _STAFF_DIRECTORY),
    CollectionSpec("ldpcrc", "LDP CRC", _STAFF_DIRECTORY),
    CollectionSpec("cbcrc", "CB CRC", _STAFF_DIRECTORY),
    CollectionSpec("quycrc", "Quy CRC", _STAFF_DIRECTORY),
    CollectionSpec("push_subscriptions", "Push subscriptions", _fields(
        id=N, username=T, subscription=J, created_at=D), restorable=False),
    CollectionSpec("system_errors", "System errors", _fields(
        id=T, error_type=T, error_message=T, error_stack=T, error_data=J, function_name=T,
        severity=T, status=T, user_id=T, user_agent=T, ip_address=T, request_url=T,
        resolved_at=D, resolved_by=T, resolution_notes=T, created_at=D), restorable=False),
    CollectionSpec("system_metrics", "System metrics", _fields(
        id=T, metric_name=T, metric_type=T, metric_value=N, metric_unit=T,
        additional_data=J, created_at=D), restorable=False),
    CollectionSpec("system_status", "System status", _fields(
        id=T, service_name=T, status=T, response_time_ms=N, error_rate=N,
        uptime_percentage=N, last_check=D, status_data=J, created_at=D), restorable=False),
    CollectionSpec("user_sessions", "User sessions", _fields(
        id=T, username=T, session_start=D, session_end=D, duration_minutes=N,
        pages_visited=N, actions_performed=N, device_type=T, browser_name=T, os_name=T,
        ip_address=T, session_data=J, created_at=D, updated_at=D), restorable=False),
    CollectionSpec("security_events", "Security events", _fields(
        id=T, event_type=T, username=T, event_data=J, user_agent=T, ip_address=T,
        created_at=D), restorable=False),
    CollectionSpec("asset_history_archive", "Asset history", _fields(
        id=T, original_asset_id=T, asset_name=T, change_type=T, changed_by=T,
        change_reason=T, created_at=D)),
)


@dataclass
class CollectionRegistry:
    """Ordered lookup of collection specs by name."""

    collections: Tuple[CollectionSpec, ...] = DEFAULT_COLLECTIONS
    _by_name: Dict[str, CollectionSpec] = field(init=False, default_factory=dict)

    def __post_init__(self):
        for spec in self.collections:
            if spec.name in self._by_name:
                raise ValueError(f"Duplicate collection in registry: {spec.name}")
            self._by_name[spec.name] = spec

    @classmethod
    def from_names(cls, names: Iterable[str]) -> 'CollectionRegistry':
        """Registry of untyped collections, display name = collection name."""
        return cls(tuple(CollectionSpec(name, name) for name in names))

    def get(self, name: str) -> Optional[CollectionSpec]:
        return self._by_name.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def names(self) -> List[str]:
        return [spec.name for spec in self.collections]

    def restorable_names(self) -> List[str]:
        return [spec.name for spec in self.collections if spec.restorable]

    def display_name(self, name: str) -> str:
        spec = self._by_name.get(name)
        return spec.display_name if spec else name
