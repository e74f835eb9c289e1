"""Delimited text codec for collection snapshots.

Payload layout::

    # Table: staff
    # Records: 2
    # Exported: 2024-05-01T02:00:00.000Z
    id,username,profile
    1,alice,"{""team"":""ops""}"
    2,"bob, jr.",

Leading ``#`` lines are metadata and are ignored by the decoder. The first
non-comment line is the header. A value is quoted when it contains the
delimiter, a quote or a line break; interior quotes are doubled. ``None`` is
an empty field, the empty string is ``""``. Structured values, and every value
of a typed ``json`` field, are written as compact JSON and are parsed back
only for ``json`` fields.
"""

import io
import json
import re
from datetime import date
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from ..base import Row
from ..exceptions import TabularDecodeError
from ..registry import FieldSpec, FieldType
from .._utils import compact_json, iso_now, logger

DELIMITER = ","
QUOTE = '"'
COMMENT = "#"

_INTEGER = re.compile(r"[+-]?\d+")
_TRUE = {"true", "t", "1", "yes"}
_FALSE = {"false", "f", "0", "no"}

FieldLike = Union[FieldSpec, str]


def _needs_quotes(text: str) -> bool:
    return any(ch in text for ch in (DELIMITER, QUOTE, "\n", "\r"))


def _quote(text: str) -> str:
    return QUOTE + text.replace(QUOTE, QUOTE * 2) + QUOTE


def render_value(value: Any) -> str:
    """Render a single value as a tabular field."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return _quote(compact_json(value))
    if isinstance(value, date):
        text = value.isoformat()
    elif isinstance(value, str):
        text = value
    else:
        text = str(value)

    if text == "":
        return QUOTE * 2
    if _needs_quotes(text):
        return _quote(text)
    return text


def render_json_value(value: Any) -> str:
    """Render a value of a ``json`` field; every non-null value is written as JSON."""
    if value is None:
        return ""
    text = compact_json(value)
    return _quote(text) if _needs_quotes(text) else text


def _render_header(name: str) -> str:
    if name == "" or name.startswith(COMMENT) or _needs_quotes(name):
        return _quote(name)
    return name


class TabularEncoder:
    """Incremental encoder; rows can be written page by page.

    When ``fields`` are given, values of ``json`` fields are always rendered
    as JSON so that scalars survive a typed decode.
    """

    def __init__(
        self,
        collection_name: Optional[str] = None,
        exported_at: Optional[str] = None,
        fields: Optional[Iterable[FieldLike]] = None,
    ):
        self.collection_name = collection_name
        self.exported_at = exported_at or iso_now()
        specs = _normalize_fields(fields) or {}
        self._json_fields = {key for key, spec in specs.items() if FieldType(spec.type) == FieldType.JSON}
        self.record_count = 0
        self._header: Optional[List[str]] = None
        self._dropped: set = set()
        self._body = io.StringIO()

    @property
    def header(self) -> Optional[List[str]]:
        return list(self._header) if self._header is not None else None

    def write_rows(self, rows: Iterable[Mapping[str, Any]]) -> None:
        for row in rows:
            if self._header is None:
                if not row:
                    raise ValueError("Cannot derive a header from a row without fields")
                self._header = list(row.keys())
                self._body.write(DELIMITER.join(_render_header(name) for name in self._header))
                self._body.write("\n")

            extra = set(row.keys()).difference(self._header).difference(self._dropped)
            if extra:
                self._dropped.update(extra)
                logger.debug(
                    f"Fields not in header dropped for {self.collection_name or 'payload'}: {sorted(extra)}"
                )

            self._body.write(DELIMITER.join(
                render_json_value(row.get(name)) if name in self._json_fields else render_value(row.get(name))
                for name in self._header
            ))
            self._body.write("\n")
            self.record_count += 1

    def getvalue(self) -> str:
        name = self.collection_name or "collection"
        if self.record_count == 0:
            return f"{COMMENT} {name} - No data\n"

        preamble = []
        if self.collection_name:
            preamble.append(f"{COMMENT} Table: {self.collection_name}")
        preamble.append(f"{COMMENT} Records: {self.record_count}")
        preamble.append(f"{COMMENT} Exported: {self.exported_at}")
        return "\n".join(preamble) + "\n" + self._body.getvalue()


def encode(
    rows: Sequence[Mapping[str, Any]],
    collection_name: Optional[str] = None,
    fields: Optional[Iterable[FieldLike]] = None,
) -> str:
    """Encode a row set as tabular text."""
    encoder = TabularEncoder(collection_name, fields=fields)
    encoder.write_rows(rows)
    return encoder.getvalue()


def error_payload(collection_name: str, error: object) -> str:
    """Comment-only payload recorded for a collection that failed to export."""
    message = str(error).replace("\n", " ")
    return f"{COMMENT} {collection_name} - Error: {message}\n"


def payload_error(text: str) -> Optional[str]:
    """Return the recorded error message if ``text`` is an error payload."""
    first_line = text.split("\n", 1)[0].rstrip("\r")
    if not first_line.startswith(COMMENT):
        return None
    _, sep, message = first_line.partition(" - Error: ")
    return message if sep else None


def _split_record(record: str, line_number: int) -> List[Tuple[str, bool]]:
    """Split one logical record into ``(value, was_quoted)`` pairs."""
    fields: List[Tuple[str, bool]] = []
    length = len(record)
    i = 0

    while True:
        if i < length and record[i] == QUOTE:
            i += 1
            parts = []
            while True:
                j = record.find(QUOTE, i)
                if j == -1:
                    raise TabularDecodeError(line_number, "unterminated quoted field")
                parts.append(record[i:j])
                if j + 1 < length and record[j + 1] == QUOTE:
                    parts.append(QUOTE)
                    i = j + 2
                    continue
                i = j + 1
                break
            fields.append(("".join(parts), True))
            if i < length and record[i] != DELIMITER:
                raise TabularDecodeError(
                    line_number, f"unexpected character {record[i]!r} after closing quote"
                )
        else:
            j = record.find(DELIMITER, i)
            end = length if j == -1 else j
            value = record[i:end]
            if QUOTE in value:
                raise TabularDecodeError(line_number, "quote character inside unquoted field")
            fields.append((value, False))
            i = end

        if i >= length:
            break
        # skip the delimiter
        i += 1

    return fields


def _coerce(raw: str, quoted: bool, spec: FieldSpec, line_number: int) -> Any:
    if raw == "" and not quoted:
        return None

    field_type = FieldType(spec.type)
    if field_type in (FieldType.TEXT, FieldType.DATE):
        return raw
    if raw == "":
        return None

    try:
        if field_type == FieldType.NUMBER:
            if _INTEGER.fullmatch(raw.strip()):
                return int(raw)
            return float(raw)
        if field_type == FieldType.BOOLEAN:
            lowered = raw.strip().lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError(f"not a boolean: {raw!r}")
        return json.loads(raw)
    except ValueError as e:
        raise TabularDecodeError(line_number, f"invalid {field_type.value} value for {spec.key}: {e}") from e


def _normalize_fields(expected_fields: Optional[Iterable[FieldLike]]) -> Optional[Dict[str, FieldSpec]]:
    if not expected_fields:
        return None
    specs = {}
    for item in expected_fields:
        spec = item if isinstance(item, FieldSpec) else FieldSpec(str(item))
        specs[spec.key] = spec
    return specs


def iter_records(text: str, expected_fields: Optional[Iterable[FieldLike]] = None) -> Iterator[Row]:
    """Yield decoded records one at a time.

    A record only spans several physical lines while a quoted field is open.
    """
    specs = _normalize_fields(expected_fields)
    header: Optional[List[str]] = None
    pending: List[str] = []
    quote_count = 0
    start_line = 0

    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    for line_number, line in enumerate(lines, start=1):
        if not pending:
            start_line = line_number
            if header is None and (line.startswith(COMMENT) or not line.strip()):
                continue

        pending.append(line)
        quote_count += line.count(QUOTE)
        if quote_count % 2:
            continue

        record = "\n".join(pending)
        pending = []
        quote_count = 0
        if record.endswith("\r"):
            record = record[:-1]

        if header is None:
            header = [value for value, _ in _split_record(record, start_line)]
            if len(set(header)) != len(header):
                raise TabularDecodeError(start_line, "duplicate field names in header")
            continue

        if record == "" and len(header) > 1:
            continue

        values = _split_record(record, start_line)
        if len(values) != len(header):
            raise TabularDecodeError(
                start_line, f"expected {len(header)} fields, found {len(values)}"
            )

        row: Row = {}
        for name, (raw, quoted) in zip(header, values):
            if specs is None:
                row[name] = raw if (raw or quoted) else None
                continue
            spec = specs.get(name)
            if spec is not None:
                row[name] = _coerce(raw, quoted, spec, start_line)
        yield row

    if pending:
        raise TabularDecodeError(start_line, "unterminated quoted field")


def decode(text: str, expected_fields: Optional[Iterable[FieldLike]] = None) -> List[Row]:
    """Decode tabular text into a list of records.

    Raises:
        TabularDecodeError: on malformed input, naming the offending line
    """
    return list(iter_records(text, expected_fields))
