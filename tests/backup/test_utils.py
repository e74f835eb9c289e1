"""Tests for backup utility functions."""

import json
from datetime import datetime, timezone

import pytest

from asset_backup.backup.models import BackupManifest, BackupStats, BackupType
from asset_backup.backup.utils import (
    build_filename,
    compute_entries_checksum,
    generate_history_id,
    generate_timestamp_slug,
    load_manifest_text,
    manifest_to_text,
    render_entry,
)

MOMENT = datetime(2024, 5, 1, 9, 5, 7, 123456, tzinfo=timezone.utc)


def test_generate_timestamp_slug():
    assert generate_timestamp_slug(MOMENT) == "2024-05-01T09-05-07-123Z"


@pytest.mark.parametrize("backup_type, prefix", [
    (BackupType.FULL, "full-system"),
    (BackupType.DATA, "data"),
    ("security", "security"),
])
def test_build_filename(backup_type, prefix):
    assert build_filename(backup_type, "tar.gz", MOMENT) == f"{prefix}-backup-2024-05-01T09-05-07-123Z.tar.gz"


def test_build_filename_rejects_unknown_type():
    with pytest.raises(ValueError):
        build_filename("everything", "tar")


def test_generate_history_id():
    first = generate_history_id()
    second = generate_history_id()

    assert first.startswith("backup_")
    assert len(first) == len("backup_") + 12
    assert first != second


def test_render_entry():
    assert render_entry(b"raw") == b"raw"
    assert render_entry("Xin chào") == "Xin chào".encode("utf-8")
    assert json.loads(render_entry({"b": 1, "a": [1, 2]})) == {"a": [1, 2], "b": 1}

    stats = BackupStats(collection_count=1, total_rows=2)
    assert json.loads(render_entry(stats)) == {"collection_count": 1, "total_rows": 2, "duration_ms": 0}


def test_checksum_is_order_independent():
    first = compute_entries_checksum({"data/staff": "a", "data/cbkh": "b"})
    second = compute_entries_checksum({"data/cbkh": "b", "data/staff": "a"})

    assert first == second
    assert first.startswith("sha256:")
    assert len(first) == len("sha256:") + 64


def test_checksum_covers_paths_and_contents():
    base = compute_entries_checksum({"data/staff": "a"})

    assert compute_entries_checksum({"data/staff": "b"}) != base
    assert compute_entries_checksum({"data/cbkh": "a"}) != base


def test_checksum_separates_path_from_content():
    assert compute_entries_checksum({"ab": "c"}) != compute_entries_checksum({"a": "bc"})
    assert compute_entries_checksum({"a": "b", "c": "d"}) != compute_entries_checksum({"a": "b1:c1:d"})


def test_manifest_text_round_trip():
    manifest = BackupManifest(
        backup_type=BackupType.DATA,
        generated_at=MOMENT,
        entries=["data/staff"],
        stats=BackupStats(collection_count=1, total_rows=2, duration_ms=5),
        checksum="sha256:abc",
    )

    assert load_manifest_text(manifest_to_text(manifest)) == manifest


@pytest.mark.parametrize("text", [
    "not json",
    "[]",
    '{"backup_type": "data", "entries": []}',
    '{"backup_type": "nope", "entries": ["x"]}',
    '{"backup_type": "data", "entries": ["x", "x"]}',
])
def test_load_manifest_text_rejects_malformed(text):
    with pytest.raises(ValueError):
        load_manifest_text(text)
