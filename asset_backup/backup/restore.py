"""Restore data collections from a backup archive."""

import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..base import BaseDataClient, Row
from ..config import RestoreConfig
from ..exceptions import RestoreError, TabularDecodeError
from ..registry import CollectionRegistry, CollectionSpec
from .._utils import elapsed_ms, logger
from .archive import ArchiveManager
from .codec import decode, payload_error
from .exporters.data_exporter import DATA_METADATA_PATH, DATA_PREFIX
from .models import PreviewStatus, RestoredCollection, RestorePreviewItem, RestoreResult

ProgressCallback = Callable[[int, str], None]


def _data_entries(entries: Dict[str, str]) -> List[Tuple[str, str]]:
    """``(collection, payload)`` for every ``data/<name>`` entry, archive order."""
    selected = []
    for path, content in entries.items():
        if not path.startswith(DATA_PREFIX) or path == DATA_METADATA_PATH:
            continue
        name = path[len(DATA_PREFIX):]
        if name and "/" not in name:
            selected.append((name, content))
    return selected


class RestorePipeline:
    """Replace live collections with the contents of an archive.

    Every payload is decoded before the first write, so a malformed archive
    changes nothing. Writes then run per collection, delete then insert; a
    failure stops the sweep and collections already replaced stay replaced
    unless ``rollback_on_failure`` is enabled.
    """

    def __init__(
        self,
        client: BaseDataClient,
        archive: ArchiveManager,
        registry: Optional[CollectionRegistry] = None,
        config: Optional[RestoreConfig] = None,
    ):
        self.client = client
        self.archive = archive
        self.registry = registry or CollectionRegistry()
        self.config = config or RestoreConfig()

    def _select(
        self,
        entries: Dict[str, str],
        target_collections: Optional[Iterable[str]],
    ) -> List[Tuple[CollectionSpec, str]]:
        targets = set(target_collections) if target_collections is not None else None
        selected = []
        for name, content in _data_entries(entries):
            if targets is not None and name not in targets:
                continue
            spec = self.registry.get(name)
            if spec is None:
                logger.warning(f"Skipping unknown collection in archive: {name}")
                continue
            if not spec.restorable:
                logger.info(f"Skipping non-restorable collection: {name}")
                continue
            error = payload_error(content)
            if error is not None:
                logger.warning(f"Skipping {name}: backup recorded an export error ({error})")
                continue
            selected.append((spec, content))
        return selected

    async def restore(
        self,
        blob: bytes,
        target_collections: Optional[Iterable[str]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> RestoreResult:
        """Restore data collections from an archive.

        Args:
            blob: Archive produced by a data or full backup
            target_collections: Restrict the restore to these collection names
            progress: Called as ``(percent, step)``

        Returns:
            RestoreResult naming the failed collection on failure
        """
        started = time.perf_counter()
        report = progress or (lambda percent, step: None)
        report(0, "Reading archive")

        try:
            entries = self.archive.unpack(blob)
        except Exception as e:
            logger.error(f"Restore failed, unreadable archive: {e}")
            return RestoreResult(
                success=False, message=f"Restore failed: {e}", error=str(e), duration_ms=elapsed_ms(started)
            )

        selected = self._select(entries, target_collections)
        if not selected:
            logger.warning("Restore aborted: no restorable collections in archive")
            return RestoreResult(
                success=False, message="No restorable collections", duration_ms=elapsed_ms(started)
            )

        # Staging: decode everything before touching the data client.
        staged: List[Tuple[str, List[Row]]] = []
        for spec, content in selected:
            try:
                staged.append((spec.name, decode(content, spec.fields)))
            except TabularDecodeError as e:
                logger.error(f"Restore aborted before any write, invalid payload for {spec.name}: {e}")
                return RestoreResult(
                    success=False,
                    message=f"Invalid payload for {spec.name}: {e}",
                    failed_collection=spec.name,
                    error=str(e),
                    duration_ms=elapsed_ms(started),
                )
        report(10, f"Staged {len(staged)} collections")

        originals: Dict[str, List[Row]] = {}
        if self.config.rollback_on_failure:
            for name, _ in staged:
                try:
                    originals[name] = await self.client.read_all(name)
                except Exception as e:
                    logger.error(f"Restore aborted before any write, cannot snapshot {name}: {e}")
                    return RestoreResult(
                        success=False,
                        message=f"Unable to snapshot {name} for rollback: {e}",
                        failed_collection=name,
                        error=str(e),
                        duration_ms=elapsed_ms(started),
                    )

        restored: List[RestoredCollection] = []
        total = len(staged)
        for index, (name, rows) in enumerate(staged):
            report(10 + int(90 * index / total), f"Restoring {self.registry.display_name(name)} ({len(rows)} records)")
            try:
                await self.client.delete_all(name)
                if rows:
                    await self.client.insert_many(name, rows)
            except Exception as e:
                error = RestoreError(name, str(e) or e.__class__.__name__)
                logger.error(str(error))
                rolled_back: List[str] = []
                if self.config.rollback_on_failure:
                    touched = [item.collection_name for item in restored] + [name]
                    rolled_back = await self._rollback(touched, originals)
                return RestoreResult(
                    success=False,
                    message=str(error),
                    restored=restored,
                    failed_collection=name,
                    error=str(e) or e.__class__.__name__,
                    rolled_back=rolled_back,
                    duration_ms=elapsed_ms(started),
                )

            restored.append(RestoredCollection(collection_name=name, count=len(rows)))
            logger.debug(f"Restored {name}: {len(rows)} rows")

        report(100, "Restore completed")
        total_rows = sum(item.count for item in restored)
        logger.info(f"Restore complete: {len(restored)} collections, {total_rows} rows")
        return RestoreResult(
            success=True,
            message=f"Restored {len(restored)} collections ({total_rows} records)",
            restored=restored,
            duration_ms=elapsed_ms(started),
        )

    async def _rollback(self, names: List[str], originals: Dict[str, List[Row]]) -> List[str]:
        """Write pre-restore rows back, newest change first; best effort."""
        rolled_back = []
        for name in reversed(names):
            try:
                await self.client.delete_all(name)
                if originals.get(name):
                    await self.client.insert_many(name, originals[name])
            except Exception as e:
                logger.error(f"Rollback of {name} failed: {e}")
                continue
            rolled_back.append(name)
            logger.warning(f"Rolled back {name} to its pre-restore state")
        return rolled_back

    def preview(self, blob: bytes) -> List[RestorePreviewItem]:
        """Decode an archive's data entries without writing anything."""
        try:
            entries = self.archive.unpack(blob)
        except Exception as e:
            return [RestorePreviewItem(
                collection_name="archive",
                display_name="Archive",
                status=PreviewStatus.ERROR,
                error_message=f"Unable to read archive: {e}",
            )]

        items = []
        for name, content in _data_entries(entries):
            spec = self.registry.get(name)
            if spec is None or not spec.restorable:
                items.append(RestorePreviewItem(
                    collection_name=name,
                    display_name=self.registry.display_name(name),
                    status=PreviewStatus.NOT_FOUND,
                    error_message="Unknown collection" if spec is None else "Collection is not restorable",
                ))
                continue

            error = payload_error(content)
            if error is None:
                try:
                    count = len(decode(content, spec.fields))
                except TabularDecodeError as e:
                    error = str(e)
            if error is not None:
                items.append(RestorePreviewItem(
                    collection_name=name,
                    display_name=spec.display_name,
                    status=PreviewStatus.ERROR,
                    error_message=error,
                ))
                continue

            items.append(RestorePreviewItem(
                collection_name=name,
                display_name=spec.display_name,
                record_count=count,
                status=PreviewStatus.FOUND,
            ))
        return items
