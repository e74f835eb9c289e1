"""In-memory tar packing and extraction of archive entries."""

import io
import posixpath
import tarfile
import time
import zlib
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..base import FileSaver
from ..exceptions import ArchiveError
from .._utils import logger
from .models import ArchiveEntry, ArchiveEntryInfo, ArchiveInfo
from .utils import render_entry


def normalize_entry_path(path: str) -> str:
    """Validate a logical path and return it in canonical form.

    Raises:
        ArchiveError: for empty, absolute or parent-relative paths
    """
    if not isinstance(path, str) or not path.strip():
        raise ArchiveError(f"Invalid entry path: {path!r}")
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    if normalized.startswith("/") or ".." in normalized.split("/"):
        raise ArchiveError(f"Unsafe entry path: {path!r}")
    normalized = posixpath.normpath(normalized)
    if normalized in ("", "."):
        raise ArchiveError(f"Invalid entry path: {path!r}")
    return normalized


def check_entry_path(path: str) -> str:
    """Accept only paths that are already canonical.

    Packed paths are stored as given, so a path that ``normalize_entry_path``
    would rewrite is rejected instead.

    Raises:
        ArchiveError: for unsafe or non-canonical paths
    """
    normalized = normalize_entry_path(path)
    if normalized != path:
        raise ArchiveError(f"Non-canonical entry path: {path!r} (use {normalized!r})")
    return path


class ArchiveManager:
    """Pack named entries into a single tar container and read them back."""

    def __init__(self, file_saver: Optional[FileSaver] = None, compression_level: int = 6):
        """Initialize archive manager.

        Args:
            file_saver: Host file-save primitive used by ``download``
            compression_level: gzip level used when packing compressed archives
        """
        self.file_saver = file_saver
        self.compression_level = compression_level

    def pack(
        self,
        entries: Union[Mapping[str, Any], Sequence[ArchiveEntry]],
        compress: bool = True,
    ) -> Tuple[bytes, int]:
        """Pack entries into a tar (or tar.gz) blob.

        Args:
            entries: Logical path -> content, or a sequence of ``ArchiveEntry``.
                Non-text content is rendered to canonical JSON.
            compress: Gzip the container

        Returns:
            Tuple of (blob, size in bytes)
        """
        if not entries:
            raise ArchiveError("Cannot pack an archive without entries")

        seen = set()
        buffer = io.BytesIO()
        mode = "w:gz" if compress else "w"
        options = {"compresslevel": self.compression_level} if compress else {}
        mtime = time.time()

        if isinstance(entries, Mapping):
            items = list(entries.items())
        else:
            items = [(entry.path, entry.content) for entry in entries]

        with tarfile.open(fileobj=buffer, mode=mode, **options) as tar:
            for path, content in items:
                name = check_entry_path(path)
                if name in seen:
                    raise ArchiveError(f"Duplicate entry path: {name}")
                seen.add(name)

                data = render_entry(content)
                info = tarfile.TarInfo(name=name)
                info.size = len(data)
                info.mtime = mtime
                tar.addfile(info, io.BytesIO(data))
                logger.debug(f"Packed entry {name} ({len(data):,} bytes)")

        blob = buffer.getvalue()
        logger.info(f"Archive packed: {len(seen)} entries, {len(blob):,} bytes")
        return blob, len(blob)

    def _open(self, blob: bytes) -> tarfile.TarFile:
        if not blob:
            raise ArchiveError("Archive is empty")
        try:
            return tarfile.open(fileobj=io.BytesIO(blob), mode="r:*")
        except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
            raise ArchiveError(f"Unreadable archive: {e}") from e

    def _members(self, tar: tarfile.TarFile) -> List[Tuple[str, tarfile.TarInfo]]:
        members = []
        seen = set()
        try:
            for member in tar.getmembers():
                if member.isdir():
                    continue
                if not member.isfile():
                    raise ArchiveError(f"Unsupported archive member: {member.name}")
                name = normalize_entry_path(member.name)
                if name in seen:
                    raise ArchiveError(f"Duplicate entry path: {name}")
                seen.add(name)
                members.append((name, member))
        except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
            raise ArchiveError(f"Corrupt archive: {e}") from e
        return members

    def unpack(self, blob: bytes) -> Dict[str, str]:
        """Extract every entry as UTF-8 text.

        Either the complete entry map is returned or ``ArchiveError`` is raised.
        """
        entries: Dict[str, str] = {}
        with self._open(blob) as tar:
            for name, member in self._members(tar):
                try:
                    handle = tar.extractfile(member)
                    data = handle.read() if handle is not None else b""
                except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
                    raise ArchiveError(f"Corrupt entry {name}: {e}") from e
                try:
                    entries[name] = data.decode("utf-8")
                except UnicodeDecodeError as e:
                    raise ArchiveError(f"Entry {name} is not valid UTF-8") from e

        logger.debug(f"Archive unpacked: {len(entries)} entries")
        return entries

    def list_entries(self, blob: bytes) -> List[ArchiveEntryInfo]:
        with self._open(blob) as tar:
            return [ArchiveEntryInfo(path=name, size=member.size) for name, member in self._members(tar)]

    def archive_info(self, blob: bytes) -> ArchiveInfo:
        entries = self.list_entries(blob)
        return ArchiveInfo(
            total_files=len(entries),
            total_size=sum(entry.size for entry in entries),
            entries=entries,
        )

    def download(self, blob: bytes, filename: str) -> None:
        """Hand a finished archive to the host file-save primitive."""
        if self.file_saver is None:
            raise ArchiveError("No file saver configured for download")
        self.file_saver.save(blob, filename)
        logger.info(f"Archive handed off for download: {filename}")
