"""Host file-save primitive writing archives to a local directory."""

from pathlib import Path

from .._utils import logger


class DirectoryFileSaver:
    """Save downloaded archives into ``directory``, created on first use."""

    def __init__(self, directory: str = "./backups"):
        self.directory = Path(directory)

    def save(self, blob: bytes, filename: str) -> None:
        if not filename or Path(filename).name != filename:
            raise ValueError(f"Invalid archive filename: {filename!r}")
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / filename
        path.write_bytes(blob)
        logger.info(f"Archive saved: {path} ({len(blob):,} bytes)")
