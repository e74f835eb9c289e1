"""Configuration management for the backup engine."""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


def _env_list(name: str, default: str = "") -> Tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class BackupConfig:
    """Backup production settings."""
    format_version: str = "1.0.0"
    compress: bool = True
    compression_level: int = 6
    exclude_collections: Tuple[str, ...] = ()
    security_record_limit: int = 1000
    page_size: int = 1000
    download_dir: str = "./backups"

    @classmethod
    def from_env(cls) -> 'BackupConfig':
        """Create config from environment variables."""
        return cls(
            format_version=os.getenv("BACKUP_FORMAT_VERSION", "1.0.0"),
            compress=os.getenv("BACKUP_COMPRESS", "true").lower() == "true",
            compression_level=int(os.getenv("BACKUP_COMPRESSION_LEVEL", "6")),
            exclude_collections=_env_list("BACKUP_EXCLUDE_COLLECTIONS"),
            security_record_limit=int(os.getenv("BACKUP_SECURITY_RECORD_LIMIT", "1000")),
            page_size=int(os.getenv("BACKUP_PAGE_SIZE", "1000")),
            download_dir=os.getenv("BACKUP_DOWNLOAD_DIR", "./backups")
        )

    def __post_init__(self):
        """Validate configuration."""
        if not 1 <= self.compression_level <= 9:
            raise ValueError(f"compression_level must be between 1 and 9, got {self.compression_level}")
        if self.security_record_limit <= 0:
            raise ValueError(f"security_record_limit must be positive, got {self.security_record_limit}")
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")

    @property
    def archive_extension(self) -> str:
        return "tar.gz" if self.compress else "tar"


@dataclass(frozen=True)
class RestoreConfig:
    """Restore behaviour.

    With ``rollback_on_failure`` disabled, collections restored before a
    failure keep their new contents.
    """
    rollback_on_failure: bool = False

    @classmethod
    def from_env(cls) -> 'RestoreConfig':
        return cls(
            rollback_on_failure=os.getenv("RESTORE_ROLLBACK_ON_FAILURE", "false").lower() == "true"
        )


@dataclass(frozen=True)
class DataClientConfig:
    """Relational data client configuration."""
    backend: str = "postgrest"  # postgrest, memory
    url: str = "http://localhost:3000"
    api_key: Optional[str] = None
    schema: str = "public"
    project_id: Optional[str] = None
    request_timeout: float = 30.0
    max_retries: int = 3

    @classmethod
    def from_env(cls) -> 'DataClientConfig':
        """Create config from environment variables."""
        return cls(
            backend=os.getenv("DATA_API_BACKEND", "postgrest"),
            url=os.getenv("DATA_API_URL", "http://localhost:3000"),
            api_key=os.getenv("DATA_API_KEY", None),
            schema=os.getenv("DATA_API_SCHEMA", "public"),
            project_id=os.getenv("DATA_API_PROJECT_ID", None),
            request_timeout=float(os.getenv("DATA_API_REQUEST_TIMEOUT", "30.0")),
            max_retries=int(os.getenv("DATA_API_MAX_RETRIES", "3"))
        )

    def __post_init__(self):
        """Validate configuration."""
        valid_backends = {"postgrest", "memory"}
        if self.backend not in valid_backends:
            raise ValueError(f"Unknown data client backend: {self.backend}. Available: {valid_backends}")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")


@dataclass(frozen=True)
class SettingsConfig:
    """Persisted operator settings configuration."""
    backend: str = "json"  # json, redis
    json_path: str = "./backup_settings.json"
    redis_url: str = "redis://localhost:6379"
    redis_password: Optional[str] = None
    redis_prefix: str = "asset_backup"
    redis_socket_timeout: float = 5.0

    @classmethod
    def from_env(cls) -> 'SettingsConfig':
        """Create config from environment variables."""
        return cls(
            backend=os.getenv("SETTINGS_BACKEND", "json"),
            json_path=os.getenv("SETTINGS_JSON_PATH", "./backup_settings.json"),
            redis_url=os.getenv("SETTINGS_REDIS_URL", "redis://localhost:6379"),
            redis_password=os.getenv("SETTINGS_REDIS_PASSWORD", None),
            redis_prefix=os.getenv("SETTINGS_REDIS_PREFIX", "asset_backup"),
            redis_socket_timeout=float(os.getenv("SETTINGS_REDIS_SOCKET_TIMEOUT", "5.0"))
        )

    def __post_init__(self):
        """Validate configuration."""
        valid_backends = {"json", "redis"}
        if self.backend not in valid_backends:
            raise ValueError(f"Unknown settings backend: {self.backend}. Available: {valid_backends}")


@dataclass(frozen=True)
class EngineConfig:
    """Main backup engine configuration."""
    backup: BackupConfig = field(default_factory=BackupConfig)
    restore: RestoreConfig = field(default_factory=RestoreConfig)
    data_client: DataClientConfig = field(default_factory=DataClientConfig)
    settings: SettingsConfig = field(default_factory=SettingsConfig)

    @classmethod
    def from_env(cls) -> 'EngineConfig':
        """Create complete config from environment variables."""
        return cls(
            backup=BackupConfig.from_env(),
            restore=RestoreConfig.from_env(),
            data_client=DataClientConfig.from_env(),
            settings=SettingsConfig.from_env()
        )

    def to_dict(self) -> dict:
        """Flatten to the global_config dict passed to storage backends."""
        return {
            'data_api_url': self.data_client.url,
            'data_api_key': self.data_client.api_key,
            'data_api_schema': self.data_client.schema,
            'data_api_project_id': self.data_client.project_id,
            'data_api_request_timeout': self.data_client.request_timeout,
            'data_api_max_retries': self.data_client.max_retries,
            'data_api_page_size': self.backup.page_size,
            'settings_json_path': self.settings.json_path,
            'redis_url': self.settings.redis_url,
            'redis_password': self.settings.redis_password,
            'redis_prefix': self.settings.redis_prefix,
            'redis_socket_timeout': self.settings.redis_socket_timeout,
        }
