"""System configuration exporter."""

from typing import Any, Dict

from ...base import BaseSettingsStore
from ...config import DataClientConfig
from ..._utils import iso_now, logger
from ..models import BackupStats, BackupType, ExportPayload

CONFIGURATION_PATH = "configuration/settings"

# Feature flags reported when no override is stored under ``feature.<name>``.
DEFAULT_FEATURES: Dict[str, bool] = {
    "authentication": True,
    "notifications": True,
    "pushNotifications": True,
    "errorTracking": True,
    "usageTracking": True,
    "securityMonitoring": True,
    "backupRestore": True,
}


class ConfigurationExporter:
    """Export environment identity, feature flags and application settings.

    Reads only the settings store; the data client is never touched.
    """

    def __init__(
        self,
        settings: BaseSettingsStore,
        data_client_config: DataClientConfig,
        format_version: str = "1.0.0",
    ):
        self.settings = settings
        self.data_client_config = data_client_config
        self.format_version = format_version

    async def _features(self) -> Dict[str, bool]:
        return {
            name: await self.settings.get_bool(f"feature.{name}", default)
            for name, default in DEFAULT_FEATURES.items()
        }

    async def _app_settings(self) -> Dict[str, Any]:
        return {
            "theme": await self.settings.get("theme") or "light",
            "responsive": await self.settings.get_bool("responsive", True),
            "autoBackupEnabled": await self.settings.get_bool("autoBackupEnabled", False),
            "language": await self.settings.get("language") or "vi-VN",
            "backupRetentionDays": await self.settings.get_int("backupRetentionDays", 30),
            "backupMaxBackups": await self.settings.get_int("backupMaxBackups", 10),
        }

    async def export(self) -> ExportPayload:
        document = {
            "exported_at": iso_now(),
            "environment": {
                "data_api_url": self.data_client_config.url,
                "project_id": self.data_client_config.project_id,
                "schema": self.data_client_config.schema,
            },
            "features": await self._features(),
            "settings": await self._app_settings(),
            "version": self.format_version,
        }

        logger.info("Configuration export complete")
        return ExportPayload(
            backup_type=BackupType.CONFIGURATION,
            entries={CONFIGURATION_PATH: document},
            metadata_path=CONFIGURATION_PATH,
            stats=BackupStats(),
        )
